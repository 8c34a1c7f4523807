#!/usr/bin/env python3
"""Print recent execution log records.

Usage examples:
    # Latest 20 records
    uv run python scripts/show_logs.py

    # One task only
    uv run python scripts/show_logs.py --task 3f2a... --limit 50
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pushcron.scheduler.models import LogRecord, format_timestamp
from pushcron.scheduler.store import LogStore


def format_record(record: LogRecord, color: bool = True) -> str:
    """Format a single log record for display."""
    status = f"{record.status:7s}"
    if color:
        code = "\033[32m" if record.succeeded else "\033[31m"
        status = f"{code}{status}\033[0m"
    return (
        f"{format_timestamp(record.execute_time)} {status} [{record.channel}] "
        f"task={record.task_id} {record.duration}ms {record.message}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Show pushcron execution logs")
    parser.add_argument("--task", "-t", help="Only show records for this task id")
    parser.add_argument("--limit", "-n", type=int, default=20, help="Max records (default: 20)")
    parser.add_argument("--db", type=Path, help="Database path (default from settings)")
    parser.add_argument("--no-color", action="store_true", help="Disable color output")
    args = parser.parse_args()

    records = asyncio.run(LogStore(db_path=args.db).list_logs(args.task, limit=args.limit))
    if not records:
        print("No log records.")
        return
    for record in reversed(records):
        print(format_record(record, color=not args.no_color))


if __name__ == "__main__":
    main()
