#!/usr/bin/env python3
"""Run a single scheduler tick immediately and print what happened.

Usage examples:
    uv run python scripts/run_tick.py

    # Pretend the tick fires at a given time
    uv run python scripts/run_tick.py --now 2026-02-10T18:00:00Z
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pushcron.main import build_engine
from pushcron.scheduler.models import format_timestamp, parse_timestamp


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one pushcron tick")
    parser.add_argument("--now", help="Tick time (ISO 8601, default: current time)")
    parser.add_argument("--db", type=Path, help="Database path (default from settings)")
    args = parser.parse_args()

    engine, _, _ = build_engine(db_path=args.db)
    now = parse_timestamp(args.now) if args.now else None
    records = asyncio.run(engine.run_tick(now))

    if not records:
        print("No tasks dispatched.")
        return
    for record in records:
        print(
            f"{format_timestamp(record.execute_time)} {record.status:7s} "
            f"[{record.channel}] task={record.task_id} {record.duration}ms {record.message}"
        )


if __name__ == "__main__":
    main()
