#!/usr/bin/env python3
"""Validate a JSON configuration file and store it as the runtime configuration.

Usage examples:
    # Store config.json under the default key
    uv run python scripts/set_config.py config.json

    # Validate only
    uv run python scripts/set_config.py config.json --check

The file must look like::

    {
      "notification_channels": {
        "server_chan": {"send_key": "SCT..."},
        "wechat_work": {"corp_id": "...", "app_secret": "...", "agent_id": "1000002"}
      },
      "retry_config": {"max_retry": 3, "retry_interval": 1000}
    }
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pushcron.config import parse_app_config, settings
from pushcron.errors import ConfigError
from pushcron.scheduler.store import ConfigStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Store the pushcron runtime configuration")
    parser.add_argument("path", type=Path, help="JSON configuration file")
    parser.add_argument("--key", default=settings.config_key, help="Key to store it under")
    parser.add_argument("--db", type=Path, help="Database path (default from settings)")
    parser.add_argument("--check", action="store_true", help="Validate without storing")
    args = parser.parse_args()

    raw = args.path.read_text(encoding="utf-8")
    try:
        config = parse_app_config(raw)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    channels = ", ".join(config.notification_channels) or "none"
    print(f"Valid configuration (channels: {channels})")
    if args.check:
        return

    asyncio.run(ConfigStore(db_path=args.db).put(args.key, raw))
    print(f"Stored under key {args.key}")


if __name__ == "__main__":
    main()
