"""pushcron entry point."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pushcron.api.server import ApiServer
from pushcron.channels import default_registry
from pushcron.config import StoreConfigSource, settings
from pushcron.scheduler.dispatcher import TaskDispatcher
from pushcron.scheduler.engine import SchedulerEngine
from pushcron.scheduler.store import ConfigStore, LogStore, TaskStore

if TYPE_CHECKING:
    from pathlib import Path

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_engine(db_path: Path | None = None) -> tuple[SchedulerEngine, TaskStore, LogStore]:
    """Wire stores, channels and dispatcher into a SchedulerEngine."""
    task_store = TaskStore(db_path=db_path)
    log_store = LogStore(db_path=db_path)
    config_source = StoreConfigSource(ConfigStore(db_path=db_path))
    registry = default_registry()
    logger.info("Channels registered: %s", ", ".join(registry.names))
    dispatcher = TaskDispatcher(registry, task_store)
    engine = SchedulerEngine(task_store, log_store, dispatcher, config_source)
    return engine, task_store, log_store


async def run() -> None:
    """Run the scheduler and admin API until cancelled."""
    engine, task_store, log_store = build_engine()
    server = ApiServer(task_store, log_store)
    await server.start()
    await engine.start()
    try:
        await asyncio.Event().wait()
    finally:
        await engine.stop()
        await server.stop()


def main() -> None:
    """Start pushcron."""
    logger.info("Starting pushcron (database=%s)", settings.database_path)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
