"""Shared test fixtures."""

from pathlib import Path

import pytest

from pushcron.scheduler.store import ConfigStore, LogStore, TaskStore


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def task_store(db_path: Path) -> TaskStore:
    """Create a TaskStore backed by a temp database."""
    return TaskStore(db_path=db_path)


@pytest.fixture
def log_store(db_path: Path) -> LogStore:
    return LogStore(db_path=db_path)


@pytest.fixture
def config_store(db_path: Path) -> ConfigStore:
    return ConfigStore(db_path=db_path)
