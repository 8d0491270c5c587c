# Rev 0.2.0

"""Pytest fixtures for projectZ (Rev 0.2.0)"""
from __future__ import annotations
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from projectz.repositories.db import Database  # noqa: E402
from projectz.repositories.sqlite_project_repository import SQLiteProjectRepository  # noqa: E402


@pytest.fixture()
def db(tmp_path: Path):
    db = Database(path=tmp_path / "test.db")
    try:
        db.run_migrations()
        yield db
    finally:
        db.close()


@pytest.fixture()
def repo(db) -> SQLiteProjectRepository:
    return SQLiteProjectRepository(db)


@pytest.fixture(scope="session")
def qapp():
    return QApplication.instance() or QApplication([])


@pytest.fixture()
def executor():
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="test-live-query")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture()
def wait_until():
    """Polls a condition until it holds or the timeout expires.
    Pending Qt events are processed between polls so queued signals arrive."""
    def _wait(condition, timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if QCoreApplication.instance() is not None:
                QCoreApplication.processEvents()
            if condition():
                return True
            time.sleep(interval)
        return condition()
    return _wait
