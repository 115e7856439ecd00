"""Shared fixtures for tests."""

from __future__ import annotations

import os
import sqlite3
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

# Set up test config dir and database before importing storage
_test_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_dir, "clocker.db")
os.environ["CLOCKER_HOME"] = _test_dir
os.environ["CLOCKER_DB"] = _test_db_path
os.environ.pop("BAMBOOHR_COMPANY_DOMAIN", None)
os.environ.pop("BAMBOOHR_API_KEY", None)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db() -> Generator[Path, None, None]:
    """Set up a test database for the entire test session."""
    import storage

    storage.CONFIG_DIR = Path(_test_dir)
    storage.DB_PATH = Path(_test_db_path)
    storage.init_db()

    yield Path(_test_db_path)

    if os.path.exists(_test_db_path):
        os.unlink(_test_db_path)


@pytest.fixture
def db_connection(setup_test_db: Path) -> Generator[sqlite3.Connection, None, None]:
    """Provide a database connection for tests."""
    import storage

    conn = storage.get_connection()
    yield conn
    conn.close()


@pytest.fixture
def clean_db(setup_test_db: Path) -> Generator[None, None, None]:
    """Clean database tables before each test."""
    import storage

    storage.DB_PATH = setup_test_db
    storage.init_db()
    conn = storage.get_connection()
    conn.execute("DELETE FROM config")
    conn.execute("DELETE FROM sent_reminders")
    conn.commit()
    conn.close()

    yield


@pytest.fixture
def january_weekdays() -> list[date]:
    """The 22 weekdays of January 2026 (the 1st is a Thursday)."""
    return [date(2026, 1, d) for d in range(1, 32) if date(2026, 1, d).weekday() < 5]


@pytest.fixture
def logged_january(january_weekdays):
    """January 2026 with 7 hours recorded on every weekday."""
    from factories import hour_entry
    from models import MonthFeeds

    entries = [hour_entry(d, entry_id=i) for i, d in enumerate(january_weekdays)]
    return MonthFeeds(entries=entries)
