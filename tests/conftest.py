"""Pytest configuration and shared fixtures for aihub tests.

This module provides reusable fixtures for testing:
- env_setup: (autouse) Points AIHUB_* settings at a throwaway directory
- temp_dir: Temporary directory for file operations
- store: In-memory SQLiteStore
- file_store: SQLiteStore backed by a file (needed for reset tests)

Usage:
    def test_something(store, temp_dir):
        pass
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from aihub.storage.sqlite_store import SQLiteStore


@pytest.fixture(autouse=True)
def env_setup() -> Generator[None, None, None]:
    """Set AIHUB_* environment variables for all tests.

    Stores created with default settings land in a temporary directory
    instead of the user's home.
    """
    with tempfile.TemporaryDirectory() as data_dir:
        env_vars = {
            "AIHUB_DATA_DIR": data_dir,
            "AIHUB_DB_FILENAME": "conversations.sqlite",
            "AIHUB_LOG_LEVEL": "DEBUG",
            "AIHUB_BUSY_TIMEOUT_MS": "1000",
        }
        # Store original values
        original = {k: os.environ.get(k) for k in env_vars}
        os.environ.update(env_vars)
        yield
        # Restore original values
        for key, value in original.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test file operations.

    Yields:
        Path: Path to the temporary directory (cleaned up after test)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store() -> Generator[SQLiteStore, None, None]:
    """Provide in-memory SQLiteStore instance for testing.

    Yields:
        SQLiteStore: Fresh store using ':memory:'
    """
    s = SQLiteStore(Path(":memory:"))
    yield s
    s.close()


@pytest.fixture
def file_store(temp_dir: Path) -> Generator[SQLiteStore, None, None]:
    """Provide a SQLiteStore backed by a database file.

    Yields:
        SQLiteStore: Store at <temp_dir>/history.sqlite
    """
    s = SQLiteStore(temp_dir / "history.sqlite")
    yield s
    s.close()
