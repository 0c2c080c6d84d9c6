"""
Pytest configuration and fixtures for chatstore tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from chatstore.sessions import ChatHistory
from chatstore.store import StoreHandle, open_store


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Path for a store file that does not exist yet."""
    return temp_dir / "history.db"


@pytest.fixture
def handle(db_path: Path) -> Generator[StoreHandle, None, None]:
    """An open store on a fresh file."""
    store = open_store(db_path)
    assert store is not None
    yield store
    store.close()


@pytest.fixture
def history(handle: StoreHandle) -> ChatHistory:
    """Session operations over the fresh store."""
    return ChatHistory(handle)


@pytest.fixture
def messages() -> list[dict[str, Any]]:
    """Five messages with distinct ids."""
    return [
        {"id": "m1", "role": "user", "content": "Build me a landing page"},
        {"id": "m2", "role": "assistant", "content": "Sure, here is a first draft"},
        {"id": "m3", "role": "user", "content": "Make the header blue"},
        {"id": "m4", "role": "assistant", "content": "Done, the header is blue"},
        {"id": "m5", "role": "user", "content": "Thanks"},
    ]
