"""
Global pytest fixtures for the Goto Platform test suite.

Responsibilities:
    - Keep GOTO_* environment variables out of tests unless a test sets them
    - Provide a fresh FastAPI TestClient via the app factory (in-memory and file-backed)
    - Provide isolated storage backends and a LinkManager wired to them

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.
"""

import pytest
from fastapi.testclient import TestClient

from goto_platform.errors import PersistenceError
from goto_platform.manager.link_manager import LinkManager
from goto_platform.storage.base import BaseStorage
from goto_platform.storage.file_storage import FileStorage
from goto_platform.storage.storage import MemoryStorage
from main import create_app


class FlakyStorage(BaseStorage):
    """In-memory backend whose saves can be switched to fail."""

    name = "flaky"

    def __init__(self, initial=None):
        self.saved = dict(initial or {})
        self.fail = False
        self.save_calls = 0

    def load_all(self):
        return dict(self.saved)

    def save_all(self, table):
        self.save_calls += 1
        if self.fail:
            raise PersistenceError("disk on fire")
        self.saved = dict(table)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("GOTO_STORAGE_BACKEND", "GOTO_DB_PATH", "GOTO_FRONT_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage() -> MemoryStorage:
    """Fresh no-op backend."""
    return MemoryStorage()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "goto" / "links.json"


@pytest.fixture
def file_storage(db_path) -> FileStorage:
    """File backend pointed at a per-test temp path (file not created yet)."""
    return FileStorage(str(db_path))


@pytest.fixture
def flaky_storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def manager(storage: MemoryStorage) -> LinkManager:
    """LinkManager wired to the in-memory storage fixture."""
    return LinkManager(storage=storage)


@pytest.fixture
def client(storage: MemoryStorage) -> TestClient:
    """
    Provide a fresh TestClient with a new in-memory app instance.

    Redirects are not followed so tests can inspect the 302 itself.
    """
    return TestClient(create_app(storage=storage), follow_redirects=False)


@pytest.fixture
def file_client(file_storage: FileStorage) -> TestClient:
    """TestClient backed by a JSON mapping file in tmp_path."""
    return TestClient(create_app(storage=file_storage), follow_redirects=False)
