"""
Concurrent creates against the store and through the HTTP layer.

    - N creates with distinct codes all succeed and are all retrievable
    - N creates with the same code: exactly one success, N-1 conflicts
    - Readers keep working while writers are saving to disk
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient

from goto_platform.errors import ConflictError
from goto_platform.manager.link_manager import LinkManager
from main import create_app

N = 32


def _run_together(fn, n=N):
    """Run fn(i) for i in range(n) on n threads released at the same moment."""
    start = threading.Barrier(n, timeout=10)

    def task(i):
        start.wait()
        return fn(i)

    with ThreadPoolExecutor(max_workers=n) as ex:
        return list(ex.map(task, range(n)))


def test_distinct_codes_all_succeed(file_storage):
    manager = LinkManager(storage=file_storage)
    _run_together(lambda i: manager.create(f"code{i}", f"https://example.com/{i}"))

    expected = {f"code{i}": f"https://example.com/{i}" for i in range(N)}
    assert manager.snapshot() == expected
    # The last save wins and it contains everything
    assert file_storage.load_all() == expected


def test_same_code_exactly_one_success(storage):
    manager = LinkManager(storage=storage)

    def attempt(i):
        try:
            manager.create("same", f"https://example.com/{i}")
            return i
        except ConflictError:
            return None

    results = _run_together(attempt)
    winners = [r for r in results if r is not None]

    assert len(winners) == 1
    assert results.count(None) == N - 1
    assert manager.resolve("same") == f"https://example.com/{winners[0]}"
    assert storage.save_count == 1


def test_reads_during_writes(file_storage):
    manager = LinkManager(storage=file_storage)
    manager.create("stable", "https://stable.example")

    def work(i):
        if i % 2:
            manager.create(f"w{i}", f"https://w.example/{i}")
            return None
        return manager.resolve("stable")

    results = _run_together(work)
    assert [r for r in results if r is not None] == ["https://stable.example"] * (N // 2)
    assert len(manager) == 1 + N // 2


def test_http_same_code_race(file_storage):
    client = TestClient(create_app(storage=file_storage), follow_redirects=False)
    statuses = _run_together(
        lambda i: client.post("/race", content=f"https://example.com/{i}").status_code, n=16
    )
    assert sorted(statuses) == [200] + [409] * 15
    assert list(file_storage.load_all()) == ["race"]


def test_http_distinct_codes(file_storage, db_path):
    client = TestClient(create_app(storage=file_storage), follow_redirects=False)
    statuses = _run_together(
        lambda i: client.post(f"/h{i}", content=f"https://example.com/{i}").status_code, n=16
    )
    assert statuses == [200] * 16

    restarted = TestClient(create_app(storage=type(file_storage)(str(db_path))), follow_redirects=False)
    for i in range(16):
        assert restarted.get(f"/h{i}").headers["location"] == f"https://example.com/{i}"
