"""
Integration tests for concurrent access to one store.

Tests cover:
- Many concurrent writers get distinct, gap-free IDs
- Readers running alongside writers see consistent snapshots
- Concurrent calls through the App facade
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pillbox.app import App
from pillbox.credentials import CredentialManager
from pillbox.schema import NewCredential, PillboxConfig
from pillbox.store import KVStore

WRITERS = 50


class TestConcurrentWriters:
    """Tests for concurrent add_credential calls."""

    def test_fifty_concurrent_adds(self, manager: CredentialManager) -> None:
        """50 concurrent adds give IDs 1..50 with no collisions."""
        with ThreadPoolExecutor(max_workers=WRITERS) as pool:
            futures = [
                pool.submit(manager.add_credential, NewCredential(label=f"writer-{i}"))
                for i in range(WRITERS)
            ]
            created = [f.result() for f in futures]

        ids = sorted(c.id for c in created)
        assert ids == list(range(1, WRITERS + 1))

        listed = manager.list_credentials()
        assert len(listed) == WRITERS
        assert {c.id for c in listed} == set(ids)
        assert {c.label for c in listed} == {f"writer-{i}" for i in range(WRITERS)}

    def test_readers_alongside_writers(self, manager: CredentialManager) -> None:
        """Every list taken during writes is a gap-free, consistent snapshot."""

        def write(i: int) -> int:
            return manager.add_credential(NewCredential(label=f"w{i}")).id

        def read(_: int) -> list[int]:
            return [c.id for c in manager.list_credentials()]

        with ThreadPoolExecutor(max_workers=20) as pool:
            writes = [pool.submit(write, i) for i in range(30)]
            reads = [pool.submit(read, i) for i in range(30)]
            snapshots = [f.result() for f in reads]
            [f.result() for f in writes]

        for ids in snapshots:
            # IDs are committed in order, so each snapshot is exactly 1..n.
            assert ids == list(range(1, len(ids) + 1))
        assert len(manager.list_credentials()) == 30

    def test_two_stores_same_file(self, db_path: Path) -> None:
        """Writers on separate handles to one file still get unique IDs."""
        with KVStore(db_path) as first, KVStore(db_path) as second:
            managers = [CredentialManager(first), CredentialManager(second)]
            with ThreadPoolExecutor(max_workers=10) as pool:
                futures = [
                    pool.submit(managers[i % 2].add_credential, NewCredential(label=str(i)))
                    for i in range(20)
                ]
                ids = sorted(f.result().id for f in futures)
        assert ids == list(range(1, 21))


class TestConcurrentApp:
    """Tests for concurrent calls through the facade."""

    def test_concurrent_app_calls(self, db_path: Path) -> None:
        """The facade handles concurrent callers with the default deadline."""
        with App.open(PillboxConfig(db_path=db_path)) as app:
            with ThreadPoolExecutor(max_workers=WRITERS) as pool:
                ids = list(
                    pool.map(
                        lambda i: app.add_credential(NewCredential(label=str(i))).id,
                        range(WRITERS),
                    )
                )
            assert sorted(ids) == list(range(1, WRITERS + 1))
            assert len(app.list_credentials()) == WRITERS
