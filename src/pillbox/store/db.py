"""
Embedded key-value storage for Pillbox.

This module provides an ordered, transactional key-value store organised
into named buckets, kept in a single SQLite database file.

Design Principles:
    - Buckets: independent key spaces, each with its own sequence counter
    - Ordered: keys are bytes and iterate in byte-wise lexicographic order
    - Atomic: every read or write happens inside a transaction
    - Single writer: write transactions are serialised by SQLite's write lock
    - Snapshot readers: WAL mode lets readers proceed while a writer commits

Tables:
    - buckets: one row per bucket with its current sequence value
    - entries: (bucket, key) -> value

Each transaction runs on its own connection, so transactions started from
different threads never share connection state.
"""

import logging
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from pillbox.errors import StoreUnavailableError, TransactionError

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_SECONDS = 30.0

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS buckets (
    name TEXT PRIMARY KEY,
    sequence INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS entries (
    bucket TEXT NOT NULL,
    key BLOB NOT NULL,
    value BLOB NOT NULL,
    PRIMARY KEY (bucket, key),
    FOREIGN KEY (bucket) REFERENCES buckets(name)
) WITHOUT ROWID;
"""


class Bucket:
    """
    A named key space inside a transaction.

    A Bucket is only valid while its transaction is open.
    """

    def __init__(self, tx: "Transaction", name: str) -> None:
        self._tx = tx
        self.name = name

    def get(self, key: bytes) -> bytes | None:
        """Return the value stored under key, or None."""
        self._check_key(key)
        row = self._tx._conn.execute(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?",
            (self.name, key),
        ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: bytes, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        self._tx._require_writable("put")
        self._check_key(key)
        self._tx._conn.execute(
            "INSERT OR REPLACE INTO entries (bucket, key, value) VALUES (?, ?, ?)",
            (self.name, key, bytes(value)),
        )

    def sequence(self) -> int:
        """Current sequence value (0 if next_sequence was never called)."""
        row = self._tx._conn.execute(
            "SELECT sequence FROM buckets WHERE name = ?",
            (self.name,),
        ).fetchone()
        return int(row[0])

    def next_sequence(self) -> int:
        """
        Advance the bucket's sequence and return the new value.

        The first call on a new bucket returns 1. The increment is part of
        the enclosing transaction and is discarded if it rolls back.
        """
        self._tx._require_writable("next_sequence")
        self._tx._conn.execute(
            "UPDATE buckets SET sequence = sequence + 1 WHERE name = ?",
            (self.name,),
        )
        return self.sequence()

    def items(self) -> Iterator[tuple[bytes, bytes]]:
        """Iterate (key, value) pairs in byte-wise key order."""
        cursor = self._tx._conn.execute(
            "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key",
            (self.name,),
        )
        for key, value in cursor:
            yield bytes(key), bytes(value)

    def _check_key(self, key: bytes) -> None:
        if not isinstance(key, bytes) or not key:
            raise TransactionError(
                operation=self._tx.operation,
                underlying_error="key must be non-empty bytes",
            )

    def __repr__(self) -> str:
        return f"Bucket({self.name!r})"


class Transaction:
    """A read-only or read-write transaction on a KVStore."""

    def __init__(self, conn: sqlite3.Connection, writable: bool, operation: str) -> None:
        self._conn = conn
        self.writable = writable
        self.operation = operation

    def _require_writable(self, action: str) -> None:
        if not self.writable:
            raise TransactionError(
                operation=self.operation,
                underlying_error=f"{action} in a read-only transaction",
            )

    def bucket(self, name: str) -> Bucket | None:
        """Return the named bucket, or None if it does not exist."""
        row = self._conn.execute(
            "SELECT 1 FROM buckets WHERE name = ?",
            (name,),
        ).fetchone()
        if row is None:
            return None
        return Bucket(self, name)

    def create_bucket_if_not_exists(self, name: str) -> Bucket:
        """Return the named bucket, creating it first if needed."""
        self._require_writable("create_bucket")
        if not name:
            raise TransactionError(
                operation=self.operation,
                underlying_error="bucket name must not be empty",
            )
        self._conn.execute(
            "INSERT OR IGNORE INTO buckets (name, sequence) VALUES (?, 0)",
            (name,),
        )
        return Bucket(self, name)


class KVStore:
    """
    Transactional key-value store backed by a single SQLite file.

    Usage:
        store = KVStore("pillbox.db")
        with store.update() as tx:
            bucket = tx.create_bucket_if_not_exists("credentials")
            bucket.put(b"1", b"...")
        with store.view() as tx:
            bucket = tx.bucket("credentials")
        store.close()

    Or use as context manager:
        with KVStore("pillbox.db") as store:
            ...
    """

    def __init__(
        self,
        db_path: str | Path,
        timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ) -> None:
        """
        Open the store.

        Args:
            db_path: Path to the database file.
                     Will be created (mode 0600) if it doesn't exist.
            timeout: Seconds a writer waits for the write lock.

        Raises:
            StoreUnavailableError: If the file cannot be opened or initialised
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._open()

    def _open(self) -> None:
        """Open the long-lived handle connection and create the schema."""
        created = not self.db_path.exists()
        try:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                db_path=str(self.db_path),
                operation="open",
                message=f"Failed to open database {self.db_path}: {e}",
            ) from e

        try:
            mode = conn.execute("PRAGMA journal_mode = WAL").fetchone()[0]
            if mode.lower() != "wal":
                logger.warning("Database %s is using journal mode %s", self.db_path, mode)
            conn.executescript(CREATE_TABLES_SQL)
            if created:
                os.chmod(self.db_path, 0o600)
        except (sqlite3.Error, OSError) as e:
            conn.close()
            raise StoreUnavailableError(
                db_path=str(self.db_path),
                operation="init_schema",
                message=f"Failed to initialise database {self.db_path}: {e}",
            ) from e

        self._conn = conn
        logger.debug("Opened store %s", self.db_path)

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._conn is None

    def _connect(self, operation: str, readonly: bool) -> sqlite3.Connection:
        """Open a connection for one transaction."""
        if self._conn is None:
            raise TransactionError(
                operation=operation,
                underlying_error="store is closed",
            )
        try:
            if readonly:
                uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
                conn = sqlite3.connect(
                    uri,
                    uri=True,
                    timeout=self.timeout,
                    isolation_level=None,
                )
            else:
                conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.timeout,
                    isolation_level=None,
                )
                conn.execute("PRAGMA synchronous = FULL")
            conn.execute("PRAGMA foreign_keys = ON")
            return conn
        except sqlite3.Error as e:
            raise TransactionError(
                operation=operation,
                underlying_error=str(e),
            ) from e

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.warning("Rollback failed", exc_info=True)

    @contextmanager
    def update(self, operation: str = "update") -> Generator[Transaction, None, None]:
        """
        Run a read-write transaction.

        Commits when the block exits normally and rolls back on any
        exception. SQLite errors are raised as TransactionError.
        """
        conn = self._connect(operation, readonly=False)
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield Transaction(conn, writable=True, operation=operation)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise TransactionError(
                operation=operation,
                underlying_error=str(e),
            ) from e
        except BaseException:
            self._rollback(conn)
            raise
        finally:
            conn.close()

    @contextmanager
    def view(self, operation: str = "view") -> Generator[Transaction, None, None]:
        """
        Run a read-only transaction over a consistent snapshot.

        SQLite errors are raised as TransactionError.
        """
        conn = self._connect(operation, readonly=True)
        try:
            conn.execute("BEGIN")
            yield Transaction(conn, writable=False, operation=operation)
        except sqlite3.Error as e:
            raise TransactionError(
                operation=operation,
                underlying_error=str(e),
            ) from e
        finally:
            self._rollback(conn)
            conn.close()

    def close(self) -> None:
        """Close the store. Safe to call more than once."""
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.debug("Closed store %s", self.db_path)

    def __enter__(self) -> "KVStore":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()


def open_store(
    db_path: str | Path,
    timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
) -> KVStore:
    """
    Open the store at db_path, creating its directory if needed.

    Raises:
        StoreUnavailableError: If the directory or file cannot be created
    """
    db_path = Path(db_path).expanduser()
    try:
        db_path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create data directory %s: %s", db_path.parent, e)
        raise StoreUnavailableError(
            db_path=str(db_path),
            operation="create_data_dir",
            message=f"Failed to create data directory {db_path.parent}: {e}",
        ) from e

    try:
        return KVStore(db_path, timeout=timeout)
    except StoreUnavailableError:
        logger.error("Failed to open database %s", db_path)
        raise
