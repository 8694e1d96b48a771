"""
Application facade for Pillbox.

App is what a host (the CLI, or a desktop shell) talks to. It owns the
store for the lifetime of the process and bounds every credential
operation with a deadline.

Deadlines are cooperative: when one expires the caller stops waiting and
gets DeadlineExceededError, but the store operation keeps running on its
worker thread and may still commit.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, TypeVar

from pillbox import __version__
from pillbox.credentials import CredentialManager
from pillbox.errors import DeadlineExceededError, TransactionError
from pillbox.schema import DEFAULT_TIMEOUT_SECONDS, Credential, NewCredential, PillboxConfig
from pillbox.store import KVStore, open_store

logger = logging.getLogger(__name__)

T = TypeVar("T")


class App:
    """
    Process-level entry point for credential operations.

    Usage:
        with App.open(PillboxConfig()) as app:
            cred = app.add_credential(NewCredential(label="API", ...))
            print(app.list_credentials())
    """

    def __init__(
        self,
        manager: CredentialManager,
        store: KVStore | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int | None = None,
    ) -> None:
        """
        Args:
            manager: The credential repository to call
            store: Store to close with the app (None if owned elsewhere)
            timeout_seconds: Deadline for each operation
            max_workers: Worker threads for store calls
        """
        self.manager = manager
        self.timeout_seconds = timeout_seconds
        self._store = store
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="pillbox",
        )

    @classmethod
    def open(cls, config: PillboxConfig) -> "App":
        """Open the configured store and build an app that owns it."""
        store = open_store(config.db_path, timeout=config.busy_timeout_seconds)
        logger.info("Using database %s", config.db_path)
        return cls(
            CredentialManager(store),
            store=store,
            timeout_seconds=config.timeout_seconds,
        )

    def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError as e:
            # The worker pool refuses new work once close() has run.
            raise TransactionError(
                operation=operation,
                underlying_error="app is closed",
            ) from e
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as e:
            logger.warning(
                "%s did not finish within %ss", operation, self.timeout_seconds
            )
            raise DeadlineExceededError(
                operation=operation,
                timeout_seconds=self.timeout_seconds,
            ) from e

    def add_credential(self, new: NewCredential) -> Credential:
        """Store a new credential and return it with its assigned ID."""
        return self._call("add_credential", self.manager.add_credential, new)

    def list_credentials(self) -> list[Credential]:
        """Return every stored credential, ordered by ID."""
        return self._call("list_credentials", self.manager.list_credentials)

    def get_credential(self, credential_id: int) -> Credential:
        """Return the credential with the given ID."""
        return self._call(
            "get_credential", self.manager.get_credential, credential_id
        )

    def version(self) -> str:
        """Pillbox version string."""
        return __version__

    def downloads_path(self) -> str:
        """The user's Downloads directory, or "" if home is unknown."""
        try:
            return str(Path.home() / "Downloads")
        except RuntimeError:
            return ""

    def close(self) -> None:
        """Stop the worker pool and close the owned store."""
        # Abandoned operations are allowed to finish before the store closes.
        self._executor.shutdown(wait=True)
        if self._store is not None:
            self._store.close()

    def __enter__(self) -> "App":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()
