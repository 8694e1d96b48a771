"""
Pytest configuration and fixtures for Pillbox tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from pillbox.credentials import CredentialManager
from pillbox.schema import NewCredential
from pillbox.store import KVStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Path for a database that does not exist yet."""
    return temp_dir / "pillbox.db"


@pytest.fixture
def store(db_path: Path) -> Generator[KVStore, None, None]:
    """Open a fresh store in a temporary directory."""
    kv = KVStore(db_path)
    yield kv
    kv.close()


@pytest.fixture
def manager(store: KVStore) -> CredentialManager:
    """Credential manager over a fresh store."""
    return CredentialManager(store)


@pytest.fixture
def sample_credential() -> NewCredential:
    """A typical file credential."""
    return NewCredential(
        label="API",
        location="https://x/y",
        method="GET",
        macaroon="ab12",
        preimage="cd34",
        invoice="lnbc1...",
        type="file",
    )


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a config YAML for testing."""
    return """
db_path: "~/pillbox-test/pillbox.db"
timeout_seconds: 5
busy_timeout_seconds: 15
"""
