"""
Exception hierarchy for Pillbox.

All Pillbox exceptions inherit from PillboxError, allowing callers to catch
all Pillbox-specific exceptions with a single except clause.

Exception Categories:
    - StoreUnavailableError: The database file cannot be opened
    - TransactionError: A read or write transaction did not complete
    - NotFoundError: No credential exists for the requested ID
    - EncodeError / DecodeError: A record could not be (de)serialized
    - DeadlineExceededError: The caller stopped waiting on the store

A missing record is reported separately from a broken store so callers
can treat "missing" and "broken" differently.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Storage errors: 5xxx
ERROR_STORE_UNAVAILABLE = 5001
ERROR_STORE_TRANSACTION = 5002
ERROR_STORE_NOT_FOUND = 5003
ERROR_STORE_ENCODE = 5004
ERROR_STORE_DECODE = 5005

# Caller errors: 6xxx
ERROR_DEADLINE_EXCEEDED = 6001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PillboxError(Exception):
    """
    Base exception for all Pillbox errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StoreError(PillboxError):
    """
    Base class for storage errors.

    Attributes:
        operation: The operation that failed (e.g., "add_credential")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StoreUnavailableError(StoreError):
    """Raised when the database file cannot be opened or initialised."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Store unavailable: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORE_UNAVAILABLE
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class TransactionError(StoreError):
    """Raised when a transaction fails. The transaction is rolled back."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Transaction failed during {self.operation}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORE_TRANSACTION
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class NotFoundError(StoreError):
    """Raised when no credential is stored under the requested ID."""

    credential_id: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Credential not found: {self.credential_id}"
        if self.code == 0:
            self.code = ERROR_STORE_NOT_FOUND
        super().__post_init__()
        self.context["credential_id"] = self.credential_id


@dataclass
class EncodeError(StoreError):
    """Raised when a credential cannot be serialized."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to encode credential: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORE_ENCODE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class DecodeError(StoreError):
    """Raised when stored bytes do not decode into a valid credential."""

    key: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to decode credential {self.key}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORE_DECODE
        if not self.suggestion:
            self.suggestion = "The database may be corrupted or written by a newer version."
        super().__post_init__()
        self.context.update({
            "key": self.key,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Caller Errors
# =============================================================================


@dataclass
class DeadlineExceededError(PillboxError):
    """
    Raised when the caller's deadline elapses before the store responds.

    The abandoned operation is not aborted and may still commit.
    """

    operation: str = ""
    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.operation} timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_DEADLINE_EXCEEDED
        if not self.suggestion:
            self.suggestion = "Increase timeout_seconds in the config or retry"
        self.context.update({
            "operation": self.operation,
            "timeout_seconds": self.timeout_seconds,
        })
