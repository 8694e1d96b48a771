"""
Schema definitions for Pillbox.

This module defines the Pydantic models used throughout Pillbox:
- NewCredential: What a caller supplies when storing a credential
- Credential: A stored credential, with its ID and creation time
- PillboxConfig: Where the database lives and how long callers wait

Design Decisions:
    - Models are immutable (frozen=True) and reject unknown fields
    - NewCredential has no id or created_at, so callers cannot set them
    - method and type are advisory: known values are listed as enums,
      but any string is stored as-is
    - created_at is always timezone-aware and normalised to UTC
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# IDs are unsigned 64-bit integers; 0 is never assigned.
MAX_CREDENTIAL_ID = 2**64 - 1

DEFAULT_TIMEOUT_SECONDS = 10.0


# =============================================================================
# Enums
# =============================================================================


class HttpMethod(str, Enum):
    """Request method used to access the paid resource."""

    POST = "POST"
    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"


class CredentialType(str, Enum):
    """Kind of resource the credential was bought for."""

    FILE = "file"
    GRAPHQL = "graphql"


def _enum_to_value(v: Any) -> Any:
    if isinstance(v, Enum):
        return v.value
    return v


# =============================================================================
# Credential Models
# =============================================================================


class NewCredential(BaseModel):
    """
    A credential that has not been stored yet.

    Attributes:
        label: Human-readable label (not unique)
        location: URL of the paid resource
        method: Request method, one of POST, GET, PUT, DELETE (advisory)
        macaroon: Hex-encoded macaroon
        preimage: Hex-encoded payment preimage
        invoice: Lightning payment request
        type: Credential type, one of file, graphql (advisory)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    label: str = Field(default="", description="Human-readable label")
    location: str = Field(default="", description="URL of the paid resource")
    method: str = Field(default="", description="Request method (advisory)")
    macaroon: str = Field(default="", description="Hex-encoded macaroon")
    preimage: str = Field(default="", description="Hex-encoded payment preimage")
    invoice: str = Field(default="", description="Lightning payment request")
    type: str = Field(default="", description="Credential type (advisory)")

    @field_validator("method", "type", mode="before")
    @classmethod
    def unwrap_enum(cls, v: Any) -> Any:
        """Store enum members as their plain string value."""
        return _enum_to_value(v)


class Credential(NewCredential):
    """
    A stored credential.

    The repository assigns id and created_at when the credential is added;
    neither changes afterwards.

    Attributes:
        id: Sequential identifier, unique within the store
        created_at: When the credential was stored (UTC)
    """

    id: int = Field(
        ...,
        description="Sequential identifier assigned on creation",
        ge=1,
        le=MAX_CREDENTIAL_ID,
    )
    created_at: datetime = Field(..., description="When the credential was stored")

    @field_validator("created_at")
    @classmethod
    def normalise_created_at(cls, v: datetime) -> datetime:
        """Require a timezone and convert to UTC."""
        if v.tzinfo is None or v.utcoffset() is None:
            msg = "created_at must be timezone-aware"
            raise ValueError(msg)
        return v.astimezone(UTC)

    @classmethod
    def from_new(
        cls,
        new: NewCredential,
        id: int,
        created_at: datetime,
    ) -> "Credential":
        """
        Build a stored credential from caller input plus assigned fields.

        An id or created_at already present on new (a stored Credential
        passed back in) is replaced.
        """
        return cls(
            **new.model_dump(exclude={"id", "created_at"}),
            id=id,
            created_at=created_at,
        )


# =============================================================================
# Configuration
# =============================================================================


def default_data_dir() -> Path:
    """Directory holding the database by default (~/.pillbox)."""
    return Path.home() / ".pillbox"


def default_db_path() -> Path:
    """Default database location (~/.pillbox/pillbox.db)."""
    return default_data_dir() / "pillbox.db"


class PillboxConfig(BaseModel):
    """
    Runtime configuration.

    Attributes:
        db_path: Path to the database file
        timeout_seconds: How long a caller waits for each store operation
        busy_timeout_seconds: How long a writer waits for the store's write lock
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    db_path: Path = Field(
        default_factory=default_db_path,
        description="Path to the database file",
    )
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        description="Per-operation caller deadline",
        gt=0,
    )
    busy_timeout_seconds: float = Field(
        default=30.0,
        description="Write lock wait time inside the store",
        gt=0,
    )

    @field_validator("db_path")
    @classmethod
    def expand_db_path(cls, v: Path) -> Path:
        """Expand ~ in the database path."""
        return v.expanduser()


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> PillboxConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated PillboxConfig object

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return PillboxConfig.model_validate(data or {})


def load_config_from_string(content: str) -> PillboxConfig:
    """Load configuration from a YAML string."""
    data = yaml.safe_load(content)
    return PillboxConfig.model_validate(data or {})
