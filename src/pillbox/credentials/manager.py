"""
Credential repository.

CredentialManager stores credentials in the "credentials" bucket of a
KVStore. It assigns each new credential the bucket's next sequence value
as its ID, stamps it with the current UTC time, and stores it as a JSON
object under the decimal string of the ID.

Every operation runs inside exactly one store transaction. The manager
takes no locks of its own and never retries; failures propagate as
Pillbox errors with the operation name in their context.
"""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from pillbox.errors import DecodeError, EncodeError, NotFoundError
from pillbox.schema import Credential, NewCredential
from pillbox.store import KVStore

logger = logging.getLogger(__name__)

CREDENTIALS_BUCKET = "credentials"


def credential_key(credential_id: int) -> bytes:
    """Store key for a credential ID: its decimal string, no padding."""
    return str(credential_id).encode("ascii")


def encode_credential(credential: Credential, operation: str = "encode") -> bytes:
    """Serialize a credential to its stored JSON form."""
    try:
        return credential.model_dump_json().encode("utf-8")
    except (PydanticSerializationError, UnicodeEncodeError) as e:
        raise EncodeError(operation=operation, underlying_error=str(e)) from e


def decode_credential(
    value: bytes,
    key: bytes | None = None,
    operation: str = "decode",
) -> Credential:
    """
    Deserialize a stored credential.

    When key is given, the decoded ID must match it.

    Raises:
        DecodeError: If the bytes are not a valid credential
    """
    key_text = key.decode("ascii", errors="replace") if key is not None else ""
    try:
        credential = Credential.model_validate_json(value)
    except ValidationError as e:
        raise DecodeError(
            operation=operation,
            key=key_text,
            underlying_error=str(e),
        ) from e

    if key is not None and credential_key(credential.id) != key:
        raise DecodeError(
            operation=operation,
            key=key_text,
            underlying_error=f"stored id {credential.id} does not match key",
        )
    return credential


class CredentialManager:
    """
    Adds, fetches and lists credentials in a KVStore.

    Usage:
        manager = CredentialManager(store)
        cred = manager.add_credential(NewCredential(label="API", ...))
        same = manager.get_credential(cred.id)
        everything = manager.list_credentials()
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    def add_credential(self, new: NewCredential) -> Credential:
        """
        Store a new credential.

        The ID and creation time are assigned in the same write transaction
        as the write itself.

        Args:
            new: The caller-supplied fields

        Returns:
            The stored credential, with id and created_at set

        Raises:
            TransactionError: If the bucket, sequence or write fails
            EncodeError: If the credential cannot be serialized
        """
        operation = "add_credential"
        with self.store.update(operation) as tx:
            bucket = tx.create_bucket_if_not_exists(CREDENTIALS_BUCKET)
            credential_id = bucket.next_sequence()
            credential = Credential.from_new(
                new,
                id=credential_id,
                created_at=datetime.now(UTC),
            )
            bucket.put(
                credential_key(credential.id),
                encode_credential(credential, operation),
            )

        logger.debug("Added credential %d", credential.id)
        return credential

    def get_credential(self, credential_id: int) -> Credential:
        """
        Fetch a credential by ID.

        Raises:
            NotFoundError: If no credential has this ID
            DecodeError: If the stored value is corrupt
            TransactionError: If the read fails
        """
        operation = "get_credential"
        key = credential_key(credential_id)
        with self.store.view(operation) as tx:
            bucket = tx.bucket(CREDENTIALS_BUCKET)
            value = bucket.get(key) if bucket is not None else None

        if value is None:
            raise NotFoundError(operation=operation, credential_id=credential_id)
        return decode_credential(value, key, operation)

    def list_credentials(self) -> list[Credential]:
        """
        List every stored credential, ordered by ID.

        All credentials come from one snapshot. A store that has never
        held a credential yields an empty list.

        Raises:
            DecodeError: If any stored value is corrupt
            TransactionError: If the read fails
        """
        operation = "list_credentials"
        with self.store.view(operation) as tx:
            bucket = tx.bucket(CREDENTIALS_BUCKET)
            if bucket is None:
                return []
            items = list(bucket.items())

        # Keys are unpadded, so byte order puts "10" before "9".
        credentials = [decode_credential(value, key, operation) for key, value in items]
        credentials.sort(key=lambda c: c.id)
        return credentials
