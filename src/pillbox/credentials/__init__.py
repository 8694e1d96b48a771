"""
Credential repository for Pillbox.

Credentials live in the "credentials" bucket, keyed by the decimal string
of their ID, with JSON values.
"""

from pillbox.credentials.manager import (
    CREDENTIALS_BUCKET,
    CredentialManager,
    credential_key,
    decode_credential,
    encode_credential,
)

__all__ = [
    "CREDENTIALS_BUCKET",
    "CredentialManager",
    "credential_key",
    "decode_credential",
    "encode_credential",
]
