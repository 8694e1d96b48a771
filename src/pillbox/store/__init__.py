"""
Storage module for Pillbox.

This module provides an embedded, ordered key-value store organised into
named buckets, persisted in a single SQLite file.

Contract:
    - At most one write transaction at a time; writers are serialised
    - Any number of concurrent readers, each seeing a consistent snapshot
    - Every bucket has a sequence counter that only moves forward
    - A failed transaction leaves no trace, sequence increments included
"""

from pillbox.store.db import Bucket, KVStore, Transaction, open_store

__all__ = [
    "Bucket",
    "KVStore",
    "Transaction",
    "open_store",
]
