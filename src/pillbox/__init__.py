"""
Pillbox - Local store for L402 credentials.

Pillbox keeps the credentials obtained when paying for web resources
(macaroon, payment preimage and invoice) in a single local database file.
It provides:
- An embedded transactional key-value store with named buckets
- A credential repository with sequential IDs and UTC timestamps
- An application facade with per-call deadlines
- A small command-line interface

Example usage:
    $ pillbox add --label API --location https://example.com/api ...
    $ pillbox list
    $ pillbox show 1
"""

__version__ = "0.0.1"
__author__ = "Pillbox Contributors"

__all__ = [
    "__version__",
    "__author__",
]
