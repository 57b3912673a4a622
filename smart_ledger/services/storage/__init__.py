"""
Storage Services Package

Provides the key-value backend interface, its implementations, and the
JSON collection gateway the ledger persists through.
"""

from smart_ledger.services.storage.interface import (
    BackendUnavailableError,
    KeyValueBackend,
    StorageError,
)
from smart_ledger.services.storage.local_file import LocalFileBackend
from smart_ledger.services.storage.memory import InMemoryBackend
from smart_ledger.services.storage.google_sheets import (
    GoogleSheetsBackend,
    GoogleSheetsClient,
)
from smart_ledger.services.storage.gateway import (
    PersistenceGateway,
    detect_backend,
)

__all__ = [
    # Interface
    "KeyValueBackend",
    # Exceptions
    "BackendUnavailableError",
    "StorageError",
    # Implementations
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemoryBackend",
    "LocalFileBackend",
    # Gateway
    "PersistenceGateway",
    "detect_backend",
]
