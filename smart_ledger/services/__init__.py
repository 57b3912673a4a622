"""Services package."""

from smart_ledger.services.storage import (
    BackendUnavailableError,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryBackend,
    KeyValueBackend,
    LocalFileBackend,
    PersistenceGateway,
    StorageError,
    detect_backend,
)

__all__ = [
    "BackendUnavailableError",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemoryBackend",
    "KeyValueBackend",
    "LocalFileBackend",
    "PersistenceGateway",
    "StorageError",
    "detect_backend",
]
