"""
Abstract Storage Interface

DESIGN DECISION: The ledger only ever needs a synchronous key-value
store holding JSON text. We define that as an abstract interface so we can:
1. Swap the local file store for Google Sheets (or anything else)
2. Use in-memory storage for testing
3. Pick the backend once at startup instead of checking at call sites

The interface is intentionally tiny - get and set a string under a key.
Serialization lives in the gateway, not in the backends.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueBackend(ABC):
    """
    Abstract interface for key-value storage.

    Any storage implementation (local files, Google Sheets, etc.)
    must implement these methods.
    """

    #: Short name used in logs and on the settings page
    name: str = "abstract"

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the text stored under a key.

        Args:
            key: Collection key

        Returns:
            The stored text, or None if nothing is stored

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store text under a key, replacing any previous value.

        Args:
            key: Collection key
            value: JSON text

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class BackendUnavailableError(StorageError):
    """Could not connect to or open the storage backend."""
    pass
