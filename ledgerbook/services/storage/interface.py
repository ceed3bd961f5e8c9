"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the local JSON files for Google Sheets (or a real database) later
2. Use in-memory storage for testing
3. Keep the ledger logic decoupled from storage implementation

The interface is intentionally simple - it is a key-value store holding
one JSON document per key. The Ledger Store decides what goes under
which key; backends only move JSON around.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Values are JSON-compatible Python objects (dicts, lists, strings,
    numbers). Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The decoded JSON value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read or the value is corrupt
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store a JSON-compatible value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List all stored keys."""
        pass

    def exists(self, key: str) -> bool:
        return key in self.keys()


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
