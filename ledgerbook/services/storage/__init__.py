"""
Storage Services Package

Provides the key-value storage interface and its implementations:
local JSON files (default), in-memory (tests), and Google Sheets.
"""

from ledgerbook.services.storage.interface import (
    ConnectionError,
    KeyValueStorageInterface,
    StorageError,
)
from ledgerbook.services.storage.local import (
    InMemoryStorage,
    LocalJsonStorage,
)
from ledgerbook.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
)

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStorage",
    "InMemoryStorage",
    "LocalJsonStorage",
]
