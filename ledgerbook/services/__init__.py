"""Services package."""

from ledgerbook.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
    InMemoryStorage,
    KeyValueStorageInterface,
    LocalJsonStorage,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStorage",
    "InMemoryStorage",
    "KeyValueStorageInterface",
    "LocalJsonStorage",
    "StorageError",
]
