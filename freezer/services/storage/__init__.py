"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The local JSON file is always the working copy; the remote record store
(Google Sheets, or in-memory for tests) mirrors it for other devices.
"""

from freezer.services.storage.interface import (
    InventoryRepository,
    RemoteRecordStore,
    RemoteStoreError,
    RemoteUnavailableError,
    StorageError,
    SubscriptionExistsError,
)
from freezer.services.storage.local_json import LocalJSONRepository
from freezer.services.storage.share_context import ShareContext
from freezer.services.storage.cloud_sync import RemoteSyncedRepository
from freezer.services.storage.memory import InMemoryRemoteStore
from freezer.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interfaces
    "InventoryRepository",
    "RemoteRecordStore",
    # Exceptions
    "RemoteStoreError",
    "RemoteUnavailableError",
    "StorageError",
    "SubscriptionExistsError",
    # Implementations
    "InMemoryRemoteStore",
    "LocalJSONRepository",
    "RemoteSyncedRepository",
    "ShareContext",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
]
