"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for the two storage seams.
This allows us to:
1. Run fully offline on a local file (the "disabled" cloud build)
2. Swap the remote backend without touching the store
3. Use in-memory remotes for testing
4. Substitute a merging sync strategy later without changing callers

InventoryRepository is what the store talks to: whole-document load and
save, plus explicit sync hooks.
RemoteRecordStore is what a synced repository talks to: a dumb record
store with subscriptions and share links. It never merges.
"""

from abc import ABC, abstractmethod
from typing import Optional

from freezer.models.inventory import InventoryDocument
from freezer.models.sync import (
    DatabaseScope,
    RemoteRecord,
    ShareMetadata,
    SharePermission,
    StorageBackend,
)


class InventoryRepository(ABC):
    """
    Abstract interface for inventory document persistence.

    Any repository (local file, remote-synced, etc.) must implement
    load/save/load_snapshot. Sync hooks default to no-ops so local-only
    builds need not implement them.
    """

    @property
    @abstractmethod
    def backend(self) -> StorageBackend:
        """Which backend this repository represents."""
        pass

    @abstractmethod
    async def load(self) -> Optional[InventoryDocument]:
        """
        Load the document.

        Returns:
            The document, or None if none is stored yet (or it is unreadable)

        Raises:
            StorageError: If the store exists but cannot be read
        """
        pass

    @abstractmethod
    async def save(self, document: InventoryDocument) -> None:
        """
        Persist the whole document.

        Raises:
            StorageError: If the local write fails
        """
        pass

    @abstractmethod
    def load_snapshot(self) -> Optional[InventoryDocument]:
        """
        Best-effort synchronous read for out-of-band readers.

        Never raises.
        """
        pass

    async def sync_from_remote(self) -> bool:
        """
        Pull the remote document into the local cache.

        Returns:
            True if the local cache was overwritten
        """
        return False

    async def ensure_subscriptions(self) -> None:
        """Register remote change subscriptions (idempotent)."""
        return None


class RemoteRecordStore(ABC):
    """
    Abstract interface for the remote shared store.

    Every "not found" is a None result, never an exception.
    """

    @abstractmethod
    async def fetch_record(self, scope: DatabaseScope, record_name: str) -> Optional[RemoteRecord]:
        """Fetch a record by name, or None if it does not exist."""
        pass

    @abstractmethod
    async def save_record(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        """Create or overwrite a record."""
        pass

    @abstractmethod
    async def fetch_subscription(self, scope: DatabaseScope, subscription_id: str) -> Optional[str]:
        """Return the subscription id if registered, else None."""
        pass

    @abstractmethod
    async def save_subscription(self, scope: DatabaseScope, subscription_id: str) -> None:
        """
        Register a change subscription.

        Raises:
            SubscriptionExistsError: If another writer registered it first
        """
        pass

    @abstractmethod
    async def fetch_share_url(self, root_record_name: str) -> Optional[str]:
        """Return the existing share link of a root record, if any."""
        pass

    @abstractmethod
    async def save_share(
        self,
        root_record: RemoteRecord,
        permission: SharePermission,
        title: str,
    ) -> Optional[str]:
        """
        Save the root record together with a new share.

        Returns:
            The share link, or None if the backend did not produce one
        """
        pass

    @abstractmethod
    async def fetch_share_metadata(self, share_url: str) -> Optional[ShareMetadata]:
        """Resolve a share link, or None if it points nowhere."""
        pass

    @abstractmethod
    async def accept_share(self, metadata: ShareMetadata) -> None:
        """Accept a share so its root record becomes readable and writable."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RemoteStoreError(StorageError):
    """The remote store failed or returned something unusable."""
    pass


class RemoteUnavailableError(RemoteStoreError):
    """Could not connect to the remote backend."""
    pass


class SubscriptionExistsError(RemoteStoreError):
    """Attempted to register a subscription that already exists."""
    pass
