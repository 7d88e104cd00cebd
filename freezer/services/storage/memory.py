"""
In-Memory Remote Store

Process-local RemoteRecordStore for tests and offline development.
Several repositories can share one instance to play the part of
several devices talking to the same backend.

Knobs:
- latency_seconds: every call sleeps this long first
- failure: every call raises this exception while set
- issue_share_urls: when False, save_share produces no link
"""

import asyncio
from typing import Optional

from freezer.models.inventory import utc_now
from freezer.models.sync import (
    DatabaseScope,
    RemoteRecord,
    ShareMetadata,
    SharePermission,
)
from freezer.services.storage.interface import RemoteRecordStore, SubscriptionExistsError


class InMemoryRemoteStore(RemoteRecordStore):
    """Dictionary-backed record store."""

    def __init__(self, latency_seconds: float = 0.0, base_url: str = "memory://freezer"):
        self.latency_seconds = latency_seconds
        self.failure: Optional[Exception] = None
        self.issue_share_urls = True
        self._base_url = base_url
        self._records: dict[str, RemoteRecord] = {}
        self._accepted: set[str] = set()
        self._subscriptions: dict[tuple[DatabaseScope, str], str] = {}
        self._shares: dict[str, tuple[str, SharePermission, str]] = {}
        self.saved_records: list[RemoteRecord] = []

    async def _call(self) -> None:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        if self.failure is not None:
            raise self.failure

    def _visible(self, scope: DatabaseScope, record_name: str) -> bool:
        if scope is DatabaseScope.SHARED:
            return record_name in self._accepted
        return True

    def record(self, record_name: str) -> Optional[RemoteRecord]:
        """Direct read for assertions, bypassing latency and failures."""
        return self._records.get(record_name)

    def put_record(self, record: RemoteRecord) -> None:
        """Direct write for arranging a remote state."""
        self._records[record.record_name] = record

    # =========================================================================
    # RECORDS
    # =========================================================================

    async def fetch_record(self, scope: DatabaseScope, record_name: str) -> Optional[RemoteRecord]:
        await self._call()
        if not self._visible(scope, record_name):
            return None
        return self._records.get(record_name)

    async def save_record(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        await self._call()
        self._records[record.record_name] = record
        self.saved_records.append(record)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    async def fetch_subscription(self, scope: DatabaseScope, subscription_id: str) -> Optional[str]:
        await self._call()
        return self._subscriptions.get((scope, subscription_id))

    async def save_subscription(self, scope: DatabaseScope, subscription_id: str) -> None:
        await self._call()
        key = (scope, subscription_id)
        if key in self._subscriptions:
            raise SubscriptionExistsError(f"Subscription already exists: {subscription_id}")
        self._subscriptions[key] = subscription_id

    @property
    def subscription_ids(self) -> list[tuple[DatabaseScope, str]]:
        return sorted(self._subscriptions, key=lambda key: (key[0].value, key[1]))

    # =========================================================================
    # SHARES
    # =========================================================================

    async def fetch_share_url(self, root_record_name: str) -> Optional[str]:
        await self._call()
        for url, (record_name, _, _) in self._shares.items():
            if record_name == root_record_name:
                return url
        return None

    async def save_share(
        self,
        root_record: RemoteRecord,
        permission: SharePermission,
        title: str,
    ) -> Optional[str]:
        await self._call()
        self._records[root_record.record_name] = root_record
        if not self.issue_share_urls:
            return None
        url = f"{self._base_url}/share/{root_record.record_name}?t={int(utc_now().timestamp())}"
        self._shares[url] = (root_record.record_name, permission, title)
        return url

    async def fetch_share_metadata(self, share_url: str) -> Optional[ShareMetadata]:
        await self._call()
        share = self._shares.get(share_url)
        if share is None:
            return None
        record_name, _, title = share
        return ShareMetadata(
            share_url=share_url,
            root_record_name=record_name,
            container_id=self._base_url,
            title=title,
        )

    async def accept_share(self, metadata: ShareMetadata) -> None:
        await self._call()
        self._accepted.add(metadata.root_record_name)
