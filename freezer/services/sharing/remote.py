"""
Remote Sharing Service

Shares a household by handing out a read-write link to its root record.

DESIGN DECISION: The root record name is derived from the household id,
so asking twice for a link finds the first share instead of creating a
second one. The root record's payload is left untouched here; the next
push fills it.
"""

from typing import Optional
from uuid import UUID

import structlog

from freezer.models.inventory import utc_now
from freezer.models.sync import (
    DatabaseScope,
    RemoteRecord,
    ShareAcceptanceResult,
    SharePermission,
    record_name_for_household,
)
from freezer.services.sharing.interface import (
    MissingShareURLError,
    ShareError,
    SharingService,
)
from freezer.services.storage.interface import RemoteRecordStore, StorageError


logger = structlog.get_logger(__name__)


class RemoteSharingService(SharingService):
    """Sharing on top of a RemoteRecordStore."""

    def __init__(self, remote: RemoteRecordStore):
        self._remote = remote

    async def _root_record(self, household_id: UUID, household_name: str) -> RemoteRecord:
        record_name = record_name_for_household(household_id)
        now = utc_now()
        existing: Optional[RemoteRecord] = await self._remote.fetch_record(DatabaseScope.PRIVATE, record_name)
        if existing is None:
            return RemoteRecord(
                record_name=record_name,
                updated_at=now,
                household_id=str(household_id),
                household_name=household_name,
            )
        return existing.model_copy(update={
            "updated_at": now,
            "household_id": str(household_id),
            "household_name": household_name,
        })

    async def create_or_fetch_share_url(self, household_id: UUID, household_name: str) -> str:
        record_name = record_name_for_household(household_id)
        try:
            existing_url = await self._remote.fetch_share_url(record_name)
            if existing_url:
                return existing_url

            root = await self._root_record(household_id, household_name)
            share_url = await self._remote.save_share(root, SharePermission.READ_WRITE, household_name)
        except StorageError as e:
            raise ShareError(f"Failed to share household: {e}") from e

        if not share_url:
            raise MissingShareURLError(f"No share link was produced for {record_name}")

        logger.info("share_created", record_name=record_name)
        return share_url

    async def accept_share(self, url: str) -> ShareAcceptanceResult:
        if not url or not url.strip():
            raise MissingShareURLError("Share link is empty")
        url = url.strip()

        try:
            metadata = await self._remote.fetch_share_metadata(url)
            if metadata is None:
                raise MissingShareURLError(f"Share link does not resolve: {url}")
            await self._remote.accept_share(metadata)
        except StorageError as e:
            raise ShareError(f"Failed to accept share: {e}") from e

        logger.info("share_accepted", root_record_name=metadata.root_record_name)
        return ShareAcceptanceResult(
            root_record_name=metadata.root_record_name,
            container_id=metadata.container_id,
            share_url=url,
        )
