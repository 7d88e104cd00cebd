"""
Remote-Synced Repository

Offline-first repository: the local JSON cache is always the source the
store reads from; the remote root record is a mirror that other devices
and household members pull from.

DESIGN DECISION: Whole-document last-write-wins.
1. save() writes locally, then pushes a copy in the background
2. sync_from_remote() overwrites the local cache with the remote payload
3. Nothing is ever merged, on either side

Pushes run one at a time in the order they were scheduled so the remote
never goes backwards relative to this device's saves. A slow or
unreachable remote never blocks the caller of save().
"""

import asyncio
from typing import Optional

import structlog
from pydantic import ValidationError

from freezer.audit.logger import AuditLogger
from freezer.models.inventory import InventoryDocument
from freezer.models.sync import (
    DEFAULT_RECORD_NAME,
    DatabaseScope,
    RemoteRecord,
    StorageBackend,
    record_name_for_household,
)
from freezer.services.storage.interface import (
    InventoryRepository,
    RemoteRecordStore,
    RemoteStoreError,
    SubscriptionExistsError,
)
from freezer.services.storage.local_json import LocalJSONRepository
from freezer.services.storage.share_context import ShareContext


logger = structlog.get_logger(__name__)


class RemoteSyncedRepository(InventoryRepository):
    """
    Local cache plus a remote record store.

    Args:
        local: The on-device cache; every read comes from here
        remote: The shared record store
        share_context: Accepted share of this device, if any
        fetch_timeout_seconds: Upper bound for pulls and subscription lookups
        push_timeout_seconds: Upper bound for one background push
        audit: Receives remote failures that are not raised to a caller
    """

    def __init__(
        self,
        local: LocalJSONRepository,
        remote: RemoteRecordStore,
        share_context: Optional[ShareContext] = None,
        fetch_timeout_seconds: float = 2.0,
        push_timeout_seconds: float = 15.0,
        audit: Optional[AuditLogger] = None,
    ):
        self._local = local
        self._remote = remote
        self._share_context = share_context or ShareContext()
        self._fetch_timeout = fetch_timeout_seconds
        self._push_timeout = push_timeout_seconds
        self._audit = audit
        self._push_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    @property
    def backend(self) -> StorageBackend:
        return StorageBackend.CLOUD

    @property
    def share_context(self) -> ShareContext:
        return self._share_context

    @property
    def active_scope(self) -> DatabaseScope:
        """Shared once this device joined another household, else private."""
        if self._share_context.accepted_root_record_name:
            return DatabaseScope.SHARED
        return DatabaseScope.PRIVATE

    def active_record_name(self, document: Optional[InventoryDocument]) -> str:
        """Root record this device reads and writes."""
        accepted = self._share_context.accepted_root_record_name
        if accepted:
            return accepted
        if document is not None:
            return record_name_for_household(document.household.id)
        return DEFAULT_RECORD_NAME

    @property
    def pending_pushes(self) -> int:
        return len(self._pending)

    # =========================================================================
    # LOCAL
    # =========================================================================

    async def load(self) -> Optional[InventoryDocument]:
        return await self._local.load()

    def load_snapshot(self) -> Optional[InventoryDocument]:
        return self._local.load_snapshot()

    async def save(self, document: InventoryDocument) -> None:
        await self._local.save(document)
        # Payload and target are fixed at save time, not when the push runs.
        record = RemoteRecord.from_document(document, self.active_record_name(document))
        self._schedule_push(self.active_scope, record)

    # =========================================================================
    # PUSH
    # =========================================================================

    def _schedule_push(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        task = asyncio.get_running_loop().create_task(self._push(scope, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _push(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        async with self._push_lock:
            try:
                await asyncio.wait_for(
                    self._remote.save_record(scope, record),
                    timeout=self._push_timeout,
                )
            except asyncio.TimeoutError:
                self._report_push_failure(record.record_name, "push timed out")
                return
            except Exception as e:
                self._report_push_failure(record.record_name, str(e))
                return

            logger.info(
                "remote_push_completed",
                record_name=record.record_name,
                scope=scope.value,
            )

    def _report_push_failure(self, record_name: str, error_message: str) -> None:
        logger.warning("remote_push_failed", record_name=record_name, error=error_message)
        if self._audit is not None:
            self._audit.log_remote_failure("push", error_message)

    async def flush(self) -> None:
        """Wait until every scheduled push has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # =========================================================================
    # PULL
    # =========================================================================

    async def sync_from_remote(self) -> bool:
        """
        Overwrite the local cache with the remote document.

        Returns:
            True if the local cache was replaced; False when the remote
            had nothing newer to offer or did not answer in time

        Raises:
            RemoteStoreError: If the remote failed or sent an undecodable payload
        """
        cached = await self._local.load()
        scope = self.active_scope
        record_name = self.active_record_name(cached)

        try:
            record = await asyncio.wait_for(
                self._remote.fetch_record(scope, record_name),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("remote_fetch_timed_out", record_name=record_name, scope=scope.value)
            return False

        if record is None:
            return False

        try:
            document = record.decode_document()
        except ValidationError as e:
            raise RemoteStoreError(f"Undecodable payload in record {record_name}: {e}")

        if document is None:
            return False

        await self._local.save(document)
        logger.info("remote_pull_applied", record_name=record_name, scope=scope.value)
        return True

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    async def ensure_subscriptions(self) -> None:
        """
        Make sure both database scopes notify this device of changes.

        Safe to call repeatedly and from several devices at once.
        """
        for scope in (DatabaseScope.PRIVATE, DatabaseScope.SHARED):
            subscription_id = scope.subscription_id
            try:
                existing = await asyncio.wait_for(
                    self._remote.fetch_subscription(scope, subscription_id),
                    timeout=self._fetch_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("subscription_fetch_timed_out", scope=scope.value)
                continue

            if existing:
                continue

            try:
                await asyncio.wait_for(
                    self._remote.save_subscription(scope, subscription_id),
                    timeout=self._fetch_timeout,
                )
                logger.info("subscription_created", subscription_id=subscription_id)
            except asyncio.TimeoutError:
                logger.warning("subscription_create_timed_out", scope=scope.value)
            except SubscriptionExistsError:
                logger.info("subscription_already_exists", subscription_id=subscription_id)
