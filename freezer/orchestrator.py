"""
Main Orchestrator for Freezer Inventory

This module ties together all the components:
1. Wiring: which repository and sharing service a build uses
2. Sync: reacting to remote change notifications

DESIGN DECISION: The cloud backend is opt-in. Without it the app runs on
the local JSON file alone and sharing refuses with a readable reason, so
a missing or broken remote configuration never stops the app from
starting.
"""

from typing import Any, NamedTuple, Optional

import structlog

from freezer.audit import AuditLogger, configure_logging
from freezer.config import Settings, get_settings
from freezer.models.sync import DatabaseScope
from freezer.services.notifications import LoggingReminderScheduler, ReminderScheduler
from freezer.services.sharing import (
    DisabledSharingService,
    RemoteSharingService,
    SharingService,
)
from freezer.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InventoryRepository,
    LocalJSONRepository,
    RemoteRecordStore,
    RemoteSyncedRepository,
    ShareContext,
    StorageError,
)
from freezer.store import InventoryStore


logger = structlog.get_logger(__name__)

# Notification kinds that mean "something changed remotely"
CHANGE_SIGNALS = frozenset({"database_changed", "record_changed"})


class AppComponents(NamedTuple):
    """Everything a running app needs besides the store itself."""
    settings: Settings
    repository: InventoryRepository
    sharing: SharingService
    share_context: ShareContext
    reminders: ReminderScheduler
    audit: AuditLogger


def create_app_components(
    settings: Optional[Settings] = None,
    reminders: Optional[ReminderScheduler] = None,
    remote: Optional[RemoteRecordStore] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to wire from; the cached settings by default
        reminders: Platform reminder scheduler; logs reminders if omitted
        remote: Remote record store to use instead of Google Sheets
                when cloud sharing is enabled (tests, local development)

    Returns:
        AppComponents for InventoryStore.open / open_store
    """
    settings = settings or get_settings()
    storage = settings.storage
    cloud = settings.cloud
    app = settings.app

    configure_logging("DEBUG" if app.debug_mode else app.log_level)
    audit = AuditLogger()
    share_context = ShareContext(storage.share_context_path)
    local = LocalJSONRepository(storage.data_file_path)

    repository: InventoryRepository
    sharing: SharingService
    if cloud.sharing_enabled:
        remote = remote or GoogleSheetsRemoteStore(GoogleSheetsClient(cloud), share_context)
        repository = RemoteSyncedRepository(
            local,
            remote,
            share_context,
            fetch_timeout_seconds=cloud.fetch_timeout_seconds,
            push_timeout_seconds=cloud.push_timeout_seconds,
            audit=audit,
        )
        sharing = RemoteSharingService(remote)
    else:
        repository = local
        sharing = DisabledSharingService()

    logger.info(
        "app_components_created",
        environment=app.app_environment,
        backend=repository.backend.value,
        data_file=str(storage.data_file_path),
    )

    return AppComponents(
        settings=settings,
        repository=repository,
        sharing=sharing,
        share_context=share_context,
        reminders=reminders or LoggingReminderScheduler(),
        audit=audit,
    )


async def open_store(components: AppComponents) -> InventoryStore:
    """Open the store with the first-launch defaults from AppSettings."""
    app = components.settings.app
    return await InventoryStore.open(
        components.repository,
        reminders=components.reminders,
        audit=components.audit,
        sharing=components.sharing,
        share_context=components.share_context,
        household_name=app.default_household_name,
        user_name=app.default_user_name,
        threshold_months=app.default_threshold_months,
        notification_hour=app.default_notification_hour,
    )


class SyncCoordinator:
    """
    Connects remote change notifications to the store.

    Flow:
    1. start() registers the change subscriptions once per launch
    2. on_remote_notification() pulls and reloads for change signals

    Remote errors are logged, never raised: a failed sync leaves the
    local document in place and the next notification tries again.
    """

    def __init__(
        self,
        store: InventoryStore,
        repository: InventoryRepository,
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._repository = repository
        self._audit = audit or AuditLogger()

    async def start(self) -> bool:
        """
        Register subscriptions.

        Returns:
            False if registration failed (the app keeps running)
        """
        try:
            await self._repository.ensure_subscriptions()
        except StorageError as e:
            logger.warning("subscription_setup_failed", error=str(e))
            self._audit.log_remote_failure("subscribe", str(e))
            return False
        return True

    @staticmethod
    def is_change_signal(payload: Optional[dict[str, Any]]) -> bool:
        if not payload:
            return False
        if payload.get("type") in CHANGE_SIGNALS:
            return True
        subscription_id = payload.get("subscription_id")
        return subscription_id in {scope.subscription_id for scope in DatabaseScope}

    async def on_remote_notification(self, payload: Optional[dict[str, Any]]) -> bool:
        """
        Handle one remote notification.

        Returns:
            True if new data was loaded into the store
        """
        if not self.is_change_signal(payload):
            return False

        try:
            return await self._store.handle_remote_change()
        except StorageError as e:
            logger.warning("remote_change_failed", error=str(e))
            self._audit.log_remote_failure("pull", str(e))
            return False
