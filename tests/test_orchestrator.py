"""Tests for component wiring and remote change handling."""

import pytest

from freezer.config import Settings
from freezer.models.audit import AuditEventType
from freezer.models.sync import DatabaseScope, RemoteRecord, StorageBackend, record_name_for_household
from freezer.orchestrator import SyncCoordinator, create_app_components, open_store
from freezer.services.sharing import DisabledSharingService, RemoteSharingService
from freezer.services.storage import (
    InMemoryRemoteStore,
    LocalJSONRepository,
    RemoteStoreError,
    RemoteSyncedRepository,
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("FREEZER_STORAGE_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("FREEZER_CLOUD_SHARING_ENABLED", raising=False)
    return monkeypatch


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def cloud_components(env, remote):
    env.setenv("FREEZER_CLOUD_SHARING_ENABLED", "true")
    return create_app_components(Settings(), remote=remote)


class TestCreateAppComponents:
    """Tests for choosing backends from settings."""

    @pytest.mark.asyncio
    async def test_local_build(self, env, tmp_path):
        env.setenv("DEFAULT_HOUSEHOLD_NAME", "Cabin")
        components = create_app_components(Settings())

        assert isinstance(components.repository, LocalJSONRepository)
        assert isinstance(components.sharing, DisabledSharingService)

        store = await open_store(components)
        assert store.household_name == "Cabin"
        assert (tmp_path / "freezer-data.json").exists()

    @pytest.mark.asyncio
    async def test_cloud_build(self, cloud_components, remote):
        assert isinstance(cloud_components.repository, RemoteSyncedRepository)
        assert isinstance(cloud_components.sharing, RemoteSharingService)
        assert cloud_components.repository.backend is StorageBackend.CLOUD

        store = await open_store(cloud_components)
        await cloud_components.repository.flush()

        assert remote.record(record_name_for_household(store.document.household.id)) is not None


class TestSyncCoordinator:
    """Tests for reacting to remote notifications."""

    @pytest.mark.parametrize("payload,expected", [
        ({"type": "database_changed"}, True),
        ({"type": "record_changed"}, True),
        ({"subscription_id": DatabaseScope.SHARED.subscription_id}, True),
        ({"type": "badge"}, False),
        ({"subscription_id": "someone.else"}, False),
        ({}, False),
        (None, False),
    ])
    def test_is_change_signal(self, payload, expected):
        assert SyncCoordinator.is_change_signal(payload) is expected

    @pytest.mark.asyncio
    async def test_start_registers_subscriptions(self, cloud_components, remote):
        store = await open_store(cloud_components)
        coordinator = SyncCoordinator(store, cloud_components.repository, cloud_components.audit)

        assert await coordinator.start() is True
        assert len(remote.subscription_ids) == 2
        await cloud_components.repository.flush()

    @pytest.mark.asyncio
    async def test_start_failure_keeps_app_running(self, cloud_components, remote):
        store = await open_store(cloud_components)
        await cloud_components.repository.flush()
        remote.failure = RemoteStoreError("offline")
        coordinator = SyncCoordinator(store, cloud_components.repository, cloud_components.audit)

        assert await coordinator.start() is False
        assert cloud_components.audit.recent_events[0].event_type is AuditEventType.REMOTE_SYNC_FAILED

    @pytest.mark.asyncio
    async def test_change_notification_reloads(self, cloud_components, remote):
        store = await open_store(cloud_components)
        await cloud_components.repository.flush()
        coordinator = SyncCoordinator(store, cloud_components.repository, cloud_components.audit)

        newer = store.document
        newer.settings = newer.settings.model_copy(update={"threshold_months": 2})
        remote.put_record(RemoteRecord.from_document(newer, record_name_for_household(newer.household.id)))

        assert await coordinator.on_remote_notification({"type": "badge"}) is False
        assert store.threshold_months == 6

        assert await coordinator.on_remote_notification({"type": "record_changed"}) is True
        assert store.threshold_months == 2

    @pytest.mark.asyncio
    async def test_failed_pull_is_logged(self, cloud_components, remote):
        store = await open_store(cloud_components)
        await cloud_components.repository.flush()
        remote.failure = RemoteStoreError("quota exceeded")
        coordinator = SyncCoordinator(store, cloud_components.repository, cloud_components.audit)

        assert await coordinator.on_remote_notification({"type": "database_changed"}) is False
        assert cloud_components.audit.recent_events[0].details["operation"] == "pull"
