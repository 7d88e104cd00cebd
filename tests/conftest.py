"""
Shared fixtures for Freezer Inventory tests.

No test talks to a real remote: the cloud side is the in-memory store
or a mocked gspread client.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from freezer.audit import AuditLogger
from freezer.models.inventory import (
    AppUser,
    Drawer,
    HouseholdMember,
    HouseholdRole,
    InventoryDocument,
    Item,
    normalize_name,
)
from freezer.services.notifications import ReminderRequest, ReminderScheduler
from freezer.services.storage import LocalJSONRepository
from freezer.store import InventoryStore


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingScheduler(ReminderScheduler):
    """Reminder scheduler that remembers every call."""

    def __init__(self):
        self.scheduled: list[ReminderRequest] = []
        self.cancelled: list[str] = []
        self.active: dict[str, ReminderRequest] = {}

    def schedule(self, request: ReminderRequest) -> None:
        self.scheduled.append(request)
        self.active[request.identifier] = request

    def cancel(self, identifier: str) -> None:
        self.cancelled.append(identifier)
        self.active.pop(identifier, None)


class CountingRepository(LocalJSONRepository):
    """Local repository that counts saves."""

    def __init__(self, file_path):
        super().__init__(file_path)
        self.save_count = 0

    async def save(self, document: InventoryDocument) -> None:
        self.save_count += 1
        await super().save(document)


def category_id(document: InventoryDocument, name: str):
    return next(c.id for c in document.categories if c.name == name)


def drawer_named(document: InventoryDocument, name: str) -> Drawer:
    return next(d for d in document.drawers if d.name == name)


def make_item(document: InventoryDocument, name: str, drawer: Drawer, added: datetime,
              category: Optional[str] = None) -> Item:
    return Item(
        name=name,
        normalized_name=normalize_name(name),
        category_id=category_id(document, category) if category else drawer.default_category_id,
        drawer_id=drawer.id,
        date_added=added,
        created_by_user_id=document.current_user_id,
        updated_by_user_id=document.current_user_id,
        updated_at=added,
    )


def build_stocked_document(now: datetime = NOW) -> InventoryDocument:
    """
    Onboarded document with two drawers and three items.

    Top (order 0, Meat):     Chicken (30 days old)
    Middle (order 1, Fish):  Chicken (60 days old), Salmon (10 days old)
    """
    document = InventoryDocument.initial(now=now)
    top = Drawer(name="Top", order=0, default_category_id=category_id(document, "Meat"))
    middle = Drawer(name="Middle", order=1, default_category_id=category_id(document, "Fish"))
    document.drawers = [top, middle]
    document.onboarding_complete = True
    document.items = [
        make_item(document, "Chicken", top, now - timedelta(days=30)),
        make_item(document, "Chicken", middle, now - timedelta(days=60), category="Meat"),
        make_item(document, "Salmon", middle, now - timedelta(days=10)),
    ]
    return document


def with_current_role(document: InventoryDocument, role: HouseholdRole) -> InventoryDocument:
    """Add a separate owner and give the current user the given role."""
    document = document.model_copy(deep=True)
    owner = AppUser(display_name="Alex")
    document.users = document.users + [owner]
    members = [
        m.model_copy(update={"role": role}) if m.user_id == document.current_user_id else m
        for m in document.household.members
    ]
    members.append(HouseholdMember(user_id=owner.id, role=HouseholdRole.OWNER))
    document.household = document.household.model_copy(update={"members": members})
    return document


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def reminders():
    return RecordingScheduler()


@pytest.fixture
def audit():
    return AuditLogger()


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "freezer-data.json"


@pytest.fixture
def repository(data_file):
    return CountingRepository(data_file)


@pytest.fixture
def stocked_document():
    return build_stocked_document()


@pytest.fixture
def open_store(repository, reminders, audit, clock):
    """Factory: seed the repository (optionally) and open a store on it."""

    async def _open(document: Optional[InventoryDocument] = None, repo=None, **kwargs) -> InventoryStore:
        repo = repo or repository
        if document is not None:
            await repo.save(document)
            if isinstance(repo, CountingRepository):
                repo.save_count = 0
        return await InventoryStore.open(
            repo,
            reminders=kwargs.pop("reminders", reminders),
            audit=kwargs.pop("audit", audit),
            clock=kwargs.pop("clock", clock),
            **kwargs,
        )

    return _open
