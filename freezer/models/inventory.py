"""
Core Data Models for Freezer Inventory

These models define the schema of the inventory document, the single
aggregate that is loaded, saved and synced as a whole.
They are designed to:
1. Enforce type safety at runtime
2. Round-trip through JSON without loss
3. Tolerate documents written by older builds
4. Stay free of I/O (validation and derivation helpers only)

DESIGN DECISION: Entity records are frozen. The store changes them by
copying with updates, so a half-applied mutation can never leak into
the document that is being read or pushed.
"""

import calendar
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


SCHEMA_VERSION = 1

DEFAULT_CATEGORY_NAMES = ["Meat", "Fish", "Dairy", "Fruit & Veg", "Ready Meal"]
DEFAULT_HOUSEHOLD_NAME = "Home Freezer"
DEFAULT_USER_NAME = "You"
DEFAULT_THRESHOLD_MONTHS = 6
DEFAULT_NOTIFICATION_HOUR = 9


def utc_now() -> datetime:
    """Current instant, timezone-aware."""
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    # Older documents stored naive timestamps; they were always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


def normalize_name(text: str) -> str:
    """
    Normalize free text for identity-by-text matching.

    Trims surrounding whitespace and lowercases. Used for item names,
    keywords, category and drawer names alike.
    """
    return text.strip().lower()


def add_months(moment: datetime, months: int) -> datetime:
    """
    Calendar month arithmetic.

    The day is clamped to the length of the target month, so
    31 August + 1 month is 30 September, not 1 October.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# =============================================================================
# ENUMS
# =============================================================================

class HouseholdRole(str, Enum):
    """
    Role of a member within the household.

    owner  - manages members and content
    editor - manages content
    viewer - read only
    """
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def label(self) -> str:
        return self.value.capitalize()


_ROLE_RANKS = {
    HouseholdRole.OWNER: 0,
    HouseholdRole.EDITOR: 1,
    HouseholdRole.VIEWER: 2,
}


def role_rank(role: HouseholdRole) -> int:
    """Display ordering of roles: owner < editor < viewer."""
    return _ROLE_RANKS[role]


class ExpiryState(str, Enum):
    """How close an item is to the household's staleness threshold."""
    NORMAL = "normal"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


# =============================================================================
# ENTITIES
# =============================================================================

class AppUser(BaseModel):
    """A person known to this household."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    display_name: str = Field(..., min_length=1)


class HouseholdMember(BaseModel):
    """Membership of a user in the household, with a role."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    role: HouseholdRole
    joined_at: UtcDatetime = Field(default_factory=utc_now)


class Household(BaseModel):
    """The shared household. Member order carries no meaning."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    created_at: UtcDatetime = Field(default_factory=utc_now)
    members: list[HouseholdMember] = Field(default_factory=list)

    @classmethod
    def owned_by(
        cls,
        user_id: UUID,
        name: str = DEFAULT_HOUSEHOLD_NAME,
        now: Optional[datetime] = None,
    ) -> "Household":
        """A new household whose only member is the given owner."""
        now = now or utc_now()
        member = HouseholdMember(user_id=user_id, role=HouseholdRole.OWNER, joined_at=now)
        return cls(name=name, created_at=now, members=[member])


class Category(BaseModel):
    """Food category. Names are unique case-insensitively."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str


class Drawer(BaseModel):
    """A physical drawer of the freezer."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    order: int = Field(default=0, ge=0)
    default_category_id: UUID


class DrawerDraft(BaseModel):
    """Drawer as entered during onboarding, before it gets an order."""

    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    category_id: UUID


class Item(BaseModel):
    """
    One thing in the freezer.

    `normalized_name` is derived from `name` and is what matching uses.
    `quantity` is free text ("2 bags", "about 500g").
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    normalized_name: str
    category_id: UUID
    drawer_id: UUID
    quantity: str = ""
    date_added: UtcDatetime
    created_by_user_id: UUID
    updated_by_user_id: UUID
    updated_at: UtcDatetime

    @model_validator(mode='before')
    @classmethod
    def fill_legacy_fields(cls, data: Any) -> Any:
        """Items written before multi-user support lack authorship fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("normalized_name") is None and isinstance(data.get("name"), str):
            data["normalized_name"] = normalize_name(data["name"])
        if data.get("created_by_user_id") is None:
            data["created_by_user_id"] = uuid4()
        if data.get("updated_by_user_id") is None:
            data["updated_by_user_id"] = data["created_by_user_id"]
        if data.get("updated_at") is None:
            data["updated_at"] = data.get("date_added")
        return data


class FoodMapping(BaseModel):
    """User-defined keyword -> category rule for categorization."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    keyword: str
    category_id: UUID


class InventorySettings(BaseModel):
    """Household-wide preferences."""
    model_config = ConfigDict(frozen=True)

    threshold_months: int = DEFAULT_THRESHOLD_MONTHS
    notification_hour: int = DEFAULT_NOTIFICATION_HOUR

    @field_validator('threshold_months', mode='before')
    @classmethod
    def clamp_threshold(cls, v: Any) -> int:
        return max(1, int(v))

    @field_validator('notification_hour', mode='before')
    @classmethod
    def clamp_hour(cls, v: Any) -> int:
        return min(max(0, int(v)), 23)


def initial_categories() -> list[Category]:
    """Seeded category set for a new document."""
    return [Category(name=name) for name in DEFAULT_CATEGORY_NAMES]


def _user_id(user: Any) -> Any:
    if isinstance(user, dict):
        return user.get("id")
    return getattr(user, "id", None)


# =============================================================================
# AGGREGATE ROOT
# =============================================================================

class InventoryDocument(BaseModel):
    """
    The whole inventory: the unit of persistence and sync.

    CRITICAL: The document is always read and written in full.
    There are no partial updates, locally or remotely.
    """

    schema_version: int = SCHEMA_VERSION
    onboarding_complete: bool = False
    users: list[AppUser]
    current_user_id: UUID
    household: Household
    categories: list[Category] = Field(default_factory=initial_categories)
    drawers: list[Drawer] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    user_mappings: list[FoodMapping] = Field(default_factory=list)
    settings: InventorySettings = Field(default_factory=InventorySettings)

    @model_validator(mode='before')
    @classmethod
    def fill_missing_identity(cls, data: Any) -> Any:
        """Fill users, current user and household for documents that lack them."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        users = data.get("users")
        if users is None:
            users = [AppUser(display_name=DEFAULT_USER_NAME)]
            data["users"] = users

        if data.get("current_user_id") is None:
            data["current_user_id"] = _user_id(users[0]) if users else uuid4()

        if data.get("household") is None:
            owner_id = _user_id(users[0]) if users else data["current_user_id"]
            data["household"] = Household.owned_by(owner_id)

        return data

    @classmethod
    def initial(
        cls,
        household_name: str = DEFAULT_HOUSEHOLD_NAME,
        user_name: str = DEFAULT_USER_NAME,
        threshold_months: int = DEFAULT_THRESHOLD_MONTHS,
        notification_hour: int = DEFAULT_NOTIFICATION_HOUR,
        now: Optional[datetime] = None,
    ) -> "InventoryDocument":
        """The first-launch document: one owner, seeded categories, no drawers."""
        now = now or utc_now()
        user = AppUser(display_name=user_name)
        return cls(
            onboarding_complete=False,
            users=[user],
            current_user_id=user.id,
            household=Household.owned_by(user.id, name=household_name, now=now),
            categories=initial_categories(),
            drawers=[],
            items=[],
            user_mappings=[],
            settings=InventorySettings(
                threshold_months=threshold_months,
                notification_hour=notification_hour,
            ),
        )

    # -------------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------------

    def user(self, user_id: UUID) -> Optional[AppUser]:
        return next((u for u in self.users if u.id == user_id), None)

    def category(self, category_id: UUID) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def drawer(self, drawer_id: UUID) -> Optional[Drawer]:
        return next((d for d in self.drawers if d.id == drawer_id), None)

    def item(self, item_id: UUID) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)

    def member_for_user(self, user_id: UUID) -> Optional[HouseholdMember]:
        return next((m for m in self.household.members if m.user_id == user_id), None)

    def role_for(self, user_id: UUID) -> HouseholdRole:
        """Role of a user; users without a membership can only view."""
        member = self.member_for_user(user_id)
        return member.role if member else HouseholdRole.VIEWER

    def sorted_categories(self) -> list[Category]:
        return sorted(self.categories, key=lambda c: c.name)

    def sorted_drawers(self) -> list[Drawer]:
        return sorted(self.drawers, key=lambda d: d.order)


# =============================================================================
# EXPIRY
# =============================================================================

def expiry_state(
    item: Item,
    threshold_months: int,
    reference: Optional[datetime] = None,
) -> ExpiryState:
    """
    Classify an item against the staleness threshold.

    expired       - reference >= date_added + threshold
    expiring_soon - reference within the last month before that boundary
    normal        - otherwise
    """
    reference = _ensure_utc(reference or utc_now())
    expires_at = add_months(item.date_added, threshold_months)
    warning_starts_at = add_months(expires_at, -1)

    if reference >= expires_at:
        return ExpiryState.EXPIRED
    if reference >= warning_starts_at:
        return ExpiryState.EXPIRING_SOON
    return ExpiryState.NORMAL


def is_overdue(
    item: Item,
    threshold_months: int,
    reference: Optional[datetime] = None,
) -> bool:
    """
    Overdue items drive the reminder.

    An item is overdue when it was added strictly before the cutoff,
    threshold months before the reference. Exactly at the cutoff it is
    not overdue yet, even though expiry_state already calls it expired.
    """
    reference = _ensure_utc(reference or utc_now())
    return item.date_added < add_months(reference, -threshold_months)

