"""
Inventory Store

The single in-process owner of the inventory document. Every read goes
through its projections and every change goes through its mutations.

DESIGN DECISION: Mutations never raise for bad input or missing rights.
A refused call:
1. Leaves the document untouched
2. Persists nothing
3. Returns False
4. Writes a mutation_rejected audit event

Each applied mutation works on a deep copy of the document, repoints any
reference the change left dangling, swaps the copy in, and only then
persists it. Readers therefore always see a consistent document.

CRITICAL: Mutations and reloads are serialized by one asyncio.Lock.
Projections are plain synchronous reads of the current document.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import structlog

from freezer.audit.logger import AuditLogger
from freezer.categorization import suggest_category, suggest_drawer
from freezer.models.audit import AuditEventType, RejectionReason
from freezer.models.inventory import (
    DEFAULT_HOUSEHOLD_NAME,
    DEFAULT_NOTIFICATION_HOUR,
    DEFAULT_THRESHOLD_MONTHS,
    DEFAULT_USER_NAME,
    AppUser,
    Category,
    Drawer,
    DrawerDraft,
    ExpiryState,
    FoodMapping,
    HouseholdMember,
    HouseholdRole,
    InventoryDocument,
    InventorySettings,
    Item,
    expiry_state,
    initial_categories,
    is_overdue,
    normalize_name,
    role_rank,
    utc_now,
)
from freezer.services.notifications import (
    OVERDUE_REMINDER_ID,
    LoggingReminderScheduler,
    ReminderScheduler,
    build_overdue_reminder,
)
from freezer.services.sharing import (
    DisabledSharingService,
    ShareForbiddenError,
    SharingService,
)
from freezer.services.storage import InventoryRepository, ShareContext, StorageError
from freezer.voice import (
    UNKNOWN_DRAWER_NAME,
    MatchStatus,
    RemovalResolution,
    RemovalResponse,
    RemovalStatus,
    ambiguous_dialog,
    forbidden_dialog,
    not_found_dialog,
    parse_remove_command,
    removed_dialog,
    resolve_removal,
)


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

UNKNOWN_NAME = "Unknown"


# =============================================================================
# REPAIR
# =============================================================================

def ensure_owner(members: list[HouseholdMember]) -> tuple[list[HouseholdMember], bool]:
    """Promote the first member when nobody holds the owner role."""
    if not members or any(m.role is HouseholdRole.OWNER for m in members):
        return members, False
    promoted = [members[0].model_copy(update={"role": HouseholdRole.OWNER})] + members[1:]
    return promoted, True


def repair_document(document: InventoryDocument, now: datetime) -> tuple[InventoryDocument, bool]:
    """
    Bring a loaded document back in line with the multi-user invariants.

    Returns the repaired copy and whether anything had to change.
    """
    doc = document.model_copy(deep=True)
    changed = False

    if not doc.users:
        user = AppUser(display_name=DEFAULT_USER_NAME)
        doc.users = [user]
        doc.current_user_id = user.id
        changed = True

    if doc.user(doc.current_user_id) is None:
        doc.current_user_id = doc.users[0].id
        changed = True

    members = list(doc.household.members)
    if not any(m.user_id == doc.current_user_id for m in members):
        members.append(HouseholdMember(
            user_id=doc.current_user_id,
            role=HouseholdRole.OWNER,
            joined_at=now,
        ))
        changed = True

    members, promoted = ensure_owner(members)
    changed = changed or promoted
    doc.household = doc.household.model_copy(update={"members": members})

    if not doc.categories:
        doc.categories = initial_categories()
        changed = True

    known_users = {u.id for u in doc.users}
    items = []
    for item in doc.items:
        updates = {}
        if item.created_by_user_id not in known_users:
            updates["created_by_user_id"] = doc.current_user_id
        if item.updated_by_user_id not in known_users:
            updates["updated_by_user_id"] = doc.current_user_id
        if updates:
            item = item.model_copy(update=updates)
            changed = True
        items.append(item)
    doc.items = items

    return doc, changed


def _trimmed(text: str) -> str:
    return text.strip()


class InventoryStore:
    """
    State engine for one device.

    Use `await InventoryStore.open(repository, ...)` rather than the
    constructor: it loads (or creates) and repairs the document.
    """

    def __init__(
        self,
        repository: InventoryRepository,
        document: InventoryDocument,
        reminders: Optional[ReminderScheduler] = None,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        sharing: Optional[SharingService] = None,
        share_context: Optional[ShareContext] = None,
    ):
        self._repository = repository
        self._document = document
        self._reminders = reminders or LoggingReminderScheduler()
        self._audit = audit or AuditLogger()
        self._clock = clock or utc_now
        self._sharing = sharing or DisabledSharingService()
        self._share_context = share_context or ShareContext()
        self._lock = asyncio.Lock()
        self._reminder_state: Optional[tuple[int, int]] = None

    @classmethod
    async def open(
        cls,
        repository: InventoryRepository,
        reminders: Optional[ReminderScheduler] = None,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        sharing: Optional[SharingService] = None,
        share_context: Optional[ShareContext] = None,
        household_name: str = DEFAULT_HOUSEHOLD_NAME,
        user_name: str = DEFAULT_USER_NAME,
        threshold_months: int = DEFAULT_THRESHOLD_MONTHS,
        notification_hour: int = DEFAULT_NOTIFICATION_HOUR,
    ) -> "InventoryStore":
        """
        Load the stored document or create the first-launch one.

        Raises:
            StorageError: If the local store exists but cannot be read
        """
        clock = clock or utc_now
        audit = audit or AuditLogger()

        loaded = await repository.load()
        if loaded is None:
            document = InventoryDocument.initial(
                household_name=household_name,
                user_name=user_name,
                threshold_months=threshold_months,
                notification_hour=notification_hour,
                now=clock(),
            )
            changed = True
            audit.log_document(
                AuditEventType.DOCUMENT_CREATED,
                document.household.id,
                "Created first-launch inventory document",
            )
        else:
            document, changed = repair_document(loaded, clock())
            if changed:
                audit.log_document(
                    AuditEventType.DOCUMENT_REPAIRED,
                    document.household.id,
                    "Repaired household membership after load",
                )

        store = cls(
            repository,
            document,
            reminders=reminders,
            audit=audit,
            clock=clock,
            sharing=sharing,
            share_context=share_context,
        )
        if changed:
            await store._persist()
        store.refresh_notifications()
        return store

    # =========================================================================
    # PROJECTIONS
    # =========================================================================

    @property
    def document(self) -> InventoryDocument:
        """Deep copy of the current document."""
        return self._document.model_copy(deep=True)

    @property
    def categories(self) -> list[Category]:
        return self._document.sorted_categories()

    @property
    def drawers(self) -> list[Drawer]:
        return self._document.sorted_drawers()

    @property
    def items(self) -> list[Item]:
        """Newest first."""
        return sorted(self._document.items, key=lambda i: i.date_added, reverse=True)

    @property
    def mappings(self) -> list[FoodMapping]:
        return sorted(self._document.user_mappings, key=lambda m: m.keyword)

    @property
    def users(self) -> list[AppUser]:
        return sorted(self._document.users, key=lambda u: u.display_name)

    @property
    def members(self) -> list[HouseholdMember]:
        """Owners first, then editors, then viewers; by name within a role."""
        return sorted(
            self._document.household.members,
            key=lambda m: (role_rank(m.role), self.user_name(m.user_id)),
        )

    @property
    def current_user(self) -> AppUser:
        return self._document.user(self._document.current_user_id) or self._document.users[0]

    @property
    def current_role(self) -> HouseholdRole:
        return self._document.role_for(self._document.current_user_id)

    @property
    def can_edit_content(self) -> bool:
        return self.current_role in (HouseholdRole.OWNER, HouseholdRole.EDITOR)

    @property
    def can_manage_members(self) -> bool:
        return self.current_role is HouseholdRole.OWNER

    @property
    def onboarding_complete(self) -> bool:
        return self._document.onboarding_complete

    @property
    def threshold_months(self) -> int:
        return self._document.settings.threshold_months

    @property
    def notification_hour(self) -> int:
        return self._document.settings.notification_hour

    @property
    def household_name(self) -> str:
        return self._document.household.name

    def user_name(self, user_id: UUID) -> str:
        user = self._document.user(user_id)
        return user.display_name if user else UNKNOWN_NAME

    def category_name(self, category_id: UUID) -> str:
        category = self._document.category(category_id)
        return category.name if category else UNKNOWN_NAME

    def drawer_name(self, drawer_id: UUID) -> str:
        drawer = self._document.drawer(drawer_id)
        return drawer.name if drawer else UNKNOWN_DRAWER_NAME

    def items_in_drawer(self, drawer_id: UUID) -> list[Item]:
        return [i for i in self.items if i.drawer_id == drawer_id]

    def matching_items(self, term: str) -> list[Item]:
        """Items whose name, quantity, category or drawer contains the term."""
        normalized = normalize_name(term)
        if not normalized:
            return self.items
        return [
            i for i in self.items
            if normalized in i.normalized_name
            or normalized in normalize_name(i.quantity)
            or normalized in normalize_name(self.category_name(i.category_id))
            or normalized in normalize_name(self.drawer_name(i.drawer_id))
        ]

    def overdue_items(self, reference: Optional[datetime] = None) -> list[Item]:
        reference = reference or self._clock()
        return [i for i in self.items if is_overdue(i, self.threshold_months, reference)]

    def expiry_state(self, item: Item, reference: Optional[datetime] = None) -> ExpiryState:
        return expiry_state(item, self.threshold_months, reference or self._clock())

    def suggested_category(self, item_name: str) -> Optional[Category]:
        return suggest_category(self._document, item_name)

    def suggested_drawer(self, category_id: UUID) -> Optional[Drawer]:
        return suggest_drawer(self._document, category_id)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _working_copy(self) -> InventoryDocument:
        return self._document.model_copy(deep=True)

    def _reject(self, operation: str, reason: RejectionReason, **details) -> bool:
        self._audit.log_rejected(operation, reason, self._document.current_user_id, details or None)
        return False

    def _permitted(self, operation: str, manage_members: bool = False) -> bool:
        allowed = self.can_manage_members if manage_members else self.can_edit_content
        if not allowed:
            self._reject(operation, RejectionReason.FORBIDDEN, role=self.current_role.value)
        return allowed

    async def _persist(self) -> None:
        try:
            await self._repository.save(self._document)
        except StorageError as e:
            logger.error("document_save_failed", error=str(e))
            self._audit.log_save_failed(str(e))

    async def _commit(
        self,
        document: InventoryDocument,
        event_type: AuditEventType,
        description: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        refresh: bool = False,
        **details,
    ) -> bool:
        self._document = document
        await self._persist()
        self._audit.log_change(
            event_type=event_type,
            description=description,
            actor_user_id=document.current_user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or None,
        )
        if refresh:
            self.refresh_notifications()
        return True

    # =========================================================================
    # IDENTITY AND HOUSEHOLD
    # =========================================================================

    async def switch_current_user(self, user_id: UUID) -> bool:
        async with self._lock:
            if self._document.user(user_id) is None:
                return self._reject("switch_current_user", RejectionReason.NOT_FOUND)
            doc = self._working_copy()
            doc.current_user_id = user_id
            return await self._commit(
                doc, AuditEventType.CURRENT_USER_CHANGED,
                "Switched current user", "user", user_id,
            )

    async def rename_current_user(self, display_name: str) -> bool:
        async with self._lock:
            name = _trimmed(display_name)
            if not name:
                return self._reject("rename_current_user", RejectionReason.INVALID_INPUT)
            doc = self._working_copy()
            user_id = doc.current_user_id
            doc.users = [
                u.model_copy(update={"display_name": name}) if u.id == user_id else u
                for u in doc.users
            ]
            return await self._commit(
                doc, AuditEventType.CURRENT_USER_CHANGED,
                f"Renamed current user to {name}", "user", user_id,
            )

    async def rename_household(self, name: str) -> bool:
        async with self._lock:
            if not self._permitted("rename_household", manage_members=True):
                return False
            name = _trimmed(name)
            if not name:
                return self._reject("rename_household", RejectionReason.INVALID_INPUT)
            doc = self._working_copy()
            doc.household = doc.household.model_copy(update={"name": name})
            return await self._commit(
                doc, AuditEventType.HOUSEHOLD_RENAMED,
                f"Renamed household to {name}", "household", doc.household.id,
            )

    async def add_member(self, display_name: str, role: HouseholdRole) -> bool:
        async with self._lock:
            if not self._permitted("add_member", manage_members=True):
                return False
            name = _trimmed(display_name)
            if not name:
                return self._reject("add_member", RejectionReason.INVALID_INPUT)
            if any(normalize_name(u.display_name) == normalize_name(name) for u in self._document.users):
                return self._reject("add_member", RejectionReason.INVARIANT, display_name=name)

            doc = self._working_copy()
            user = AppUser(display_name=name)
            member = HouseholdMember(user_id=user.id, role=role, joined_at=self._clock())
            doc.users = doc.users + [user]
            doc.household = doc.household.model_copy(
                update={"members": doc.household.members + [member]}
            )
            return await self._commit(
                doc, AuditEventType.MEMBER_ADDED,
                f"Added {name} as {role.label}", "member", member.id,
                role=role.value,
            )

    async def update_member_role(self, member_id: UUID, role: HouseholdRole) -> bool:
        async with self._lock:
            if not self._permitted("update_member_role", manage_members=True):
                return False
            member = next((m for m in self._document.household.members if m.id == member_id), None)
            if member is None:
                return self._reject("update_member_role", RejectionReason.NOT_FOUND)
            if member.user_id == self._document.current_user_id and role is not HouseholdRole.OWNER:
                return self._reject("update_member_role", RejectionReason.INVARIANT, rule="self_demotion")

            doc = self._working_copy()
            members = [
                m.model_copy(update={"role": role}) if m.id == member_id else m
                for m in doc.household.members
            ]
            members, _ = ensure_owner(members)
            doc.household = doc.household.model_copy(update={"members": members})
            return await self._commit(
                doc, AuditEventType.MEMBER_ROLE_UPDATED,
                f"Changed role of {self.user_name(member.user_id)} to {role.label}",
                "member", member_id, role=role.value,
            )

    async def remove_member(self, member_id: UUID) -> bool:
        async with self._lock:
            if not self._permitted("remove_member", manage_members=True):
                return False
            member = next((m for m in self._document.household.members if m.id == member_id), None)
            if member is None:
                return self._reject("remove_member", RejectionReason.NOT_FOUND)
            if member.user_id == self._document.current_user_id:
                return self._reject("remove_member", RejectionReason.INVARIANT, rule="self_removal")

            name = self.user_name(member.user_id)
            doc = self._working_copy()
            members = [m for m in doc.household.members if m.id != member_id]
            if not any(m.user_id == member.user_id for m in members):
                doc.users = [u for u in doc.users if u.id != member.user_id]
            members, _ = ensure_owner(members)
            doc.household = doc.household.model_copy(update={"members": members})
            return await self._commit(
                doc, AuditEventType.MEMBER_REMOVED,
                f"Removed {name} from household", "member", member_id,
            )

    # =========================================================================
    # ONBOARDING AND SETTINGS
    # =========================================================================

    async def complete_onboarding(self, drafts: list[DrawerDraft], threshold_months: int) -> bool:
        async with self._lock:
            if not self._permitted("complete_onboarding"):
                return False
            if not drafts and self._document.items:
                return self._reject("complete_onboarding", RejectionReason.INVARIANT, rule="items_need_drawer")

            doc = self._working_copy()
            category_ids = {c.id for c in doc.categories}
            fallback_category_id = doc.categories[0].id
            drawers = []
            for offset, draft in enumerate(drafts):
                drawers.append(Drawer(
                    id=draft.id,
                    name=_trimmed(draft.name) or f"Drawer {offset + 1}",
                    order=offset,
                    default_category_id=draft.category_id if draft.category_id in category_ids else fallback_category_id,
                ))
            doc.drawers = drawers
            _repoint_items_to_drawers(doc)
            doc.settings = doc.settings.model_copy(update={"threshold_months": max(1, threshold_months)})
            doc.onboarding_complete = True
            return await self._commit(
                doc, AuditEventType.ONBOARDING_COMPLETED,
                f"Completed onboarding with {len(drawers)} drawers",
                refresh=True, threshold_months=doc.settings.threshold_months,
            )

    async def set_threshold_months(self, months: int) -> bool:
        async with self._lock:
            if not self._permitted("set_threshold_months"):
                return False
            doc = self._working_copy()
            doc.settings = InventorySettings(
                threshold_months=months,
                notification_hour=doc.settings.notification_hour,
            )
            return await self._commit(
                doc, AuditEventType.SETTINGS_UPDATED,
                f"Threshold set to {doc.settings.threshold_months} months",
                refresh=True, threshold_months=doc.settings.threshold_months,
            )

    async def set_notification_hour(self, hour: int) -> bool:
        async with self._lock:
            if not self._permitted("set_notification_hour"):
                return False
            doc = self._working_copy()
            doc.settings = InventorySettings(
                threshold_months=doc.settings.threshold_months,
                notification_hour=hour,
            )
            return await self._commit(
                doc, AuditEventType.SETTINGS_UPDATED,
                f"Reminder hour set to {doc.settings.notification_hour}",
                refresh=True, notification_hour=doc.settings.notification_hour,
            )

    # =========================================================================
    # ITEMS
    # =========================================================================

    async def add_item(
        self,
        name: str,
        quantity: str,
        date_added: datetime,
        category_id: Optional[UUID] = None,
        drawer_id: Optional[UUID] = None,
    ) -> bool:
        async with self._lock:
            if not self._permitted("add_item"):
                return False
            if not normalize_name(name):
                return self._reject("add_item", RejectionReason.INVALID_INPUT)

            doc = self._working_copy()
            category = doc.category(category_id) if category_id else None
            category = category or suggest_category(doc, name) or (doc.categories[0] if doc.categories else None)
            if category is None:
                return self._reject("add_item", RejectionReason.INVARIANT, rule="no_category")

            drawer = doc.drawer(drawer_id) if drawer_id else None
            drawer = drawer or suggest_drawer(doc, category.id)
            if drawer is None:
                return self._reject("add_item", RejectionReason.INVARIANT, rule="no_drawer")

            now = self._clock()
            item = Item(
                name=_trimmed(name),
                normalized_name=normalize_name(name),
                category_id=category.id,
                drawer_id=drawer.id,
                quantity=_trimmed(quantity),
                date_added=date_added,
                created_by_user_id=doc.current_user_id,
                updated_by_user_id=doc.current_user_id,
                updated_at=now,
            )
            doc.items = doc.items + [item]
            return await self._commit(
                doc, AuditEventType.ITEM_ADDED,
                f"Added {item.name} to {drawer.name}", "item", item.id,
                refresh=True, category=category.name,
            )

    async def update_item(self, item: Item) -> bool:
        async with self._lock:
            if not self._permitted("update_item"):
                return False
            existing = self._document.item(item.id)
            if existing is None:
                return self._reject("update_item", RejectionReason.NOT_FOUND)
            if not normalize_name(item.name):
                return self._reject("update_item", RejectionReason.INVALID_INPUT)

            doc = self._working_copy()
            category = doc.category(item.category_id) or doc.categories[0]
            drawer = doc.drawer(item.drawer_id) or suggest_drawer(doc, category.id)
            if drawer is None:
                return self._reject("update_item", RejectionReason.INVARIANT, rule="no_drawer")

            updated = item.model_copy(update={
                "name": _trimmed(item.name),
                "normalized_name": normalize_name(item.name),
                "quantity": _trimmed(item.quantity),
                "category_id": category.id,
                "drawer_id": drawer.id,
                "created_by_user_id": existing.created_by_user_id,
                "updated_by_user_id": doc.current_user_id,
                "updated_at": self._clock(),
            })
            doc.items = [updated if i.id == item.id else i for i in doc.items]
            return await self._commit(
                doc, AuditEventType.ITEM_UPDATED,
                f"Updated {updated.name}", "item", item.id,
                refresh=True,
            )

    async def _delete_item(self, item_id: UUID, operation: str) -> bool:
        item = self._document.item(item_id)
        if item is None:
            return self._reject(operation, RejectionReason.NOT_FOUND)
        doc = self._working_copy()
        doc.items = [i for i in doc.items if i.id != item_id]
        return await self._commit(
            doc, AuditEventType.ITEM_REMOVED,
            f"Removed {item.name} from {self.drawer_name(item.drawer_id)}", "item", item_id,
            refresh=True, via=operation,
        )

    async def delete_item(self, item_id: UUID) -> bool:
        async with self._lock:
            if not self._permitted("delete_item"):
                return False
            return await self._delete_item(item_id, "delete_item")

    # =========================================================================
    # DRAWERS
    # =========================================================================

    async def update_drawers(self, drawers: list[Drawer]) -> bool:
        """Replace the drawer list; list position becomes the display order."""
        async with self._lock:
            if not self._permitted("update_drawers"):
                return False
            if any(not _trimmed(d.name) for d in drawers):
                return self._reject("update_drawers", RejectionReason.INVALID_INPUT)
            if not drawers and self._document.items:
                return self._reject("update_drawers", RejectionReason.INVARIANT, rule="items_need_drawer")

            doc = self._working_copy()
            category_ids = {c.id for c in doc.categories}
            fallback_category_id = doc.categories[0].id
            doc.drawers = [
                d.model_copy(update={
                    "name": _trimmed(d.name),
                    "order": index,
                    "default_category_id": (
                        d.default_category_id if d.default_category_id in category_ids
                        else fallback_category_id
                    ),
                })
                for index, d in enumerate(drawers)
            ]
            _repoint_items_to_drawers(doc)
            return await self._commit(
                doc, AuditEventType.DRAWERS_UPDATED,
                f"Updated drawers ({len(doc.drawers)})",
            )

    async def delete_drawer(self, drawer_id: UUID) -> bool:
        async with self._lock:
            if not self._permitted("delete_drawer"):
                return False
            drawer = self._document.drawer(drawer_id)
            if drawer is None:
                return self._reject("delete_drawer", RejectionReason.NOT_FOUND)
            remaining = [d for d in self._document.sorted_drawers() if d.id != drawer_id]
            if not remaining and self._document.items:
                return self._reject("delete_drawer", RejectionReason.INVARIANT, rule="items_need_drawer")

            doc = self._working_copy()
            doc.drawers = [d.model_copy(update={"order": index}) for index, d in enumerate(remaining)]
            _repoint_items_to_drawers(doc)
            return await self._commit(
                doc, AuditEventType.DRAWERS_UPDATED,
                f"Deleted drawer {drawer.name}", "drawer", drawer_id,
            )

    # =========================================================================
    # MAPPINGS
    # =========================================================================

    async def add_user_mapping(self, keyword: str, category_id: UUID) -> bool:
        """Map a keyword to a category; an existing keyword is overwritten."""
        async with self._lock:
            if not self._permitted("add_user_mapping"):
                return False
            normalized = normalize_name(keyword)
            if not normalized:
                return self._reject("add_user_mapping", RejectionReason.INVALID_INPUT)
            if self._document.category(category_id) is None:
                return self._reject("add_user_mapping", RejectionReason.NOT_FOUND)

            doc = self._working_copy()
            existing = next(
                (m for m in doc.user_mappings if normalize_name(m.keyword) == normalized),
                None,
            )
            if existing is not None:
                mapping = existing.model_copy(update={"keyword": _trimmed(keyword), "category_id": category_id})
                doc.user_mappings = [mapping if m.id == existing.id else m for m in doc.user_mappings]
            else:
                mapping = FoodMapping(keyword=_trimmed(keyword), category_id=category_id)
                doc.user_mappings = doc.user_mappings + [mapping]
            return await self._commit(
                doc, AuditEventType.MAPPING_SAVED,
                f"Mapped '{mapping.keyword}' to {self.category_name(category_id)}",
                "mapping", mapping.id,
            )

    async def update_user_mapping(self, mapping: FoodMapping) -> bool:
        async with self._lock:
            if not self._permitted("update_user_mapping"):
                return False
            if not any(m.id == mapping.id for m in self._document.user_mappings):
                return self._reject("update_user_mapping", RejectionReason.NOT_FOUND)
            normalized = normalize_name(mapping.keyword)
            if not normalized:
                return self._reject("update_user_mapping", RejectionReason.INVALID_INPUT)
            if self._document.category(mapping.category_id) is None:
                return self._reject("update_user_mapping", RejectionReason.NOT_FOUND)
            if any(
                m.id != mapping.id and normalize_name(m.keyword) == normalized
                for m in self._document.user_mappings
            ):
                return self._reject("update_user_mapping", RejectionReason.INVARIANT, keyword=normalized)

            doc = self._working_copy()
            cleaned = mapping.model_copy(update={"keyword": _trimmed(mapping.keyword)})
            doc.user_mappings = [cleaned if m.id == mapping.id else m for m in doc.user_mappings]
            return await self._commit(
                doc, AuditEventType.MAPPING_SAVED,
                f"Updated mapping '{cleaned.keyword}'", "mapping", mapping.id,
            )

    async def delete_mapping(self, mapping_id: UUID) -> bool:
        async with self._lock:
            if not self._permitted("delete_mapping"):
                return False
            if not any(m.id == mapping_id for m in self._document.user_mappings):
                return self._reject("delete_mapping", RejectionReason.NOT_FOUND)
            doc = self._working_copy()
            doc.user_mappings = [m for m in doc.user_mappings if m.id != mapping_id]
            return await self._commit(
                doc, AuditEventType.MAPPING_DELETED,
                "Deleted mapping", "mapping", mapping_id,
            )

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, name: str) -> bool:
        async with self._lock:
            if not self._permitted("add_category"):
                return False
            name = _trimmed(name)
            if not name:
                return self._reject("add_category", RejectionReason.INVALID_INPUT)
            if any(normalize_name(c.name) == normalize_name(name) for c in self._document.categories):
                return self._reject("add_category", RejectionReason.INVARIANT, name=name)

            doc = self._working_copy()
            category = Category(name=name)
            doc.categories = doc.categories + [category]
            return await self._commit(
                doc, AuditEventType.CATEGORY_ADDED,
                f"Added category {name}", "category", category.id,
            )

    async def update_categories(self, categories: list[Category]) -> bool:
        """
        Replace the category set.

        Names are trimmed, blanks dropped and case-insensitive duplicates
        collapsed to their first occurrence. References to categories that
        are gone move to the first category of the new set.
        """
        async with self._lock:
            if not self._permitted("update_categories"):
                return False

            unique: list[Category] = []
            seen: set[str] = set()
            for category in categories:
                name = _trimmed(category.name)
                if not name or normalize_name(name) in seen:
                    continue
                seen.add(normalize_name(name))
                unique.append(category.model_copy(update={"name": name}))

            if not unique:
                return self._reject("update_categories", RejectionReason.INVARIANT, rule="no_categories")

            doc = self._working_copy()
            doc.categories = unique
            _repoint_categories(doc, unique[0].id)
            return await self._commit(
                doc, AuditEventType.CATEGORIES_UPDATED,
                f"Updated categories ({len(unique)})",
            )

    async def delete_category(self, category_id: UUID) -> bool:
        async with self._lock:
            if not self._permitted("delete_category"):
                return False
            if len(self._document.categories) <= 1:
                return self._reject("delete_category", RejectionReason.INVARIANT, rule="last_category")
            category = self._document.category(category_id)
            if category is None:
                return self._reject("delete_category", RejectionReason.NOT_FOUND)

            doc = self._working_copy()
            doc.categories = [c for c in doc.categories if c.id != category_id]
            _repoint_categories(doc, doc.categories[0].id)
            return await self._commit(
                doc, AuditEventType.CATEGORY_DELETED,
                f"Deleted category {category.name}", "category", category_id,
            )

    # =========================================================================
    # REMOVAL BY VOICE AND ASSISTANT
    # =========================================================================

    async def remove_item_for_assistant(
        self,
        item_term: str,
        drawer_name: Optional[str] = None,
    ) -> RemovalResponse:
        """
        Remove an item named by the assistant.

        There is no confirmation step: exactly one match is removed at once.
        """
        async with self._lock:
            if not self.can_edit_content:
                self._reject("remove_item_for_assistant", RejectionReason.FORBIDDEN)
                return RemovalResponse(status=RemovalStatus.FORBIDDEN, dialog=forbidden_dialog())

            term = _trimmed(item_term)
            if not normalize_name(term):
                return RemovalResponse(status=RemovalStatus.NOT_FOUND, dialog=not_found_dialog())

            resolution = resolve_removal(self._document, term, drawer_name=drawer_name)
            if resolution.status is MatchStatus.NOT_FOUND:
                return RemovalResponse(status=RemovalStatus.NOT_FOUND, dialog=not_found_dialog(term))
            if resolution.status is MatchStatus.AMBIGUOUS:
                return RemovalResponse(
                    status=RemovalStatus.AMBIGUOUS,
                    dialog=ambiguous_dialog(term, resolution.drawer_names),
                )

            item = resolution.candidates[0]
            drawer = self.drawer_name(item.drawer_id)
            await self._delete_item(item.id, "remove_item_for_assistant")
            return RemovalResponse(
                status=RemovalStatus.REMOVED,
                dialog=removed_dialog(item.name, drawer),
                item_id=item.id,
            )

    def resolve_voice_command(self, utterance: str) -> RemovalResolution:
        """
        Parse and resolve a spoken removal without deleting anything.

        A READY result carries the candidate to confirm with confirm_removal().
        """
        if not self.can_edit_content:
            self._reject("resolve_voice_command", RejectionReason.FORBIDDEN)
            return RemovalResolution(status=MatchStatus.FORBIDDEN)

        command = parse_remove_command(utterance)
        if command is None:
            return RemovalResolution(status=MatchStatus.NO_COMMAND)

        resolution = resolve_removal(
            self._document,
            command.item_term,
            drawer_number=command.drawer_number,
        )
        return resolution.model_copy(update={"command": command})

    async def confirm_removal(self, item_id: UUID) -> RemovalResponse:
        """Remove a voice candidate once the user confirmed it."""
        async with self._lock:
            if not self.can_edit_content:
                self._reject("confirm_removal", RejectionReason.FORBIDDEN)
                return RemovalResponse(status=RemovalStatus.FORBIDDEN, dialog=forbidden_dialog())

            item = self._document.item(item_id)
            if item is None:
                return RemovalResponse(status=RemovalStatus.NOT_FOUND, dialog=not_found_dialog())

            drawer = self.drawer_name(item.drawer_id)
            await self._delete_item(item_id, "confirm_removal")
            return RemovalResponse(
                status=RemovalStatus.REMOVED,
                dialog=removed_dialog(item.name, drawer),
                item_id=item_id,
            )

    # =========================================================================
    # SYNC
    # =========================================================================

    async def reload_from_disk_if_changed(self) -> bool:
        """
        Replace the in-memory document with the stored one if they differ.

        Returns:
            True if the document was replaced
        """
        async with self._lock:
            try:
                loaded = await self._repository.load()
            except StorageError as e:
                logger.warning("reload_failed", error=str(e))
                return False

            if loaded is None or loaded.model_dump() == self._document.model_dump():
                return False

            document, repaired = repair_document(loaded, self._clock())
            self._document = document
            if repaired:
                await self._persist()

            self._audit.log_document(
                AuditEventType.DOCUMENT_RELOADED,
                document.household.id,
                "Reloaded inventory document from storage",
            )
            self.refresh_notifications()
            return True

    async def handle_remote_change(self) -> bool:
        """
        Pull the remote document and reload it.

        Raises:
            RemoteStoreError: If the remote failed (timeouts are not errors)
        """
        if not await self._repository.sync_from_remote():
            return False
        return await self.reload_from_disk_if_changed()

    def refresh_notifications(self, reference: Optional[datetime] = None) -> None:
        """Schedule, replace or clear the overdue reminder."""
        overdue_count = len(self.overdue_items(reference))
        state = (overdue_count, self.notification_hour)
        if state == self._reminder_state:
            return
        self._reminder_state = state

        request = build_overdue_reminder(overdue_count, self.notification_hour)
        if request is None:
            self._reminders.cancel(OVERDUE_REMINDER_ID)
        else:
            self._reminders.schedule(request)
        self._audit.log_reminder(overdue_count, self.notification_hour)

    # =========================================================================
    # SHARING
    # =========================================================================

    async def create_share_url(self) -> str:
        """
        Share link of this household.

        Raises:
            ShareForbiddenError: If the current user is not the owner
            ShareError: If the sharing backend failed
        """
        if not self.can_manage_members:
            self._reject("create_share_url", RejectionReason.FORBIDDEN)
            raise ShareForbiddenError("Only the household owner can share the freezer.")

        household = self._document.household
        share_url = await self._sharing.create_or_fetch_share_url(household.id, household.name)
        self._audit.log_share_created(household.id, share_url, self._document.current_user_id)

        # Fill the freshly created root record with the document.
        async with self._lock:
            await self._persist()
        return share_url

    async def accept_share(self, url: str) -> bool:
        """
        Join the household behind a share link and load its document.

        Returns:
            True if the shared document replaced the local one
        """
        result = await self._sharing.accept_share(url)
        self._share_context.remember(result)
        self._audit.log_share_accepted(result.root_record_name)
        return await self.handle_remote_change()


# =============================================================================
# REPOINTING
# =============================================================================

def _repoint_items_to_drawers(doc: InventoryDocument) -> None:
    """Move items whose drawer is gone to the first drawer by order."""
    drawer_ids = {d.id for d in doc.drawers}
    drawers = doc.sorted_drawers()
    if not drawers:
        return
    fallback = drawers[0].id
    doc.items = [
        i if i.drawer_id in drawer_ids else i.model_copy(update={"drawer_id": fallback})
        for i in doc.items
    ]


def _repoint_categories(doc: InventoryDocument, fallback_id: UUID) -> None:
    """Move drawers, items and mappings off categories that are gone."""
    category_ids = {c.id for c in doc.categories}
    doc.drawers = [
        d if d.default_category_id in category_ids
        else d.model_copy(update={"default_category_id": fallback_id})
        for d in doc.drawers
    ]
    doc.items = [
        i if i.category_id in category_ids
        else i.model_copy(update={"category_id": fallback_id})
        for i in doc.items
    ]
    doc.user_mappings = [
        m if m.category_id in category_ids
        else m.model_copy(update={"category_id": fallback_id})
        for m in doc.user_mappings
    ]
