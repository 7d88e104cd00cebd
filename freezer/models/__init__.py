"""
Data Models Package

This package contains all Pydantic models used in the Freezer Inventory system.
All data flowing through the system must conform to these schemas.
"""

from freezer.models.inventory import (
    DEFAULT_CATEGORY_NAMES,
    AppUser,
    Category,
    Drawer,
    DrawerDraft,
    ExpiryState,
    FoodMapping,
    Household,
    HouseholdMember,
    HouseholdRole,
    InventoryDocument,
    InventorySettings,
    Item,
    add_months,
    expiry_state,
    is_overdue,
    normalize_name,
    role_rank,
    utc_now,
)
from freezer.models.sync import (
    AcceptedShare,
    DatabaseScope,
    RemoteRecord,
    ShareAcceptanceResult,
    ShareMetadata,
    SharePermission,
    StorageBackend,
    record_name_for_household,
)
from freezer.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    RejectionReason,
)

__all__ = [
    # Inventory models
    "DEFAULT_CATEGORY_NAMES",
    "AppUser",
    "Category",
    "Drawer",
    "DrawerDraft",
    "ExpiryState",
    "FoodMapping",
    "Household",
    "HouseholdMember",
    "HouseholdRole",
    "InventoryDocument",
    "InventorySettings",
    "Item",
    "add_months",
    "expiry_state",
    "is_overdue",
    "normalize_name",
    "role_rank",
    "utc_now",
    # Sync models
    "AcceptedShare",
    "DatabaseScope",
    "RemoteRecord",
    "ShareAcceptanceResult",
    "ShareMetadata",
    "SharePermission",
    "StorageBackend",
    "record_name_for_household",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "RejectionReason",
]
