"""
Audit Models for Freezer Inventory

Every significant action on the inventory is logged for audit purposes.
This provides:
1. Traceability of who changed what on a shared household
2. Visibility into refused changes (which are otherwise silent)
3. Debugging information for sync and sharing problems

DESIGN DECISION: Audit events describe what happened; they are never
replayed. There is no history or undo built on top of them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from freezer.models.inventory import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Items
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_REMOVED = "item_removed"

    # Layout
    CATEGORY_ADDED = "category_added"
    CATEGORIES_UPDATED = "categories_updated"
    CATEGORY_DELETED = "category_deleted"
    DRAWERS_UPDATED = "drawers_updated"
    MAPPING_SAVED = "mapping_saved"
    MAPPING_DELETED = "mapping_deleted"
    ONBOARDING_COMPLETED = "onboarding_completed"
    SETTINGS_UPDATED = "settings_updated"

    # Household
    HOUSEHOLD_RENAMED = "household_renamed"
    MEMBER_ADDED = "member_added"
    MEMBER_ROLE_UPDATED = "member_role_updated"
    MEMBER_REMOVED = "member_removed"
    CURRENT_USER_CHANGED = "current_user_changed"

    # Refusals
    MUTATION_REJECTED = "mutation_rejected"

    # Persistence and sync
    DOCUMENT_CREATED = "document_created"
    DOCUMENT_REPAIRED = "document_repaired"
    DOCUMENT_RELOADED = "document_reloaded"
    SAVE_FAILED = "save_failed"
    REMOTE_SYNC_FAILED = "remote_sync_failed"

    # Sharing
    SHARE_CREATED = "share_created"
    SHARE_ACCEPTED = "share_accepted"

    # Reminders
    REMINDER_SCHEDULED = "reminder_scheduled"
    REMINDER_CLEARED = "reminder_cleared"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class RejectionReason(str, Enum):
    """Why a mutation was refused."""
    FORBIDDEN = "forbidden"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    INVARIANT = "invariant"


class AuditEvent(BaseModel):
    """
    One entry of the household activity trail.

    Mutations, refusals, persistence problems and sync outcomes all end
    up here. `actor_user_id` is the household user the store was acting
    for, which may differ from whoever owns the device.
    """

    event_id: UUID = Field(default_factory=uuid4)
    recorded_at: datetime = Field(default_factory=utc_now)
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which document entity ('item', 'drawer', 'member', 'household', ...)
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    actor_user_id: Optional[UUID] = None

    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    from_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe form for the structured log."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.inventory_changed(AuditEventType.ITEM_ADDED, ...)
        event = AuditEventBuilder.mutation_rejected("add_item", RejectionReason.FORBIDDEN, actor)
    """

    @staticmethod
    def inventory_changed(
        event_type: AuditEventType,
        description: str,
        actor_user_id: Optional[UUID],
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            description=description,
            details=details or {},
            from_user_action=True,
        )

    @staticmethod
    def mutation_rejected(
        operation: str,
        reason: RejectionReason,
        actor_user_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING if reason is RejectionReason.FORBIDDEN else AuditSeverity.INFO,
            actor_user_id=actor_user_id,
            description=f"{operation} refused: {reason.value}",
            details={"operation": operation, "reason": reason.value, **(details or {})},
            from_user_action=True,
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            description="Failed to save inventory document",
            error_message=error_message,
        )

    @staticmethod
    def document_lifecycle(
        event_type: AuditEventType,
        household_id: UUID,
        description: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="household",
            entity_id=household_id,
            description=description,
        )

    @staticmethod
    def remote_sync_failed(operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Remote {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def share_created(household_id: UUID, share_url: str, actor_user_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_CREATED,
            entity_type="household",
            entity_id=household_id,
            actor_user_id=actor_user_id,
            description="Share link ready for household",
            details={"share_url": share_url},
            from_user_action=True,
        )

    @staticmethod
    def share_accepted(root_record_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_ACCEPTED,
            description=f"Joined shared household record {root_record_name}",
            details={"root_record_name": root_record_name},
            from_user_action=True,
        )

    @staticmethod
    def reminder_updated(overdue_count: int, hour: int) -> AuditEvent:
        if overdue_count == 0:
            return AuditEvent(
                event_type=AuditEventType.REMINDER_CLEARED,
                severity=AuditSeverity.DEBUG,
                description="No overdue items; reminder cleared",
            )
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULED,
            severity=AuditSeverity.DEBUG,
            description=f"Reminder scheduled for {overdue_count} overdue items",
            details={"overdue_count": overdue_count, "hour": hour},
        )
