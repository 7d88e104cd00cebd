"""
Audit Logger

DESIGN DECISION: Every significant action on the inventory is logged.
This provides:
1. Traceability of changes made by each household member
2. Visibility into refused changes, which the store never raises
3. Debugging capability for sync and sharing

The audit logger:
- Is synchronous and cheap (structured local log only)
- Never raises into the caller
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from freezer.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    RejectionReason,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log. Events are also kept in
    memory (bounded) so the UI can show recent activity.
    """

    def __init__(self, history_limit: int = 200):
        self._logger = structlog.get_logger("freezer.audit")
        self._history: list[AuditEvent] = []
        self._history_limit = history_limit

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._history.append(event)
        if len(self._history) > self._history_limit:
            del self._history[0]

        log_dict = event.to_log_dict()

        if event.severity is AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_change(
        self,
        event_type: AuditEventType,
        description: str,
        actor_user_id: Optional[UUID],
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Log an applied inventory mutation."""
        self.log(AuditEventBuilder.inventory_changed(
            event_type=event_type,
            description=description,
            actor_user_id=actor_user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        ))

    def log_rejected(
        self,
        operation: str,
        reason: RejectionReason,
        actor_user_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> None:
        """Log a refused mutation."""
        self.log(AuditEventBuilder.mutation_rejected(
            operation=operation,
            reason=reason,
            actor_user_id=actor_user_id,
            details=details,
        ))

    def log_save_failed(self, error_message: str) -> None:
        """Log a local save failure."""
        self.log(AuditEventBuilder.save_failed(error_message))

    def log_document(
        self,
        event_type: AuditEventType,
        household_id: UUID,
        description: str,
    ) -> None:
        """Log document creation, repair or reload."""
        self.log(AuditEventBuilder.document_lifecycle(event_type, household_id, description))

    def log_remote_failure(self, operation: str, error_message: str) -> None:
        """Log a remote sync failure that was not surfaced to the user."""
        self.log(AuditEventBuilder.remote_sync_failed(operation, error_message))

    def log_share_created(self, household_id: UUID, share_url: str, actor_user_id: UUID) -> None:
        self.log(AuditEventBuilder.share_created(household_id, share_url, actor_user_id))

    def log_share_accepted(self, root_record_name: str) -> None:
        self.log(AuditEventBuilder.share_accepted(root_record_name))

    def log_reminder(self, overdue_count: int, hour: int) -> None:
        self.log(AuditEventBuilder.reminder_updated(overdue_count, hour))
