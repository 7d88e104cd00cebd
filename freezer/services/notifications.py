"""
Overdue Reminder Port

The store tells a ReminderScheduler how many items are overdue and at
which hour the household wants to hear about it. Delivering the reminder
is the platform's job.

There is only ever one reminder. Scheduling replaces it; cancelling
removes it.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import BaseModel, Field


logger = structlog.get_logger(__name__)


OVERDUE_REMINDER_ID = "freezer.overdue.summary"
OVERDUE_REMINDER_TITLE = "Freezer reminder"


class ReminderRequest(BaseModel):
    """A daily repeating reminder at a given hour."""

    identifier: str = OVERDUE_REMINDER_ID
    title: str = OVERDUE_REMINDER_TITLE
    body: str
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    repeats: bool = True


def overdue_reminder_body(overdue_count: int) -> str:
    if overdue_count == 1:
        return "1 item has been in the freezer longer than your limit."
    return f"{overdue_count} items have been in the freezer longer than your limit."


def build_overdue_reminder(overdue_count: int, hour: int) -> Optional[ReminderRequest]:
    """The reminder to schedule, or None when nothing is overdue."""
    if overdue_count <= 0:
        return None
    return ReminderRequest(body=overdue_reminder_body(overdue_count), hour=hour)


class ReminderScheduler(ABC):
    """Platform reminder delivery."""

    @abstractmethod
    def schedule(self, request: ReminderRequest) -> None:
        """Schedule a reminder, replacing any with the same identifier."""
        pass

    @abstractmethod
    def cancel(self, identifier: str) -> None:
        """Remove a pending reminder; unknown identifiers are ignored."""
        pass


class LoggingReminderScheduler(ReminderScheduler):
    """
    Scheduler used when no platform scheduler is wired.

    Logs requests and keeps the active one so callers can inspect it.
    """

    def __init__(self):
        self.active: dict[str, ReminderRequest] = {}

    def schedule(self, request: ReminderRequest) -> None:
        self.active[request.identifier] = request
        logger.info(
            "reminder_scheduled",
            identifier=request.identifier,
            hour=request.hour,
            minute=request.minute,
            body=request.body,
        )

    def cancel(self, identifier: str) -> None:
        if self.active.pop(identifier, None) is not None:
            logger.info("reminder_cancelled", identifier=identifier)
