"""Sharing service for builds without remote capability."""

from uuid import UUID

from freezer.models.sync import ShareAcceptanceResult
from freezer.services.sharing.interface import SharingService, SharingUnavailableError


DISABLED_REASON = "Cloud sharing is not configured for this build."


class DisabledSharingService(SharingService):
    """Refuses every call with the same reason."""

    def __init__(self, reason: str = DISABLED_REASON):
        self.reason = reason

    async def create_or_fetch_share_url(self, household_id: UUID, household_name: str) -> str:
        raise SharingUnavailableError(self.reason)

    async def accept_share(self, url: str) -> ShareAcceptanceResult:
        raise SharingUnavailableError(self.reason)
