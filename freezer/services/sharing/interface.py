"""
Sharing Service Interface

Creates and accepts share links for a household's root record.
Builds without remote capability wire the disabled implementation, which
refuses every call with a readable reason.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from freezer.models.sync import ShareAcceptanceResult


class SharingService(ABC):
    """Abstract interface for household sharing."""

    @abstractmethod
    async def create_or_fetch_share_url(self, household_id: UUID, household_name: str) -> str:
        """
        Get the household's share link, creating it on first use.

        Returns the same link on every call once a share exists.

        Raises:
            MissingShareURLError: If the backend produced no link
            ShareError: If the backend failed
        """
        pass

    @abstractmethod
    async def accept_share(self, url: str) -> ShareAcceptanceResult:
        """
        Join the household behind a share link.

        Raises:
            MissingShareURLError: If the link does not resolve
            ShareError: If the backend failed
        """
        pass


class ShareError(Exception):
    """Base exception for sharing operations."""
    pass


class MissingShareURLError(ShareError):
    """No share link could be produced or resolved."""
    pass


class SharingUnavailableError(ShareError):
    """Sharing is not available in this build."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ShareForbiddenError(ShareError):
    """Only the household owner may share it."""
    pass
