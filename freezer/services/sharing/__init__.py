"""
Sharing Services Package

Link-based household sharing: a remote implementation and a disabled
one for local-only builds.
"""

from freezer.services.sharing.interface import (
    MissingShareURLError,
    ShareError,
    ShareForbiddenError,
    SharingService,
    SharingUnavailableError,
)
from freezer.services.sharing.remote import RemoteSharingService
from freezer.services.sharing.disabled import DISABLED_REASON, DisabledSharingService

__all__ = [
    "DISABLED_REASON",
    "DisabledSharingService",
    "MissingShareURLError",
    "RemoteSharingService",
    "ShareError",
    "ShareForbiddenError",
    "SharingService",
    "SharingUnavailableError",
]
