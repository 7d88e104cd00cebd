"""
Sync and Sharing Models

Shapes exchanged with the remote store: the per-household root record,
share metadata, and the device-local memory of an accepted share.

DESIGN DECISION: The remote store only ever sees the document as an
opaque JSON payload plus a few denormalized fields for discoverability.
It never interprets or merges the payload.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from freezer.models.inventory import InventoryDocument, UtcDatetime, utc_now


ROOT_RECORD_TYPE = "FreezerRoot"
DEFAULT_RECORD_NAME = "freezer-default"


def record_name_for_household(household_id: UUID) -> str:
    """Deterministic root record name of a household."""
    return f"freezer-{str(household_id).lower()}"


class StorageBackend(str, Enum):
    """Which repository implementation is wired in."""
    LOCAL = "local"
    CLOUD = "cloud"


class DatabaseScope(str, Enum):
    """
    Remote database scope.

    private - records this device's household owns
    shared  - records shared with this device by another household
    """
    PRIVATE = "private"
    SHARED = "shared"

    @property
    def subscription_id(self) -> str:
        return f"freezer.{self.value}.database.subscription"


class SharePermission(str, Enum):
    """Link access granted by a share."""
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class RemoteRecord(BaseModel):
    """
    The single remote record of a household.

    `payload` is the serialized InventoryDocument. It is empty for a root
    record that was created for sharing before the first push.
    """

    record_name: str
    record_type: str = ROOT_RECORD_TYPE
    payload: Optional[str] = None
    updated_at: UtcDatetime = Field(default_factory=utc_now)
    household_id: Optional[str] = None
    household_name: Optional[str] = None

    @classmethod
    def from_document(
        cls,
        document: InventoryDocument,
        record_name: str,
        now: Optional[datetime] = None,
    ) -> "RemoteRecord":
        return cls(
            record_name=record_name,
            payload=document.model_dump_json(),
            updated_at=now or utc_now(),
            household_id=str(document.household.id),
            household_name=document.household.name,
        )

    def decode_document(self) -> Optional[InventoryDocument]:
        """Decode the payload; None when the record carries no document yet."""
        if not self.payload:
            return None
        return InventoryDocument.model_validate_json(self.payload)


class ShareMetadata(BaseModel):
    """What a share link resolves to before it is accepted."""

    share_url: str
    root_record_name: str
    container_id: Optional[str] = Field(
        default=None,
        description="Backend-specific location of the shared records"
    )
    title: Optional[str] = None


class ShareAcceptanceResult(BaseModel):
    """Identity of the shared root, to be remembered by the accepting device."""

    root_record_name: str
    container_id: Optional[str] = None
    share_url: Optional[str] = None


class AcceptedShare(BaseModel):
    """Device-local record of the household this device joined."""

    root_record_name: str
    container_id: Optional[str] = None
    share_url: Optional[str] = None
    accepted_at: UtcDatetime = Field(default_factory=utc_now)
