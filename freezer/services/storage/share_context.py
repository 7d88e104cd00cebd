"""
Share Context

Remembers, on this device only, which shared household was joined.
When set, the synced repository reads and writes that household's root
record in the shared scope instead of this device's own record.
"""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from freezer.models.inventory import utc_now
from freezer.models.sync import AcceptedShare, ShareAcceptanceResult
from freezer.services.storage.local_json import atomic_write_text


logger = structlog.get_logger(__name__)


class ShareContext:
    """Persisted accepted share, or nothing."""

    def __init__(self, file_path: Optional[Path] = None):
        self._file_path = Path(file_path) if file_path else None
        self._accepted: Optional[AcceptedShare] = self._read()

    def _read(self) -> Optional[AcceptedShare]:
        if self._file_path is None or not self._file_path.exists():
            return None
        try:
            return AcceptedShare.model_validate_json(self._file_path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning("share_context_unreadable", path=str(self._file_path), error=str(e))
            return None

    @property
    def accepted(self) -> Optional[AcceptedShare]:
        return self._accepted

    @property
    def accepted_root_record_name(self) -> Optional[str]:
        return self._accepted.root_record_name if self._accepted else None

    @property
    def accepted_container_id(self) -> Optional[str]:
        return self._accepted.container_id if self._accepted else None

    def remember(self, result: ShareAcceptanceResult) -> AcceptedShare:
        """Store the accepted share; replaces any earlier one."""
        self._accepted = AcceptedShare(
            root_record_name=result.root_record_name,
            container_id=result.container_id,
            share_url=result.share_url,
            accepted_at=utc_now(),
        )
        if self._file_path is not None:
            atomic_write_text(self._file_path, self._accepted.model_dump_json(indent=2))
        logger.info("share_context_remembered", root_record_name=result.root_record_name)
        return self._accepted

    def clear(self) -> None:
        self._accepted = None
        if self._file_path is not None:
            self._file_path.unlink(missing_ok=True)
