"""
Local JSON Repository

The durable on-device cache: one canonical JSON file holding the whole
inventory document.

DESIGN DECISION: Writes go to a temporary file in the same directory which
is fsynced and then renamed over the canonical file. A crash mid-write
leaves either the old document or the new one, never a torn file.

This repository is also the complete storage layer of builds without
remote capability.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from freezer.models.inventory import InventoryDocument
from freezer.models.sync import StorageBackend
from freezer.services.storage.interface import InventoryRepository, StorageError


logger = structlog.get_logger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """
    Replace `path` with `text` all-or-nothing.

    Raises:
        OSError: If the directory is not writable or the rename fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise


class LocalJSONRepository(InventoryRepository):
    """
    File-backed repository.

    `load` returns None when the file is absent or cannot be decoded, so
    the store falls back to a fresh document instead of refusing to start.
    """

    def __init__(self, file_path: Path):
        self._file_path = Path(file_path)

    @property
    def backend(self) -> StorageBackend:
        return StorageBackend.LOCAL

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _read(self) -> Optional[InventoryDocument]:
        try:
            raw = self._file_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {self._file_path}: {e}")

        try:
            return InventoryDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "local_document_undecodable",
                path=str(self._file_path),
                error_count=e.error_count(),
            )
            return None

    def _write(self, document: InventoryDocument) -> None:
        try:
            atomic_write_text(self._file_path, document.model_dump_json(indent=2))
        except OSError as e:
            raise StorageError(f"Failed to write {self._file_path}: {e}")

    async def load(self) -> Optional[InventoryDocument]:
        return await asyncio.to_thread(self._read)

    async def save(self, document: InventoryDocument) -> None:
        await asyncio.to_thread(self._write, document)

    def load_snapshot(self) -> Optional[InventoryDocument]:
        try:
            return self._read()
        except StorageError as e:
            logger.warning("local_snapshot_unavailable", error=str(e))
            return None
