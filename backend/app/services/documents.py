"""Document store: validates uploads and persists them under generated names."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import Settings, get_settings
from ..exceptions import FileValidationError, PayloadTooLargeError, StorageError
from ..models import OrderDocument
from ..utils.filenames import generate_stored_name

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """An upload already read into memory."""

    data: bytes
    filename: str
    content_type: str


class DocumentStore:
    """Validates size/type constraints and writes accepted files to a blob backend.

    ``backend`` is any object with ``upload_bytes``, ``delete_blob`` and
    ``blob_exists`` (``LocalBlobStore`` or ``GCSService``).
    """

    def __init__(self, backend, settings: Optional[Settings] = None) -> None:
        self.backend = backend
        self.settings = settings or get_settings()

    def validate(self, data: bytes, original_name: str, content_type: str, size: Optional[int] = None) -> int:
        """Return the effective byte size or raise FileValidationError."""
        if content_type not in self.settings.ACCEPTED_MIME:
            raise FileValidationError(
                f"File {original_name}: unsupported type {content_type or 'unknown'} "
                f"(accepted: {', '.join(self.settings.ACCEPTED_MIME)})"
            )
        actual = len(data)
        if actual == 0:
            raise FileValidationError(f"File {original_name} is empty")
        effective = max(actual, size or 0)
        if effective > self.settings.max_size_bytes:
            raise PayloadTooLargeError(
                f"File {original_name} exceeds the maximum size of {self.settings.MAX_SIZE_MB} MB"
            )
        return effective

    def store(self, data: bytes, original_name: str, content_type: str, size: Optional[int] = None) -> OrderDocument:
        """Validate and persist one file; nothing is written when validation fails."""
        effective = self.validate(data, original_name, content_type, size)
        stored_name = generate_stored_name(original_name)
        try:
            path = self.backend.upload_bytes(stored_name, data, content_type=content_type)
        except Exception as exc:
            logger.error("Upload of %s failed: %s", original_name, exc)
            raise StorageError("Storage error while saving document") from exc
        logger.info("Stored %s as %s (%d bytes)", original_name, stored_name, effective)
        return OrderDocument(
            filename=stored_name,
            originalname=original_name,
            path=path,
            mimetype=content_type,
            size=effective,
        )

    def store_many(self, files: Sequence[IncomingFile]) -> List[OrderDocument]:
        """Validate the whole batch first, then store each file.

        If a write fails midway the files already written are removed.
        """
        if not files:
            raise FileValidationError("No files uploaded")
        if len(files) > self.settings.MAX_FILES:
            raise FileValidationError(f"Too many files: at most {self.settings.MAX_FILES} documents per order")
        for f in files:
            self.validate(f.data, f.filename, f.content_type)

        stored: List[OrderDocument] = []
        try:
            for f in files:
                stored.append(self.store(f.data, f.filename, f.content_type))
        except StorageError:
            self.discard(stored)
            raise
        return stored

    def discard(self, documents: Sequence[OrderDocument]) -> None:
        """Best-effort removal of stored blobs (e.g. when order creation fails)."""
        for doc in documents:
            try:
                self.backend.delete_blob(doc.filename)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not remove blob %s: %s", doc.filename, exc)
