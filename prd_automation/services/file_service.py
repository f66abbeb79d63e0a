"""
File Service — local storage of uploaded PDF files, keyed by document id.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prd_automation.config import get_settings

logger = logging.getLogger(__name__)


class FileService:
    """Stores one ``<document_id>.pdf`` per document under a base directory."""

    def __init__(self, base_path: str | Path | None = None):
        self.base_path = Path(base_path or get_settings().local_storage_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _pdf_path(self, document_id: str) -> Path:
        return self.base_path / f"{document_id}.pdf"

    def store_pdf(self, document_id: str, file_bytes: bytes) -> str:
        """Save a PDF and return the stored path."""
        path = self._pdf_path(document_id)
        path.write_bytes(file_bytes)
        logger.info(f"Saved PDF for {document_id} to {path}")
        return str(path)

    def get_pdf_buffer(self, document_id: str) -> bytes | None:
        """Return the PDF bytes, or None when nothing is stored or readable."""
        path = self._pdf_path(document_id)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error(f"Error reading PDF for document {document_id}: {exc}")
            return None

    def delete_pdf(self, document_id: str) -> bool:
        path = self._pdf_path(document_id)
        if not path.exists():
            return False
        try:
            path.unlink()
            return True
        except OSError as exc:
            logger.error(f"Error deleting PDF for document {document_id}: {exc}")
            return False

    def has_pdf(self, document_id: str) -> bool:
        return self._pdf_path(document_id).exists()
