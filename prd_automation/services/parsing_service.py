"""
Parsing Service — plain-text extraction from PDF bytes.

Uses PyMuPDF. Extracts page text in reading order plus the title / author /
subject metadata. Does NOT interpret, chunk, or summarize content.
"""

from __future__ import annotations

import logging

from prd_automation.models.schemas import ParseResult, PDFMetadata

logger = logging.getLogger(__name__)


class ParsingService:
    """
    Primary interface for the pipeline's ingestion step:
        result = ParsingService.parse_pdf(pdf_bytes)
    """

    @staticmethod
    def parse_pdf(file_bytes: bytes) -> ParseResult:
        """Extract text, page count and metadata. Raises ValueError on failure."""
        import fitz  # PyMuPDF

        try:
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                pages = [page.get_text("text") for page in doc]
                meta = doc.metadata or {}
                page_count = doc.page_count
        except Exception as exc:
            raise ValueError(f"Failed to parse PDF: {exc}") from exc

        text = "\n".join(p.strip() for p in pages if p.strip())
        logger.info(
            f"Parsed PDF: {page_count} pages, {len(text)} chars extracted"
        )

        return ParseResult(
            text=text,
            page_count=page_count,
            metadata=PDFMetadata(
                title=meta.get("title") or None,
                author=meta.get("author") or None,
                subject=meta.get("subject") or None,
            ),
        )
