"""PDF text extraction using PyMuPDF (fitz).

Reads the document from memory page by page and joins the non-empty page
texts with blank lines.  Scanned PDFs without an embedded text layer yield
an empty string, which the ingestion pipeline then treats as unusable.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF
import structlog

from tenderdraft.interfaces.text_extractor import ITextExtractor
from tenderdraft.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PDFTextExtractor(ITextExtractor):
    """Extracts plain text from PDF bytes."""

    async def extract(self, data: bytes) -> str:
        return await asyncio.to_thread(self._extract_sync, data)

    def supported_types(self) -> frozenset[str]:
        return frozenset({"pdf"})

    def get_provider_name(self) -> str:
        return "pymupdf"

    def _extract_sync(self, data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not open PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        pages: list[str] = []
        try:
            page_total = len(doc)
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not read PDF text: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", pages=page_total)

        logger.debug("pdf_extracted", pages=page_total, pages_with_text=len(pages))
        return "\n\n".join(pages)
