"""Word document text extraction via python-docx.

python-docx reads the XML inside the DOCX zip archive; paragraph text is
joined with newlines and table cells are appended row by row.  Legacy binary
``.doc`` files are not zip archives, so they fail here and the caller falls
back to decoding the raw bytes.
"""

from __future__ import annotations

import asyncio
import io

import structlog
from docx import Document

from tenderdraft.interfaces.text_extractor import ITextExtractor
from tenderdraft.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class DocxTextExtractor(ITextExtractor):
    """Extracts plain text from DOCX bytes."""

    async def extract(self, data: bytes) -> str:
        return await asyncio.to_thread(self._extract_sync, data)

    def supported_types(self) -> frozenset[str]:
        return frozenset({"docx", "doc"})

    def get_provider_name(self) -> str:
        return "python-docx"

    def _extract_sync(self, data: bytes) -> str:
        try:
            doc = Document(io.BytesIO(data))
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not open Word document: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        lines = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    lines.append(" | ".join(cells))

        logger.debug(
            "docx_extracted",
            paragraphs=len(doc.paragraphs),
            tables=len(doc.tables),
        )
        return "\n".join(lines)
