"""Dispatches document bytes to the extractor registered for their file type.

Each :class:`~tenderdraft.interfaces.text_extractor.ITextExtractor` declares
the extensions it handles.  Unknown types, and any format-specific extractor
that fails or times out, fall back to decoding the raw bytes as UTF-8 with
replacement characters.  The fallback can produce noise for binary formats;
the ingestion pipeline's minimum-length check is the only guard after it.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from tenderdraft.interfaces.text_extractor import ITextExtractor
from tenderdraft.providers.extraction.plain_text_extractor import PlainTextExtractor
from tenderdraft.utils.concurrency import with_timeout
from tenderdraft.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class TextExtractionService:
    """Routes extraction by lower-case file extension.

    Parameters
    ----------
    extractors:
        Format-specific extractors; later entries win when two claim the
        same extension.
    timeout:
        Seconds allowed per extraction call (``None`` disables the limit).
    """

    def __init__(
        self,
        extractors: Iterable[ITextExtractor],
        timeout: float | None = None,
    ) -> None:
        self._by_type: dict[str, ITextExtractor] = {}
        for extractor in extractors:
            for file_type in extractor.supported_types():
                self._by_type[file_type.lower()] = extractor
        self._timeout = timeout

    def supported_types(self) -> frozenset[str]:
        return frozenset(self._by_type)

    async def extract(self, data: bytes, file_type: str) -> str:
        """Return the text of *data*, never raising for unreadable content."""
        extractor = self._by_type.get(file_type.lower())
        if extractor is None:
            return PlainTextExtractor.decode(data)

        try:
            return await with_timeout(
                extractor.extract(data),
                self._timeout,
                ExtractionError,
                operation=f"{file_type} extraction",
                provider_name=extractor.get_provider_name(),
            )
        except ExtractionError as exc:
            logger.warning(
                "extraction_failed_using_raw_decode",
                file_type=file_type,
                provider=extractor.get_provider_name(),
                error=str(exc),
            )
            return PlainTextExtractor.decode(data)
