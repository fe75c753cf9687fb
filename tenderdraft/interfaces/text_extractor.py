"""Abstract base class for format-specific text extractors.

The ingestion pipeline's only contract with an extractor is "bytes in, text
out, or a raised failure".  One implementation exists per supported format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: PDFTextExtractor, DocxTextExtractor, PlainTextExtractor
# Located in: tenderdraft/providers/extraction/
class ITextExtractor(ABC):
    """Contract for turning a document's raw bytes into plain text."""

    @abstractmethod
    async def extract(self, data: bytes) -> str:
        """Return the document text.

        Raises
        ------
        tenderdraft.utils.errors.ExtractionError
            If the bytes cannot be parsed as this format.
        """

    @abstractmethod
    def supported_types(self) -> frozenset[str]:
        """Return the lower-case file extensions this extractor handles."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"pymupdf"``."""
