"""Format-specific text extractors (PDF, Word, plain text)."""

from tenderdraft.providers.extraction.docx_extractor import DocxTextExtractor
from tenderdraft.providers.extraction.pdf_extractor import PDFTextExtractor
from tenderdraft.providers.extraction.plain_text_extractor import PlainTextExtractor

__all__ = ["DocxTextExtractor", "PDFTextExtractor", "PlainTextExtractor"]
