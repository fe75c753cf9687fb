"""Document ingestion pipeline: extraction, chunking, vectorization and persistence."""

from tenderdraft.services.ingestion.chunker import TextChunker
from tenderdraft.services.ingestion.ingestion_service import IngestionService
from tenderdraft.services.ingestion.text_extraction import TextExtractionService
from tenderdraft.services.ingestion.vectorizer import CharacterVectorizer

__all__ = [
    "CharacterVectorizer",
    "IngestionService",
    "TextChunker",
    "TextExtractionService",
]
