"""tenderDraft domain models, re-exported for convenience."""

from tenderdraft.models.corpus import (
    EMBEDDING_DIMENSION,
    ChunkDraft,
    ChunkInsertReport,
    Corpus,
    CorpusDocument,
    DocumentChunk,
    DocumentStatus,
    ProjectCorpusLink,
)
from tenderdraft.models.project import Brick, BrickStatus, Project
from tenderdraft.models.rag import (
    CorpusScope,
    DraftAnswer,
    IngestionResult,
    RetrievedChunk,
    SearchMethod,
    SearchResult,
)

__all__ = [
    "EMBEDDING_DIMENSION",
    "Brick",
    "BrickStatus",
    "ChunkDraft",
    "ChunkInsertReport",
    "Corpus",
    "CorpusDocument",
    "CorpusScope",
    "DocumentChunk",
    "DraftAnswer",
    "DocumentStatus",
    "IngestionResult",
    "Project",
    "ProjectCorpusLink",
    "RetrievedChunk",
    "SearchMethod",
    "SearchResult",
]
