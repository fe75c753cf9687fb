"""Retrieval and ingestion result models.

:class:`RetrievedChunk` is what both search paths of the corpus store return;
:class:`SearchResult` wraps them with the strategy that produced them, and
:class:`IngestionResult` summarises one document's trip through the
ingestion pipeline.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from tenderdraft.models.corpus import DocumentStatus


class SearchMethod(str, Enum):
    """Which retrieval strategy produced a result set."""

    VECTOR = "vector_search"
    TEXT = "text_search"
    NONE = "none"


class RetrievedChunk(BaseModel):
    """A chunk returned from the corpus store, annotated with its source."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    document_name: str = Field(description="Source document name, used for citations.")
    corpus_id: str
    content: str
    position: int = Field(ge=0)
    page_number: int | None = None
    similarity: float | None = Field(
        default=None,
        description="1 - cosine distance; None for keyword matches.",
    )


class CorpusScope(BaseModel):
    """Selects which corpora a search may draw from.

    Precedence: explicit ``corpus_ids``, then corpora linked to
    ``project_id``, then every corpus owned by ``org_id``.
    """

    model_config = ConfigDict(frozen=True)

    corpus_ids: list[str] = Field(default_factory=list)
    project_id: str | None = None
    org_id: str | None = None


class SearchResult(BaseModel):
    """Ranked retrieval output (most relevant first)."""

    model_config = ConfigDict(frozen=True)

    chunks: list[RetrievedChunk] = Field(default_factory=list)
    method: SearchMethod = SearchMethod.NONE
    message: str | None = Field(
        default=None,
        description="Explanation when the result is empty, e.g. 'No corpus found'.",
    )


class IngestionResult(BaseModel):
    """Summary of a single document ingestion run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    document_name: str
    status: DocumentStatus
    chunk_count: int = Field(default=0, ge=0, description="Chunks actually persisted.")
    chunks_produced: int = Field(default=0, ge=0, description="Chunks the chunker emitted.")
    failed_batches: int = Field(default=0, ge=0)
    text_length: int = Field(default=0, ge=0)
    warning: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0)


class DraftAnswer(BaseModel):
    """A generated answer to one tender question."""

    model_config = ConfigDict(frozen=True)

    html: str = Field(description="Answer body as simple HTML (<p>, <ul><li>, <strong>).")
    sources: list[str] = Field(
        default_factory=list,
        description="Names of the reference documents the context came from, deduplicated.",
    )
    used_rag: bool = Field(default=False, description="Whether corpus context was supplied.")
    brick_id: str | None = Field(default=None, description="Brick the answer was saved on, if any.")
