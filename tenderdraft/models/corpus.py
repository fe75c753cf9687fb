"""Corpus data models: corpora, reference documents, chunks and project links.

These are the explicit record types stored by
:class:`~tenderdraft.interfaces.corpus_store.ICorpusStore`.  Rows coming back
from the data store are validated into these models at the adapter boundary,
so services never handle loosely-typed dicts.

Ownership follows the database cascade:

    Corpus 1---* CorpusDocument 1---* DocumentChunk
    Corpus *---* Project              (via ProjectCorpusLink)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Dimensionality of every stored embedding vector.
EMBEDDING_DIMENSION = 1536


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Processing state of an uploaded reference document.

    ``processing -> ready`` on success, ``processing -> error`` when text
    extraction yields nothing usable.
    """

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Corpus(BaseModel):
    """A named, organization-scoped collection of reference documents."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the corpus.")
    name: str = Field(min_length=1, description="Display name.")
    description: str | None = Field(default=None, description="Optional free-text description.")
    org_id: str = Field(description="Identifier of the owning organization.")
    created_at: datetime = Field(default_factory=_utcnow)


class CorpusDocument(BaseModel):
    """One uploaded reference file and its processing state."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the document.")
    corpus_id: str = Field(description="Parent corpus identifier.")
    name: str = Field(description="Original file name, used as the citation label.")
    file_url: str = Field(default="", description="Object-store URL or inline fallback reference.")
    file_type: str = Field(default="txt", description='Detected file type, e.g. "pdf", "docx".')
    status: DocumentStatus = Field(default=DocumentStatus.PROCESSING)
    chunk_count: int = Field(default=0, ge=0, description="Number of chunks actually persisted.")
    warning: str | None = Field(
        default=None,
        description="Partial-success note, e.g. when some chunk batches failed to persist.",
    )
    created_at: datetime = Field(default_factory=_utcnow)


class DocumentChunk(BaseModel):
    """One retrievable unit of a document's text, with its embedding.

    ``position`` is the zero-based order in which the chunker produced the
    chunk and is the authoritative ordering key for consumers.  The
    embedding is never mutated once written.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the chunk.")
    document_id: str = Field(description="Parent document identifier.")
    content: str = Field(min_length=1, description="The chunk's text.")
    position: int = Field(ge=0, description="Zero-based order within the document.")
    embedding: list[float] | None = Field(
        default=None,
        description="Fixed-length vector; None for chunks stored without one.",
    )
    page_number: int | None = Field(default=None, ge=1)

    @field_validator("embedding")
    @classmethod
    def _check_dimension(cls, value: list[float] | None) -> list[float] | None:
        if value is not None and len(value) != EMBEDDING_DIMENSION:
            msg = f"embedding must have {EMBEDDING_DIMENSION} components, got {len(value)}"
            raise ValueError(msg)
        return value


class ChunkDraft(BaseModel):
    """A chunk produced by ingestion but not yet persisted (no id yet)."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(min_length=1)
    embedding: list[float]
    position: int = Field(ge=0)
    page_number: int | None = None


class ChunkInsertReport(BaseModel):
    """Outcome of a batched chunk insert."""

    model_config = ConfigDict(frozen=True)

    attempted: int = Field(default=0, ge=0)
    inserted: int = Field(default=0, ge=0)
    failed_batches: int = Field(default=0, ge=0)

    @property
    def complete(self) -> bool:
        return self.inserted == self.attempted



class ProjectCorpusLink(BaseModel):
    """Restricts which corpora a project's generation requests may draw from."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    corpus_id: str
