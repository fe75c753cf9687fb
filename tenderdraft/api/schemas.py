"""Pydantic request/response schemas for the tenderDraft API.

Defines the public contract of the REST endpoints: corpus management,
document upload, chunk listing, corpus search, project links, projects and
their question bricks, and answer drafting.

Convention: request schemas end with "Request", response schemas end with
"Response".  ``Field(...)`` adds constraints and descriptions for the
generated OpenAPI docs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tenderdraft.models.corpus import Corpus, CorpusDocument, DocumentChunk, DocumentStatus
from tenderdraft.models.project import Brick, BrickStatus, Project
from tenderdraft.models.rag import RetrievedChunk


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------


class CreateCorpusRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class UpdateCorpusRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class DocumentResponse(BaseModel):
    """A reference document without its chunks."""

    id: str
    corpus_id: str
    name: str
    file_url: str
    file_type: str
    status: DocumentStatus
    chunk_count: int
    warning: str | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, document: CorpusDocument) -> DocumentResponse:
        return cls(**document.model_dump())


class CorpusResponse(BaseModel):
    """A corpus with the documents it contains."""

    id: str
    name: str
    description: str | None = None
    org_id: str
    created_at: datetime
    documents: list[DocumentResponse] = Field(default_factory=list)

    @classmethod
    def from_model(
        cls,
        corpus: Corpus,
        documents: list[CorpusDocument] | None = None,
    ) -> CorpusResponse:
        return cls(
            **corpus.model_dump(),
            documents=[DocumentResponse.from_model(d) for d in documents or []],
        )


class CorpusListResponse(BaseModel):
    corpora: list[CorpusResponse]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentUploadResponse(BaseModel):
    """Outcome of uploading and ingesting one document."""

    success: bool
    document: DocumentResponse
    chunks_produced: int = 0
    failed_batches: int = 0
    ingestion_time: float = 0.0


class ChunkResponse(BaseModel):
    id: str
    content: str
    position: int
    page_number: int | None = None

    @classmethod
    def from_model(cls, chunk: DocumentChunk) -> ChunkResponse:
        return cls(
            id=chunk.id,
            content=chunk.content,
            position=chunk.position,
            page_number=chunk.page_number,
        )


class ChunkListResponse(BaseModel):
    document_id: str
    chunks: list[ChunkResponse]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class RagSearchRequest(BaseModel):
    """Corpus search request.

    ``corpus_ids`` takes precedence over ``project_id``; with neither, every
    corpus of the caller's organization is searched.
    """

    query: str = Field(..., min_length=1, max_length=2000)
    corpus_ids: list[str] = Field(default_factory=list)
    project_id: str | None = None
    limit: int | None = Field(default=None, ge=1, le=50)


class RagSearchResponse(BaseModel):
    chunks: list[RetrievedChunk]
    method: str
    sources: list[str] = Field(default_factory=list)
    message: str | None = None


# ---------------------------------------------------------------------------
# Projects / drafting
# ---------------------------------------------------------------------------


class ProjectCorpusRequest(BaseModel):
    corpus_id: str = Field(..., min_length=1)


class ProjectCorpusResponse(BaseModel):
    project_id: str
    corpus_ids: list[str]


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=4000)


class BrickResponse(BaseModel):
    id: str
    project_id: str
    question: str
    status: BrickStatus
    ai_response_text: str | None = None
    ai_sources: list[str] | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, brick: Brick) -> BrickResponse:
        return cls(**brick.model_dump())


class ProjectResponse(BaseModel):
    """A project with its question bricks."""

    id: str
    org_id: str
    name: str
    description: str | None = None
    created_at: datetime
    bricks: list[BrickResponse] = Field(default_factory=list)

    @classmethod
    def from_model(cls, project: Project, bricks: list[Brick] | None = None) -> ProjectResponse:
        return cls(
            **project.model_dump(),
            bricks=[BrickResponse.from_model(b) for b in bricks or []],
        )


class CreateBrickRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=4000)


class UpdateBrickStatusRequest(BaseModel):
    status: BrickStatus


class GenerateRequest(BaseModel):
    """Draft an answer to one tender question."""

    question: str = Field(..., min_length=1, max_length=4000)
    project_id: str | None = None
    project_name: str | None = Field(default=None, max_length=500)
    project_description: str | None = Field(default=None, max_length=4000)
    brick_id: str | None = Field(
        default=None,
        description="Save the answer on this brick and move it to writing.",
    )


class GenerateResponse(BaseModel):
    success: bool = True
    response: str
    sources: list[str] = Field(default_factory=list)
    used_rag: bool = False
    brick_id: str | None = None
