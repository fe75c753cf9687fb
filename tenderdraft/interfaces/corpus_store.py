"""Abstract base class for the corpus data store.

Defines the contract for persisting corpora, reference documents, chunk
records, project links and the question bricks of each project, and for the
two retrieval paths over chunks: vector similarity search and keyword text
search.  The adapter pattern keeps the ingestion and retrieval services
independent of the backing database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from tenderdraft.models.corpus import (
    ChunkDraft,
    ChunkInsertReport,
    Corpus,
    CorpusDocument,
    DocumentChunk,
    DocumentStatus,
    ProjectCorpusLink,
)
from tenderdraft.models.project import Brick, BrickStatus, Project
from tenderdraft.models.rag import RetrievedChunk


# Concrete implementation: SQLiteCorpusStore (tenderdraft/providers/corpus_store/)
class ICorpusStore(ABC):
    """Contract for the relational / vector data store behind the RAG layer.

    All methods are async so network-backed stores do not block the event
    loop.  Search methods raise
    :class:`~tenderdraft.utils.errors.ChunkSearchError` on backend failure so
    callers can fall back; a store that cannot be reached at all raises
    :class:`~tenderdraft.utils.errors.StoreUnavailableError`.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist.  Idempotent."""

    # ------------------------------------------------------------------
    # Corpora
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_corpus(self, name: str, org_id: str, description: str | None = None) -> Corpus:
        """Insert a new corpus and return it."""

    @abstractmethod
    async def get_corpus(self, corpus_id: str) -> Corpus | None:
        """Return the corpus with *corpus_id*, or ``None``."""

    @abstractmethod
    async def list_corpora(self, org_id: str) -> list[Corpus]:
        """Return every corpus of *org_id*, newest first."""

    @abstractmethod
    async def update_corpus(
        self,
        corpus_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Corpus | None:
        """Update the given fields; returns ``None`` if the corpus does not exist."""

    @abstractmethod
    async def delete_corpus(self, corpus_id: str) -> bool:
        """Delete a corpus, cascading to its documents, chunks and links."""

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_document(
        self,
        corpus_id: str,
        name: str,
        file_url: str,
        file_type: str,
    ) -> CorpusDocument:
        """Insert a document record with status ``processing``."""

    @abstractmethod
    async def get_document(self, document_id: str) -> CorpusDocument | None:
        """Return the document with *document_id*, or ``None``."""

    @abstractmethod
    async def list_documents(self, corpus_id: str) -> list[CorpusDocument]:
        """Return the documents of a corpus, newest first."""

    @abstractmethod
    async def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: int | None = None,
        warning: str | None = None,
    ) -> None:
        """Set a document's status and, optionally, its chunk count and warning."""

    @abstractmethod
    async def delete_document(self, document_id: str, corpus_id: str | None = None) -> bool:
        """Delete a document (cascading to its chunks).

        When *corpus_id* is given, the document is only deleted if it belongs
        to that corpus.
        """

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_chunks(
        self,
        document_id: str,
        chunks: Sequence[ChunkDraft],
    ) -> ChunkInsertReport:
        """Persist chunk records in bounded batches.

        A failing batch is logged and skipped; the remaining batches are still
        attempted.  The returned report carries the true persisted count.
        """

    @abstractmethod
    async def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        """Return a document's chunks ordered by ``position``."""

    @abstractmethod
    async def similarity_search(
        self,
        query_vector: Sequence[float],
        corpus_ids: Sequence[str],
        limit: int,
    ) -> list[RetrievedChunk]:
        """Return up to *limit* chunks ranked by ascending cosine distance.

        Only chunks that have an embedding and whose document belongs to one
        of *corpus_ids* with status ``ready`` are considered.  Each result's
        ``similarity`` is ``1 - distance``.

        Raises
        ------
        tenderdraft.utils.errors.ChunkSearchError
            If the search cannot be executed.
        """

    @abstractmethod
    async def text_search(
        self,
        terms: Sequence[str],
        corpus_ids: Sequence[str],
        limit: int,
    ) -> list[RetrievedChunk]:
        """Return up to *limit* chunks whose content matches any of *terms*.

        Raises
        ------
        tenderdraft.utils.errors.ChunkSearchError
            If the search cannot be executed.
        """

    # ------------------------------------------------------------------
    # Project links
    # ------------------------------------------------------------------

    @abstractmethod
    async def link_project_corpus(self, project_id: str, corpus_id: str) -> ProjectCorpusLink:
        """Allow *project_id* to draw context from *corpus_id*.  Idempotent."""

    @abstractmethod
    async def unlink_project_corpus(self, project_id: str, corpus_id: str) -> bool:
        """Remove a project/corpus link; returns ``False`` if none existed."""

    @abstractmethod
    async def get_project_corpus_ids(self, project_id: str) -> list[str]:
        """Return the corpus ids linked to *project_id*."""

    # ------------------------------------------------------------------
    # Projects and bricks
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_project(self, name: str, org_id: str, description: str | None = None) -> Project:
        """Insert a new project and return it."""

    @abstractmethod
    async def get_project(self, project_id: str) -> Project | None:
        """Return the project with *project_id*, or ``None``."""

    @abstractmethod
    async def create_brick(self, project_id: str, question: str) -> Brick:
        """Add a question to a project with status ``draft``.

        Raises
        ------
        tenderdraft.utils.errors.NotFoundError
            If *project_id* does not exist.
        """

    @abstractmethod
    async def get_brick(self, brick_id: str) -> Brick | None:
        """Return the brick with *brick_id*, or ``None``."""

    @abstractmethod
    async def list_bricks(self, project_id: str) -> list[Brick]:
        """Return a project's bricks in creation order."""

    @abstractmethod
    async def update_brick_status(self, brick_id: str, status: BrickStatus) -> Brick | None:
        """Move a brick to *status*; returns ``None`` if it does not exist."""

    @abstractmethod
    async def save_brick_answer(
        self,
        brick_id: str,
        response_html: str,
        sources: Sequence[str],
    ) -> Brick | None:
        """Store a drafted answer on a brick and move it to ``writing``.

        An empty *sources* is stored as ``None``.  Returns ``None`` if the
        brick does not exist.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store, e.g. ``"sqlite"``."""
