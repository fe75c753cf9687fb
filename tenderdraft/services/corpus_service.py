"""Corpus management: corpora, their documents and project links.

Thin service over :class:`ICorpusStore` that turns missing records into
:class:`NotFoundError` and assembles corpus listings with their documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.models.corpus import Corpus, CorpusDocument, DocumentChunk, ProjectCorpusLink
from tenderdraft.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class CorpusWithDocuments:
    corpus: Corpus
    documents: list[CorpusDocument] = field(default_factory=list)


class CorpusService:
    """CRUD operations for corpora within an organization."""

    def __init__(self, corpus_store: ICorpusStore) -> None:
        self._store = corpus_store

    # ------------------------------------------------------------------
    # Corpora
    # ------------------------------------------------------------------

    async def create_corpus(self, name: str, org_id: str, description: str | None = None) -> Corpus:
        return await self._store.create_corpus(name=name, org_id=org_id, description=description)

    async def list_corpora(self, org_id: str) -> list[CorpusWithDocuments]:
        """Corpora of *org_id*, newest first, each with its documents."""
        corpora = await self._store.list_corpora(org_id)
        return [
            CorpusWithDocuments(corpus=c, documents=await self._store.list_documents(c.id))
            for c in corpora
        ]

    async def get_corpus(self, corpus_id: str, org_id: str | None = None) -> CorpusWithDocuments:
        corpus = await self._require_corpus(corpus_id, org_id)
        documents = await self._store.list_documents(corpus.id)
        return CorpusWithDocuments(corpus=corpus, documents=documents)

    async def update_corpus(
        self,
        corpus_id: str,
        name: str | None = None,
        description: str | None = None,
        org_id: str | None = None,
    ) -> Corpus:
        await self._require_corpus(corpus_id, org_id)
        updated = await self._store.update_corpus(corpus_id, name=name, description=description)
        if updated is None:
            raise NotFoundError(message=f"Corpus {corpus_id} not found")
        return updated

    async def delete_corpus(self, corpus_id: str, org_id: str | None = None) -> None:
        """Delete a corpus with its documents, chunks and project links."""
        await self._require_corpus(corpus_id, org_id)
        await self._store.delete_corpus(corpus_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def get_document(self, document_id: str) -> CorpusDocument:
        document = await self._store.get_document(document_id)
        if document is None:
            raise NotFoundError(message=f"Document {document_id} not found")
        return document

    async def delete_document(self, corpus_id: str, document_id: str) -> None:
        if not await self._store.delete_document(document_id, corpus_id=corpus_id):
            raise NotFoundError(
                message=f"Document {document_id} not found in corpus {corpus_id}"
            )

    async def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        if await self._store.get_document(document_id) is None:
            raise NotFoundError(message=f"Document {document_id} not found")
        return await self._store.list_chunks(document_id)

    # ------------------------------------------------------------------
    # Project links
    # ------------------------------------------------------------------

    async def link_project(
        self,
        project_id: str,
        corpus_id: str,
        org_id: str | None = None,
    ) -> ProjectCorpusLink:
        await self._require_corpus(corpus_id, org_id)
        link = await self._store.link_project_corpus(project_id, corpus_id)
        logger.info("project_corpus_linked", project_id=project_id, corpus_id=corpus_id)
        return link

    async def unlink_project(self, project_id: str, corpus_id: str, org_id: str | None = None) -> None:
        await self._require_corpus(corpus_id, org_id)
        if not await self._store.unlink_project_corpus(project_id, corpus_id):
            raise NotFoundError(
                message=f"Corpus {corpus_id} is not linked to project {project_id}"
            )
        logger.info("project_corpus_unlinked", project_id=project_id, corpus_id=corpus_id)

    async def list_project_corpus_ids(self, project_id: str, org_id: str | None = None) -> list[str]:
        """Linked corpus ids; with *org_id*, only the ones that organization owns."""
        linked = await self._store.get_project_corpus_ids(project_id)
        if org_id is None:
            return linked
        owned = {corpus.id for corpus in await self._store.list_corpora(org_id)}
        return [corpus_id for corpus_id in linked if corpus_id in owned]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_corpus(self, corpus_id: str, org_id: str | None) -> Corpus:
        """Return the corpus, treating another organization's corpus as missing."""
        corpus = await self._store.get_corpus(corpus_id)
        if corpus is None or (org_id is not None and corpus.org_id != org_id):
            raise NotFoundError(message=f"Corpus {corpus_id} not found")
        return corpus
