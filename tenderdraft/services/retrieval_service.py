"""Corpus retrieval: scope resolution plus an ordered chain of search strategies.

:class:`RetrievalService` answers "which stored chunks are most relevant to
this query?" in two steps:

1. **Scope** -- explicit corpus ids win; otherwise the corpora linked to the
   project; otherwise every corpus of the organization.  A scope that names
   an organization never reaches corpora owned by another one.
2. **Strategies** -- each :class:`SearchStrategy` either returns a
   :class:`SearchResult` or ``None`` meaning "try the next one".  The default
   chain is vector similarity, then keyword matching.

A strategy that hits a :class:`ChunkSearchError` yields ``None`` so the next
strategy runs.  :class:`StoreUnavailableError` is never swallowed.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

import structlog

from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.interfaces.vectorizer import IVectorizer
from tenderdraft.models.rag import CorpusScope, RetrievedChunk, SearchMethod, SearchResult
from tenderdraft.utils.errors import ChunkSearchError

logger = structlog.get_logger(logger_name=__name__)

NO_CORPUS_MESSAGE = "No corpus found"

_MIN_KEYWORD_LENGTH = 4
_MAX_KEYWORDS = 5
_NON_WORD = re.compile(r"[^\w]+")


def extract_keywords(query: str) -> list[str]:
    """Return up to five punctuation-free query words longer than 3 characters."""
    keywords: list[str] = []
    for word in query.split():
        term = _NON_WORD.sub("", word)
        if len(term) >= _MIN_KEYWORD_LENGTH:
            keywords.append(term)
        if len(keywords) == _MAX_KEYWORDS:
            break
    return keywords


def unique_sources(chunks: Iterable[RetrievedChunk]) -> list[str]:
    """Source document names in first-seen order, without duplicates."""
    return list(dict.fromkeys(chunk.document_name for chunk in chunks))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class SearchStrategy(ABC):
    """One way of finding chunks for a query."""

    method: SearchMethod = SearchMethod.NONE

    @abstractmethod
    async def search(
        self,
        query: str,
        corpus_ids: Sequence[str],
        limit: int,
    ) -> SearchResult | None:
        """Return a result, or ``None`` to defer to the next strategy."""


class VectorSearchStrategy(SearchStrategy):
    """Cosine similarity between the query vector and stored chunk vectors."""

    method = SearchMethod.VECTOR

    def __init__(self, corpus_store: ICorpusStore, vectorizer: IVectorizer) -> None:
        self._corpus_store = corpus_store
        self._vectorizer = vectorizer

    async def search(
        self,
        query: str,
        corpus_ids: Sequence[str],
        limit: int,
    ) -> SearchResult | None:
        query_vector = self._vectorizer.vectorize(query)
        try:
            chunks = await self._corpus_store.similarity_search(query_vector, corpus_ids, limit)
        except ChunkSearchError as exc:
            logger.warning("vector_search_failed", error=str(exc))
            return None
        if not chunks:
            return None
        return SearchResult(chunks=chunks, method=self.method)


class KeywordSearchStrategy(SearchStrategy):
    """OR match of the query's significant words against chunk content."""

    method = SearchMethod.TEXT

    def __init__(self, corpus_store: ICorpusStore) -> None:
        self._corpus_store = corpus_store

    async def search(
        self,
        query: str,
        corpus_ids: Sequence[str],
        limit: int,
    ) -> SearchResult | None:
        terms = extract_keywords(query)
        if not terms:
            return SearchResult(
                method=SearchMethod.NONE,
                message="Query has no searchable keywords",
            )
        try:
            chunks = await self._corpus_store.text_search(terms, corpus_ids, limit)
        except ChunkSearchError as exc:
            logger.warning("text_search_failed", error=str(exc), terms=terms)
            return None
        return SearchResult(chunks=chunks, method=self.method)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RetrievalService:
    """Finds the most relevant chunks for a query within a corpus scope.

    Parameters
    ----------
    corpus_store:
        Source of project links, corpora and chunk searches.
    vectorizer:
        Must be the vectorizer that produced the stored chunk embeddings.
    default_org_id:
        Organization searched when the scope names neither corpora, a
        linked project nor an organization.
    default_limit:
        Number of chunks returned when the caller gives no limit.
    strategies:
        Ordered strategy chain; defaults to vector then keyword search.
    """

    def __init__(
        self,
        corpus_store: ICorpusStore,
        vectorizer: IVectorizer,
        default_org_id: str,
        default_limit: int = 5,
        strategies: Sequence[SearchStrategy] | None = None,
    ) -> None:
        self._corpus_store = corpus_store
        self._default_org_id = default_org_id
        self._default_limit = default_limit
        self._strategies: list[SearchStrategy] = list(
            strategies
            if strategies is not None
            else (
                VectorSearchStrategy(corpus_store, vectorizer),
                KeywordSearchStrategy(corpus_store),
            )
        )

    @property
    def strategies(self) -> list[SearchStrategy]:
        return list(self._strategies)

    async def resolve_corpus_ids(self, scope: CorpusScope) -> list[str]:
        """Apply scope precedence: explicit ids, project links, organization.

        When the scope names an organization, explicit and linked ids are
        restricted to that organization's corpora; ids it does not own are
        dropped as if they did not exist.
        """
        org_id = scope.org_id or self._default_org_id
        owned: list[str] | None = None
        if scope.org_id:
            owned = [corpus.id for corpus in await self._corpus_store.list_corpora(org_id)]

        if scope.corpus_ids:
            requested = list(dict.fromkeys(scope.corpus_ids))
            return self._restrict(requested, owned, scope.org_id)

        if scope.project_id:
            linked = await self._corpus_store.get_project_corpus_ids(scope.project_id)
            linked = self._restrict(linked, owned, scope.org_id)
            if linked:
                return linked

        if owned is not None:
            return owned
        corpora = await self._corpus_store.list_corpora(org_id)
        return [corpus.id for corpus in corpora]

    @staticmethod
    def _restrict(corpus_ids: list[str], owned: list[str] | None, org_id: str | None) -> list[str]:
        if owned is None:
            return corpus_ids
        allowed = set(owned)
        kept = [cid for cid in corpus_ids if cid in allowed]
        if len(kept) < len(corpus_ids):
            logger.warning(
                "search_scope_foreign_corpora_dropped",
                org_id=org_id,
                dropped=len(corpus_ids) - len(kept),
            )
        return kept

    async def search(
        self,
        query: str,
        scope: CorpusScope | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        """Return up to *limit* chunks, most relevant first.

        Raises
        ------
        StoreUnavailableError
            If the data store cannot be reached while resolving the scope.
        """
        scope = scope or CorpusScope()
        limit = limit if limit is not None and limit > 0 else self._default_limit

        corpus_ids = await self.resolve_corpus_ids(scope)
        if not corpus_ids:
            logger.info("search_no_corpus", project_id=scope.project_id, org_id=scope.org_id)
            return SearchResult(message=NO_CORPUS_MESSAGE)

        for strategy in self._strategies:
            result = await strategy.search(query, corpus_ids, limit)
            if result is not None:
                logger.info(
                    "search_complete",
                    method=result.method.value,
                    results=len(result.chunks),
                    corpora=len(corpus_ids),
                )
                return result

        logger.info("search_exhausted", corpora=len(corpus_ids))
        return SearchResult(message="No matching chunks found")
