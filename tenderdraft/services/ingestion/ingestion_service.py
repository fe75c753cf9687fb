"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **store file -> record -> extract -> chunk -> vectorize -> persist**.

The :class:`IngestionService` coordinates its collaborators (object store,
text extraction, chunker, vectorizer, corpus store) without any of them
knowing about each other.  For one uploaded file it:

    1. Checks the corpus exists, then stores the raw bytes in the object
       store (degrading to an inline ``data:`` reference when the write
       fails)
    2. Creates the document record with status ``processing``
    3. Extracts plain text (format-specific, falling back to UTF-8 decode)
    4. Marks the document ``error`` if the text is too short to be useful
    5. Splits the text with :class:`TextChunker`
    6. Vectorizes every chunk with the injected :class:`IVectorizer`
    7. Persists chunk records in batches and marks the document ``ready``
       with the number of chunks that were actually written

Any failure after step 2 is recorded on the document as ``error`` before
the exception propagates, so no finished run leaves it ``processing``.

Every call into an external collaborator is bounded by
``external_call_timeout``.  All dependencies are injected via constructor.
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
import time
from pathlib import PurePath
from typing import Awaitable, TypeVar

import structlog

from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.interfaces.object_store import IObjectStore
from tenderdraft.interfaces.vectorizer import IVectorizer
from tenderdraft.models.corpus import ChunkDraft, DocumentStatus
from tenderdraft.models.rag import IngestionResult
from tenderdraft.services.ingestion.chunker import TextChunker
from tenderdraft.services.ingestion.text_extraction import TextExtractionService
from tenderdraft.utils.concurrency import with_timeout
from tenderdraft.utils.errors import (
    NotFoundError,
    StorageWriteError,
    StoreUnavailableError,
    TenderDraftError,
)

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

_DEFAULT_FILE_TYPE = "txt"
_DEFAULT_CONTENT_TYPE = "application/octet-stream"
# Number of base64 characters kept in the inline fallback reference.
_FALLBACK_PREVIEW_CHARS = 100


def detect_file_type(file_name: str) -> str:
    """Return the lower-case extension of *file_name*, or ``"txt"``."""
    suffix = PurePath(file_name).suffix.lstrip(".").lower()
    return suffix or _DEFAULT_FILE_TYPE


def inline_file_reference(file_bytes: bytes, content_type: str) -> str:
    """Build the truncated ``data:`` reference recorded when storage fails.

    Only the first 100 base64 characters are kept; the full file cannot be
    recovered from it.
    """
    preview = base64.b64encode(file_bytes).decode("ascii")[:_FALLBACK_PREVIEW_CHARS]
    return f"data:{content_type};base64,{preview}..."


class IngestionService:
    """Turns an uploaded file into a ``ready`` document with searchable chunks.

    Parameters
    ----------
    corpus_store:
        Persists document records and chunk rows.
    object_store:
        Keeps the original uploaded bytes.
    extraction:
        Converts file bytes to plain text by file type.
    chunker:
        Splits extracted text into overlapping segments.
    vectorizer:
        Produces the embedding stored with each chunk; must be the same
        vectorizer the retrieval service uses for queries.
    min_text_length:
        Stripped text shorter than this marks the document ``error``.
    timeout:
        Seconds allowed for each object-store and data-store call.
    """

    def __init__(
        self,
        corpus_store: ICorpusStore,
        object_store: IObjectStore,
        extraction: TextExtractionService,
        chunker: TextChunker,
        vectorizer: IVectorizer,
        min_text_length: int = 10,
        timeout: float | None = 30.0,
    ) -> None:
        self._corpus_store = corpus_store
        self._object_store = object_store
        self._extraction = extraction
        self._chunker = chunker
        self._vectorizer = vectorizer
        self._min_text_length = min_text_length
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        corpus_id: str,
        file_bytes: bytes,
        file_name: str,
        content_type: str | None = None,
    ) -> IngestionResult:
        """Ingest one file into *corpus_id*.

        Returns
        -------
        IngestionResult
            ``status`` is ``ready`` or ``error``; ``chunk_count`` is the
            number of chunk rows actually persisted.

        Raises
        ------
        StoreUnavailableError
            If the data store cannot be reached or does not answer in time.
        NotFoundError
            If *corpus_id* does not exist.  Nothing is written in that case.
        Exception
            Anything raised after the document record exists, once the
            document has been marked ``error``.
        """
        start = time.monotonic()
        file_type = detect_file_type(file_name)
        content_type = content_type or mimetypes.guess_type(file_name)[0] or _DEFAULT_CONTENT_TYPE

        corpus = await self._data_store_call(self._corpus_store.get_corpus(corpus_id), "get_corpus")
        if corpus is None:
            raise NotFoundError(
                message=f"Corpus {corpus_id} does not exist",
                provider_name=self._corpus_store.get_provider_name(),
            )

        file_url = await self._store_file(corpus_id, file_bytes, file_name, content_type)

        document = await self._data_store_call(
            self._corpus_store.create_document(
                corpus_id=corpus_id,
                name=file_name,
                file_url=file_url,
                file_type=file_type,
            ),
            "create_document",
        )
        log = logger.bind(document_id=document.id, corpus_id=corpus_id, file_name=file_name)
        log.info("ingestion_started", file_type=file_type, size_bytes=len(file_bytes))

        try:
            return await self._process(document.id, file_name, file_bytes, file_type, start, log)
        except Exception as exc:
            log.error("ingestion_failed", error=str(exc), error_type=type(exc).__name__)
            await self._mark_failed(document.id, exc, log)
            raise

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process(
        self,
        document_id: str,
        file_name: str,
        file_bytes: bytes,
        file_type: str,
        start: float,
        log: structlog.BoundLogger,
    ) -> IngestionResult:
        """Extract, chunk, vectorize and persist an already recorded document."""
        text = (await self._extraction.extract(file_bytes, file_type)).strip()

        if len(text) < self._min_text_length:
            warning = f"Extracted text too short ({len(text)} characters)"
            await self._data_store_call(
                self._corpus_store.update_document_status(
                    document_id, DocumentStatus.ERROR, chunk_count=0, warning=warning
                ),
                "update_document_status",
            )
            log.warning("ingestion_no_usable_text", text_length=len(text))
            return IngestionResult(
                document_id=document_id,
                document_name=file_name,
                status=DocumentStatus.ERROR,
                text_length=len(text),
                warning=warning,
                ingestion_time=round(time.monotonic() - start, 3),
            )

        segments = self._chunker.split(text)
        vectors = await asyncio.to_thread(self._vectorizer.vectorize_many, segments)
        drafts = [
            ChunkDraft(content=segment, embedding=vector, position=position)
            for position, (segment, vector) in enumerate(zip(segments, vectors))
        ]

        report = await self._data_store_call(
            self._corpus_store.insert_chunks(document_id, drafts),
            "insert_chunks",
        )

        warning = None
        if not report.complete:
            failed = report.attempted - report.inserted
            warning = f"{failed} of {report.attempted} chunks failed to persist"
            log.warning(
                "ingestion_partial_persist",
                failed_chunks=failed,
                failed_batches=report.failed_batches,
            )

        await self._data_store_call(
            self._corpus_store.update_document_status(
                document_id,
                DocumentStatus.READY,
                chunk_count=report.inserted,
                warning=warning,
            ),
            "update_document_status",
        )

        elapsed = round(time.monotonic() - start, 3)
        log.info(
            "ingestion_complete",
            chunks_produced=len(drafts),
            chunk_count=report.inserted,
            text_length=len(text),
            ingestion_time=elapsed,
        )
        return IngestionResult(
            document_id=document_id,
            document_name=file_name,
            status=DocumentStatus.READY,
            chunk_count=report.inserted,
            chunks_produced=len(drafts),
            failed_batches=report.failed_batches,
            text_length=len(text),
            warning=warning,
            ingestion_time=elapsed,
        )

    async def _mark_failed(
        self,
        document_id: str,
        exc: Exception,
        log: structlog.BoundLogger,
    ) -> None:
        """Record *exc* on the document; a store that is still down is only logged."""
        try:
            await self._data_store_call(
                self._corpus_store.update_document_status(
                    document_id, DocumentStatus.ERROR, warning=f"Ingestion failed: {exc}"
                ),
                "update_document_status",
            )
        except TenderDraftError as status_exc:
            log.error("ingestion_failure_not_recorded", error=str(status_exc))

    async def _store_file(
        self,
        corpus_id: str,
        file_bytes: bytes,
        file_name: str,
        content_type: str,
    ) -> str:
        path = f"corpus/{corpus_id}/{int(time.time() * 1000)}-{file_name}"
        try:
            return await with_timeout(
                self._object_store.put(file_bytes, path, content_type),
                self._timeout,
                StorageWriteError,
                operation="object_store.put",
                provider_name=self._object_store.get_provider_name(),
            )
        except StorageWriteError as exc:
            logger.warning(
                "object_store_failed_using_inline_reference",
                corpus_id=corpus_id,
                file_name=file_name,
                error=str(exc),
            )
            return inline_file_reference(file_bytes, content_type)

    async def _data_store_call(self, awaitable: Awaitable[_T], operation: str) -> _T:
        return await with_timeout(
            awaitable,
            self._timeout,
            StoreUnavailableError,
            operation=operation,
            provider_name=self._corpus_store.get_provider_name(),
        )
