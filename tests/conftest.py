"""Shared pytest fixtures for the tenderDraft test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenderdraft.config.settings import Settings
from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.interfaces.object_store import IObjectStore
from tenderdraft.models.corpus import ChunkInsertReport, Corpus, CorpusDocument, DocumentStatus
from tenderdraft.models.rag import RetrievedChunk
from tenderdraft.providers.corpus_store.sqlite_corpus_store import SQLiteCorpusStore
from tenderdraft.services.ingestion.vectorizer import CharacterVectorizer

# ---------------------------------------------------------------------------
# Sample text
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_reference_text() -> str:
    """A few paragraphs of tender reference material."""
    return (
        "Our company has delivered managed cloud services to public sector clients since 2012. "
        "We hold ISO 27001 certification for information security management. "
        "All production systems are hosted in two data centres located in the European Union.\n\n"
        "The service desk operates around the clock with a guaranteed first response within "
        "fifteen minutes for critical incidents! Escalation follows a documented ITIL process. "
        "Monthly service reviews report availability, incident volumes and customer satisfaction.\n\n"
        "Data is encrypted at rest with AES-256 and in transit with TLS 1.3. "
        "Backups are taken nightly and retained for ninety days? Restores are tested every quarter. "
        "Our disaster recovery plan targets a recovery time objective of four hours."
    )


def make_sentence_text(sentence_count: int, sentence_length: int = 98) -> str:
    """Build text of *sentence_count* sentences, each exactly *sentence_length* chars."""
    sentences = []
    for i in range(sentence_count):
        stem = f"Sentence {i:03d} describes our delivery approach"
        filler = " word" * ((sentence_length - len(stem) - 1) // 5)
        body = (stem + filler)[: sentence_length - 1]
        body = body.ljust(sentence_length - 1, "x")
        sentences.append(body + ".")
    return " ".join(sentences)


# ---------------------------------------------------------------------------
# Settings / stores
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing every on-disk resource at a temporary directory."""
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "tenderdraft.db"),
        object_store_dir=str(tmp_path / "uploads"),
        default_organization_id="org-test",
        auth_mode="bypass",
        anthropic_api_key="",
        openai_api_key="",
    )


@pytest.fixture
async def sqlite_store(tmp_path: Path) -> SQLiteCorpusStore:
    """An initialized SQLiteCorpusStore backed by a temp file."""
    store = SQLiteCorpusStore(db_path=tmp_path / "corpus.db", batch_size=50)
    await store.initialize()
    return store


@pytest.fixture
def vectorizer() -> CharacterVectorizer:
    return CharacterVectorizer()


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


def make_corpus(corpus_id: str = "corpus-1", org_id: str = "org-test") -> Corpus:
    return Corpus(id=corpus_id, name="Capabilities", org_id=org_id)


def make_document(
    document_id: str = "doc-1",
    corpus_id: str = "corpus-1",
    name: str = "capabilities.pdf",
    status: DocumentStatus = DocumentStatus.PROCESSING,
) -> CorpusDocument:
    return CorpusDocument(
        id=document_id,
        corpus_id=corpus_id,
        name=name,
        file_url="file:///tmp/capabilities.pdf",
        file_type=name.rsplit(".", 1)[-1],
        status=status,
    )


def make_retrieved_chunk(
    chunk_id: str = "chunk-1",
    document_name: str = "capabilities.pdf",
    content: str = "We hold ISO 27001 certification.",
    position: int = 0,
    similarity: float | None = 0.9,
) -> RetrievedChunk:
    return RetrievedChunk(
        chunk_id=chunk_id,
        document_id="doc-1",
        document_name=document_name,
        corpus_id="corpus-1",
        content=content,
        position=position,
        similarity=similarity,
    )


@pytest.fixture
def mock_corpus_store() -> ICorpusStore:
    """A mock ICorpusStore whose async methods succeed with empty results."""
    mock = MagicMock(spec=ICorpusStore)
    mock.get_provider_name.return_value = "mock-store"
    mock.get_corpus = AsyncMock(return_value=make_corpus())
    mock.create_document = AsyncMock(return_value=make_document())
    mock.update_document_status = AsyncMock(return_value=None)
    mock.insert_chunks = AsyncMock(
        side_effect=lambda document_id, chunks: ChunkInsertReport(
            attempted=len(chunks), inserted=len(chunks), failed_batches=0
        )
    )
    mock.similarity_search = AsyncMock(return_value=[])
    mock.text_search = AsyncMock(return_value=[])
    mock.get_project_corpus_ids = AsyncMock(return_value=[])
    mock.list_corpora = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def mock_object_store() -> IObjectStore:
    mock = MagicMock(spec=IObjectStore)
    mock.get_provider_name.return_value = "mock-objects"
    mock.put = AsyncMock(side_effect=lambda data, path, content_type=None: f"file:///store/{path}")
    return mock


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="<p>Drafted answer.</p>")
    return mock
