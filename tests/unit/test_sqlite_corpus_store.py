"""Unit tests for SQLiteCorpusStore.

Runs every operation against a temporary SQLite file: corpus / document /
project-link and brick CRUD, cascade deletes, batched chunk inserts with partial
failure, cosine similarity search and keyword search.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tenderdraft.models.corpus import ChunkDraft, DocumentStatus, ProjectCorpusLink
from tenderdraft.models.project import BrickStatus
from tenderdraft.providers.corpus_store.sqlite_corpus_store import SQLiteCorpusStore
from tenderdraft.services.ingestion.vectorizer import CharacterVectorizer
from tenderdraft.utils.errors import ChunkSearchError, NotFoundError, StoreUnavailableError

_VECTORIZER = CharacterVectorizer()


def _drafts(texts: list[str], positions: list[int] | None = None) -> list[ChunkDraft]:
    positions = positions if positions is not None else list(range(len(texts)))
    return [
        ChunkDraft(content=text, embedding=_VECTORIZER.vectorize(text), position=pos)
        for text, pos in zip(texts, positions)
    ]


async def _ready_document(store: SQLiteCorpusStore, corpus_id: str, name: str, texts: list[str]) -> str:
    doc = await store.create_document(corpus_id, name, f"file:///{name}", name.rsplit(".", 1)[-1])
    report = await store.insert_chunks(doc.id, _drafts(texts))
    await store.update_document_status(doc.id, DocumentStatus.READY, chunk_count=report.inserted)
    return doc.id


# ─── Initialization ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_double_initialize_is_idempotent(sqlite_store):
    await sqlite_store.initialize()
    assert sqlite_store.get_provider_name() == "sqlite"


@pytest.mark.asyncio
async def test_unreachable_database_raises_store_unavailable(tmp_path: Path):
    store = SQLiteCorpusStore(db_path=tmp_path / "missing-dir" / "corpus.db")
    with pytest.raises(StoreUnavailableError):
        await store.list_corpora("org-1")


def test_invalid_batch_size_rejected(tmp_path: Path):
    with pytest.raises(ValueError):
        SQLiteCorpusStore(db_path=tmp_path / "x.db", batch_size=0)


# ─── Corpora ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_and_get_corpus(sqlite_store):
    corpus = await sqlite_store.create_corpus("Past bids", "org-1", description="2023 answers")
    fetched = await sqlite_store.get_corpus(corpus.id)
    assert fetched is not None
    assert fetched.name == "Past bids"
    assert fetched.description == "2023 answers"
    assert fetched.org_id == "org-1"


@pytest.mark.asyncio
async def test_get_missing_corpus_returns_none(sqlite_store):
    assert await sqlite_store.get_corpus("nope") is None


@pytest.mark.asyncio
async def test_list_corpora_newest_first_and_org_scoped(sqlite_store):
    first = await sqlite_store.create_corpus("First", "org-1")
    second = await sqlite_store.create_corpus("Second", "org-1")
    await sqlite_store.create_corpus("Other org", "org-2")

    corpora = await sqlite_store.list_corpora("org-1")
    assert [c.id for c in corpora] == [second.id, first.id]


@pytest.mark.asyncio
async def test_update_corpus(sqlite_store):
    corpus = await sqlite_store.create_corpus("Draft name", "org-1")
    updated = await sqlite_store.update_corpus(corpus.id, name="Final name")
    assert updated is not None
    assert updated.name == "Final name"
    assert updated.description is None

    updated = await sqlite_store.update_corpus(corpus.id, description="Now described")
    assert updated.name == "Final name"
    assert updated.description == "Now described"


@pytest.mark.asyncio
async def test_update_missing_corpus_returns_none(sqlite_store):
    assert await sqlite_store.update_corpus("nope", name="x") is None


@pytest.mark.asyncio
async def test_delete_corpus_cascades(sqlite_store):
    corpus = await sqlite_store.create_corpus("Doomed", "org-1")
    doc_id = await _ready_document(sqlite_store, corpus.id, "a.txt", ["Alpha text.", "Beta text."])
    await sqlite_store.link_project_corpus("project-1", corpus.id)

    assert await sqlite_store.delete_corpus(corpus.id) is True
    assert await sqlite_store.get_corpus(corpus.id) is None
    assert await sqlite_store.get_document(doc_id) is None
    assert await sqlite_store.list_chunks(doc_id) == []
    assert await sqlite_store.get_project_corpus_ids("project-1") == []


@pytest.mark.asyncio
async def test_delete_missing_corpus_returns_false(sqlite_store):
    assert await sqlite_store.delete_corpus("nope") is False


# ─── Documents ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_document_starts_processing(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    doc = await sqlite_store.create_document(corpus.id, "bid.pdf", "file:///bid.pdf", "pdf")

    fetched = await sqlite_store.get_document(doc.id)
    assert fetched.status is DocumentStatus.PROCESSING
    assert fetched.chunk_count == 0
    assert fetched.file_type == "pdf"


@pytest.mark.asyncio
async def test_create_document_for_missing_corpus_raises(sqlite_store):
    with pytest.raises(NotFoundError):
        await sqlite_store.create_document("nope", "bid.pdf", "", "pdf")


@pytest.mark.asyncio
async def test_update_document_status_with_warning(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    doc = await sqlite_store.create_document(corpus.id, "bid.pdf", "", "pdf")

    await sqlite_store.update_document_status(
        doc.id, DocumentStatus.READY, chunk_count=7, warning="1 of 8 chunks failed to persist"
    )
    fetched = await sqlite_store.get_document(doc.id)
    assert fetched.status is DocumentStatus.READY
    assert fetched.chunk_count == 7
    assert fetched.warning == "1 of 8 chunks failed to persist"


@pytest.mark.asyncio
async def test_delete_document_scoped_by_corpus(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    doc_id = await _ready_document(sqlite_store, corpus.id, "a.txt", ["Alpha text."])

    assert await sqlite_store.delete_document(doc_id, corpus_id="other-corpus") is False
    assert await sqlite_store.delete_document(doc_id, corpus_id=corpus.id) is True
    assert await sqlite_store.get_document(doc_id) is None
    assert await sqlite_store.list_chunks(doc_id) == []


@pytest.mark.asyncio
async def test_list_documents(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    await sqlite_store.create_document(corpus.id, "a.pdf", "", "pdf")
    await sqlite_store.create_document(corpus.id, "b.docx", "", "docx")

    names = [d.name for d in await sqlite_store.list_documents(corpus.id)]
    assert sorted(names) == ["a.pdf", "b.docx"]


# ─── Chunk inserts ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_insert_chunks_in_batches(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    doc = await sqlite_store.create_document(corpus.id, "big.txt", "", "txt")
    texts = [f"Chunk number {i}." for i in range(120)]

    report = await sqlite_store.insert_chunks(doc.id, _drafts(texts))

    assert report.attempted == 120
    assert report.inserted == 120
    assert report.failed_batches == 0
    assert report.complete

    chunks = await sqlite_store.list_chunks(doc.id)
    assert [c.position for c in chunks] == list(range(120))
    assert chunks[5].content == "Chunk number 5."
    assert len(chunks[5].embedding) == 1536


@pytest.mark.asyncio
async def test_failed_batch_is_skipped_and_counted(tmp_path: Path):
    store = SQLiteCorpusStore(db_path=tmp_path / "c.db", batch_size=2)
    await store.initialize()
    corpus = await store.create_corpus("C", "org-1")
    doc = await store.create_document(corpus.id, "a.txt", "", "txt")

    # The second batch repeats position 2, violating the per-document uniqueness.
    drafts = _drafts(["a.", "b.", "c.", "d.", "e."], positions=[0, 1, 2, 2, 4])
    report = await store.insert_chunks(doc.id, drafts)

    assert report.attempted == 5
    assert report.inserted == 3
    assert report.failed_batches == 1
    assert not report.complete
    assert [c.position for c in await store.list_chunks(doc.id)] == [0, 1, 4]


@pytest.mark.asyncio
async def test_insert_no_chunks(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    doc = await sqlite_store.create_document(corpus.id, "a.txt", "", "txt")
    report = await sqlite_store.insert_chunks(doc.id, [])
    assert report.attempted == report.inserted == 0


# ─── Similarity search ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_similarity_search_ranks_exact_match_first(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    texts = [
        "We hold ISO 27001 certification.",
        "The service desk runs around the clock.",
        "Backups are retained for ninety days.",
    ]
    await _ready_document(sqlite_store, corpus.id, "capabilities.txt", texts)

    query = _VECTORIZER.vectorize("The service desk runs around the clock.")
    results = await sqlite_store.similarity_search(query, [corpus.id], limit=2)

    assert len(results) == 2
    assert results[0].content == "The service desk runs around the clock."
    assert results[0].document_name == "capabilities.txt"
    assert results[0].corpus_id == corpus.id
    assert results[0].similarity == pytest.approx(1.0, abs=1e-5)
    assert results[0].similarity >= results[1].similarity


@pytest.mark.asyncio
async def test_similarity_search_excludes_non_ready_and_out_of_scope(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    other = await sqlite_store.create_corpus("Other", "org-1")

    processing = await sqlite_store.create_document(corpus.id, "pending.txt", "", "txt")
    await sqlite_store.insert_chunks(processing.id, _drafts(["Still processing."]))
    await _ready_document(sqlite_store, other.id, "other.txt", ["Other corpus text."])

    query = _VECTORIZER.vectorize("Still processing.")
    assert await sqlite_store.similarity_search(query, [corpus.id], limit=5) == []


@pytest.mark.asyncio
async def test_similarity_search_edge_cases(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    await _ready_document(sqlite_store, corpus.id, "a.txt", ["Some text."])

    assert await sqlite_store.similarity_search(_VECTORIZER.vectorize("x"), [], limit=5) == []
    assert await sqlite_store.similarity_search([0.0] * 1536, [corpus.id], limit=5) == []


@pytest.mark.asyncio
async def test_similarity_search_dimension_mismatch_raises(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    await _ready_document(sqlite_store, corpus.id, "a.txt", ["Some text."])

    with pytest.raises(ChunkSearchError):
        await sqlite_store.similarity_search([1.0, 0.0, 0.0], [corpus.id], limit=5)


# ─── Text search ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_text_search_orders_by_matched_terms(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    await _ready_document(
        sqlite_store,
        corpus.id,
        "a.txt",
        [
            "Backups are nightly.",
            "Encrypted backups are tested quarterly.",
            "Nothing relevant here.",
        ],
    )

    results = await sqlite_store.text_search(["BACKUPS", "tested"], [corpus.id], limit=5)

    assert [r.content for r in results] == [
        "Encrypted backups are tested quarterly.",
        "Backups are nightly.",
    ]
    assert all(r.similarity is None for r in results)


@pytest.mark.asyncio
async def test_text_search_treats_wildcards_literally(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    await _ready_document(sqlite_store, corpus.id, "a.txt", ["Uptime of 99.9% guaranteed.", "No match."])

    results = await sqlite_store.text_search(["9%"], [corpus.id], limit=5)
    assert [r.content for r in results] == ["Uptime of 99.9% guaranteed."]
    assert await sqlite_store.text_search(["%"], [corpus.id], limit=5) != []
    assert await sqlite_store.text_search(["_o_"], [corpus.id], limit=5) == []


@pytest.mark.asyncio
async def test_text_search_empty_inputs(sqlite_store):
    corpus = await sqlite_store.create_corpus("C", "org-1")
    assert await sqlite_store.text_search([], [corpus.id], limit=5) == []
    assert await sqlite_store.text_search(["anything"], [], limit=5) == []


# ─── Project links ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_project_links(sqlite_store):
    a = await sqlite_store.create_corpus("A", "org-1")
    b = await sqlite_store.create_corpus("B", "org-1")

    link = await sqlite_store.link_project_corpus("p-1", a.id)
    await sqlite_store.link_project_corpus("p-1", b.id)
    await sqlite_store.link_project_corpus("p-1", a.id)  # idempotent

    assert link == ProjectCorpusLink(project_id="p-1", corpus_id=a.id)
    assert sorted(await sqlite_store.get_project_corpus_ids("p-1")) == sorted([a.id, b.id])
    assert await sqlite_store.unlink_project_corpus("p-1", a.id) is True
    assert await sqlite_store.unlink_project_corpus("p-1", a.id) is False
    assert await sqlite_store.get_project_corpus_ids("p-1") == [b.id]


@pytest.mark.asyncio
async def test_link_missing_corpus_raises(sqlite_store):
    with pytest.raises(NotFoundError):
        await sqlite_store.link_project_corpus("p-1", "nope")


# ---------------------------------------------------------------------------
# Projects and bricks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_brick_starts_in_draft(sqlite_store):
    project = await sqlite_store.create_project("City portal", "org-1", "Rebuild of the citizen portal")
    brick = await sqlite_store.create_brick(project.id, "Describe your hosting.")

    stored = await sqlite_store.get_brick(brick.id)
    assert stored.status is BrickStatus.DRAFT
    assert stored.ai_response_text is None
    assert stored.ai_sources is None
    assert (await sqlite_store.get_project(project.id)).description == "Rebuild of the citizen portal"


@pytest.mark.asyncio
async def test_saved_answer_moves_brick_to_writing(sqlite_store):
    project = await sqlite_store.create_project("City portal", "org-1")
    brick = await sqlite_store.create_brick(project.id, "Describe your hosting.")

    saved = await sqlite_store.save_brick_answer(brick.id, "<p>EU hosting.</p>", ["hosting.pdf", "iso.pdf"])

    assert saved.status is BrickStatus.WRITING
    assert saved.ai_response_text == "<p>EU hosting.</p>"
    assert saved.ai_sources == ["hosting.pdf", "iso.pdf"]


@pytest.mark.asyncio
async def test_answer_without_sources_stores_none(sqlite_store):
    project = await sqlite_store.create_project("City portal", "org-1")
    brick = await sqlite_store.create_brick(project.id, "Describe your hosting.")

    saved = await sqlite_store.save_brick_answer(brick.id, "<p>Generic answer.</p>", [])

    assert saved.ai_sources is None


@pytest.mark.asyncio
async def test_brick_status_update_and_listing_order(sqlite_store):
    project = await sqlite_store.create_project("City portal", "org-1")
    first = await sqlite_store.create_brick(project.id, "First question?")
    second = await sqlite_store.create_brick(project.id, "Second question?")

    updated = await sqlite_store.update_brick_status(second.id, BrickStatus.VALIDATED)

    assert updated.status is BrickStatus.VALIDATED
    assert [b.id for b in await sqlite_store.list_bricks(project.id)] == [first.id, second.id]
    assert await sqlite_store.update_brick_status("missing", BrickStatus.REVIEW) is None
    assert await sqlite_store.save_brick_answer("missing", "<p>x</p>", []) is None


@pytest.mark.asyncio
async def test_brick_for_missing_project_raises(sqlite_store):
    with pytest.raises(NotFoundError):
        await sqlite_store.create_brick("no-project", "Question?")
