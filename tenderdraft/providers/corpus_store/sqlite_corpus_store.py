"""SQLite-backed corpus store.

Persists corpora, documents, chunk records, project links, projects and
their question bricks to a local SQLite database using ``aiosqlite`` for
async I/O.  Foreign keys with ``ON DELETE CASCADE`` give the ownership
semantics of the data model: deleting a corpus removes its documents, their
chunks and its project links; deleting a project removes its bricks.

Embeddings are stored as float32 blobs.  SQLite has no vector operator, so
:meth:`SQLiteCorpusStore.similarity_search` loads the candidate embeddings of
the scoped, ``ready`` documents and ranks them by cosine distance with numpy.
Keyword search is an OR of case-insensitive ``LIKE`` matches ordered by the
number of matched terms.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from tenderdraft.interfaces.corpus_store import ICorpusStore
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
from tenderdraft.utils.errors import (
    ChunkInsertError,
    ChunkSearchError,
    NotFoundError,
    StoreUnavailableError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/tenderdraft.db")
_DEFAULT_BATCH_SIZE = 50

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS corpus (
    id          TEXT PRIMARY KEY,
    org_id      TEXT NOT NULL,
    name        TEXT NOT NULL,
    description TEXT,
    created_at  TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS corpus_documents (
    id          TEXT PRIMARY KEY,
    corpus_id   TEXT NOT NULL REFERENCES corpus(id) ON DELETE CASCADE,
    name        TEXT NOT NULL,
    file_url    TEXT NOT NULL DEFAULT '',
    file_type   TEXT NOT NULL DEFAULT 'txt',
    status      TEXT NOT NULL DEFAULT 'processing'
                CHECK (status IN ('processing', 'ready', 'error')),
    chunk_count INTEGER NOT NULL DEFAULT 0,
    warning     TEXT,
    created_at  TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id                 TEXT PRIMARY KEY,
    corpus_document_id TEXT NOT NULL REFERENCES corpus_documents(id) ON DELETE CASCADE,
    content            TEXT NOT NULL,
    position           INTEGER NOT NULL,
    embedding          BLOB,
    page_number        INTEGER,
    UNIQUE (corpus_document_id, position)
);
""",
    """\
CREATE TABLE IF NOT EXISTS project_corpus (
    project_id TEXT NOT NULL,
    corpus_id  TEXT NOT NULL REFERENCES corpus(id) ON DELETE CASCADE,
    PRIMARY KEY (project_id, corpus_id)
);
""",
    """\
CREATE TABLE IF NOT EXISTS projects (
    id          TEXT PRIMARY KEY,
    org_id      TEXT NOT NULL,
    name        TEXT NOT NULL,
    description TEXT,
    created_at  TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS bricks (
    id               TEXT PRIMARY KEY,
    project_id       TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    question         TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'draft'
                     CHECK (status IN ('draft', 'writing', 'review', 'validated')),
    ai_response_text TEXT,
    ai_sources       TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_corpus_org ON corpus(org_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_corpus ON corpus_documents(corpus_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(corpus_document_id);",
    "CREATE INDEX IF NOT EXISTS idx_projects_org ON projects(org_id);",
    "CREATE INDEX IF NOT EXISTS idx_bricks_project ON bricks(project_id);",
]

_INSERT_CHUNK_SQL = """\
INSERT INTO document_chunks (id, corpus_document_id, content, position, embedding, page_number)
VALUES (?, ?, ?, ?, ?, ?);
"""

_RETRIEVED_COLUMNS = """\
c.id AS chunk_id, c.corpus_document_id AS document_id, d.name AS document_name,
d.corpus_id AS corpus_id, c.content AS content, c.position AS position,
c.page_number AS page_number"""

_BRICK_COLUMNS = (
    "id, project_id, question, status, ai_response_text, ai_sources, created_at, updated_at"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _encode_embedding(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def _decode_embedding(blob: bytes | None) -> list[float] | None:
    if blob is None:
        return None
    return np.frombuffer(blob, dtype=np.float32).astype(np.float64).tolist()


def _brick_from_row(row: aiosqlite.Row) -> Brick:
    data = dict(row)
    data["ai_sources"] = json.loads(data["ai_sources"]) if data["ai_sources"] else None
    return Brick.model_validate(data)


class SQLiteCorpusStore(ICorpusStore):
    """SQLite persistence for corpora, documents, chunks, project links and bricks.

    Parameters
    ----------
    db_path:
        Location of the SQLite database file.  Parent directories are created
        by :meth:`initialize`.
    batch_size:
        Number of chunk rows written per transaction by :meth:`insert_chunks`.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._db_path = Path(db_path)
        self._batch_size = batch_size

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with foreign keys enforced and dict-like rows."""
        try:
            db = await aiosqlite.connect(str(self._db_path))
        except (aiosqlite.Error, OSError) as exc:
            raise StoreUnavailableError(
                message=f"Cannot open database at {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        try:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON;")
            yield db
        finally:
            await db.close()

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(
                message=f"Cannot create database directory: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        async with self._connect() as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("corpus_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Corpora
    # ------------------------------------------------------------------

    async def create_corpus(self, name: str, org_id: str, description: str | None = None) -> Corpus:
        corpus = Corpus(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            org_id=org_id,
            created_at=_now(),
        )
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO corpus (id, org_id, name, description, created_at) VALUES (?, ?, ?, ?, ?)",
                (corpus.id, corpus.org_id, corpus.name, corpus.description, corpus.created_at.isoformat()),
            )
            await db.commit()
        logger.info("corpus_created", corpus_id=corpus.id, org_id=org_id, name=name)
        return corpus

    async def get_corpus(self, corpus_id: str) -> Corpus | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, org_id, name, description, created_at FROM corpus WHERE id = ?",
                (corpus_id,),
            )
            row = await cursor.fetchone()
        return Corpus.model_validate(dict(row)) if row else None

    async def list_corpora(self, org_id: str) -> list[Corpus]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, org_id, name, description, created_at FROM corpus "
                "WHERE org_id = ? ORDER BY created_at DESC, rowid DESC",
                (org_id,),
            )
            rows = await cursor.fetchall()
        return [Corpus.model_validate(dict(r)) for r in rows]

    async def update_corpus(
        self,
        corpus_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Corpus | None:
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description

        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            async with self._connect() as db:
                await db.execute(
                    f"UPDATE corpus SET {assignments} WHERE id = ?",
                    (*updates.values(), corpus_id),
                )
                await db.commit()
        return await self.get_corpus(corpus_id)

    async def delete_corpus(self, corpus_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM corpus WHERE id = ?", (corpus_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info("corpus_deleted", corpus_id=corpus_id, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(
        self,
        corpus_id: str,
        name: str,
        file_url: str,
        file_type: str,
    ) -> CorpusDocument:
        document = CorpusDocument(
            id=str(uuid.uuid4()),
            corpus_id=corpus_id,
            name=name,
            file_url=file_url,
            file_type=file_type,
            status=DocumentStatus.PROCESSING,
            created_at=_now(),
        )
        async with self._connect() as db:
            try:
                await db.execute(
                    "INSERT INTO corpus_documents "
                    "(id, corpus_id, name, file_url, file_type, status, chunk_count, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, 0, ?)",
                    (
                        document.id,
                        corpus_id,
                        name,
                        file_url,
                        file_type,
                        document.status.value,
                        document.created_at.isoformat(),
                    ),
                )
                await db.commit()
            except aiosqlite.IntegrityError as exc:
                raise NotFoundError(
                    message=f"Corpus {corpus_id} does not exist",
                    provider_name=self.get_provider_name(),
                ) from exc
        return document

    async def get_document(self, document_id: str) -> CorpusDocument | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, corpus_id, name, file_url, file_type, status, chunk_count, warning, "
                "created_at FROM corpus_documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return CorpusDocument.model_validate(dict(row)) if row else None

    async def list_documents(self, corpus_id: str) -> list[CorpusDocument]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, corpus_id, name, file_url, file_type, status, chunk_count, warning, "
                "created_at FROM corpus_documents WHERE corpus_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (corpus_id,),
            )
            rows = await cursor.fetchall()
        return [CorpusDocument.model_validate(dict(r)) for r in rows]

    async def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: int | None = None,
        warning: str | None = None,
    ) -> None:
        updates: dict[str, Any] = {"status": DocumentStatus(status).value}
        if chunk_count is not None:
            updates["chunk_count"] = chunk_count
        if warning is not None:
            updates["warning"] = warning

        assignments = ", ".join(f"{column} = ?" for column in updates)
        async with self._connect() as db:
            await db.execute(
                f"UPDATE corpus_documents SET {assignments} WHERE id = ?",
                (*updates.values(), document_id),
            )
            await db.commit()
        logger.debug("document_status_updated", document_id=document_id, **updates)

    async def delete_document(self, document_id: str, corpus_id: str | None = None) -> bool:
        sql = "DELETE FROM corpus_documents WHERE id = ?"
        params: tuple[str, ...] = (document_id,)
        if corpus_id is not None:
            sql += " AND corpus_id = ?"
            params = (document_id, corpus_id)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info("document_deleted", document_id=document_id, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def insert_chunks(
        self,
        document_id: str,
        chunks: Sequence[ChunkDraft],
    ) -> ChunkInsertReport:
        """Write *chunks* in batches of ``batch_size``, one transaction per batch.

        A failed batch is rolled back, logged and counted; later batches are
        still attempted.
        """
        inserted = 0
        failed_batches = 0

        async with self._connect() as db:
            for start in range(0, len(chunks), self._batch_size):
                batch = chunks[start : start + self._batch_size]
                try:
                    await self._insert_batch(db, document_id, batch)
                except ChunkInsertError as exc:
                    failed_batches += 1
                    logger.error(
                        "chunk_batch_insert_failed",
                        document_id=document_id,
                        batch_start=start,
                        batch_size=len(batch),
                        error=str(exc),
                    )
                    continue
                inserted += len(batch)

        report = ChunkInsertReport(
            attempted=len(chunks),
            inserted=inserted,
            failed_batches=failed_batches,
        )
        logger.info(
            "chunks_inserted",
            document_id=document_id,
            attempted=report.attempted,
            inserted=report.inserted,
            failed_batches=report.failed_batches,
        )
        return report

    async def _insert_batch(
        self,
        db: aiosqlite.Connection,
        document_id: str,
        batch: Sequence[ChunkDraft],
    ) -> None:
        rows = [
            (
                str(uuid.uuid4()),
                document_id,
                chunk.content,
                chunk.position,
                _encode_embedding(chunk.embedding),
                chunk.page_number,
            )
            for chunk in batch
        ]
        try:
            await db.executemany(_INSERT_CHUNK_SQL, rows)
            await db.commit()
        except aiosqlite.Error as exc:
            await db.rollback()
            raise ChunkInsertError(
                message=str(exc),
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, corpus_document_id, content, position, embedding, page_number "
                "FROM document_chunks WHERE corpus_document_id = ? ORDER BY position",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [
            DocumentChunk(
                id=r["id"],
                document_id=r["corpus_document_id"],
                content=r["content"],
                position=r["position"],
                embedding=_decode_embedding(r["embedding"]),
                page_number=r["page_number"],
            )
            for r in rows
        ]

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        corpus_ids: Sequence[str],
        limit: int,
    ) -> list[RetrievedChunk]:
        if not corpus_ids or limit <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0:
            # Cosine distance is undefined against the zero vector.
            return []

        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    f"SELECT {_RETRIEVED_COLUMNS}, c.embedding AS embedding "
                    "FROM document_chunks c "
                    "JOIN corpus_documents d ON d.id = c.corpus_document_id "
                    f"WHERE d.corpus_id IN ({_placeholders(len(corpus_ids))}) "
                    "AND d.status = 'ready' AND c.embedding IS NOT NULL "
                    "ORDER BY d.created_at, c.corpus_document_id, c.position",
                    tuple(corpus_ids),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise ChunkSearchError(
                message=f"Similarity search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not rows:
            return []

        try:
            matrix = np.vstack(
                [np.frombuffer(r["embedding"], dtype=np.float32) for r in rows]
            ).astype(np.float64)
            if matrix.shape[1] != query.shape[0]:
                raise ValueError(
                    f"stored dimension {matrix.shape[1]} != query dimension {query.shape[0]}"
                )
        except ValueError as exc:
            raise ChunkSearchError(
                message=f"Embedding dimension mismatch: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        row_norms = np.linalg.norm(matrix, axis=1)
        safe_norms = np.where(row_norms == 0, 1.0, row_norms)
        similarities = (matrix @ query) / (safe_norms * query_norm)
        similarities = np.where(row_norms == 0, 0.0, similarities)
        distances = 1.0 - similarities

        order = np.argsort(distances, kind="stable")[:limit]
        return [
            RetrievedChunk(
                chunk_id=rows[i]["chunk_id"],
                document_id=rows[i]["document_id"],
                document_name=rows[i]["document_name"],
                corpus_id=rows[i]["corpus_id"],
                content=rows[i]["content"],
                position=rows[i]["position"],
                page_number=rows[i]["page_number"],
                similarity=float(1.0 - distances[i]),
            )
            for i in order
        ]

    async def text_search(
        self,
        terms: Sequence[str],
        corpus_ids: Sequence[str],
        limit: int,
    ) -> list[RetrievedChunk]:
        terms = [t for t in terms if t]
        if not terms or not corpus_ids or limit <= 0:
            return []

        patterns = [f"%{_escape_like(t)}%" for t in terms]
        match_any = " OR ".join("c.content LIKE ? ESCAPE '\\'" for _ in patterns)
        match_count = " + ".join("(c.content LIKE ? ESCAPE '\\')" for _ in patterns)
        sql = (
            f"SELECT {_RETRIEVED_COLUMNS}, ({match_count}) AS matched "
            "FROM document_chunks c "
            "JOIN corpus_documents d ON d.id = c.corpus_document_id "
            f"WHERE d.corpus_id IN ({_placeholders(len(corpus_ids))}) AND ({match_any}) "
            "ORDER BY matched DESC, d.created_at, c.corpus_document_id, c.position "
            "LIMIT ?"
        )
        params = (*patterns, *corpus_ids, *patterns, limit)

        try:
            async with self._connect() as db:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise ChunkSearchError(
                message=f"Text search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return [
            RetrievedChunk(
                chunk_id=r["chunk_id"],
                document_id=r["document_id"],
                document_name=r["document_name"],
                corpus_id=r["corpus_id"],
                content=r["content"],
                position=r["position"],
                page_number=r["page_number"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Project links
    # ------------------------------------------------------------------

    async def link_project_corpus(self, project_id: str, corpus_id: str) -> ProjectCorpusLink:
        async with self._connect() as db:
            try:
                await db.execute(
                    "INSERT OR IGNORE INTO project_corpus (project_id, corpus_id) VALUES (?, ?)",
                    (project_id, corpus_id),
                )
                await db.commit()
            except aiosqlite.IntegrityError as exc:
                raise NotFoundError(
                    message=f"Corpus {corpus_id} does not exist",
                    provider_name=self.get_provider_name(),
                ) from exc
        return ProjectCorpusLink(project_id=project_id, corpus_id=corpus_id)

    async def unlink_project_corpus(self, project_id: str, corpus_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM project_corpus WHERE project_id = ? AND corpus_id = ?",
                (project_id, corpus_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def get_project_corpus_ids(self, project_id: str) -> list[str]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT corpus_id FROM project_corpus WHERE project_id = ? ORDER BY corpus_id",
                (project_id,),
            )
            rows = await cursor.fetchall()
        return [r["corpus_id"] for r in rows]

    # ------------------------------------------------------------------
    # Projects and bricks
    # ------------------------------------------------------------------

    async def create_project(self, name: str, org_id: str, description: str | None = None) -> Project:
        project = Project(
            id=str(uuid.uuid4()),
            org_id=org_id,
            name=name,
            description=description,
            created_at=_now(),
        )
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO projects (id, org_id, name, description, created_at) VALUES (?, ?, ?, ?, ?)",
                (project.id, org_id, name, description, project.created_at.isoformat()),
            )
            await db.commit()
        logger.info("project_created", project_id=project.id, org_id=org_id)
        return project

    async def get_project(self, project_id: str) -> Project | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, org_id, name, description, created_at FROM projects WHERE id = ?",
                (project_id,),
            )
            row = await cursor.fetchone()
        return Project.model_validate(dict(row)) if row else None

    async def create_brick(self, project_id: str, question: str) -> Brick:
        now = _now()
        brick = Brick(
            id=str(uuid.uuid4()),
            project_id=project_id,
            question=question,
            created_at=now,
            updated_at=now,
        )
        async with self._connect() as db:
            try:
                await db.execute(
                    "INSERT INTO bricks (id, project_id, question, status, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (brick.id, project_id, question, brick.status.value, now, now),
                )
                await db.commit()
            except aiosqlite.IntegrityError as exc:
                raise NotFoundError(
                    message=f"Project {project_id} does not exist",
                    provider_name=self.get_provider_name(),
                ) from exc
        return brick

    async def get_brick(self, brick_id: str) -> Brick | None:
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT {_BRICK_COLUMNS} FROM bricks WHERE id = ?", (brick_id,))
            row = await cursor.fetchone()
        return _brick_from_row(row) if row else None

    async def list_bricks(self, project_id: str) -> list[Brick]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_BRICK_COLUMNS} FROM bricks WHERE project_id = ? ORDER BY created_at, rowid",
                (project_id,),
            )
            rows = await cursor.fetchall()
        return [_brick_from_row(r) for r in rows]

    async def update_brick_status(self, brick_id: str, status: BrickStatus) -> Brick | None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE bricks SET status = ?, updated_at = ? WHERE id = ?",
                (BrickStatus(status).value, _now(), brick_id),
            )
            await db.commit()
        return await self.get_brick(brick_id)

    async def save_brick_answer(
        self,
        brick_id: str,
        response_html: str,
        sources: Sequence[str],
    ) -> Brick | None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE bricks SET ai_response_text = ?, ai_sources = ?, status = ?, updated_at = ? "
                "WHERE id = ?",
                (
                    response_html,
                    json.dumps(list(sources)) if sources else None,
                    BrickStatus.WRITING.value,
                    _now(),
                    brick_id,
                ),
            )
            await db.commit()
        logger.info("brick_answer_saved", brick_id=brick_id, sources=len(sources))
        return await self.get_brick(brick_id)

    def get_provider_name(self) -> str:
        return "sqlite"
