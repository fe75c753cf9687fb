"""FastAPI API routes for tenderDraft.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern; ``main.py`` populates the state
at startup.

Endpoint                                        Method   Description
----------------------------------------------------------------------------
/api/v1/health                                  GET      Health + provider names
/api/v1/corpus                                  GET      List corpora with documents
/api/v1/corpus                                  POST     Create a corpus
/api/v1/corpus/{corpus_id}                      GET      One corpus with documents
/api/v1/corpus/{corpus_id}                      PATCH    Rename / describe a corpus
/api/v1/corpus/{corpus_id}                      DELETE   Delete corpus (cascades)
/api/v1/corpus/{corpus_id}/documents            POST     Upload + ingest a document
/api/v1/corpus/{corpus_id}/documents/{doc_id}   DELETE   Delete a document
/api/v1/documents/{doc_id}/chunks               GET      Chunks in position order
/api/v1/rag/search                              POST     Search the corpus
/api/v1/projects                                POST     Create a project
/api/v1/projects/{project_id}                   GET      Project with its bricks
/api/v1/projects/{project_id}/bricks            POST     Add a question brick
/api/v1/projects/{project_id}/corpus            GET      Linked corpus ids
/api/v1/projects/{project_id}/corpus            POST     Link a corpus
/api/v1/projects/{project_id}/corpus/{corpus_id} DELETE  Unlink a corpus
/api/v1/bricks/{brick_id}                       PATCH    Move a brick through the workflow
/api/v1/generate                                POST     Draft an answer
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, UploadFile

from tenderdraft.api.auth import AuthContext, IAuthStrategy
from tenderdraft.api.schemas import (
    ChunkListResponse,
    ChunkResponse,
    CorpusListResponse,
    BrickResponse,
    CorpusResponse,
    CreateCorpusRequest,
    CreateBrickRequest,
    CreateProjectRequest,
    DocumentResponse,
    DocumentUploadResponse,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    ProjectCorpusRequest,
    ProjectCorpusResponse,
    ProjectResponse,
    RagSearchRequest,
    RagSearchResponse,
    UpdateCorpusRequest,
    UpdateBrickStatusRequest,
)
from tenderdraft.models.corpus import DocumentStatus
from tenderdraft.models.rag import CorpusScope
from tenderdraft.services.answer_drafter import AnswerDrafter
from tenderdraft.services.corpus_service import CorpusService
from tenderdraft.services.ingestion.ingestion_service import IngestionService, detect_file_type
from tenderdraft.services.project_service import ProjectService
from tenderdraft.services.retrieval_service import RetrievalService, unique_sources
from tenderdraft.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in 64 KB increments so oversized files are rejected early.
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_corpus_service(request: Request) -> CorpusService:
    return request.app.state.corpus_service


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def _get_answer_drafter(request: Request) -> AnswerDrafter:
    return request.app.state.answer_drafter


def _get_project_service(request: Request) -> ProjectService:
    return request.app.state.project_service


async def _authenticate(request: Request) -> AuthContext:
    strategy: IAuthStrategy = request.app.state.auth
    return await strategy.authenticate(request)


CorpusServiceDep = Annotated[CorpusService, Depends(_get_corpus_service)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
RetrievalDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
DrafterDep = Annotated[AnswerDrafter, Depends(_get_answer_drafter)]
ProjectServiceDep = Annotated[ProjectService, Depends(_get_project_service)]
AuthDep = Annotated[AuthContext, Depends(_authenticate)]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request) -> HealthResponse:
    state = request.app.state
    providers: dict[str, Any] = getattr(state, "provider_names", {})
    return HealthResponse(
        status="healthy",
        version=getattr(state, "version", "unknown"),
        providers=providers,
    )


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------


@router.get("/corpus", response_model=CorpusListResponse, summary="List corpora")
async def list_corpora(auth: AuthDep, corpus_service: CorpusServiceDep) -> CorpusListResponse:
    entries = await corpus_service.list_corpora(auth.org_id)
    return CorpusListResponse(
        corpora=[CorpusResponse.from_model(e.corpus, e.documents) for e in entries]
    )


@router.post("/corpus", response_model=CorpusResponse, status_code=201, summary="Create a corpus")
async def create_corpus(
    body: CreateCorpusRequest,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> CorpusResponse:
    corpus = await corpus_service.create_corpus(
        name=body.name,
        org_id=auth.org_id,
        description=body.description,
    )
    return CorpusResponse.from_model(corpus)


@router.get(
    "/corpus/{corpus_id}",
    response_model=CorpusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_corpus(corpus_id: str, auth: AuthDep, corpus_service: CorpusServiceDep) -> CorpusResponse:
    entry = await corpus_service.get_corpus(corpus_id, org_id=auth.org_id)
    return CorpusResponse.from_model(entry.corpus, entry.documents)


@router.patch(
    "/corpus/{corpus_id}",
    response_model=CorpusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_corpus(
    corpus_id: str,
    body: UpdateCorpusRequest,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> CorpusResponse:
    corpus = await corpus_service.update_corpus(
        corpus_id,
        name=body.name,
        description=body.description,
        org_id=auth.org_id,
    )
    return CorpusResponse.from_model(corpus)


@router.delete("/corpus/{corpus_id}", status_code=204, responses={404: {"model": ErrorResponse}})
async def delete_corpus(corpus_id: str, auth: AuthDep, corpus_service: CorpusServiceDep) -> Response:
    await corpus_service.delete_corpus(corpus_id, org_id=auth.org_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/corpus/{corpus_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=201,
    responses={
        404: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
    summary="Upload a reference document and ingest it",
)
async def upload_document(
    corpus_id: str,
    file: UploadFile,
    request: Request,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
    ingestion: IngestionDep,
) -> DocumentUploadResponse:
    await corpus_service.get_corpus(corpus_id, org_id=auth.org_id)

    file_name = file.filename or "document.txt"
    file_type = detect_file_type(file_name)
    allowed: frozenset[str] = request.app.state.allowed_extensions
    if file_type not in allowed:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported file type: {file_type}. Allowed: {', '.join(sorted(allowed))}",
        )

    max_bytes: int = request.app.state.max_upload_bytes
    parts: list[bytes] = []
    total_size = 0
    while True:
        part = await file.read(_UPLOAD_CHUNK_SIZE)
        if not part:
            break
        total_size += len(part)
        if total_size > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large: maximum is {max_bytes // (1024 * 1024)} MB",
            )
        parts.append(part)
    file_bytes = b"".join(parts)

    result = await ingestion.ingest(
        corpus_id=corpus_id,
        file_bytes=file_bytes,
        file_name=file_name,
        content_type=file.content_type,
    )
    document = await corpus_service.get_document(result.document_id)

    _logger.info(
        "document_uploaded",
        corpus_id=corpus_id,
        document_id=result.document_id,
        status=result.status.value,
        chunk_count=result.chunk_count,
    )
    return DocumentUploadResponse(
        success=result.status is DocumentStatus.READY,
        document=DocumentResponse.from_model(document),
        chunks_produced=result.chunks_produced,
        failed_batches=result.failed_batches,
        ingestion_time=result.ingestion_time,
    )


@router.delete(
    "/corpus/{corpus_id}/documents/{document_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
)
async def delete_document(
    corpus_id: str,
    document_id: str,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> Response:
    await corpus_service.get_corpus(corpus_id, org_id=auth.org_id)
    await corpus_service.delete_document(corpus_id, document_id)
    return Response(status_code=204)


@router.get(
    "/documents/{document_id}/chunks",
    response_model=ChunkListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_document_chunks(
    document_id: str,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> ChunkListResponse:
    document = await corpus_service.get_document(document_id)
    await corpus_service.get_corpus(document.corpus_id, org_id=auth.org_id)
    chunks = await corpus_service.list_chunks(document_id)
    return ChunkListResponse(
        document_id=document_id,
        chunks=[ChunkResponse.from_model(c) for c in chunks],
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.post("/rag/search", response_model=RagSearchResponse, summary="Search the corpus")
async def rag_search(
    body: RagSearchRequest,
    auth: AuthDep,
    retrieval: RetrievalDep,
) -> RagSearchResponse:
    result = await retrieval.search(
        body.query,
        CorpusScope(
            corpus_ids=body.corpus_ids,
            project_id=body.project_id,
            org_id=auth.org_id,
        ),
        limit=body.limit,
    )
    return RagSearchResponse(
        chunks=result.chunks,
        method=result.method.value,
        sources=unique_sources(result.chunks),
        message=result.message,
    )


# ---------------------------------------------------------------------------
# Projects and bricks
# ---------------------------------------------------------------------------


@router.post("/projects", response_model=ProjectResponse, status_code=201, summary="Create a project")
async def create_project(
    body: CreateProjectRequest,
    auth: AuthDep,
    project_service: ProjectServiceDep,
) -> ProjectResponse:
    project = await project_service.create_project(body.name, auth.org_id, body.description)
    _logger.info("project_created", project_id=project.id, org_id=auth.org_id)
    return ProjectResponse.from_model(project)


@router.get(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_project(project_id: str, auth: AuthDep, project_service: ProjectServiceDep) -> ProjectResponse:
    found = await project_service.get_project(project_id, org_id=auth.org_id)
    return ProjectResponse.from_model(found.project, found.bricks)


@router.post(
    "/projects/{project_id}/bricks",
    response_model=BrickResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}},
)
async def create_brick(
    project_id: str,
    body: CreateBrickRequest,
    auth: AuthDep,
    project_service: ProjectServiceDep,
) -> BrickResponse:
    brick = await project_service.add_brick(project_id, body.question, org_id=auth.org_id)
    return BrickResponse.from_model(brick)


@router.patch(
    "/bricks/{brick_id}",
    response_model=BrickResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_brick_status(
    brick_id: str,
    body: UpdateBrickStatusRequest,
    auth: AuthDep,
    project_service: ProjectServiceDep,
) -> BrickResponse:
    brick = await project_service.set_brick_status(brick_id, body.status, org_id=auth.org_id)
    return BrickResponse.from_model(brick)


# ---------------------------------------------------------------------------
# Project links
# ---------------------------------------------------------------------------


@router.get("/projects/{project_id}/corpus", response_model=ProjectCorpusResponse)
async def list_project_corpus(
    project_id: str,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> ProjectCorpusResponse:
    corpus_ids = await corpus_service.list_project_corpus_ids(project_id, org_id=auth.org_id)
    return ProjectCorpusResponse(project_id=project_id, corpus_ids=corpus_ids)


@router.post(
    "/projects/{project_id}/corpus",
    response_model=ProjectCorpusResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}},
)
async def link_project_corpus(
    project_id: str,
    body: ProjectCorpusRequest,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> ProjectCorpusResponse:
    await corpus_service.link_project(project_id, body.corpus_id, org_id=auth.org_id)
    corpus_ids = await corpus_service.list_project_corpus_ids(project_id, org_id=auth.org_id)
    return ProjectCorpusResponse(project_id=project_id, corpus_ids=corpus_ids)


@router.delete(
    "/projects/{project_id}/corpus/{corpus_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
)
async def unlink_project_corpus(
    project_id: str,
    corpus_id: str,
    auth: AuthDep,
    corpus_service: CorpusServiceDep,
) -> Response:
    await corpus_service.unlink_project(project_id, corpus_id, org_id=auth.org_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Drafting
# ---------------------------------------------------------------------------


@router.post("/generate", response_model=GenerateResponse, summary="Draft an answer")
async def generate(body: GenerateRequest, auth: AuthDep, drafter: DrafterDep) -> GenerateResponse:
    answer = await drafter.draft(
        question=body.question,
        project_id=body.project_id,
        org_id=auth.org_id,
        project_name=body.project_name,
        project_description=body.project_description,
        brick_id=body.brick_id,
    )
    return GenerateResponse(
        response=answer.html,
        sources=answer.sources,
        used_rag=answer.used_rag,
        brick_id=answer.brick_id,
    )
