"""tenderDraft FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  ``build_services`` is shared with the CLI so both
surfaces run the same ingestion and retrieval stack.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from tenderdraft.api.auth import build_auth_strategy
from tenderdraft.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from tenderdraft.api.routes import router as api_router
from tenderdraft.config.loader import load_config
from tenderdraft.config.settings import Settings
from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.providers.corpus_store.sqlite_corpus_store import SQLiteCorpusStore
from tenderdraft.providers.extraction.docx_extractor import DocxTextExtractor
from tenderdraft.providers.extraction.pdf_extractor import PDFTextExtractor
from tenderdraft.providers.extraction.plain_text_extractor import PlainTextExtractor
from tenderdraft.providers.llm.anthropic_provider import AnthropicLLMProvider
from tenderdraft.providers.llm.openai_provider import OpenAILLMProvider
from tenderdraft.providers.object_store.local_object_store import LocalObjectStore
from tenderdraft.services.answer_drafter import AnswerDrafter
from tenderdraft.services.corpus_service import CorpusService
from tenderdraft.services.ingestion.chunker import TextChunker
from tenderdraft.services.ingestion.ingestion_service import IngestionService
from tenderdraft.services.ingestion.text_extraction import TextExtractionService
from tenderdraft.services.ingestion.vectorizer import CharacterVectorizer
from tenderdraft.services.project_service import ProjectService
from tenderdraft.services.retrieval_service import RetrievalService
from tenderdraft.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)

_DEFAULT_EXTENSIONS = ("pdf", "docx", "doc", "txt", "md")


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Select the first available LLM provider based on configured API keys.

    Priority order: Anthropic -> OpenAI.  Returns ``None`` when neither has a
    key; drafting is then unavailable but ingestion and search still work.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return None


# ---------------------------------------------------------------------------
# DI assembly
# ---------------------------------------------------------------------------


def build_services(app_settings: Settings, config: dict | None = None) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components to be stored on ``app.state``
    (or used directly by the CLI).  The corpus store still needs
    ``await corpus_store.initialize()`` before first use.
    """
    config = config if config is not None else load_config(settings=app_settings)
    ingestion_cfg = config.get("ingestion", {})
    drafting_cfg = config.get("drafting", {})

    # -- Providers --
    corpus_store = SQLiteCorpusStore(
        db_path=app_settings.database_path,
        batch_size=app_settings.chunk_insert_batch_size,
    )
    object_store = LocalObjectStore(
        root_dir=app_settings.object_store_dir,
        public_base_url=app_settings.object_store_public_base_url,
    )
    extraction = TextExtractionService(
        [PlainTextExtractor(), PDFTextExtractor(), DocxTextExtractor()],
        timeout=app_settings.external_call_timeout,
    )
    vectorizer = CharacterVectorizer()
    llm = _build_llm_provider(app_settings)

    # -- Services --
    chunker = TextChunker(
        chunk_size=app_settings.chunk_size,
        overlap=app_settings.chunk_overlap,
    )
    ingestion_service = IngestionService(
        corpus_store=corpus_store,
        object_store=object_store,
        extraction=extraction,
        chunker=chunker,
        vectorizer=vectorizer,
        min_text_length=app_settings.min_text_length,
        timeout=app_settings.external_call_timeout,
    )
    retrieval_service = RetrievalService(
        corpus_store=corpus_store,
        vectorizer=vectorizer,
        default_org_id=app_settings.default_organization_id,
        default_limit=app_settings.search_default_limit,
    )
    project_service = ProjectService(corpus_store)
    answer_drafter = AnswerDrafter(
        retrieval=retrieval_service,
        llm=llm,
        projects=project_service,
        temperature=float(drafting_cfg.get("temperature", 0.3)),
        max_tokens=int(drafting_cfg.get("max_tokens", 1500)),
    )

    return {
        "settings": app_settings,
        "version": config.get("app", {}).get("version", "0.1.0"),
        "corpus_store": corpus_store,
        "object_store": object_store,
        "vectorizer": vectorizer,
        "llm": llm,
        "corpus_service": CorpusService(corpus_store),
        "project_service": project_service,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "answer_drafter": answer_drafter,
        "auth": build_auth_strategy(app_settings),
        "allowed_extensions": frozenset(
            ext.lower() for ext in ingestion_cfg.get("allowed_extensions", _DEFAULT_EXTENSIONS)
        ),
        "max_upload_bytes": app_settings.max_upload_bytes,
        "provider_names": {
            "corpus_store": corpus_store.get_provider_name(),
            "object_store": object_store.get_provider_name(),
            "vectorizer": vectorizer.get_provider_name(),
            "llm": llm.get_provider_name() if llm else None,
        },
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    app_settings: Settings = application.state.settings
    components = build_services(app_settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["corpus_store"].initialize()

    _logger.info(
        "app_startup",
        version=components["version"],
        environment=app_settings.app_env,
        auth_mode=app_settings.auth_mode,
        llm=components["provider_names"]["llm"],
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(custom_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="tenderDraft API",
        version="0.1.0",
        description=(
            "Manage reference corpora, ingest tender documents into searchable "
            "chunks, and draft answers to tender questions grounded in them."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = custom_settings or settings

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "tenderdraft.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
