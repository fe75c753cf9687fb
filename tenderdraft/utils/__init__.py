"""Utility modules for tenderDraft.

- **errors** -- Domain-specific exception hierarchy rooted at TenderDraftError.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **concurrency** -- ``asyncio.wait_for`` wrapper mapping timeouts of
  external calls onto domain errors.
"""

from tenderdraft.utils.concurrency import with_timeout
from tenderdraft.utils.errors import (
    AuthenticationError,
    ChunkInsertError,
    ChunkSearchError,
    ConfigurationError,
    ExtractionError,
    LLMError,
    NotFoundError,
    StorageWriteError,
    StoreUnavailableError,
    TenderDraftError,
)
from tenderdraft.utils.logging import configure_logging, get_logger

__all__ = [
    "AuthenticationError",
    "ChunkInsertError",
    "ChunkSearchError",
    "ConfigurationError",
    "ExtractionError",
    "LLMError",
    "NotFoundError",
    "StorageWriteError",
    "StoreUnavailableError",
    "TenderDraftError",
    "configure_logging",
    "get_logger",
    "with_timeout",
]
