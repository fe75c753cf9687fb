"""Custom exception hierarchy for tenderDraft.

All application exceptions inherit from :class:`TenderDraftError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "sqlite", "pymupdf", "anthropic") caused the failure.

The hierarchy is organized by pipeline domain:

    TenderDraftError  (base -- catch-all for any tenderDraft error)
    +-- ExtractionError         (document bytes -> text failed)
    +-- StorageWriteError       (object store rejected the file bytes)
    +-- ChunkInsertError        (one chunk batch could not be persisted)
    +-- ChunkSearchError        (similarity / keyword search failed)
    +-- StoreUnavailableError   (the data store cannot be reached at all)
    +-- NotFoundError           (a corpus / document record does not exist)
    +-- LLMError                (text-generation call failure)
    +-- ConfigurationError      (startup / missing config)
    +-- AuthenticationError     (request could not be authenticated)

Retrieval recovers from ``ChunkSearchError`` by trying the next search
strategy; ``StoreUnavailableError`` is the only store failure that is
allowed to reach the HTTP caller.
"""


class TenderDraftError(Exception):
    """Base exception for all tenderDraft errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external collaborator triggered the
    error.  ``__str__`` prefixes the provider name in brackets for structured
    log output, e.g. ``[sqlite] no such table: document_chunks``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class ExtractionError(TenderDraftError):
    """Raised when a document's text cannot be extracted or is too short to use."""

    def __init__(
        self,
        message: str = "Could not extract text from document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageWriteError(TenderDraftError):
    """Raised when the object store fails to persist uploaded file bytes."""

    def __init__(
        self,
        message: str = "Object store write failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChunkInsertError(TenderDraftError):
    """Raised when a batch of chunk records cannot be written."""

    def __init__(
        self,
        message: str = "Chunk batch insert failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Retrieval / data store errors
# ---------------------------------------------------------------------------

class ChunkSearchError(TenderDraftError):
    """Raised when a similarity or keyword search fails in the data store.

    The retrieval service catches this to fall through to the next search
    strategy.
    """

    def __init__(
        self,
        message: str = "Chunk search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreUnavailableError(TenderDraftError):
    """Raised when the data store cannot be reached at all."""

    def __init__(
        self,
        message: str = "Data store is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(TenderDraftError):
    """Raised when a requested corpus or document does not exist."""

    def __init__(
        self,
        message: str = "Record not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Generation / configuration / auth errors
# ---------------------------------------------------------------------------

class LLMError(TenderDraftError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(TenderDraftError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthenticationError(TenderDraftError):
    """Raised when a request carries no valid credentials."""

    def __init__(
        self,
        message: str = "Authentication required",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
