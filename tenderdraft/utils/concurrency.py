"""Timeout helper for calls into external collaborators.

Every call the ingestion pipeline makes into the object store, the text
extractors or the data store is a suspension point that may hang.
:func:`with_timeout` wraps such a call in ``asyncio.wait_for`` and converts
the resulting ``asyncio.TimeoutError`` into a domain error chosen by the
caller, so each stage can map a hang onto its own failure policy
(a storage timeout degrades to the inline reference, an extraction
timeout marks the document as ``error``).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

import structlog

from tenderdraft.utils.errors import TenderDraftError
from tenderdraft.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def with_timeout(
    awaitable: Awaitable[_T],
    timeout: float | None,
    error_cls: type[TenderDraftError],
    operation: str,
    provider_name: str | None = None,
) -> _T:
    """Await *awaitable*, raising *error_cls* if it exceeds *timeout* seconds.

    Parameters
    ----------
    awaitable:
        The collaborator call to run.
    timeout:
        Limit in seconds.  ``None`` or a non-positive value disables the limit.
    error_cls:
        :class:`TenderDraftError` subclass raised on timeout.
    operation:
        Short label used in the log event and the error message.
    provider_name:
        Optional collaborator name attached to the raised error.
    """
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        _logger.warning("external_call_timeout", operation=operation, timeout=timeout)
        raise error_cls(
            message=f"{operation} timed out after {timeout:g}s",
            provider_name=provider_name,
        ) from exc
