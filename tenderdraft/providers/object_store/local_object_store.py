"""Filesystem-backed object store.

Writes uploaded files beneath a root directory.  When a public base URL is
configured (e.g. a static file server or CDN in front of the directory) the
returned URL is ``{base_url}/{path}``; otherwise a ``file://`` URL pointing at
the written file is returned.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath

import structlog

from tenderdraft.interfaces.object_store import IObjectStore
from tenderdraft.utils.errors import StorageWriteError

logger = structlog.get_logger(logger_name=__name__)


class LocalObjectStore(IObjectStore):
    """Stores objects as files under *root_dir*."""

    def __init__(self, root_dir: str | Path, public_base_url: str = "") -> None:
        self._root = Path(root_dir)
        self._public_base_url = public_base_url.rstrip("/")

    async def put(self, data: bytes, path: str, content_type: str | None = None) -> str:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise StorageWriteError(
                message=f"Could not write {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "object_stored",
            path=path,
            size_bytes=len(data),
            content_type=content_type,
        )
        return self.get_url(path)

    def get_url(self, path: str) -> str:
        key = self._normalize(path)
        if self._public_base_url:
            return f"{self._public_base_url}/{key}"
        return (self._root / key).resolve().as_uri()

    def get_provider_name(self) -> str:
        return "local"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(path: str) -> str:
        """Reject absolute paths and parent-directory segments in object keys."""
        key = PurePosixPath(path.replace("\\", "/"))
        if key.is_absolute() or ".." in key.parts or not key.parts:
            raise StorageWriteError(
                message=f"Invalid object path: {path!r}",
                provider_name="local",
            )
        return key.as_posix()

    def _resolve(self, path: str) -> Path:
        return self._root / self._normalize(path)

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
