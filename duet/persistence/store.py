"""Blob store interface and file/memory drivers.

Router state lives in two JSON blobs (``router_config`` and
``performance_metrics``) that are read once at startup and rewritten in
full after every mutation. Drivers only move opaque text; serialization
belongs to the components that own the state.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_KEY = "router_config"
METRICS_KEY = "performance_metrics"


class StoreError(RuntimeError):
    """Raised when a blob cannot be read from or written to its backend."""


class BlobStore(ABC):
    """Async key -> text store used for durable router state."""

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Return the stored text for ``key``, or None when absent.

        Raises:
            StoreError: If the backend exists but cannot be read.
        """

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        """Replace the stored text for ``key``.

        Raises:
            StoreError: If the backend cannot be written.
        """

    async def close(self) -> None:
        """Release backend resources. No-op by default."""


class MemoryBlobStore(BlobStore):
    """Process-local store, mainly for tests and ephemeral routers."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> str | None:
        return self.blobs.get(key)

    async def write(self, key: str, value: str) -> None:
        self.blobs[key] = value


class JsonFileBlobStore(BlobStore):
    """One ``<key>.json`` file per blob inside a state directory.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written blob.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    async def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{key}.", suffix=".tmp",
            )
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError(f"Could not write {path}: {e}") from e
        logger.debug("Wrote %s (%d bytes)", path, len(value))
