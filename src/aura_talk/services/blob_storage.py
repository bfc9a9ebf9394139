"""Avatar blob storage on the local filesystem."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from aura_talk.core.exceptions import ExternalServiceError
from aura_talk.core.settings import settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class BlobStorageError(ExternalServiceError):
    """Raised when an upload cannot be stored."""


class BlobTooLargeError(BlobStorageError):
    """Raised when an upload exceeds the configured size limit."""


class LocalBlobStorage:
    """Stores one blob per uid and hands back a URL for it.

    Uploads are written to a temporary file and moved into place only once
    complete, so a failed upload never replaces the previous blob.
    """

    def __init__(
        self,
        root: str | Path | None = None,
        base_url: str | None = None,
        *,
        max_bytes: int | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self.root = Path(root or settings.avatar_storage_dir)
        self.base_url = (base_url or settings.avatar_base_url).rstrip("/")
        self.max_bytes = max_bytes or settings.avatar_max_bytes
        self.chunk_size = chunk_size or settings.avatar_chunk_size

    def path_for(self, key: str) -> Path:
        return self.root / key

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def upload(
        self,
        key: str,
        stream: BinaryIO,
        *,
        size_hint: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Copy ``stream`` into storage under ``key`` and return its URL.

        Args:
            key: Storage key (the owner's uid).
            stream: Readable binary stream.
            size_hint: Expected total size, used for progress fractions.
            progress: Called with fractions in ``[0, 1]``; always ends at 1.0.

        Raises:
            BlobTooLargeError: If the payload exceeds ``max_bytes``.
            BlobStorageError: If the filesystem write fails.
        """
        if size_hint is not None and size_hint > self.max_bytes:
            raise BlobTooLargeError(f"Upload exceeds {self.max_bytes} bytes")

        target = self.path_for(key)
        partial = target.with_name(f".{target.name}.part")
        written = 0
        if progress:
            progress(0.0)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as handle:
                while chunk := stream.read(self.chunk_size):
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise BlobTooLargeError(f"Upload exceeds {self.max_bytes} bytes")
                    handle.write(chunk)
                    if progress and size_hint:
                        progress(min(written / size_hint, 1.0))
            os.replace(partial, target)
        except BlobStorageError:
            partial.unlink(missing_ok=True)
            raise
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise BlobStorageError(f"Failed to store blob {key}: {exc}") from exc

        if progress:
            progress(1.0)
        logger.info("Stored blob %s (%d bytes)", key, written)
        return self.url_for(key)


def get_blob_storage() -> LocalBlobStorage:
    """Return a storage instance configured from settings."""
    return LocalBlobStorage()
