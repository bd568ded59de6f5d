"""Image upload to object storage.

This module handles:
- The object storage interface used by the upload stage
- HTTP object storage (PUT with an optional bearer token)
- Local storage into the artifacts directory
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol

import httpx

from iso_creator.config import Settings
from iso_creator.errors import TransferError

logger = logging.getLogger(__name__)

# Chunk size for streaming uploads (bytes)
UPLOAD_CHUNK_SIZE = 1024 * 1024

KEY_PREFIX = "isos"


def object_key(job_id: str, image_path: Path) -> str:
    """Return the storage key for a job's image."""
    return f"{KEY_PREFIX}/{job_id}/{image_path.name}"


def join_url(base: str, key: str) -> str:
    """Join a base URL and a storage key."""
    return f"{base.rstrip('/')}/{key.lstrip('/')}"


class ObjectStorage(Protocol):
    """Destination for finished images."""

    async def upload(self, key: str, path: Path) -> str:
        """Upload a file and return its retrieval URL.

        Raises:
            TransferError: If the upload fails.
        """
        ...


async def _iter_file(path: Path, chunk_size: int = UPLOAD_CHUNK_SIZE) -> AsyncIterator[bytes]:
    with path.open("rb") as f:
        while chunk := await asyncio.to_thread(f.read, chunk_size):
            yield chunk


class HttpObjectStorage:
    """Upload images with HTTP PUT to an object storage endpoint.

    Args:
        base_url: Endpoint the key is appended to.
        public_url: Base URL used in download links (defaults to base_url).
        token: Optional bearer token.
        timeout: Upload timeout in seconds.
        client: Optional shared client; one is created per upload otherwise.
    """

    def __init__(
        self,
        base_url: str,
        public_url: str | None = None,
        token: str | None = None,
        timeout: float = 3600,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.public_url = public_url or base_url
        self.token = token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/octet-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _put(self, client: httpx.AsyncClient, url: str, path: Path) -> None:
        response = await client.put(
            url,
            content=_iter_file(path),
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def upload(self, key: str, path: Path) -> str:
        """Upload a file and return its public URL.

        Raises:
            TransferError: On HTTP, timeout or network errors.
        """
        url = join_url(self.base_url, key)
        logger.info("Uploading %s to %s", path, url)
        try:
            if self._client is not None:
                await self._put(self._client, url, path)
            else:
                async with httpx.AsyncClient() as client:
                    await self._put(client, url, path)
        except httpx.HTTPStatusError as e:
            raise TransferError(
                f"HTTP error uploading to {url}: "
                f"{e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.TimeoutException as e:
            raise TransferError(f"Timeout uploading to {url}") from e
        except httpx.RequestError as e:
            raise TransferError(f"Network error uploading to {url}: {e}") from e
        except OSError as e:
            raise TransferError(f"Failed to read {path}: {e}") from e

        return join_url(self.public_url, key)


class LocalObjectStorage:
    """Store images under a local directory.

    Args:
        root: Artifacts directory.
        public_url: Base URL the directory is served at; file:// URIs otherwise.
    """

    def __init__(self, root: Path, public_url: str | None = None) -> None:
        self.root = root
        self.public_url = public_url

    def _copy(self, path: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, dest)

    async def upload(self, key: str, path: Path) -> str:
        """Copy a file into the artifacts directory and return its URL.

        Raises:
            TransferError: If the copy fails.
        """
        dest = self.root / key
        try:
            await asyncio.to_thread(self._copy, path, dest)
        except OSError as e:
            raise TransferError(f"Failed to store {path} at {dest}: {e}") from e

        logger.info("Stored %s at %s", path.name, dest)
        if self.public_url:
            return join_url(self.public_url, key)
        return dest.resolve().as_uri()


def get_storage(settings: Settings) -> ObjectStorage:
    """Select the storage backend from settings.

    Args:
        settings: Application settings.

    Returns:
        HttpObjectStorage if storage_url is set, LocalObjectStorage otherwise.
    """
    if settings.storage_url:
        return HttpObjectStorage(
            settings.storage_url,
            public_url=settings.storage_public_url,
            token=settings.storage_token,
            timeout=settings.upload_timeout,
        )
    return LocalObjectStorage(settings.artifacts_dir, settings.storage_public_url)


__all__ = [
    "HttpObjectStorage",
    "LocalObjectStorage",
    "ObjectStorage",
    "get_storage",
    "join_url",
    "object_key",
]
