"""
Primary photo storage.

Two backends share one interface: SupabaseStorage talks to the hosted storage
REST API, LocalStorage keeps files under MEDIA_ROOT (development and tests).
Every failure surfaces as StorageError; callers decide whether to absorb it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx

from photo_intake.core.config import settings
from photo_intake.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class PhotoStorage:
    """Interface for object storage keyed by a relative path such as '1000/1700000000000-a1b2-pic.jpg'."""

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    async def download(self, path: str) -> bytes:
        raise NotImplementedError

    async def remove(self, path: str) -> None:
        raise NotImplementedError

    def public_url(self, path: str) -> str:
        raise NotImplementedError


class SupabaseStorage(PhotoStorage):
    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        headers = dict(self._headers)
        headers["Content-Type"] = content_type or "application/octet-stream"
        headers["x-upsert"] = "false"
        try:
            async with self._client() as client:
                response = await client.post(self._object_url(path), content=data, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Storage upload of %s failed: %s %s", path, e.response.status_code, e.response.text)
            raise StorageError("Failed to store photo") from e
        except httpx.RequestError as e:
            logger.error("Storage upload of %s failed: %s", path, e)
            raise StorageError("Failed to store photo") from e

    async def download(self, path: str) -> bytes:
        try:
            async with self._client() as client:
                response = await client.get(self._object_url(path), headers=self._headers)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            logger.warning("Storage download of %s failed: %s", path, e.response.status_code)
            raise StorageError("Failed to fetch photo") from e
        except httpx.RequestError as e:
            logger.warning("Storage download of %s failed: %s", path, e)
            raise StorageError("Failed to fetch photo") from e

    async def remove(self, path: str) -> None:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        try:
            async with self._client() as client:
                response = await client.request("DELETE", url, json={"prefixes": [path]}, headers=self._headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Storage removal of %s failed: %s", path, e)
            raise StorageError("Failed to remove photo") from e

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"


class LocalStorage(PhotoStorage):
    def __init__(self, root: str, url_prefix: str = "/media") -> None:
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}", 400)
        return target

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            # "xb": never overwrite an existing object
            with open(target, "xb") as fh:
                fh.write(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error("Local upload of %s failed: %s", path, e)
            raise StorageError("Failed to store photo") from e

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            logger.warning("Local download of %s failed: %s", path, e)
            raise StorageError("Failed to fetch photo") from e

    async def remove(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as e:
            logger.warning("Local removal of %s failed: %s", path, e)
            raise StorageError("Failed to remove photo") from e

    def public_url(self, path: str) -> str:
        return f"{self.url_prefix}/{quote(path)}"


_storage: Optional[PhotoStorage] = None


def build_storage() -> PhotoStorage:
    backend = settings.storage_backend.lower()
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise RuntimeError("STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        return SupabaseStorage(
            settings.supabase_url,
            settings.supabase_service_key,
            settings.storage_bucket,
            settings.http_timeout_seconds,
        )
    if backend == "local":
        return LocalStorage(settings.media_root)
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")


def get_storage() -> PhotoStorage:
    """FastAPI dependency returning the process-wide storage backend."""
    global _storage
    if _storage is None:
        _storage = build_storage()
        logger.info("Photo storage backend initialised: %s", type(_storage).__name__)
    return _storage
