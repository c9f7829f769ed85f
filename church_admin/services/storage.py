from __future__ import annotations

import logging
import secrets
import time
from typing import Any, Dict, List, Optional

import httpx
from fastapi import HTTPException

from ..config import settings

logger = logging.getLogger(__name__)

LOCAL_SENTINEL_PREFIX = "local:"


class StorageError(RuntimeError):
    """The object store answered, but refused the operation."""


def validate_image(content_type: Optional[str], size: int) -> None:
    """
    Reject anything that is not a small jpeg/png/webp before it leaves the process.
    """
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype not in settings.allowed_image_types:
        allowed = ", ".join(settings.allowed_image_types)
        raise HTTPException(status_code=400, detail=f"Invalid image type '{ctype or 'unknown'}'. Allowed: {allowed}")
    if size > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes / (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"Image is too large (max {limit_mb:g}MB)")


def _unique_name(filename: str) -> str:
    """<epoch-ms>-<random>.<ext>, keeping the uploaded extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"


class StorageClient:
    """
    Thin async client for a Supabase-compatible storage REST API.

    - Bucket admin (list/create) and uploads use the service key.
    - Public URLs are derived, not fetched.
    - transport is injectable so tests can use httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_key: str,
        *,
        bucket: str = "member-photos",
        timeout_s: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_key = service_key
        self.bucket = bucket
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            timeout=self.timeout_s,
            headers={
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
            },
            transport=self._transport,
        )

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path.lstrip('/')}"

    async def ensure_bucket(self) -> bool:
        """
        Make sure the bucket exists (public, image types, size cap).
        Returns True when the bucket is ready.
        """
        async with self._client() as client:
            r = await client.get("/bucket")
            r.raise_for_status()
            buckets: List[Dict[str, Any]] = r.json() or []
            if any(b.get("name") == self.bucket or b.get("id") == self.bucket for b in buckets):
                return True

            logger.info("Creating storage bucket %s", self.bucket)
            r = await client.post(
                "/bucket",
                json={
                    "id": self.bucket,
                    "name": self.bucket,
                    "public": True,
                    "allowed_mime_types": list(settings.allowed_image_types),
                    "file_size_limit": settings.max_image_bytes,
                },
            )
            r.raise_for_status()
            return True

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        *,
        folder: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Upload bytes under <folder>/<unique-name>. Returns {"url", "path"}.
        """
        name = _unique_name(filename)
        path = f"{folder.strip('/')}/{name}" if folder else name

        async with self._client() as client:
            r = await client.post(
                f"/object/{self.bucket}/{path}",
                content=data,
                headers={
                    "Content-Type": content_type,
                    "Cache-Control": "3600",
                    "x-upsert": "false",
                },
            )
            if r.status_code >= 400:
                raise StorageError(f"{r.status_code} {r.text[:200]}")

        return {"url": self.public_url(path), "path": path}

    async def delete_image(self, path: str) -> bool:
        async with self._client() as client:
            r = await client.request("DELETE", f"/object/{self.bucket}", json={"prefixes": [path]})
            if r.status_code >= 400:
                logger.warning("Storage delete failed for %s: %s", path, r.status_code)
                return False
        return True


def get_storage() -> Optional[StorageClient]:
    """
    FastAPI dependency. None when storage isn't configured.
    """
    if not settings.storage_configured:
        return None
    return StorageClient(
        settings.storage_url,
        settings.storage_anon_key,
        settings.storage_service_key,
        bucket=settings.storage_bucket,
        timeout_s=settings.http_timeout_s,
    )


async def store_profile_image(
    storage: Optional[StorageClient],
    data: bytes,
    filename: str,
    content_type: Optional[str],
) -> str:
    """
    Validate and upload a profile image, returning the value for Member.profile_image.

    - Storage not configured / unreachable: logs a warning and returns
      "local:<filename>" (no file is kept anywhere).
    - Storage reachable but refusing: raises StorageError.
    """
    validate_image(content_type, len(data))

    if storage is None:
        logger.warning("Object storage is not configured; storing local image sentinel for %s", filename)
        return f"{LOCAL_SENTINEL_PREFIX}{filename}"

    try:
        await storage.ensure_bucket()
        result = await storage.upload_image(
            data,
            filename,
            (content_type or "application/octet-stream").split(";")[0].strip(),
            folder=settings.storage_folder,
        )
    except httpx.TransportError as e:
        logger.warning("Object storage unreachable (%s); storing local image sentinel for %s", e, filename)
        return f"{LOCAL_SENTINEL_PREFIX}{filename}"
    except httpx.HTTPStatusError as e:
        raise StorageError(f"{e.response.status_code} {e.response.text[:200]}") from e

    return result["url"]
