"""
Photo object store with provider abstraction.

Supports Supabase Storage (default) and a local directory for development.
Provider is selected via configuration. Object paths are scoped by the
uploading user: ``<user_id>/<uuid>.<ext>``.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

import httpx
import structlog

from civiclean.config import get_settings

logger = structlog.get_logger()

ALLOWED_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def scoped_path(user_id: str, content_type: str) -> str:
    """Build a new caller-scoped object path for an upload."""
    ext = ALLOWED_CONTENT_TYPES.get(content_type)
    if ext is None:
        msg = f"Unsupported content type: {content_type}"
        raise ValueError(msg)
    return f"{user_id}/{uuid.uuid4().hex}.{ext}"


def is_scoped_to(path: str, user_id: str) -> bool:
    """True if ``path`` lies under ``<user_id>/`` with no parent-directory segments."""
    prefix = f"{user_id}/"
    if not user_id or not path.startswith(prefix) or len(path) == len(prefix):
        return False
    return ".." not in path.split("/")


class BasePhotoStore(ABC):
    """Abstract base class for photo blob storage."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store a blob and return the reference clients should keep."""
        ...

    @abstractmethod
    async def delete(self, refs: list[str]) -> None:
        """Delete blobs by reference. Raises on failure."""
        ...

    def path_from_ref(self, ref: str) -> str:
        return ref


class SupabasePhotoStore(BasePhotoStore):
    """Store photos in a Supabase Storage bucket via its REST API."""

    def __init__(self, base_url: str, service_key: str, bucket: str, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    @property
    def public_prefix(self) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/"

    def path_from_ref(self, ref: str) -> str:
        if ref.startswith(self.public_prefix):
            return ref[len(self.public_prefix):]
        return ref

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                headers={**self._headers, "Content-Type": content_type, "x-upsert": "false"},
                content=data,
            )
            response.raise_for_status()
        logger.info("photo_uploaded", path=path, provider="supabase")
        return f"{self.public_prefix}{path}"

    async def delete(self, refs: list[str]) -> None:
        if not refs:
            return
        paths = [self.path_from_ref(ref) for ref in refs]
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                headers=self._headers,
                json={"prefixes": paths},
            )
            response.raise_for_status()
        logger.info("photos_deleted", count=len(paths), provider="supabase")


class LocalPhotoStore(BasePhotoStore):
    """Store photos under a local directory (development only)."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            msg = f"Path escapes photo store root: {path}"
            raise ValueError(msg)
        return target

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, data)
        logger.info("photo_uploaded", path=path, provider="local")
        return path

    async def delete(self, refs: list[str]) -> None:
        for ref in refs:
            self._resolve(self.path_from_ref(ref)).unlink(missing_ok=True)
        logger.info("photos_deleted", count=len(refs), provider="local")


def _create_store() -> BasePhotoStore:
    """Create photo store based on configuration."""
    settings = get_settings()
    provider_name = settings.photo_store_provider.lower()

    if provider_name == "supabase":
        return SupabasePhotoStore(
            base_url=settings.photo_store_url,
            service_key=settings.photo_store_service_key,
            bucket=settings.photo_store_bucket,
            timeout=settings.photo_store_timeout_seconds,
        )
    if provider_name == "local":
        return LocalPhotoStore(root=settings.photo_store_local_root)
    msg = f"Unsupported photo store provider: {provider_name}"
    raise ValueError(msg)


@lru_cache
def get_photo_store() -> BasePhotoStore:
    """Get the configured photo store (FastAPI dependency)."""
    return _create_store()


async def delete_photos_best_effort(
    store: BasePhotoStore,
    refs: list[str],
    ticket_id: str,
    owner: str | None = None,
) -> bool:
    """Delete photos, logging instead of raising on failure.

    With ``owner`` set, only refs under that user's prefix are deleted; any
    other ref is skipped and logged.
    """
    if owner is not None:
        foreign = [ref for ref in refs if not is_scoped_to(store.path_from_ref(ref), owner)]
        if foreign:
            logger.warning("photo_delete_skipped_foreign", ticket_id=ticket_id, owner=owner, refs=foreign)
        refs = [ref for ref in refs if ref not in foreign]
    if not refs:
        return True
    try:
        await store.delete(refs)
    except Exception:
        logger.warning("photo_delete_failed", ticket_id=ticket_id, refs=refs, exc_info=True)
        return False
    return True
