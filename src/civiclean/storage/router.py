"""Photo upload endpoint.

Clients upload the raw image bytes first and pass the returned references
when reporting or completing a ticket.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from civiclean.auth.dependencies import get_current_caller
from civiclean.config import get_settings
from civiclean.dependencies import photo_store_dep
from civiclean.storage.photo_store import ALLOWED_CONTENT_TYPES, BasePhotoStore, scoped_path

router = APIRouter(prefix="/api/v1/photos", tags=["Photos"])


class PhotoUploadResponse(BaseModel):
    ref: str
    path: str


async def _read_limited(request: Request, limit: int) -> bytes:
    """Read the body, stopping with 413 as soon as it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail="Photo is too large")

    data = bytearray()
    async for chunk in request.stream():
        data.extend(chunk)
        if len(data) > limit:
            raise HTTPException(status_code=413, detail="Photo is too large")
    return bytes(data)


@router.post("", response_model=PhotoUploadResponse, status_code=201)
async def upload_photo(
    request: Request,
    caller_id: str = Depends(get_current_caller),
    photo_store: BasePhotoStore = Depends(photo_store_dep),
) -> PhotoUploadResponse:
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported content type: {content_type or 'none'}")

    data = await _read_limited(request, get_settings().photo_max_bytes)
    if not data:
        raise HTTPException(status_code=422, detail="Empty upload")

    path = scoped_path(caller_id, content_type)
    ref = await photo_store.upload(path, data, content_type)
    return PhotoUploadResponse(ref=ref, path=path)
