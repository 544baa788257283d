"""Photo upload endpoint."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.conftest import OTHER, auth_headers


@pytest.mark.asyncio
async def test_upload_is_scoped_to_caller(client: AsyncClient, photo_store) -> None:
    response = await client.post(
        "/api/v1/photos",
        content=b"\xff\xd8\xff\xe0fake-jpeg",
        headers={**auth_headers(OTHER), "Content-Type": "image/jpeg"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["path"].startswith(f"{OTHER}/")
    assert data["path"].endswith(".jpg")
    assert data["ref"] == f"mem://{data['path']}"
    assert photo_store.objects[data["path"]] == b"\xff\xd8\xff\xe0fake-jpeg"


@pytest.mark.asyncio
async def test_unsupported_type(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/photos",
        content=b"GIF89a",
        headers={**auth_headers(OTHER), "Content-Type": "image/gif"},
    )
    assert response.status_code == 415


@pytest.mark.asyncio
async def test_empty_and_oversized(client: AsyncClient, monkeypatch) -> None:
    headers = {**auth_headers(OTHER), "Content-Type": "image/png"}
    response = await client.post("/api/v1/photos", content=b"", headers=headers)
    assert response.status_code == 422

    monkeypatch.setenv("CIVICLEAN_PHOTO_MAX_BYTES", "8")
    from civiclean.config import get_settings

    get_settings.cache_clear()
    response = await client.post("/api/v1/photos", content=b"0123456789", headers=headers)
    assert response.status_code == 413


@pytest.mark.asyncio
async def test_streamed_upload_stops_at_limit(client: AsyncClient, photo_store, monkeypatch) -> None:
    monkeypatch.setenv("CIVICLEAN_PHOTO_MAX_BYTES", "8")
    from civiclean.config import get_settings

    get_settings.cache_clear()

    async def chunks():
        for _ in range(4):
            yield b"0123"

    response = await client.post(
        "/api/v1/photos",
        content=chunks(),
        headers={**auth_headers(OTHER), "Content-Type": "image/jpeg"},
    )
    assert response.status_code == 413
    assert photo_store.objects == {}
