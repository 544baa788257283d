"""Shared test fixtures.

Engine tests run against an on-disk SQLite database (aiosqlite) built from the
ORM metadata, so two sessions can race on the same rows. API tests drive the
app through httpx's ASGI transport with the session and photo store
dependencies overridden; Redis is never initialised, so rate limiting is
bypassed unless a test patches it in.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

TEST_JWT_SECRET = "test-secret-with-enough-bytes-for-hs256"

os.environ["CIVICLEAN_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["CIVICLEAN_JWT_ALGORITHM"] = "HS256"
os.environ["CIVICLEAN_SEED_MISSIONS_ON_STARTUP"] = "false"
os.environ["CIVICLEAN_LOG_FORMAT"] = "console"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from civiclean.config import get_settings  # noqa: E402

get_settings.cache_clear()

from civiclean.auth.jwt import reset_keys  # noqa: E402
from civiclean.database import get_session  # noqa: E402
from civiclean.db.base import Base  # noqa: E402
from civiclean.dependencies import photo_store_dep  # noqa: E402
from civiclean.main import create_app  # noqa: E402
from civiclean.storage.photo_store import BasePhotoStore  # noqa: E402

REPORTER = "user-reporter"
CLEANER = "user-cleaner"
OTHER = "user-other"

TICKET_FIELDS = {
    "title": "Basura en el parque",
    "description": "Bolsas de basura acumuladas junto a la entrada norte",
    "latitude": 19.4326,
    "longitude": -99.1332,
    "address": "Av. Reforma 123",
    "zone": "Center",
    "ticket_type": "general",
    "priority": "medium",
    "estimated_size": "medium",
    "before_photos": ["user-reporter/before.jpg"],
}


class RecordingPhotoStore(BasePhotoStore):
    """In-memory photo store that records uploads and deletions."""

    def __init__(self, fail_deletes: bool = False) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_deletes = fail_deletes

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.objects[path] = data
        return f"mem://{path}"

    def path_from_ref(self, ref: str) -> str:
        return ref.removeprefix("mem://")

    async def delete(self, refs: list[str]) -> None:
        if self.fail_deletes:
            msg = "storage unavailable"
            raise ConnectionError(msg)
        self.deleted.extend(refs)


def make_token(sub: str, expires_in: int = 3600, **claims: object) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "aud": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        **claims,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(sub: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test sees settings built from the current environment."""
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'civiclean.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for engine calls and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def photo_store() -> RecordingPhotoStore:
    return RecordingPhotoStore()


@pytest_asyncio.fixture
async def client(session_factory, photo_store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the SQLite test database."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[photo_store_dep] = lambda: photo_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def reported_ticket(db_session):
    """A fresh ticket in ``reported`` created by REPORTER."""
    from civiclean.tickets.service import report_ticket

    return await report_ticket(db_session, REPORTER, **TICKET_FIELDS)
