"""Shared FastAPI dependencies and request helpers."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from civiclean.config import get_settings
from civiclean.db.transaction import retry_on_conflict
from civiclean.storage.photo_store import BasePhotoStore, get_photo_store

T = TypeVar("T")


def photo_store_dep() -> BasePhotoStore:
    """Return the configured photo store (overridden in tests)."""
    return get_photo_store()


async def run_engine_op(operation: Callable[[], Awaitable[T]]) -> T:
    """Run an engine operation, retrying optimistic-lock conflicts with a fresh read."""
    return await retry_on_conflict(operation, attempts=get_settings().conflict_retry_attempts)
