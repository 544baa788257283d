"""Unit-of-work helpers: one engine operation == one transaction."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from civiclean.errors import ConflictRetry

logger = structlog.get_logger()

T = TypeVar("T")


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back everything on any failure.

    Version-column mismatches and unique-key collisions from concurrent
    writers surface as ``ConflictRetry``.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.info("optimistic_lock_conflict", error=str(exc))
        msg = "Concurrent update detected, retry the operation"
        raise ConflictRetry(msg) from exc
    except IntegrityError as exc:
        await db.rollback()
        logger.info("unique_key_conflict", error=str(exc.orig))
        msg = "Concurrent write detected, retry the operation"
        raise ConflictRetry(msg) from exc
    except BaseException:
        await db.rollback()
        raise


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
) -> T:
    """Run ``operation`` again (with a fresh read) after a ``ConflictRetry``."""
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConflictRetry:
            if attempt == attempts:
                raise
            logger.info("conflict_retry", attempt=attempt)
    msg = "attempts must be >= 1"
    raise ValueError(msg)
