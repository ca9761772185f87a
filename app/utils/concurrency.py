# app/utils/concurrency.py
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import MAX_WRITE_RETRIES
from app.core.exceptions import ConflictException

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_versioned_write(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    label: str,
    attempts: Optional[int] = None,
) -> T:
    """
    Run ``operation`` (read, apply rule, commit) until its versioned UPDATE wins.

    ``operation`` must re-read the row on every call. A concurrent writer that
    bumped the version first makes the flush raise ``StaleDataError``; the
    session is rolled back and the rule is re-applied to the fresh row.
    """
    attempts = attempts or MAX_WRITE_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except StaleDataError:
            await db.rollback()
            logger.info("Concurrent update on %s, retrying (%d/%d)", label, attempt, attempts)
    logger.warning("Gave up updating %s after %d attempts", label, attempts)
    raise ConflictException(f"{label} was modified concurrently, please retry")
