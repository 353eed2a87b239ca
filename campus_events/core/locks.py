import logging
from contextlib import contextmanager

import redis

from campus_events.core.config import (
    LOCK_BLOCKING_TIMEOUT_SECONDS,
    LOCK_TIMEOUT_SECONDS,
    get_redis_url,
)
from campus_events.services.errors import LockUnavailableError

logger = logging.getLogger(__name__)


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


@contextmanager
def redis_lock(key: str, *, timeout: float | None = None, blocking_timeout: float | None = None):
    """
    Hold a Redis lock for the duration of the block.
    Only one process (or thread) can run the block for a given key at a time.
    """
    if timeout is None:
        timeout = LOCK_TIMEOUT_SECONDS
    if blocking_timeout is None:
        blocking_timeout = LOCK_BLOCKING_TIMEOUT_SECONDS
    redis_client = get_redis_client()
    lock = redis_client.lock(key, timeout=timeout, blocking_timeout=blocking_timeout)

    try:
        acquired = lock.acquire(blocking=True, blocking_timeout=blocking_timeout)
    except redis.exceptions.LockError:  # type: ignore
        acquired = False
    if not acquired:
        logger.warning("Could not acquire lock %s", key)
        raise LockUnavailableError("Resource is busy, please try again.")

    try:
        yield
    finally:
        # Always release the lock
        try:
            lock.release()
        except redis.exceptions.LockNotOwnedError:  # type: ignore
            logger.warning("Lock %s expired before release", key)
