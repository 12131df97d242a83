"""
Guard that keeps notification runs from overlapping.

The lock lives in Redis so it covers every process that can start a run:
the Celery worker(s) and the manual CLI.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator

import redis
from redis.exceptions import LockError, RedisError

from notifications.exceptions import RunInProgressError, RunLockError
from shared.config import RUN_LOCK_URL, get_run_lock_timeout

RUN_LOCK_NAME = "pharmacy-alerts:notification-run"


def get_run_lock(url: str | None = None, timeout: int | None = None) -> Any:
    """
    Redis lock shared by all notification runs.

    The lock expires after ``timeout`` seconds so a crashed run cannot block
    later runs forever.
    """
    client = redis.Redis.from_url(url or RUN_LOCK_URL)
    return client.lock(RUN_LOCK_NAME, timeout=timeout or get_run_lock_timeout())


@contextmanager
def hold_run_lock(
    lock: Any, on_busy: Callable[[], None] | None = None
) -> Iterator[None]:
    """
    Hold ``lock`` for the duration of one run without waiting for it.

    ``on_busy`` is called when another run already holds the lock.

    Raises:
        RunInProgressError: If another run holds the lock
        RunLockError: If the lock store cannot be reached
    """
    try:
        acquired = lock.acquire(blocking=False)
    except RedisError as e:
        raise RunLockError(f"Could not reach the run lock store: {e}") from e

    if not acquired:
        if on_busy is not None:
            on_busy()
        raise RunInProgressError("Notification job is already running")

    try:
        yield
    finally:
        try:
            lock.release()
        except (LockError, RedisError) as e:
            print(f"⚠️  Could not release run lock: {e}")
