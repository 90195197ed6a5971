"""
Per-provider schedule lock.

Creating a booking checks the provider's calendar and then inserts; both steps
run while this lock is held so two requests for the same provider cannot both
pass the check. Threads in one process serialise on an in-memory lock; when a
Redis URL is configured a Redis lock is layered on top so separate API
workers serialise as well. Unlike the rate-limit locks, these fail closed: a
lock that cannot be confirmed is treated as contention.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, List, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import SchedulingContentionException

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(provider_id: str) -> str:
    return f"slotkeeper:lock:provider:{provider_id}:schedule"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is None:
            _SYNC_REDIS = Redis.from_url(settings.redis_url, decode_responses=True)
        return _SYNC_REDIS


class _LocalLockRegistry:
    """Reference-counted map of provider id to threading.Lock."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._locks[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[bool]:
        lock = self._checkout(key)
        try:
            acquired = lock.acquire(timeout=max(timeout, 0.0))
            if not acquired:
                yield False
                return
            try:
                yield True
            finally:
                lock.release()
        finally:
            self._checkin(key)


class ProviderScheduleLock:
    """
    Serialises calendar writes per provider.

    Usage:
        with provider_lock.hold(provider_id):
            # check conflicts and insert
    """

    def __init__(
        self,
        *,
        redis_client: Optional[Redis] = None,
        use_redis: Optional[bool] = None,
        wait_seconds: Optional[float] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._local = _LocalLockRegistry()
        self._redis_client = redis_client
        self._use_redis = use_redis if use_redis is not None else (
            redis_client is not None or bool(settings.redis_url)
        )
        self.wait_seconds = (
            wait_seconds if wait_seconds is not None else settings.provider_lock_wait_seconds
        )
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.provider_lock_ttl_seconds

    def _redis(self) -> Optional[Redis]:
        if not self._use_redis:
            return None
        return self._redis_client or _get_sync_redis()

    @contextmanager
    def hold(self, provider_id: str) -> Iterator[None]:
        started = time.monotonic()
        with self._local.hold(provider_id, self.wait_seconds) as acquired:
            waited = time.monotonic() - started
            if not acquired:
                prometheus_metrics.record_provider_lock("local", "timeout", waited)
                logger.warning(
                    "provider_lock_timeout",
                    extra={"provider_id": provider_id, "backend": "local", "waited": waited},
                )
                raise SchedulingContentionException(provider_id, round(waited, 3))
            prometheus_metrics.record_provider_lock("local", "acquired", waited)

            client = self._redis()
            if client is None:
                yield
                return

            remaining = max(self.wait_seconds - waited, 0.0)
            with self._hold_redis(client, provider_id, remaining, started):
                yield

    @contextmanager
    def _hold_redis(
        self, client: Redis, provider_id: str, wait: float, started: float
    ) -> Iterator[None]:
        lock = client.lock(
            _lock_key(provider_id),
            timeout=self.ttl_seconds,
            blocking_timeout=wait,
        )
        try:
            acquired = lock.acquire(blocking=True)
        except RedisError as exc:
            prometheus_metrics.record_provider_lock("redis", "error")
            logger.error(
                "provider_lock_redis_error",
                extra={
                    "provider_id": provider_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise SchedulingContentionException(
                provider_id, round(time.monotonic() - started, 3)
            ) from exc

        waited = time.monotonic() - started
        if not acquired:
            prometheus_metrics.record_provider_lock("redis", "timeout", waited)
            logger.warning(
                "provider_lock_timeout",
                extra={"provider_id": provider_id, "backend": "redis", "waited": waited},
            )
            raise SchedulingContentionException(provider_id, round(waited, 3))

        prometheus_metrics.record_provider_lock("redis", "acquired", waited)
        try:
            yield
        finally:
            try:
                lock.release()
            except (LockError, RedisError) as exc:
                # expired under us; the transaction already finished
                logger.warning(
                    "provider_lock_release_failed",
                    extra={
                        "provider_id": provider_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )


_default_lock: Optional[ProviderScheduleLock] = None
_default_lock_guard = threading.Lock()


def get_provider_lock() -> ProviderScheduleLock:
    """Process-wide lock instance shared by every BookingService."""
    global _default_lock
    if _default_lock is None:
        with _default_lock_guard:
            if _default_lock is None:
                _default_lock = ProviderScheduleLock()
    return _default_lock
