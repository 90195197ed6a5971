"""
Unit tests for provider_lock.py.

Coverage:
1) Key format
2) In-process serialisation per provider
3) Independence across providers
4) Redis layering, including fail-closed behaviour
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError

from slotkeeper.core.exceptions import SchedulingContentionException
from slotkeeper.core.provider_lock import ProviderScheduleLock, _lock_key, get_provider_lock

PROVIDER_A = "01J00000000000000000000PVA"
PROVIDER_B = "01J00000000000000000000PVB"


def _hold_in_thread(lock: ProviderScheduleLock, provider_id: str):
    """Take the lock on another thread and keep it until the returned event is set."""
    acquired = threading.Event()
    release = threading.Event()

    def _worker():
        with lock.hold(provider_id):
            acquired.set()
            release.wait(timeout=5)

    thread = threading.Thread(target=_worker)
    thread.start()
    assert acquired.wait(timeout=5)
    return thread, release


class TestKeyFormat:
    def test_lock_key_format(self):
        assert _lock_key("ABC") == "slotkeeper:lock:provider:ABC:schedule"


class TestLocalLock:
    def test_same_provider_waits_then_times_out(self):
        lock = ProviderScheduleLock(use_redis=False, wait_seconds=0.05)
        thread, release = _hold_in_thread(lock, PROVIDER_A)
        try:
            with pytest.raises(SchedulingContentionException) as exc_info:
                with lock.hold(PROVIDER_A):
                    pass
            assert exc_info.value.details["provider_id"] == PROVIDER_A
        finally:
            release.set()
            thread.join()

    def test_different_providers_do_not_block(self):
        lock = ProviderScheduleLock(use_redis=False, wait_seconds=0.05)
        thread, release = _hold_in_thread(lock, PROVIDER_A)
        try:
            with lock.hold(PROVIDER_B):
                pass
        finally:
            release.set()
            thread.join()

    def test_waiter_proceeds_once_holder_releases(self):
        lock = ProviderScheduleLock(use_redis=False, wait_seconds=2.0)
        thread, release = _hold_in_thread(lock, PROVIDER_A)
        threading.Timer(0.05, release.set).start()

        started = time.monotonic()
        with lock.hold(PROVIDER_A):
            waited = time.monotonic() - started
        thread.join()
        assert waited >= 0.04

    def test_registry_drops_released_entries(self):
        lock = ProviderScheduleLock(use_redis=False, wait_seconds=0.05)
        with lock.hold(PROVIDER_A):
            assert lock._local.active_keys() == 1
        assert lock._local.active_keys() == 0

    def test_released_after_exception(self):
        lock = ProviderScheduleLock(use_redis=False, wait_seconds=0.05)
        with pytest.raises(RuntimeError):
            with lock.hold(PROVIDER_A):
                raise RuntimeError("boom")
        with lock.hold(PROVIDER_A):
            pass


class TestRedisLayer:
    def _lock_with(self, redis_lock: MagicMock) -> ProviderScheduleLock:
        client = MagicMock()
        client.lock.return_value = redis_lock
        return ProviderScheduleLock(redis_client=client, wait_seconds=0.5, ttl_seconds=7)

    def test_acquires_and_releases_redis_lock(self):
        redis_lock = MagicMock()
        redis_lock.acquire.return_value = True
        lock = self._lock_with(redis_lock)

        with lock.hold(PROVIDER_A):
            redis_lock.release.assert_not_called()

        redis_lock.release.assert_called_once()
        lock._redis_client.lock.assert_called_once()
        args, kwargs = lock._redis_client.lock.call_args
        assert args[0] == _lock_key(PROVIDER_A)
        assert kwargs["timeout"] == 7
        assert 0 < kwargs["blocking_timeout"] <= 0.5

    def test_redis_timeout_is_contention(self):
        redis_lock = MagicMock()
        redis_lock.acquire.return_value = False
        lock = self._lock_with(redis_lock)

        with pytest.raises(SchedulingContentionException):
            with lock.hold(PROVIDER_A):
                pytest.fail("body must not run without the lock")

    def test_redis_error_fails_closed(self):
        redis_lock = MagicMock()
        redis_lock.acquire.side_effect = RedisConnectionError("down")
        lock = self._lock_with(redis_lock)

        with pytest.raises(SchedulingContentionException) as exc_info:
            with lock.hold(PROVIDER_A):
                pytest.fail("body must not run without the lock")
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    def test_release_failure_is_logged_not_raised(self):
        redis_lock = MagicMock()
        redis_lock.acquire.return_value = True
        redis_lock.release.side_effect = LockError("expired")
        lock = self._lock_with(redis_lock)

        with lock.hold(PROVIDER_A):
            pass

    def test_local_lock_released_after_redis_failure(self):
        redis_lock = MagicMock()
        redis_lock.acquire.side_effect = RedisConnectionError("down")
        lock = self._lock_with(redis_lock)

        with pytest.raises(SchedulingContentionException):
            with lock.hold(PROVIDER_A):
                pass
        assert lock._local.active_keys() == 0


def test_redis_not_used_without_url():
    with patch("slotkeeper.core.provider_lock.settings") as mock_settings:
        mock_settings.redis_url = None
        mock_settings.provider_lock_wait_seconds = 1.0
        mock_settings.provider_lock_ttl_seconds = 5
        lock = ProviderScheduleLock()
    assert lock._redis() is None


def test_default_lock_is_shared():
    assert get_provider_lock() is get_provider_lock()
