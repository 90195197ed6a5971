"""
Retry of transient storage contention around whole transactions.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from slotkeeper.core.exceptions import RepositoryException, ServiceException
from slotkeeper.database import is_retryable_db_error, with_db_retry


def _operational(message: str) -> OperationalError:
    return OperationalError("INSERT INTO bookings ...", {}, Exception(message))


@pytest.fixture(autouse=True)
def _no_sleep():
    with patch("slotkeeper.database.time.sleep"):
        yield


def test_retryable_messages():
    assert is_retryable_db_error(_operational("database is locked"))
    assert is_retryable_db_error(_operational("deadlock detected"))
    assert is_retryable_db_error(_operational("could not serialize access due to concurrent update"))
    assert not is_retryable_db_error(_operational("no such table: bookings"))


def test_retries_until_success():
    calls = []

    def _flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _operational("database is locked")
        return "ok"

    assert with_db_retry("create_booking", _flaky, max_attempts=3) == "ok"
    assert len(calls) == 3


def test_wrapped_errors_are_retried_through_their_cause():
    calls = []

    def _flaky():
        calls.append(1)
        if len(calls) == 1:
            try:
                raise _operational("deadlock detected")
            except OperationalError as exc:
                raise ServiceException("Database operation failed") from exc
        return "ok"

    assert with_db_retry("create_booking", _flaky) == "ok"
    assert len(calls) == 2


def test_exhaustion_surfaces_service_exception():
    def _always_locked():
        try:
            raise _operational("database is locked")
        except OperationalError as exc:
            raise RepositoryException("Failed to create Booking") from exc

    with pytest.raises(ServiceException) as exc_info:
        with_db_retry("create_booking", _always_locked, max_attempts=2)
    assert exc_info.value.code == "STORAGE_CONTENTION"


def test_non_transient_errors_are_not_retried():
    calls = []

    def _broken():
        calls.append(1)
        raise _operational("no such table: bookings")

    with pytest.raises(OperationalError):
        with_db_retry("create_booking", _broken)
    assert len(calls) == 1


def test_domain_errors_pass_straight_through():
    calls = []

    def _rejected():
        calls.append(1)
        raise ServiceException("not a storage problem")

    with pytest.raises(ServiceException, match="not a storage problem"):
        with_db_retry("create_booking", _rejected)
    assert len(calls) == 1
