# tests/conftest.py
"""
Pytest configuration for slotkeeper.

Every test gets a fresh in-memory SQLite database (StaticPool, so the API's
worker threads share the one connection), a controllable clock pinned to a
Wednesday afternoon, and its own provider lock and event publisher.
"""

import os

# Set testing mode BEFORE any slotkeeper imports
os.environ["SLOTKEEPER_IS_TESTING"] = "true"
os.environ["SLOTKEEPER_DATABASE_URL"] = "sqlite://"
os.environ.pop("SLOTKEEPER_REDIS_URL", None)
os.environ.pop("REDIS_URL", None)

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from slotkeeper.api.dependencies.database import get_db
from slotkeeper.api.dependencies.services import get_clock
from slotkeeper.core.config import settings
from slotkeeper.core.enums import BookingStatus, PartyRole
from slotkeeper.core.provider_lock import ProviderScheduleLock
from slotkeeper.core.ulid_helper import generate_ulid
from slotkeeper.database import Base
from slotkeeper.events.publisher import BookingEventPublisher
from slotkeeper.main import app
from slotkeeper.models import Booking, Party
from slotkeeper.services.booking_service import BookingService
from slotkeeper.services.earnings_service import EarningsService
from slotkeeper.services.pricing_service import PricingCalculator
from slotkeeper.services.review_service import ReviewService

settings.is_testing = True

# Wednesday 2026-03-04 15:00 UTC; the week (Sunday start) began 2026-03-01.
NOW = datetime(2026, 3, 4, 15, 0, tzinfo=timezone.utc)


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(test_engine, "connect", _enable_foreign_keys)
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)


class MutableClock:
    """Clock whose current instant tests can move."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(NOW)


@pytest.fixture
def provider_lock() -> ProviderScheduleLock:
    return ProviderScheduleLock(use_redis=False, wait_seconds=2.0)


@pytest.fixture
def publisher() -> BookingEventPublisher:
    return BookingEventPublisher()


@pytest.fixture
def published_events(publisher: BookingEventPublisher) -> List[Tuple[str, Dict[str, Any]]]:
    received: List[Tuple[str, Dict[str, Any]]] = []
    publisher.subscribe(lambda event_type, payload: received.append((event_type, payload)))
    return received


def _make_party(
    db: Session,
    role: PartyRole,
    *,
    name: str,
    rate: Optional[str] = None,
    tz: Optional[str] = None,
) -> Party:
    party = Party(
        id=generate_ulid(),
        role=role.value,
        display_name=name,
        hourly_rate=Decimal(rate) if rate is not None else None,
        timezone=tz,
    )
    db.add(party)
    db.commit()
    return party


@pytest.fixture
def provider(db: Session) -> Party:
    """Provider charging 100/h, calendar in UTC."""
    return _make_party(db, PartyRole.PROVIDER, name="Test Provider", rate="100.00", tz="UTC")


@pytest.fixture
def provider_50(db: Session) -> Party:
    """Provider charging 50/h."""
    return _make_party(db, PartyRole.PROVIDER, name="Budget Provider", rate="50.00", tz="UTC")


@pytest.fixture
def requester(db: Session) -> Party:
    return _make_party(db, PartyRole.REQUESTER, name="Test Requester")


@pytest.fixture
def other_requester(db: Session) -> Party:
    return _make_party(db, PartyRole.REQUESTER, name="Another Requester")


@pytest.fixture
def party_factory(db: Session) -> Callable[..., Party]:
    def _factory(role: PartyRole = PartyRole.PROVIDER, **kwargs: Any) -> Party:
        kwargs.setdefault("name", "Factory Party")
        return _make_party(db, role, **kwargs)

    return _factory


@pytest.fixture
def booking_factory(db: Session) -> Callable[..., Booking]:
    """
    Insert a booking row directly, bypassing the service checks.

    Used to put bookings into states (completed, ended in the past, hidden)
    that would otherwise need a clock dance through the lifecycle.
    """

    def _factory(
        requester: Party,
        provider: Party,
        start: datetime,
        end: datetime,
        status: BookingStatus = BookingStatus.PENDING,
        **overrides: Any,
    ) -> Booking:
        rate = provider.hourly_rate if provider.hourly_rate is not None else Decimal("0")
        snapshot = PricingCalculator().snapshot(start, end, rate)
        values: Dict[str, Any] = dict(
            id=generate_ulid(),
            requester_id=requester.id,
            provider_id=provider.id,
            start_at=start,
            end_at=end,
            booking_date=start.astimezone(timezone.utc).date(),
            status=BookingStatus(status).value,
            rate_snapshot=snapshot.rate_snapshot,
            duration_hours=snapshot.duration_hours,
            total_price=snapshot.total_price,
            hidden_for_requester=False,
            hidden_for_provider=False,
            created_at=start - timedelta(days=2),
        )
        values.update(overrides)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        return booking

    return _factory


@pytest.fixture
def booking_service(
    db: Session,
    clock: MutableClock,
    provider_lock: ProviderScheduleLock,
    publisher: BookingEventPublisher,
) -> BookingService:
    return BookingService(db, provider_lock=provider_lock, event_publisher=publisher, clock=clock)


@pytest.fixture
def review_service(db: Session, clock: MutableClock, publisher: BookingEventPublisher) -> ReviewService:
    return ReviewService(db, event_publisher=publisher, clock=clock)


@pytest.fixture
def earnings_service(db: Session, clock: MutableClock) -> EarningsService:
    return EarningsService(db, clock=clock)


@pytest.fixture
def client(db: Session, clock: MutableClock):
    """Create a test client with the test database and clock."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    # Don't use context manager - create directly
    test_client = TestClient(app)

    yield test_client

    # Cleanup
    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def auth_headers() -> Callable[[Party], Dict[str, str]]:
    """Gateway identity header for a party."""

    def _headers(party: Party) -> Dict[str, str]:
        return {"X-Party-Id": party.id}

    return _headers
