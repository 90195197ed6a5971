# slotkeeper/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Tests override
``get_clock`` and ``get_provider_directory`` to pin time and profiles.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.provider_lock import get_provider_lock
from ...core.timezone_utils import Clock, utc_now
from ...events.publisher import get_event_publisher
from ...services.booking_service import BookingService
from ...services.earnings_service import EarningsService
from ...services.provider_directory import PartyDirectory, ProviderDirectory
from ...services.review_service import ReviewService
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    """Clock used by services; overridden in tests."""
    return utc_now


def get_provider_directory(db: Session = Depends(get_db)) -> ProviderDirectory:
    """Provider lookup backed by the parties projection."""
    return PartyDirectory(db)


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    provider_directory: ProviderDirectory = Depends(get_provider_directory),
) -> BookingService:
    """Get BookingService instance with proper dependencies."""
    return BookingService(
        db,
        provider_directory=provider_directory,
        provider_lock=get_provider_lock(),
        event_publisher=get_event_publisher(),
        clock=clock,
    )


def get_review_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ReviewService:
    return ReviewService(db, event_publisher=get_event_publisher(), clock=clock)


def get_earnings_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    provider_directory: ProviderDirectory = Depends(get_provider_directory),
) -> EarningsService:
    return EarningsService(db, provider_directory=provider_directory, clock=clock)
