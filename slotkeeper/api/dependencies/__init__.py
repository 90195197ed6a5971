"""FastAPI dependencies: database session, caller identity, services."""

from .auth import get_current_party_id
from .database import get_db
from .services import (
    get_booking_service,
    get_clock,
    get_earnings_service,
    get_provider_directory,
    get_review_service,
)

__all__ = [
    "get_booking_service",
    "get_clock",
    "get_current_party_id",
    "get_db",
    "get_earnings_service",
    "get_provider_directory",
    "get_review_service",
]
