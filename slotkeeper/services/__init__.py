# slotkeeper/services/__init__.py
"""
Service layer.

Services own business rules and transactions; routes never touch
repositories directly.
"""

from .base import BaseService
from .booking_service import BookingService
from .conflict_checker import ConflictChecker
from .earnings_service import EarningsService
from .review_service import ReviewService

__all__ = [
    "BaseService",
    "BookingService",
    "ConflictChecker",
    "EarningsService",
    "ReviewService",
]
