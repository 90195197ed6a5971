"""
Database models for slotkeeper.

- Party: projection of requester/provider profiles (role, rate, timezone)
- Booking: provider commitment with its price snapshot and archive flags
- Review: one review per completed booking
"""

from .booking import Booking
from .party import Party
from .review import Review

__all__ = ["Booking", "Party", "Review"]
