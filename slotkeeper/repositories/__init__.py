"""
Repository Pattern Implementation for slotkeeper

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic read/create operations
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Booking store, including compare-and-swap status updates
- ConflictCheckerRepository: Active bookings around an interval and the provider advisory lock
- ReviewRepository: Reviews, rating aggregates and review candidates
- PartyRepository: Read access to the party projection

Usage:
    from slotkeeper.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_booking_repository(db)
    bookings = repository.list_for_party(party_id, PartyRole.PROVIDER)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .party_repository import PartyRepository
from .review_repository import ReviewRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "PartyRepository",
    "RepositoryFactory",
    "ReviewRepository",
]
