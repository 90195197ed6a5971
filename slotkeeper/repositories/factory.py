# slotkeeper/repositories/factory.py
"""
Repository Factory for slotkeeper.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .party_repository import PartyRepository
    from .review_repository import ReviewRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking operations."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        """Create repository for reviews and review eligibility."""
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_party_repository(db: Session) -> "PartyRepository":
        """Create repository for the party projection."""
        from .party_repository import PartyRepository

        return PartyRepository(db)
