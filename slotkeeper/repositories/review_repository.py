"""
Review Repository for slotkeeper.

Besides plain review reads and writes this owns the review-candidate query:
completed, ended bookings of a requester with no review attached.
"""

from datetime import datetime
import logging
from typing import Dict, Iterator, List, Optional, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.review import Review
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository[Review]):
    """Repository for reviews and review eligibility."""

    def __init__(self, db: Session):
        super().__init__(db, Review)

    def exists_for_booking(self, booking_id: str) -> bool:
        return self.exists(booking_id=booking_id)

    def iter_candidate_bookings(
        self, requester_id: str, now: datetime, limit: Optional[int] = None
    ) -> Iterator[Booking]:
        """
        Completed bookings of ``requester_id`` that ended before ``now`` and have no review.

        Ordered by end ascending, then id, so callers get a stable order.
        """
        try:
            query = (
                self.db.query(Booking)
                .outerjoin(Review, Review.booking_id == Booking.id)
                .filter(
                    Booking.requester_id == requester_id,
                    Booking.status == BookingStatus.COMPLETED.value,
                    Booking.end_at < now,
                    Review.id.is_(None),
                )
                .order_by(Booking.end_at.asc(), Booking.id.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            rows = cast(List[Booking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading review candidates for {requester_id}: {str(e)}")
            raise RepositoryException(f"Failed to load review candidates: {str(e)}") from e
        yield from rows

    def list_for_provider(self, provider_id: str, limit: int = 20, offset: int = 0) -> List[Review]:
        """Newest reviews first."""
        try:
            return cast(
                List[Review],
                self.db.query(Review)
                .filter(Review.provider_id == provider_id)
                .order_by(Review.created_at.desc(), Review.id.desc())
                .offset(offset)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing reviews for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to list reviews: {str(e)}") from e

    def rating_counts(self, provider_id: str) -> Dict[int, int]:
        """Number of reviews per star value for a provider."""
        try:
            rows = (
                self.db.query(Review.rating, func.count(Review.id))
                .filter(Review.provider_id == provider_id)
                .group_by(Review.rating)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating ratings for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to aggregate ratings: {str(e)}") from e
        return {int(rating): int(count) for rating, count in rows}
