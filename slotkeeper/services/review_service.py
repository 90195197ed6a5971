# slotkeeper/services/review_service.py
"""
Review Service for slotkeeper

Review eligibility is derived, never stored: a requester's candidates are
their completed, already-ended bookings that have no review yet, recomputed
from the booking store on every call. Creating a review re-checks the same
conditions, and the unique booking_id constraint settles concurrent
duplicates.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingStatus
from ..core.exceptions import (
    DuplicateReviewException,
    ForbiddenException,
    NotFoundException,
    RepositoryException,
    ReviewNotAllowedException,
    ServiceException,
    ValidationException,
)
from ..core.timezone_utils import Clock
from ..events.booking_events import ReviewCreated
from ..events.publisher import BookingEventPublisher, get_event_publisher
from ..models.review import Review
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.review_repository import ReviewRepository
from .base import BaseService

logger = logging.getLogger(__name__)

# SQLite names the column, PostgreSQL names the constraint
_DUPLICATE_REVIEW_MARKERS = ("uq_reviews_booking", "reviews.booking_id")


def _is_duplicate_review(error: Optional[BaseException]) -> bool:
    """Whether ``error`` is the one-review-per-booking unique violation."""
    if not isinstance(error, IntegrityError):
        return False
    message = str(error.orig).lower()
    return any(marker in message for marker in _DUPLICATE_REVIEW_MARKERS)


@dataclass(frozen=True)
class ReviewCandidate:
    booking_id: str
    provider_id: str
    end_at: datetime


@dataclass(frozen=True)
class RatingSummary:
    provider_id: str
    average: Optional[float]
    count: int
    distribution: Dict[int, int]


class ReviewService(BaseService):
    """Business logic for reviews and review eligibility."""

    def __init__(
        self,
        db: Session,
        *,
        repository: Optional[ReviewRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        event_publisher: Optional[BookingEventPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.repository = repository or RepositoryFactory.create_review_repository(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)
        self.event_publisher = event_publisher or get_event_publisher()

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def iter_review_candidates(
        self, requester_id: str, limit: Optional[int] = None
    ) -> Iterator[ReviewCandidate]:
        """Lazily yield the requester's reviewable bookings, oldest end first."""
        now = self.now()
        for booking in self.repository.iter_candidate_bookings(requester_id, now, limit):
            yield ReviewCandidate(
                booking_id=booking.id,
                provider_id=booking.provider_id,
                end_at=booking.end_at,
            )

    @BaseService.measure_operation("list_review_candidates")
    def list_review_candidates(
        self, requester_id: str, limit: Optional[int] = None
    ) -> List[ReviewCandidate]:
        return list(self.iter_review_candidates(requester_id, limit))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _validate_content(self, rating: int, comment: Optional[str]) -> Optional[str]:
        if isinstance(rating, bool) or not isinstance(rating, int) or rating < 1 or rating > 5:
            raise ValidationException(
                "Rating must be an integer between 1 and 5", details={"rating": rating}
            )
        if comment is None:
            return None
        text = comment.strip()
        max_length = settings.review_comment_max_length
        if len(text) > max_length:
            raise ValidationException(
                f"Comment cannot exceed {max_length} characters",
                details={"length": len(text), "max_length": max_length},
            )
        return text or None

    @BaseService.measure_operation("create_review")
    def create_review(
        self,
        booking_id: str,
        requester_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Store the review for a completed booking.

        Checks run in this order: booking exists, no review yet, caller is the
        requester, booking completed and ended, then rating/comment content.

        Raises:
            NotFoundException: booking missing
            DuplicateReviewException: booking already reviewed (whoever asks)
            ForbiddenException: caller is not the booking's requester
            ReviewNotAllowedException: booking not completed, or not ended yet
            ValidationException: rating outside 1..5 or comment too long
        """
        self.log_operation("create_review", booking_id=booking_id, requester_id=requester_id)

        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )

        if self.repository.exists_for_booking(booking_id):
            raise DuplicateReviewException(booking_id)

        if booking.requester_id != requester_id:
            raise ForbiddenException(
                "Only the requester can review this booking",
                code="FORBIDDEN",
                details={"booking_id": booking_id},
            )

        now = self.now()
        if booking.status_enum is not BookingStatus.COMPLETED:
            raise ReviewNotAllowedException(
                "Only completed bookings can be reviewed",
                details={"booking_id": booking_id, "current_status": booking.status},
            )
        if not booking.end_at < now:
            raise ReviewNotAllowedException(
                "You can submit a review after the booking ends",
                details={"booking_id": booking_id, "end_at": booking.end_at.isoformat()},
            )

        text = self._validate_content(rating, comment)

        try:
            with self.transaction():
                review = self.repository.create(
                    booking_id=booking.id,
                    requester_id=booking.requester_id,
                    provider_id=booking.provider_id,
                    rating=rating,
                    comment=text,
                    created_at=now,
                )
        except RepositoryException as exc:
            if _is_duplicate_review(exc.__cause__):
                raise DuplicateReviewException(booking_id) from exc
            self.logger.error(f"Failed to store review for booking {booking_id}: {exc}")
            raise ServiceException(
                "Failed to store review", code="REVIEW_STORE_FAILED", details={"booking_id": booking_id}
            ) from exc

        self.event_publisher.publish(
            ReviewCreated(
                review_id=review.id,
                booking_id=review.booking_id,
                requester_id=review.requester_id,
                provider_id=review.provider_id,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
            )
        )
        return review

    # ------------------------------------------------------------------
    # Provider-facing reads
    # ------------------------------------------------------------------

    @BaseService.measure_operation("list_provider_reviews")
    def list_provider_reviews(self, provider_id: str, limit: int = 20, offset: int = 0) -> List[Review]:
        limit = max(1, min(int(limit), 100))
        offset = max(0, int(offset))
        return self.repository.list_for_provider(provider_id, limit=limit, offset=offset)

    @BaseService.measure_operation("rating_summary")
    def rating_summary(self, provider_id: str) -> RatingSummary:
        """Average (one decimal), count and 1..5 star distribution."""
        counts = self.repository.rating_counts(provider_id)
        distribution = {stars: counts.get(stars, 0) for stars in range(1, 6)}
        count = sum(distribution.values())
        if count == 0:
            return RatingSummary(provider_id=provider_id, average=None, count=0, distribution=distribution)

        total = sum(stars * n for stars, n in distribution.items())
        average = (Decimal(total) / Decimal(count)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return RatingSummary(
            provider_id=provider_id,
            average=float(average),
            count=count,
            distribution=distribution,
        )
