"""
Review model.

One review per booking, enforced by a unique constraint so concurrent
submissions cannot both land.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from ..core.config import REVIEW_COMMENT_MAX_LENGTH
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime


class Review(Base):
    """Per-booking review submitted by the requester."""

    __tablename__ = "reviews"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False)
    requester_id = Column(String(26), nullable=False, index=True)
    provider_id = Column(String(26), nullable=False)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_reviews_booking"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint(
            f"(comment IS NULL) OR (length(comment) <= {REVIEW_COMMENT_MAX_LENGTH})",
            name="ck_reviews_comment_length",
        ),
        Index("idx_reviews_provider_created", "provider_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.id}: booking={self.booking_id}, rating={self.rating}>"
