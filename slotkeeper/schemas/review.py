"""
Review schemas for slotkeeper.

Rating range and comment length are checked by ReviewService, after the
eligibility checks, so a request for an already-reviewed booking is reported
as a duplicate whatever its body holds.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import AliasChoices, Field

from .base import RequestModel, StandardizedModel


class ReviewCreate(RequestModel):
    booking_id: str = Field(..., min_length=1, validation_alias=AliasChoices("booking_id", "bookingId"))
    rating: int
    comment: Optional[str] = Field(None, validation_alias=AliasChoices("comment", "text", "review_text"))


class ReviewResponse(StandardizedModel):
    id: str
    booking_id: str
    requester_id: str
    provider_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewCandidateResponse(StandardizedModel):
    booking_id: str
    provider_id: str
    end_at: datetime


class ReviewCandidateListResponse(StandardizedModel):
    items: List[ReviewCandidateResponse]
    total: int


class RatingSummaryResponse(StandardizedModel):
    provider_id: str
    average: Optional[float] = None
    count: int
    distribution: Dict[int, int]


class ProviderReviewsResponse(StandardizedModel):
    summary: RatingSummaryResponse
    reviews: List[ReviewResponse]
    limit: int
    offset: int
