# slotkeeper/routes/v1/reviews.py
"""
Reviews routes - API v1

Versioned review endpoints under /api/v1/reviews.
All business logic delegated to ReviewService.

Endpoints:
    GET /candidates                    → Caller's completed bookings still awaiting a review
    POST /                             → Submit a review (requester of the booking)
    GET /providers/{provider_id}       → Provider rating summary and recent reviews (public)
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ...api.dependencies.auth import get_current_party_id
from ...api.dependencies.services import get_review_service
from ...core.exceptions import DomainException
from ...schemas.review import (
    ProviderReviewsResponse,
    RatingSummaryResponse,
    ReviewCandidateListResponse,
    ReviewCandidateResponse,
    ReviewCreate,
    ReviewResponse,
)
from ...services.review_service import ReviewService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["reviews-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/candidates", response_model=ReviewCandidateListResponse)
async def list_review_candidates(
    limit: Optional[int] = Query(None, ge=1, le=100),
    party_id: str = Depends(get_current_party_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewCandidateListResponse:
    """
    Bookings the caller may review now.

    Derived fresh on every call; a booking drops out as soon as its review exists.
    """
    try:
        candidates = await asyncio.to_thread(service.list_review_candidates, party_id, limit)
        items = [ReviewCandidateResponse.model_validate(c) for c in candidates]
        return ReviewCandidateListResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    payload: ReviewCreate = Body(...),
    party_id: str = Depends(get_current_party_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        review = await asyncio.to_thread(
            service.create_review,
            payload.booking_id,
            party_id,
            payload.rating,
            payload.comment,
        )
        return ReviewResponse.model_validate(review)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/providers/{provider_id}", response_model=ProviderReviewsResponse)
async def get_provider_reviews(
    provider_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: ReviewService = Depends(get_review_service),
) -> ProviderReviewsResponse:
    """
    Rating summary and newest reviews for a provider.

    Public endpoint - no caller identity required.
    """
    try:
        summary = await asyncio.to_thread(service.rating_summary, provider_id)
        reviews = await asyncio.to_thread(
            service.list_provider_reviews, provider_id, limit=limit, offset=offset
        )
        return ProviderReviewsResponse(
            summary=RatingSummaryResponse.model_validate(summary),
            reviews=[ReviewResponse.model_validate(r) for r in reviews],
            limit=limit,
            offset=offset,
        )
    except DomainException as e:
        handle_domain_exception(e)
