# slotkeeper/routes/v1/bookings.py
"""
Bookings routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService / EarningsService.

Endpoints:
    GET /                          → List the caller's bookings
    POST /                         → Request a booking (caller is the requester)
    GET /upcoming                  → Caller's next bookings
    GET /earnings                  → Provider earnings summary
    GET /earnings.csv              → Provider earnings as CSV
    GET /{booking_id}              → Booking detail (parties only)
    PATCH /{booking_id}            → Edit notes while live
    DELETE /{booking_id}           → Hide from the caller's lists
    POST /{booking_id}/decision    → Provider accepts or declines
    POST /{booking_id}/cancel      → Either party cancels before start
    POST /{booking_id}/complete    → Provider completes after end
    POST /{booking_id}/hide        → Hide from the caller's lists
"""

import asyncio
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status

from ...api.dependencies.auth import get_current_party_id
from ...api.dependencies.services import get_booking_service, get_earnings_service
from ...core.enums import BookingStatus, EarningsWindow, PartyRole
from ...core.exceptions import DomainException
from ...schemas.booking import (
    BookingCreate,
    BookingDecisionRequest,
    BookingListResponse,
    BookingNotesUpdate,
    BookingResponse,
    EarningsSummaryResponse,
    HideBookingResponse,
)
from ...services.booking_service import BookingService
from ...services.earnings_service import EarningsService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    role: Optional[PartyRole] = Query(None, description="Only bookings where the caller is this side"),
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status"),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """List the caller's bookings, newest first, without the ones the caller hid."""
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_bookings, party_id, role, status_filter
        )
        items = [BookingResponse.from_booking(b, party_id) for b in bookings]
        return BookingListResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate = Body(...),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Request a slot on a provider's calendar.

    The booking starts as pending with its price fixed from the provider's
    current rate. Overlapping an active booking returns 409.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            party_id,
            payload.provider_id,
            payload.start,
            payload.end,
            payload.notes,
        )
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/upcoming", response_model=BookingListResponse)
async def get_upcoming_bookings(
    limit: int = Query(5, ge=1, le=50),
    role: Optional[PartyRole] = Query(None),
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status"),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """Caller's bookings that have not started yet (accepted only by default)."""
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_upcoming, party_id, role, status_filter, limit
        )
        items = [BookingResponse.from_booking(b, party_id) for b in bookings]
        return BookingListResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/earnings", response_model=EarningsSummaryResponse)
async def get_earnings(
    window: EarningsWindow = Query(EarningsWindow.THIS_WEEK),
    party_id: str = Depends(get_current_party_id),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> EarningsSummaryResponse:
    """Completed-booking earnings of the calling provider."""
    try:
        summary = await asyncio.to_thread(earnings_service.summarize, party_id, window)
        return EarningsSummaryResponse.model_validate(summary)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/earnings.csv", response_class=Response)
async def export_earnings_csv(
    window: EarningsWindow = Query(EarningsWindow.THIS_WEEK),
    party_id: str = Depends(get_current_party_id),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> Response:
    try:
        summary = await asyncio.to_thread(earnings_service.summarize, party_id, window)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(
        content=earnings_service.export_csv(summary),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="earnings-{window.value}.csv"'},
    )


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters)
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id, party_id)
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking_notes(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    payload: BookingNotesUpdate = Body(...),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Replace the notes of a pending or accepted booking."""
    try:
        booking = await asyncio.to_thread(
            booking_service.update_notes, booking_id, party_id, payload.notes
        )
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/decision", response_model=BookingResponse)
async def decide_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    payload: BookingDecisionRequest = Body(...),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Provider accepts or declines a pending booking."""
    try:
        booking = await asyncio.to_thread(
            booking_service.decide_booking, booking_id, party_id, payload.decision
        )
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, booking_id, party_id)
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.complete_booking, booking_id, party_id)
        return BookingResponse.from_booking(booking, party_id)
    except DomainException as e:
        handle_domain_exception(e)


async def _hide(booking_id: str, party_id: str, booking_service: BookingService) -> HideBookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.hide_booking, booking_id, party_id)
        return HideBookingResponse(ok=True, booking_id=booking.id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/hide", response_model=HideBookingResponse)
async def hide_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> HideBookingResponse:
    """Remove a finished or past booking from the caller's own lists."""
    return await _hide(booking_id, party_id, booking_service)


@router.delete("/{booking_id}", response_model=HideBookingResponse)
async def delete_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    party_id: str = Depends(get_current_party_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> HideBookingResponse:
    """Same as /hide; bookings are archived per party, never deleted."""
    return await _hide(booking_id, party_id, booking_service)
