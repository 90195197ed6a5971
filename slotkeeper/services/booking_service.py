# slotkeeper/services/booking_service.py
"""
Booking Service for slotkeeper

Orchestrates the booking operations exposed to clients:
- Creating bookings atomically against the provider's calendar
- Lifecycle transitions (accept / decline / cancel / complete)
- Per-party hiding and listings
- Notes editing while a booking is live

Creation holds the provider schedule lock (in-process, plus Redis when
configured) and, on PostgreSQL, a transaction-scoped advisory lock, for the
whole check-then-insert sequence. Two overlapping requests for the same
provider therefore run one after the other and the second sees the first.
"""

from datetime import datetime
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingAction, BookingDecision, BookingStatus, PartyRole
from ..core.exceptions import (
    ForbiddenException,
    IllegalTransitionException,
    InvalidRoleException,
    NotFoundException,
    ValidationException,
)
from ..core.provider_lock import ProviderScheduleLock, get_provider_lock
from ..core.timezone_utils import Clock, get_timezone, local_date
from ..database import with_db_retry
from ..events.booking_events import BookingCreated, BookingHidden, BookingStatusChanged
from ..events.publisher import BookingEventPublisher, get_event_publisher
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .booking_lifecycle import resolve_transition
from .conflict_checker import ConflictChecker
from .interval_math import validate_interval
from .pricing_service import PricingCalculator
from .provider_directory import PartyDirectory, ProviderDirectory
from .visibility_service import check_hide, hidden_flag_for

logger = logging.getLogger(__name__)

UPCOMING_MAX_LIMIT = 50
TRANSITION_ATTEMPTS = 2


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Every write is a single transaction; domain events are published only
    after it commits.
    """

    def __init__(
        self,
        db: Session,
        *,
        repository: Optional[BookingRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        provider_directory: Optional[ProviderDirectory] = None,
        pricing: Optional[PricingCalculator] = None,
        provider_lock: Optional[ProviderScheduleLock] = None,
        event_publisher: Optional[BookingEventPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            repository: Optional BookingRepository instance
            conflict_checker: Optional ConflictChecker instance
            provider_directory: Source of provider role, rate and timezone
            pricing: Optional PricingCalculator instance
            provider_lock: Schedule lock shared by all services in the process
            event_publisher: Receiver of committed booking events
            clock: Optional clock override
        """
        super().__init__(db, clock=clock)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, clock=self.clock)
        self.provider_directory = provider_directory or PartyDirectory(db)
        self.pricing = pricing or PricingCalculator()
        self.provider_lock = provider_lock or get_provider_lock()
        self.event_publisher = event_publisher or get_event_publisher()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        requester_id: str,
        provider_id: str,
        start: datetime,
        end: datetime,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Create a pending booking with its price snapshot.

        Args:
            requester_id: Party asking for the slot
            provider_id: Party whose calendar is booked
            start: Interval start (aware; naive is read as UTC)
            end: Interval end, strictly after start
            notes: Optional free text

        Returns:
            Created booking instance

        Raises:
            ValidationException: malformed interval, or requester books themselves
            NotFoundException: provider unknown
            InvalidRoleException: target party is not a provider
            SchedulingConflictException: slot overlaps an active booking
            SchedulingContentionException: provider lock not obtained in time
        """
        self.log_operation(
            "create_booking",
            requester_id=requester_id,
            provider_id=provider_id,
            start=str(start),
            end=str(end),
        )

        start, end = validate_interval(start, end)
        if requester_id == provider_id:
            raise ValidationException(
                "Cannot book your own calendar",
                code="SELF_BOOKING",
                details={"provider_id": provider_id},
            )

        profile = self.provider_directory.resolve(provider_id)
        if profile is None:
            raise NotFoundException(
                "Provider not found", code="PROVIDER_NOT_FOUND", details={"provider_id": provider_id}
            )
        if not profile.is_provider:
            raise InvalidRoleException(
                "Target party is not a provider",
                details={"party_id": provider_id, "role": profile.role.value},
            )

        provider_tz = get_timezone(profile.timezone)
        snapshot = self.pricing.snapshot(start, end, profile.current_rate)

        def _create_once() -> Booking:
            with self.provider_lock.hold(provider_id):
                with self.transaction():
                    self.conflict_checker.repository.lock_provider_schedule(provider_id)
                    self.conflict_checker.ensure_slot_available(provider_id, start, end)
                    return self.repository.create(
                        requester_id=requester_id,
                        provider_id=provider_id,
                        start_at=start,
                        end_at=end,
                        booking_date=local_date(start, provider_tz),
                        status=BookingStatus.PENDING.value,
                        notes=notes,
                        rate_snapshot=snapshot.rate_snapshot,
                        duration_hours=snapshot.duration_hours,
                        total_price=snapshot.total_price,
                        hidden_for_requester=False,
                        hidden_for_provider=False,
                        created_at=self.now(),
                    )

        booking = with_db_retry(
            "create_booking", _create_once, max_attempts=settings.booking_create_max_attempts
        )

        self.logger.info(
            f"Booking {booking.id} created for provider {provider_id} "
            f"({snapshot.duration_hours}h at {snapshot.rate_snapshot} = {snapshot.total_price})"
        )
        self.event_publisher.publish(
            BookingCreated(
                booking_id=booking.id,
                requester_id=booking.requester_id,
                provider_id=booking.provider_id,
                start_at=booking.start_at,
                end_at=booking.end_at,
                created_at=booking.created_at,
            )
        )
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, caller_id: str) -> Booking:
        """
        Fetch a booking for one of its parties.

        Non-parties get NotFound so booking ids cannot be probed.
        """
        booking = self.repository.get_by_id(booking_id)
        if booking is None or not booking.is_party(caller_id):
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        caller_id: str,
        role: Optional[PartyRole] = None,
        status_filter: Optional[Sequence[BookingStatus]] = None,
    ) -> List[Booking]:
        """
        The caller's bookings, excluding those the caller has hidden.

        Args:
            caller_id: Listing party
            role: Restrict to bookings where the caller is this side; both when None
            status_filter: Optional statuses to keep
        """
        roles = [role] if role is not None else [PartyRole.REQUESTER, PartyRole.PROVIDER]
        seen: Dict[str, Booking] = {}
        for party_role in roles:
            for booking in self.repository.list_for_party(caller_id, party_role, status_filter):
                seen.setdefault(booking.id, booking)
        if len(roles) == 1:
            return list(seen.values())
        return sorted(seen.values(), key=lambda b: (b.start_at, b.id), reverse=True)

    @BaseService.measure_operation("list_upcoming")
    def list_upcoming(
        self,
        caller_id: str,
        role: Optional[PartyRole] = None,
        statuses: Optional[Sequence[BookingStatus]] = None,
        limit: Optional[int] = None,
    ) -> List[Booking]:
        """
        Bookings that have not started yet, soonest first.

        Defaults to accepted bookings on either side; ``limit`` is clamped to 1..50.
        """
        limit = settings.upcoming_default_limit if limit is None else limit
        limit = max(1, min(int(limit), UPCOMING_MAX_LIMIT))
        statuses = list(statuses) if statuses else [BookingStatus.ACCEPTED]
        now = self.now()

        roles = [role] if role is not None else [PartyRole.REQUESTER, PartyRole.PROVIDER]
        seen: Dict[str, Booking] = {}
        for party_role in roles:
            for booking in self.repository.list_upcoming(caller_id, party_role, statuses, now, limit):
                seen.setdefault(booking.id, booking)
        return sorted(seen.values(), key=lambda b: (b.start_at, b.id))[:limit]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _apply_transition(self, booking_id: str, actor_id: str, action: BookingAction) -> Booking:
        booking = self._require_booking(booking_id)
        now = self.now()

        stamps: Dict[str, object] = {}
        if action in (BookingAction.ACCEPT, BookingAction.DECLINE):
            stamps["decided_at"] = now
        elif action is BookingAction.CANCEL:
            stamps["cancelled_at"] = now
            stamps["cancelled_by_id"] = actor_id
        elif action is BookingAction.COMPLETE:
            stamps["completed_at"] = now

        # After losing a race the action is re-resolved against the winner's status
        for attempt in range(1, TRANSITION_ATTEMPTS + 1):
            previous = booking.status_enum
            try:
                target = resolve_transition(booking, action, actor_id, now)
            except (ForbiddenException, IllegalTransitionException):
                prometheus_metrics.record_transition(action.value, "rejected")
                raise

            with self.transaction():
                applied = self.repository.transition_status(booking.id, previous, target, **stamps)
            self.repository.reload(booking)
            if applied:
                break
            self.logger.warning(
                f"Lost transition race on booking {booking.id} (attempt {attempt}): "
                f"{action.value} expected {previous.value}, found {booking.status}"
            )
        else:
            prometheus_metrics.record_transition(action.value, "rejected")
            raise IllegalTransitionException(
                f"Booking changed to {booking.status} before it could be {target.value}",
                current_status=booking.status,
                attempted_status=target.value,
                action=action.value,
            )

        prometheus_metrics.record_transition(action.value, "applied")
        self.log_operation(
            "booking_transition",
            booking_id=booking.id,
            action=action.value,
            previous_status=previous.value,
            new_status=target.value,
            actor_id=actor_id,
        )
        self.event_publisher.publish(
            BookingStatusChanged(
                booking_id=booking.id,
                requester_id=booking.requester_id,
                provider_id=booking.provider_id,
                previous_status=previous.value,
                new_status=target.value,
                actor_id=actor_id,
                changed_at=now,
            )
        )
        return booking

    @BaseService.measure_operation("decide_booking")
    def decide_booking(self, booking_id: str, provider_id: str, decision: BookingDecision) -> Booking:
        """Provider accepts or declines a pending request."""
        return self._apply_transition(booking_id, provider_id, BookingDecision(decision).action)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, caller_id: str) -> Booking:
        """Either party cancels a pending or accepted booking before it starts."""
        return self._apply_transition(booking_id, caller_id, BookingAction.CANCEL)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, provider_id: str) -> Booking:
        """Provider marks an accepted booking done once it has ended."""
        return self._apply_transition(booking_id, provider_id, BookingAction.COMPLETE)

    # ------------------------------------------------------------------
    # Visibility & notes
    # ------------------------------------------------------------------

    @BaseService.measure_operation("hide_booking")
    def hide_booking(self, booking_id: str, caller_id: str) -> Booking:
        """
        Archive a finished or past booking from the caller's own listings.

        Idempotent; the other party's view and the canonical status are untouched.
        """
        booking = self._require_booking(booking_id)
        role = check_hide(booking, caller_id, self.now())

        if booking.is_hidden_for(caller_id):
            return booking

        with self.transaction():
            self.repository.set_hidden(booking.id, hidden_flag_for(role))
        self.repository.reload(booking)

        self.log_operation("hide_booking", booking_id=booking.id, party_id=caller_id, role=role.value)
        self.event_publisher.publish(
            BookingHidden(booking_id=booking.id, party_id=caller_id, role=role.value)
        )
        return booking

    @BaseService.measure_operation("update_notes")
    def update_notes(self, booking_id: str, caller_id: str, notes: Optional[str]) -> Booking:
        """
        Replace the booking notes; either party, only while pending or accepted.

        Raises:
            NotFoundException: booking missing
            ForbiddenException: caller is not a party
            IllegalTransitionException: booking already declined, cancelled or completed
        """
        booking = self._require_booking(booking_id)
        if not booking.is_party(caller_id):
            raise ForbiddenException(
                "Not allowed to edit this booking",
                code="FORBIDDEN",
                details={"booking_id": booking_id},
            )

        with self.transaction():
            updated = self.repository.update_notes(booking.id, notes)
            if not updated:
                current = self.repository.reload(booking).status
                raise IllegalTransitionException(
                    f"Notes cannot be changed on a {current} booking",
                    current_status=current,
                    action="update_notes",
                )
        return self.repository.reload(booking)
