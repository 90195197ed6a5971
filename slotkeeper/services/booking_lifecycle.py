"""
Booking lifecycle rules.

The transition table below is the single source of truth for which party may
move a booking from which status to which, and when. ``resolve_transition``
only validates; applying the change is a compare-and-swap in the booking
repository, so a failed check never mutates anything.

    action    from                 to          actor                  when
    accept    pending              accepted    provider               -
    decline   pending              declined    provider               -
    cancel    pending, accepted    cancelled   requester, provider    now < start_at
    complete  accepted             completed   provider               now > end_at
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List

from ..core.enums import BookingAction, BookingStatus, PartyRole
from ..core.exceptions import ForbiddenException, IllegalTransitionException
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking


class TimeRule(str, Enum):
    NONE = "none"
    BEFORE_START = "before_start"
    AFTER_END = "after_end"


@dataclass(frozen=True)
class TransitionRule:
    sources: FrozenSet[BookingStatus]
    target: BookingStatus
    actors: FrozenSet[PartyRole]
    time_rule: TimeRule = TimeRule.NONE


TRANSITIONS: Dict[BookingAction, TransitionRule] = {
    BookingAction.ACCEPT: TransitionRule(
        sources=frozenset({BookingStatus.PENDING}),
        target=BookingStatus.ACCEPTED,
        actors=frozenset({PartyRole.PROVIDER}),
    ),
    BookingAction.DECLINE: TransitionRule(
        sources=frozenset({BookingStatus.PENDING}),
        target=BookingStatus.DECLINED,
        actors=frozenset({PartyRole.PROVIDER}),
    ),
    BookingAction.CANCEL: TransitionRule(
        sources=frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED}),
        target=BookingStatus.CANCELLED,
        actors=frozenset({PartyRole.REQUESTER, PartyRole.PROVIDER}),
        time_rule=TimeRule.BEFORE_START,
    ),
    BookingAction.COMPLETE: TransitionRule(
        sources=frozenset({BookingStatus.ACCEPTED}),
        target=BookingStatus.COMPLETED,
        actors=frozenset({PartyRole.PROVIDER}),
        time_rule=TimeRule.AFTER_END,
    ),
}


def _check_time(rule: TransitionRule, booking: Booking, action: BookingAction, now: datetime) -> None:
    now = ensure_utc(now)
    if rule.time_rule is TimeRule.BEFORE_START and not now < booking.start_at:
        raise IllegalTransitionException(
            "Bookings can only be cancelled before they start",
            current_status=booking.status,
            attempted_status=rule.target.value,
            action=action.value,
        )
    if rule.time_rule is TimeRule.AFTER_END and not now > booking.end_at:
        raise IllegalTransitionException(
            "Bookings can only be completed after they end",
            current_status=booking.status,
            attempted_status=rule.target.value,
            action=action.value,
        )


def resolve_transition(
    booking: Booking,
    action: BookingAction,
    actor_id: str,
    now: datetime,
) -> BookingStatus:
    """
    Validate ``action`` by ``actor_id`` on ``booking`` and return the target status.

    Checks run in a fixed order: actor permission, then status legality,
    then the time precondition.

    Raises:
        ForbiddenException: actor is not a party, or not the party the action belongs to
        IllegalTransitionException: current status or current time does not allow it
    """
    rule = TRANSITIONS[BookingAction(action)]
    role = booking.role_of(actor_id)

    if role is None or role not in rule.actors:
        raise ForbiddenException(
            f"Not allowed to {action.value} this booking",
            code="FORBIDDEN",
            details={"booking_id": booking.id, "action": action.value},
        )

    current = booking.status_enum
    if current not in rule.sources:
        raise IllegalTransitionException(
            f"Cannot {action.value} a booking that is {current.value}",
            current_status=current.value,
            attempted_status=rule.target.value,
            action=action.value,
        )

    _check_time(rule, booking, action, now)
    return rule.target


def allowed_actions(booking: Booking, actor_id: str, now: datetime) -> List[BookingAction]:
    """Actions ``actor_id`` could take on ``booking`` right now."""
    result: List[BookingAction] = []
    for action in TRANSITIONS:
        try:
            resolve_transition(booking, action, actor_id, now)
        except (ForbiddenException, IllegalTransitionException):
            continue
        result.append(action)
    return result
