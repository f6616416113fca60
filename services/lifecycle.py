"""Reservation lifecycle state machine and expiry rule."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from domain.enums import (
    TERMINAL_STATUSES,
    LifecycleEventKind,
    OriginRole,
    ReservationStatus,
)
from domain.exceptions import InvalidTransitionError
from domain.models import ReservationPatch


DECLINED_BY_STAFF_REASON = "Declined by staff"
CANCELLED_BY_STAFF_REASON = "Cancelled by staff"
EXPIRED_REASON = "Automatic cancellation"


TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.DECLINED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.OCCUPIED,
        ReservationStatus.COMPLETED,
        ReservationStatus.DECLINED,
    }),
    ReservationStatus.OCCUPIED: frozenset({
        ReservationStatus.COMPLETED,
        ReservationStatus.DECLINED,
    }),
    ReservationStatus.DECLINED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class TransitionPlan:
    """Validated status change ready to hand to the store."""

    from_status: ReservationStatus
    to_status: ReservationStatus
    event_kind: LifecycleEventKind
    patch: ReservationPatch


def initial_status(origin_role: OriginRole) -> ReservationStatus:
    """Guests start pending confirmation, staff bookings are confirmed."""
    if origin_role == OriginRole.STAFF:
        return ReservationStatus.CONFIRMED
    return ReservationStatus.PENDING


def is_terminal(status: ReservationStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in TRANSITIONS[current]


def plan_transition(
    current: ReservationStatus,
    target: ReservationStatus,
    decline_reason: Optional[str] = None,
) -> TransitionPlan:
    """
    Validate a staff-initiated status change.

    Declining a pending request is reported as DECLINED, declining a
    confirmed or occupied one as CANCELLED so notifications can word them
    differently.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the change
    """
    if is_terminal(current):
        raise InvalidTransitionError(
            f"Reservation is already {current.value}; no further transitions are allowed"
        )
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move reservation from {current.value} to {target.value}"
        )

    if target == ReservationStatus.DECLINED:
        if current == ReservationStatus.PENDING:
            kind = LifecycleEventKind.DECLINED
            reason = decline_reason or DECLINED_BY_STAFF_REASON
        else:
            kind = LifecycleEventKind.CANCELLED
            reason = decline_reason or CANCELLED_BY_STAFF_REASON
        patch = ReservationPatch(status=target, decline_reason=reason)
    else:
        kind = LifecycleEventKind(target.value)
        patch = ReservationPatch(status=target)

    return TransitionPlan(
        from_status=current,
        to_status=target,
        event_kind=kind,
        patch=patch,
    )


def plan_expiry() -> TransitionPlan:
    """Transition applied by the expiry sweep."""
    return TransitionPlan(
        from_status=ReservationStatus.PENDING,
        to_status=ReservationStatus.DECLINED,
        event_kind=LifecycleEventKind.EXPIRED,
        patch=ReservationPatch(status=ReservationStatus.DECLINED, decline_reason=EXPIRED_REASON),
    )


def expiry_cutoff(now: datetime, pending_expiry_minutes: int) -> datetime:
    """PENDING reservations created before this instant are stale."""
    return now - timedelta(minutes=pending_expiry_minutes)
