"""Domain enums for the table reservation engine."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    OCCUPIED = "OCCUPIED"
    COMPLETED = "COMPLETED"


# Statuses that hold a table
ACTIVE_STATUSES = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.OCCUPIED,
})

TERMINAL_STATUSES = frozenset({
    ReservationStatus.DECLINED,
    ReservationStatus.COMPLETED,
})


class OriginRole(str, Enum):
    """Who submitted a reservation request."""

    GUEST = "GUEST"
    STAFF = "STAFF"


class RejectionReason(str, Enum):
    """Machine-readable admission rejection codes."""

    OUT_OF_HOURS = "OUT_OF_HOURS"
    DUPLICATE_GUEST = "DUPLICATE_GUEST"
    TABLE_HELD = "TABLE_HELD"
    TIME_CONFLICT = "TIME_CONFLICT"


class LifecycleEventKind(str, Enum):
    """Lifecycle event types recorded with every reservation change."""

    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"    # declined by staff while pending
    CANCELLED = "CANCELLED"  # cancelled by staff after confirmation
    EXPIRED = "EXPIRED"      # declined by the expiry sweep
    OCCUPIED = "OCCUPIED"
    COMPLETED = "COMPLETED"


# Event kinds forwarded to the notifier
NOTIFIABLE_EVENTS = frozenset({
    LifecycleEventKind.CREATED,
    LifecycleEventKind.CONFIRMED,
    LifecycleEventKind.DECLINED,
    LifecycleEventKind.CANCELLED,
    LifecycleEventKind.EXPIRED,
})
