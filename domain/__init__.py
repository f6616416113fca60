"""Domain layer for the table reservation engine."""

from .enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    NOTIFIABLE_EVENTS,
    ReservationStatus,
    OriginRole,
    RejectionReason,
    LifecycleEventKind,
)
from .models import (
    RestaurantHours,
    ShiftWindow,
    Restaurant,
    ReservationRequest,
    NewReservation,
    Reservation,
    ReservationPatch,
    LifecycleEvent,
    AdmissionDecision,
    ReservationSubmission,
    StatusTransitionRequest,
    SweepResult,
)

__all__ = [
    # Enums
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "NOTIFIABLE_EVENTS",
    "ReservationStatus",
    "OriginRole",
    "RejectionReason",
    "LifecycleEventKind",
    # Models
    "RestaurantHours",
    "ShiftWindow",
    "Restaurant",
    "ReservationRequest",
    "NewReservation",
    "Reservation",
    "ReservationPatch",
    "LifecycleEvent",
    "AdmissionDecision",
    "ReservationSubmission",
    "StatusTransitionRequest",
    "SweepResult",
]
