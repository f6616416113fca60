"""Domain models using Pydantic v2 for the table reservation engine."""

from datetime import datetime, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils_datetime import ensure_utc, parse_time_of_day
from .enums import (
    ACTIVE_STATUSES,
    LifecycleEventKind,
    OriginRole,
    RejectionReason,
    ReservationStatus,
)


class RestaurantHours(BaseModel):
    """Daily operating shift of a restaurant."""

    work_starts: time
    work_ends: time

    model_config = ConfigDict(frozen=True)

    @field_validator("work_starts", "work_ends", mode="before")
    @classmethod
    def parse_hhmm(cls, v: Any) -> Any:
        """Accept "HH:MM" strings as stored in the restaurants table."""
        if isinstance(v, str):
            return parse_time_of_day(v)
        return v

    @property
    def crosses_midnight(self) -> bool:
        """True when the shift closes on the next calendar day."""
        return self.work_ends <= self.work_starts


class ShiftWindow(BaseModel):
    """Concrete shift instance containing a candidate instant."""

    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_order(self) -> "ShiftWindow":
        if not self.start < self.end:
            raise ValueError("shift window start must precede its end")
        return self

    def contains(self, instant: datetime) -> bool:
        """Half-open membership test: start <= instant < end."""
        return self.start <= instant < self.end


class Restaurant(BaseModel):
    """Restaurant configuration as read by the engine."""

    id: int
    name: str = Field(..., min_length=1, max_length=200)
    work_starts: Optional[str] = None
    work_ends: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ReservationRequest(BaseModel):
    """Candidate reservation submitted for admission."""

    restaurant_id: int
    table_id: str = Field(..., min_length=1, max_length=100)
    table_label: Optional[str] = Field(None, max_length=100)
    guest_name: str = Field(..., min_length=1, max_length=100)
    guest_phone: Optional[str] = Field(None, max_length=40)
    guest_email: Optional[str] = Field(None, max_length=254)
    guest_count: int = Field(..., ge=1, le=100)
    requested_at: datetime
    caller_timezone_offset_minutes: Optional[int] = Field(None, ge=-14 * 60, le=14 * 60)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("requested_at")
    @classmethod
    def normalize_requested_at(cls, v: datetime) -> datetime:
        """Naive instants are taken as UTC."""
        return ensure_utc(v)


class NewReservation(BaseModel):
    """Reservation row the orchestrator asks the store to insert."""

    restaurant_id: int
    table_id: str
    table_label: Optional[str] = None
    guest_name: str
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    guest_count: int
    date_time: datetime
    status: ReservationStatus
    created_at: datetime


class Reservation(NewReservation):
    """Persisted reservation record."""

    id: int
    decline_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("date_time", "created_at", "updated_at")
    @classmethod
    def normalize_instants(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Stores may hand back naive UTC values."""
        if v is None:
            return v
        return ensure_utc(v)

    @property
    def is_active(self) -> bool:
        """True while the reservation holds its table."""
        return self.status in ACTIVE_STATUSES


class ReservationPatch(BaseModel):
    """
    Explicit set of updatable reservation fields.

    Only fields that were set are applied by the store, so
    ``ReservationPatch(status=...)`` leaves decline_reason untouched while
    ``ReservationPatch(status=..., decline_reason=None)`` clears it.
    """

    status: Optional[ReservationStatus] = None
    decline_reason: Optional[str] = Field(None, max_length=500)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly present in this patch."""
        return self.model_dump(exclude_unset=True)


class LifecycleEvent(BaseModel):
    """Event emitted for every reservation creation or transition."""

    kind: LifecycleEventKind
    reservation: Reservation
    occurred_at: datetime
    previous_status: Optional[ReservationStatus] = None

    model_config = ConfigDict(frozen=True)


class AdmissionDecision(BaseModel):
    """Outcome of the admission rules for one request."""

    accepted: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @classmethod
    def accept(cls) -> "AdmissionDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason, message: str) -> "AdmissionDecision":
        return cls(accepted=False, reason=reason, message=message)


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------

class ReservationSubmission(BaseModel):
    """Request body for creating a reservation."""

    table_id: str = Field(..., min_length=1, max_length=100)
    table_label: Optional[str] = Field(None, max_length=100)
    guest_name: str = Field(..., min_length=1, max_length=100)
    guest_phone: Optional[str] = Field(None, max_length=40)
    guest_email: Optional[str] = Field(None, max_length=254)
    guest_count: int = Field(..., ge=1, le=100)
    date_time: datetime
    timezone_offset: Optional[int] = Field(None, ge=-14 * 60, le=14 * 60)
    origin_role: OriginRole = OriginRole.GUEST

    model_config = ConfigDict(str_strip_whitespace=True)

    def to_request(self, restaurant_id: int) -> ReservationRequest:
        return ReservationRequest(
            restaurant_id=restaurant_id,
            table_id=self.table_id,
            table_label=self.table_label,
            guest_name=self.guest_name,
            guest_phone=self.guest_phone,
            guest_email=self.guest_email,
            guest_count=self.guest_count,
            requested_at=self.date_time,
            caller_timezone_offset_minutes=self.timezone_offset,
        )


class StatusTransitionRequest(BaseModel):
    """Request body for a staff status change."""

    status: ReservationStatus
    decline_reason: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class SweepResult(BaseModel):
    """Response body of the expiry sweep endpoint."""

    updated: int
    reservations: List[Reservation]
