"""
Admission rules for reservation requests.

Rules are evaluated in order and the first failure is terminal:

1. hours            - the instant must fall inside a shift
2. closing buffer   - no bookings in the last stretch before close
3. duplicate guest  - one live request per guest phone per restaurant
4. rest-of-day      - an earlier active booking holds the table for the shift
5. proximity buffer - no active booking within the buffer either side
"""
import re
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from core.utils_datetime import format_time_of_day
from domain.enums import OriginRole, RejectionReason
from domain.exceptions import ValidationError
from domain.models import (
    AdmissionDecision,
    Reservation,
    ReservationRequest,
    RestaurantHours,
    ShiftWindow,
)


NON_DIGITS = re.compile(r'\D')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def normalize_phone(phone: Optional[str]) -> str:
    """Strip everything but digits from a phone number."""
    return NON_DIGITS.sub('', phone or '')


def validate_contact(request: ReservationRequest, origin_role: OriginRole) -> Optional[str]:
    """
    Validate the guest contact fields for the request's origin.

    Guests must leave a phone with at least one digit and an email address;
    staff may omit both.

    Returns:
        Normalized phone number, or None for staff requests without one

    Raises:
        ValidationError: If a required contact field is missing or malformed
    """
    phone = normalize_phone(request.guest_phone)
    email = (request.guest_email or '').strip()

    if origin_role == OriginRole.GUEST:
        if not phone:
            raise ValidationError("Phone number is required", code="PHONE_REQUIRED")
        if not email:
            raise ValidationError("Email is required", code="EMAIL_REQUIRED")

    if email and not EMAIL_PATTERN.match(email):
        raise ValidationError(f"Invalid email address: {email}", code="INVALID_EMAIL")

    return phone or None


class AdmissionChecker:
    """Applies the admission rules to a single request."""

    def __init__(
        self,
        closing_buffer: timedelta = timedelta(hours=1),
        proximity_buffer: timedelta = timedelta(hours=1),
    ):
        """
        Args:
            closing_buffer: Guests may not book later than shift end minus this
            proximity_buffer: Minimum distance between bookings on one table
        """
        self.closing_buffer = closing_buffer
        self.proximity_buffer = proximity_buffer

    def check(
        self,
        request: ReservationRequest,
        hours: Optional[RestaurantHours],
        shift_window: Optional[ShiftWindow],
        active_for_table: Sequence[Reservation],
        active_for_phone: Sequence[Reservation],
    ) -> AdmissionDecision:
        """
        Run every rule for a guest-originated request.

        Args:
            request: Candidate reservation
            hours: Restaurant hours, used for rejection messages
            shift_window: Resolved shift in UTC, None when closed
            active_for_table: Active reservations on the requested table
            active_for_phone: Active reservations for the guest's phone

        Returns:
            AdmissionDecision accepting or rejecting with a reason
        """
        requested_at = request.requested_at

        if shift_window is None:
            message = "Booking time must be within working hours"
            if hours is not None:
                message += (
                    f" ({format_time_of_day(hours.work_starts)} - "
                    f"{format_time_of_day(hours.work_ends)})"
                )
            return AdmissionDecision.reject(RejectionReason.OUT_OF_HOURS, message)

        if requested_at > shift_window.end - self.closing_buffer:
            return AdmissionDecision.reject(
                RejectionReason.OUT_OF_HOURS,
                "The last possible booking time is "
                f"{int(self.closing_buffer.total_seconds() // 60)} minutes before closing."
            )

        if active_for_phone:
            return AdmissionDecision.reject(
                RejectionReason.DUPLICATE_GUEST,
                "A booking for this phone number already exists"
            )

        return self.check_table(requested_at, shift_window, active_for_table)

    def check_table(
        self,
        requested_at: datetime,
        shift_window: Optional[ShiftWindow],
        active_for_table: Iterable[Reservation],
    ) -> AdmissionDecision:
        """
        Table rules only: rest-of-day block, then proximity buffer.

        The rest-of-day block is skipped when no shift window is known.
        """
        active_for_table = list(active_for_table)

        if shift_window is not None:
            for existing in active_for_table:
                if shift_window.start <= existing.date_time <= requested_at:
                    return AdmissionDecision.reject(
                        RejectionReason.TABLE_HELD,
                        "This table is occupied for the rest of the day by an earlier booking."
                    )

        lower = requested_at - self.proximity_buffer
        upper = requested_at + self.proximity_buffer
        for existing in active_for_table:
            if lower < existing.date_time < upper:
                return AdmissionDecision.reject(
                    RejectionReason.TIME_CONFLICT,
                    "This table is already booked near the selected time."
                )

        return AdmissionDecision.accept()

    def check_staff(
        self,
        request: ReservationRequest,
        shift_window: Optional[ShiftWindow],
        active_for_table: Sequence[Reservation],
        active_for_phone: Sequence[Reservation],
    ) -> AdmissionDecision:
        """
        Rules for staff requests when staff bypass is disabled.

        Time rules never apply to staff; the duplicate-guest rule applies
        only when a phone was given.
        """
        if active_for_phone:
            return AdmissionDecision.reject(
                RejectionReason.DUPLICATE_GUEST,
                "A booking for this phone number already exists"
            )
        return self.check_table(request.requested_at, shift_window, active_for_table)


_default_checker = AdmissionChecker()


def check_admission(
    request: ReservationRequest,
    shift_window: Optional[ShiftWindow],
    active_for_table: Sequence[Reservation],
    active_for_phone: Sequence[Reservation],
    hours: Optional[RestaurantHours] = None,
) -> AdmissionDecision:
    """Guest admission rules with one-hour closing and proximity buffers."""
    return _default_checker.check(request, hours, shift_window, active_for_table, active_for_phone)
