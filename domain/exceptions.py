"""Exception taxonomy for the reservation engine."""

from typing import Any, Dict, Optional

from .enums import RejectionReason


class ReservationError(Exception):
    """Base class for every error surfaced by the engine."""

    code: str = "RESERVATION_ERROR"
    retryable: bool = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Serializable error body."""
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class ValidationError(ReservationError):
    """Raised when a request is missing or has an invalid required field."""

    code = "VALIDATION_ERROR"


class NotFoundError(ReservationError):
    """Raised when a referenced entity does not exist."""

    code = "NOT_FOUND"


class RestaurantNotFoundError(NotFoundError):
    """Raised when a restaurant is not found."""

    code = "RESTAURANT_NOT_FOUND"


class ReservationNotFoundError(NotFoundError):
    """Raised when a reservation is not found."""

    code = "RESERVATION_NOT_FOUND"


class AdmissionRejectedError(ReservationError):
    """Deterministic business rejection of a reservation request."""

    reason: RejectionReason

    def __init__(self, message: str):
        super().__init__(message, code=self.reason.value)


class OutOfHoursError(AdmissionRejectedError):
    reason = RejectionReason.OUT_OF_HOURS


class DuplicateGuestError(AdmissionRejectedError):
    reason = RejectionReason.DUPLICATE_GUEST


class TableHeldError(AdmissionRejectedError):
    reason = RejectionReason.TABLE_HELD


class TimeConflictError(AdmissionRejectedError):
    reason = RejectionReason.TIME_CONFLICT


REJECTION_ERRORS = {
    RejectionReason.OUT_OF_HOURS: OutOfHoursError,
    RejectionReason.DUPLICATE_GUEST: DuplicateGuestError,
    RejectionReason.TABLE_HELD: TableHeldError,
    RejectionReason.TIME_CONFLICT: TimeConflictError,
}


def rejection_error(reason: RejectionReason, message: str) -> AdmissionRejectedError:
    """Build the rejection exception matching a reason code."""
    return REJECTION_ERRORS[reason](message)


class InvalidTransitionError(ReservationError):
    """Raised when a status change is not allowed by the lifecycle."""

    code = "INVALID_TRANSITION"


class InfrastructureError(ReservationError):
    """Transient store failure (timeout, lock wait, exhausted retries)."""

    code = "INFRASTRUCTURE_ERROR"
    retryable = True


class TransactionAbortedError(InfrastructureError):
    """The store aborted a transaction; the whole unit may be retried."""

    code = "TRANSACTION_ABORTED"
