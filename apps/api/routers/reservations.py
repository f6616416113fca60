"""Reservation endpoints: admission, staff status changes and expiry sweep."""

from typing import List

from fastapi import APIRouter, Depends, status

from apps.api.deps import get_reservation_service
from domain.models import (
    Reservation,
    ReservationSubmission,
    StatusTransitionRequest,
    SweepResult,
)
from services.reservation_service import ReservationService


router = APIRouter(tags=["reservations"])


@router.post(
    "/restaurants/{restaurant_id}/reservations",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    restaurant_id: int,
    submission: ReservationSubmission,
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Submit a reservation request.

    Guest requests are stored PENDING, staff requests CONFIRMED. Rejections
    are returned as error bodies by the application's exception handlers.
    """
    return service.submit_reservation(
        submission.to_request(restaurant_id),
        origin_role=submission.origin_role,
    )


@router.get("/restaurants/{restaurant_id}/reservations", response_model=List[Reservation])
def list_reservations(
    restaurant_id: int,
    service: ReservationService = Depends(get_reservation_service),
):
    """List a restaurant's reservations, latest booking time first."""
    return service.list_reservations(restaurant_id)


@router.get("/reservations/{reservation_id}", response_model=Reservation)
def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
):
    return service.get_reservation(reservation_id)


@router.put("/reservations/{reservation_id}/status", response_model=Reservation)
def update_reservation_status(
    reservation_id: int,
    body: StatusTransitionRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Apply a staff status change.

    Args:
        reservation_id: Reservation ID
        body: Target status and optional decline reason
        service: Reservation service

    Returns:
        Reservation: The updated reservation
    """
    return service.transition_status(
        reservation_id,
        body.status,
        decline_reason=body.decline_reason,
    )


@router.post("/reservations/sweep-expired", response_model=SweepResult)
def sweep_expired_reservations(
    service: ReservationService = Depends(get_reservation_service),
):
    """Decline every stale PENDING reservation."""
    expired = service.sweep_expired()
    return SweepResult(updated=len(expired), reservations=expired)
