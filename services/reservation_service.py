"""
Reservation Service: admission and lifecycle orchestration.

Every admission runs as one atomic unit: the per-table lock is held and the
conflict queries plus the insert share one store transaction, so two
concurrent requests for the same table can never both be accepted.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple, TypeVar

from core.config import Settings, settings as default_settings
from core.logging import LogContext
from core.utils_datetime import utc_now
from db.store import ReservationStore, StoreTransaction
from domain.enums import (
    NOTIFIABLE_EVENTS,
    LifecycleEventKind,
    OriginRole,
    ReservationStatus,
)
from domain.exceptions import (
    InfrastructureError,
    InvalidTransitionError,
    TransactionAbortedError,
    rejection_error,
)
from domain.models import (
    AdmissionDecision,
    LifecycleEvent,
    NewReservation,
    Reservation,
    ReservationRequest,
    RestaurantHours,
    ShiftWindow,
)
from services.admission import AdmissionChecker, validate_contact
from services.lifecycle import expiry_cutoff, initial_status, plan_expiry, plan_transition
from services.locks import TableLockRegistry
from services.notifier import LoggingNotifier, Notifier
from services.shift_resolver import resolve_request_shift


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReservationService:
    """Service for admitting reservations and moving them through their lifecycle."""

    def __init__(
        self,
        store: ReservationStore,
        notifier: Optional[Notifier] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        locks: Optional[TableLockRegistry] = None,
    ):
        """
        Initialize the reservation service.

        Args:
            store: Reservation store the service reads and writes through
            notifier: Receives lifecycle events after they commit
            config: Settings (global settings by default)
            clock: Source of "now" for created_at and expiry
            locks: Per-table lock registry, shared between services on one store
        """
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.config = config or default_settings
        self.clock = clock
        self.locks = locks if locks is not None else TableLockRegistry(self.config.store_timeout_seconds)
        self.checker = AdmissionChecker(
            closing_buffer=timedelta(minutes=self.config.closing_buffer_minutes),
            proximity_buffer=timedelta(minutes=self.config.proximity_buffer_minutes),
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def submit_reservation(
        self,
        request: ReservationRequest,
        origin_role: OriginRole = OriginRole.GUEST,
    ) -> Reservation:
        """
        Admit a reservation request.

        Args:
            request: Candidate reservation
            origin_role: GUEST requests start PENDING, STAFF requests CONFIRMED

        Returns:
            The persisted reservation

        Raises:
            ValidationError: If a required contact field is missing
            RestaurantNotFoundError: If the restaurant does not exist
            AdmissionRejectedError: OutOfHoursError, DuplicateGuestError,
                TableHeldError or TimeConflictError
            InfrastructureError: On store timeout or repeated aborts
        """
        phone = validate_contact(request, origin_role)

        with self.locks.hold(request.restaurant_id, request.table_id):
            reservation, event = self._with_retry(
                lambda: self._admit(request, origin_role, phone),
                operation="admission",
            )

        logger.info(
            f"Accepted reservation {reservation.id} for table {reservation.table_id} "
            f"at {reservation.date_time.isoformat()} ({reservation.status.value})"
        )
        self._dispatch([event])
        return reservation

    def _admit(
        self,
        request: ReservationRequest,
        origin_role: OriginRole,
        phone: Optional[str],
    ) -> Tuple[Reservation, LifecycleEvent]:
        with self.store.transaction() as tx:
            hours = tx.get_restaurant_hours(request.restaurant_id)
            window = resolve_request_shift(
                hours,
                request.requested_at,
                request.caller_timezone_offset_minutes,
            )

            decision = self._decide(tx, request, origin_role, phone, hours, window)
            if not decision.accepted:
                logger.warning(
                    f"Rejected reservation for restaurant {request.restaurant_id} "
                    f"table {request.table_id} at {request.requested_at.isoformat()}: "
                    f"{decision.reason.value}"
                )
                raise rejection_error(decision.reason, decision.message)

            now = self.clock()
            reservation = tx.insert_reservation(NewReservation(
                restaurant_id=request.restaurant_id,
                table_id=request.table_id,
                table_label=request.table_label or request.table_id,
                guest_name=request.guest_name,
                guest_phone=phone,
                guest_email=request.guest_email or None,
                guest_count=request.guest_count,
                date_time=request.requested_at,
                status=initial_status(origin_role),
                created_at=now,
            ))
            event = LifecycleEvent(
                kind=LifecycleEventKind.CREATED,
                reservation=reservation,
                occurred_at=now,
            )
            tx.record_event(event)
        return reservation, event

    def _decide(
        self,
        tx: StoreTransaction,
        request: ReservationRequest,
        origin_role: OriginRole,
        phone: Optional[str],
        hours: RestaurantHours,
        window: Optional[ShiftWindow],
    ) -> AdmissionDecision:
        if origin_role == OriginRole.STAFF and self.config.staff_bypass_admission:
            return AdmissionDecision.accept()

        active_for_table = tx.get_active_reservations_for_table(
            request.restaurant_id, request.table_id
        )
        active_for_phone = (
            tx.get_active_reservations_for_phone(request.restaurant_id, phone)
            if phone else []
        )

        if origin_role == OriginRole.STAFF:
            return self.checker.check_staff(request, window, active_for_table, active_for_phone)
        return self.checker.check(request, hours, window, active_for_table, active_for_phone)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition_status(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        decline_reason: Optional[str] = None,
    ) -> Reservation:
        """
        Apply a staff status change.

        Raises:
            ReservationNotFoundError: If the reservation does not exist
            InvalidTransitionError: If the lifecycle does not allow the change
        """
        updated, event = self._with_retry(
            lambda: self._transition(reservation_id, new_status, decline_reason),
            operation="status transition",
        )
        logger.info(
            f"Reservation {reservation_id} moved to {updated.status.value} ({event.kind.value})"
        )
        self._dispatch([event])
        return updated

    def _transition(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        decline_reason: Optional[str],
    ) -> Tuple[Reservation, LifecycleEvent]:
        with self.store.transaction() as tx:
            current = tx.get_reservation(reservation_id)
            plan = plan_transition(current.status, new_status, decline_reason)

            now = self.clock()
            updated = tx.update_status(reservation_id, plan.patch, current.status, now)
            if updated is None:
                raise InvalidTransitionError(
                    f"Reservation {reservation_id} changed concurrently; reload and retry"
                )
            event = LifecycleEvent(
                kind=plan.event_kind,
                reservation=updated,
                occurred_at=now,
                previous_status=current.status,
            )
            tx.record_event(event)
        return updated, event

    def sweep_expired(self) -> List[Reservation]:
        """
        Decline every PENDING reservation older than the expiry threshold.

        Safe to run repeatedly and alongside admissions: rows are only moved
        while still PENDING.

        Returns:
            Reservations transitioned by this run
        """
        with LogContext(logger, operation="expiry_sweep") as log_context:
            transitioned, events = self._with_retry(self._sweep, operation="expiry sweep")
            if transitioned:
                log_context.log(
                    "info",
                    f"Expired {len(transitioned)} pending reservations",
                    reservation_ids=[r.id for r in transitioned],
                )
        self._dispatch(events)
        return transitioned

    def _sweep(self) -> Tuple[List[Reservation], List[LifecycleEvent]]:
        now = self.clock()
        cutoff = expiry_cutoff(now, self.config.pending_expiry_minutes)
        plan = plan_expiry()

        transitioned: List[Reservation] = []
        events: List[LifecycleEvent] = []
        with self.store.transaction() as tx:
            for stale in tx.list_stale_pending(cutoff):
                updated = tx.update_status(stale.id, plan.patch, plan.from_status, now)
                if updated is None:
                    continue
                event = LifecycleEvent(
                    kind=plan.event_kind,
                    reservation=updated,
                    occurred_at=now,
                    previous_status=plan.from_status,
                )
                tx.record_event(event)
                transitioned.append(updated)
                events.append(event)
        return transitioned, events

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_reservation(self, reservation_id: int) -> Reservation:
        """
        Get a reservation by ID.

        Raises:
            ReservationNotFoundError: If reservation not found
        """
        with self.store.transaction() as tx:
            return tx.get_reservation(reservation_id)

    def list_reservations(self, restaurant_id: int) -> List[Reservation]:
        """All reservations of a restaurant, latest booking time first."""
        with self.store.transaction() as tx:
            tx.get_restaurant_hours(restaurant_id)
            return tx.list_reservations(restaurant_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _with_retry(self, unit: Callable[[], T], operation: str) -> T:
        attempts = 1 + self.config.admission_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return unit()
            except TransactionAbortedError as e:
                logger.warning(f"{operation} aborted by the store (attempt {attempt}/{attempts})")
                if attempt == attempts:
                    raise InfrastructureError(
                        f"{operation} could not be committed, try again"
                    ) from e
        raise InfrastructureError(f"{operation} was not attempted")

    def _dispatch(self, events: List[LifecycleEvent]) -> None:
        for event in events:
            if event.kind not in NOTIFIABLE_EVENTS:
                continue
            try:
                self.notifier.notify(event)
            except Exception as e:
                logger.error(
                    f"Notifier failed for reservation {event.reservation.id} "
                    f"({event.kind.value}): {e}",
                    exc_info=True,
                )
