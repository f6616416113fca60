"""
Reservation store interface and in-memory implementation.

The engine only talks to a store through ``transaction()``: every read and
write of one admission or transition happens on the yielded
``StoreTransaction`` and commits together or not at all.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import ContextManager, Dict, Iterator, List, Optional, Protocol

from domain.enums import ReservationStatus
from domain.exceptions import (
    InfrastructureError,
    ReservationNotFoundError,
    RestaurantNotFoundError,
)
from domain.models import (
    LifecycleEvent,
    NewReservation,
    Reservation,
    ReservationPatch,
    Restaurant,
    RestaurantHours,
)


logger = logging.getLogger(__name__)


class StoreTransaction(Protocol):
    """Reads and writes available inside one store transaction."""

    def add_restaurant(
        self,
        name: str,
        work_starts: Optional[str] = None,
        work_ends: Optional[str] = None,
    ) -> Restaurant:
        ...

    def get_restaurant_hours(self, restaurant_id: int) -> RestaurantHours:
        ...

    def get_active_reservations_for_phone(self, restaurant_id: int, phone: str) -> List[Reservation]:
        ...

    def get_active_reservations_for_table(self, restaurant_id: int, table_id: str) -> List[Reservation]:
        ...

    def insert_reservation(self, new: NewReservation) -> Reservation:
        ...

    def get_reservation(self, reservation_id: int) -> Reservation:
        ...

    def update_status(
        self,
        reservation_id: int,
        patch: ReservationPatch,
        expected_status: ReservationStatus,
        updated_at: datetime,
    ) -> Optional[Reservation]:
        ...

    def record_event(self, event: LifecycleEvent) -> None:
        ...

    def list_events(self, reservation_id: Optional[int] = None) -> List[LifecycleEvent]:
        ...

    def list_stale_pending(self, cutoff: datetime) -> List[Reservation]:
        ...

    def list_reservations(self, restaurant_id: int) -> List[Reservation]:
        ...


class ReservationStore(Protocol):
    """Persistence capability injected into the reservation service."""

    def transaction(self) -> ContextManager[StoreTransaction]:
        ...


def default_hours_from(
    restaurant: Restaurant,
    default_work_starts: str,
    default_work_ends: str,
) -> RestaurantHours:
    """Apply default hours where a restaurant has none configured."""
    return RestaurantHours(
        work_starts=restaurant.work_starts or default_work_starts,
        work_ends=restaurant.work_ends or default_work_ends,
    )


class _InMemoryTransaction:
    """Works on private copies; the store swaps them in on commit."""

    def __init__(self, store: "InMemoryReservationStore"):
        self._store = store
        self.restaurants: Dict[int, Restaurant] = dict(store._restaurants)
        self.reservations: Dict[int, Reservation] = dict(store._reservations)
        self.events: List[LifecycleEvent] = list(store._events)
        self.next_restaurant_id = store._next_restaurant_id
        self.next_reservation_id = store._next_reservation_id

    def add_restaurant(
        self,
        name: str,
        work_starts: Optional[str] = None,
        work_ends: Optional[str] = None,
    ) -> Restaurant:
        restaurant = Restaurant(
            id=self.next_restaurant_id,
            name=name,
            work_starts=work_starts,
            work_ends=work_ends,
        )
        self.restaurants[restaurant.id] = restaurant
        self.next_restaurant_id += 1
        return restaurant

    def get_restaurant_hours(self, restaurant_id: int) -> RestaurantHours:
        restaurant = self.restaurants.get(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id} not found")
        return default_hours_from(
            restaurant,
            self._store.default_work_starts,
            self._store.default_work_ends,
        )

    def _active(self, restaurant_id: int) -> List[Reservation]:
        return [
            r for r in self.reservations.values()
            if r.restaurant_id == restaurant_id and r.is_active
        ]

    def get_active_reservations_for_phone(self, restaurant_id: int, phone: str) -> List[Reservation]:
        return [r for r in self._active(restaurant_id) if r.guest_phone == phone]

    def get_active_reservations_for_table(self, restaurant_id: int, table_id: str) -> List[Reservation]:
        matches = [r for r in self._active(restaurant_id) if r.table_id == table_id]
        return sorted(matches, key=lambda r: r.date_time)

    def insert_reservation(self, new: NewReservation) -> Reservation:
        reservation = Reservation(id=self.next_reservation_id, **new.model_dump())
        self.reservations[reservation.id] = reservation
        self.next_reservation_id += 1
        return reservation

    def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    def update_status(
        self,
        reservation_id: int,
        patch: ReservationPatch,
        expected_status: ReservationStatus,
        updated_at: datetime,
    ) -> Optional[Reservation]:
        current = self.get_reservation(reservation_id)
        if current.status != expected_status:
            return None
        updated = current.model_copy(update={**patch.changes(), "updated_at": updated_at})
        self.reservations[reservation_id] = updated
        return updated

    def record_event(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def list_events(self, reservation_id: Optional[int] = None) -> List[LifecycleEvent]:
        if reservation_id is None:
            return list(self.events)
        return [e for e in self.events if e.reservation.id == reservation_id]

    def list_stale_pending(self, cutoff: datetime) -> List[Reservation]:
        stale = [
            r for r in self.reservations.values()
            if r.status == ReservationStatus.PENDING and r.created_at < cutoff
        ]
        return sorted(stale, key=lambda r: r.created_at)

    def list_reservations(self, restaurant_id: int) -> List[Reservation]:
        matches = [r for r in self.reservations.values() if r.restaurant_id == restaurant_id]
        return sorted(matches, key=lambda r: r.date_time, reverse=True)


class InMemoryReservationStore:
    """
    Process-local store.

    Transactions are serialized by a store-wide lock and applied on commit
    only, so a failure inside the block leaves no partial write behind.
    """

    def __init__(
        self,
        default_work_starts: str = "10:00",
        default_work_ends: str = "23:00",
        timeout_seconds: float = 10.0,
    ):
        self.default_work_starts = default_work_starts
        self.default_work_ends = default_work_ends
        self.timeout_seconds = timeout_seconds

        self._restaurants: Dict[int, Restaurant] = {}
        self._reservations: Dict[int, Reservation] = {}
        self._events: List[LifecycleEvent] = []
        self._next_restaurant_id = 1
        self._next_reservation_id = 1
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[_InMemoryTransaction]:
        if not self._lock.acquire(timeout=self.timeout_seconds):
            logger.error("Timed out waiting for in-memory store transaction")
            raise InfrastructureError("Reservation store is busy, try again")
        try:
            tx = _InMemoryTransaction(self)
            yield tx
            self._restaurants = tx.restaurants
            self._reservations = tx.reservations
            self._events = tx.events
            self._next_restaurant_id = tx.next_restaurant_id
            self._next_reservation_id = tx.next_reservation_id
        finally:
            self._lock.release()
