"""SQLAlchemy-backed reservation store."""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from domain.enums import ACTIVE_STATUSES, LifecycleEventKind, ReservationStatus
from domain.exceptions import (
    InfrastructureError,
    ReservationNotFoundError,
    RestaurantNotFoundError,
    TransactionAbortedError,
)
from domain.models import (
    LifecycleEvent,
    NewReservation,
    Reservation,
    ReservationPatch,
    Restaurant,
    RestaurantHours,
)
from .models_sqlalchemy import ReservationEventModel, ReservationModel, RestaurantModel
from .store import default_hours_from


logger = logging.getLogger(__name__)

# SQLSTATE codes for serialization failure and deadlock
RETRYABLE_SQLSTATES = {"40001", "40P01"}
# SQLSTATE codes for statement timeout and lock wait timeout
TIMEOUT_SQLSTATES = {"57014", "55P03"}

ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_STATUSES]


def translate_db_error(exc: DBAPIError) -> Optional[InfrastructureError]:
    """
    Map a driver error onto the engine's infrastructure errors.

    Returns:
        TransactionAbortedError for serialization failures and deadlocks,
        InfrastructureError for statement and lock timeouts and other
        operational failures (lost connections), None for errors that are
        not transient.
    """
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    message = str(exc.orig).lower()

    if sqlstate in RETRYABLE_SQLSTATES or "could not serialize" in message:
        return TransactionAbortedError("Transaction aborted by concurrent update")
    if sqlstate in TIMEOUT_SQLSTATES:
        return InfrastructureError("Timed out waiting for the reservation store")
    if isinstance(exc, OperationalError) or exc.connection_invalidated:
        if "locked" in message or "timeout" in message:
            return InfrastructureError("Timed out waiting for the reservation store")
        return InfrastructureError("Reservation store is unavailable")
    return None


def _to_reservation(row: ReservationModel) -> Reservation:
    return Reservation.model_validate(row)


class _SqlTransaction:
    """Store operations bound to one session and one database transaction."""

    def __init__(self, session: Session, store: "SqlAlchemyReservationStore"):
        self.session = session
        self._store = store

    def add_restaurant(
        self,
        name: str,
        work_starts: Optional[str] = None,
        work_ends: Optional[str] = None,
    ) -> Restaurant:
        row = RestaurantModel(name=name, work_starts=work_starts, work_ends=work_ends)
        self.session.add(row)
        self.session.flush()
        return Restaurant.model_validate(row)

    def get_restaurant_hours(self, restaurant_id: int) -> RestaurantHours:
        row = self.session.get(RestaurantModel, restaurant_id)
        if row is None:
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id} not found")
        return default_hours_from(
            Restaurant.model_validate(row),
            self._store.default_work_starts,
            self._store.default_work_ends,
        )

    def get_active_reservations_for_phone(self, restaurant_id: int, phone: str) -> List[Reservation]:
        query = (
            select(ReservationModel)
            .where(
                ReservationModel.restaurant_id == restaurant_id,
                ReservationModel.guest_phone == phone,
                ReservationModel.status.in_(ACTIVE_STATUS_VALUES),
            )
            .order_by(ReservationModel.date_time)
        )
        return [_to_reservation(row) for row in self.session.scalars(query)]

    def get_active_reservations_for_table(self, restaurant_id: int, table_id: str) -> List[Reservation]:
        query = (
            select(ReservationModel)
            .where(
                ReservationModel.restaurant_id == restaurant_id,
                ReservationModel.table_id == table_id,
                ReservationModel.status.in_(ACTIVE_STATUS_VALUES),
            )
            .order_by(ReservationModel.date_time)
        )
        return [_to_reservation(row) for row in self.session.scalars(query)]

    def insert_reservation(self, new: NewReservation) -> Reservation:
        values = new.model_dump()
        values["status"] = new.status.value
        row = ReservationModel(**values)
        self.session.add(row)
        self.session.flush()
        return _to_reservation(row)

    def _load(self, reservation_id: int) -> ReservationModel:
        query = (
            select(ReservationModel)
            .where(ReservationModel.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        row = self.session.scalars(query).first()
        if row is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return row

    def get_reservation(self, reservation_id: int) -> Reservation:
        return _to_reservation(self._load(reservation_id))

    def update_status(
        self,
        reservation_id: int,
        patch: ReservationPatch,
        expected_status: ReservationStatus,
        updated_at: datetime,
    ) -> Optional[Reservation]:
        values = patch.changes()
        if "status" in values and values["status"] is not None:
            values["status"] = values["status"].value
        values["updated_at"] = updated_at

        result = self.session.execute(
            update(ReservationModel)
            .where(
                ReservationModel.id == reservation_id,
                ReservationModel.status == expected_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Raises when the row is missing; otherwise the status moved on
            self._load(reservation_id)
            return None
        return self.get_reservation(reservation_id)

    def record_event(self, event: LifecycleEvent) -> None:
        self.session.add(ReservationEventModel(
            reservation_id=event.reservation.id,
            kind=event.kind.value,
            previous_status=event.previous_status.value if event.previous_status else None,
            snapshot=event.reservation.model_dump(mode="json"),
            occurred_at=event.occurred_at,
        ))
        self.session.flush()

    def list_events(self, reservation_id: Optional[int] = None) -> List[LifecycleEvent]:
        query = select(ReservationEventModel).order_by(ReservationEventModel.id)
        if reservation_id is not None:
            query = query.where(ReservationEventModel.reservation_id == reservation_id)
        return [
            LifecycleEvent(
                kind=LifecycleEventKind(row.kind),
                reservation=Reservation.model_validate(row.snapshot),
                occurred_at=row.occurred_at,
                previous_status=ReservationStatus(row.previous_status) if row.previous_status else None,
            )
            for row in self.session.scalars(query)
        ]

    def list_stale_pending(self, cutoff: datetime) -> List[Reservation]:
        query = (
            select(ReservationModel)
            .where(
                ReservationModel.status == ReservationStatus.PENDING.value,
                ReservationModel.created_at < cutoff,
            )
            .order_by(ReservationModel.created_at)
        )
        return [_to_reservation(row) for row in self.session.scalars(query)]

    def list_reservations(self, restaurant_id: int) -> List[Reservation]:
        query = (
            select(ReservationModel)
            .where(ReservationModel.restaurant_id == restaurant_id)
            .order_by(ReservationModel.date_time.desc())
        )
        return [_to_reservation(row) for row in self.session.scalars(query)]


class SqlAlchemyReservationStore:
    """
    Reservation store on a relational database.

    Each ``transaction()`` is one database transaction at the engine's
    isolation level (SERIALIZABLE by default). Serialization failures are
    raised as TransactionAbortedError so the caller can retry the unit.

    Engines on a StaticPool (in-memory SQLite) hand every thread the same
    connection, so their transactions are run one at a time.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        default_work_starts: str = "10:00",
        default_work_ends: str = "23:00",
        timeout_seconds: float = 10.0,
    ):
        self.session_factory = session_factory
        self.default_work_starts = default_work_starts
        self.default_work_ends = default_work_ends
        self.timeout_seconds = timeout_seconds

        engine = session_factory.kw.get("bind")
        self._connection_lock = (
            threading.Lock() if engine is not None and isinstance(engine.pool, StaticPool) else None
        )

    @contextmanager
    def _exclusive_connection(self) -> Iterator[None]:
        if self._connection_lock is None:
            yield
            return
        if not self._connection_lock.acquire(timeout=self.timeout_seconds):
            logger.error("Timed out waiting for the shared database connection")
            raise InfrastructureError("Timed out waiting for the reservation store")
        try:
            yield
        finally:
            self._connection_lock.release()

    @contextmanager
    def transaction(self) -> Iterator[_SqlTransaction]:
        with self._exclusive_connection():
            session = self.session_factory()
            try:
                with session.begin():
                    yield _SqlTransaction(session, self)
            except PoolTimeoutError as e:
                logger.error(f"Connection pool timeout: {e}")
                raise InfrastructureError("Timed out waiting for a database connection") from e
            except DBAPIError as e:
                translated = translate_db_error(e)
                if translated is None:
                    raise
                logger.error(f"Database error ({translated.code}): {e.orig}")
                raise translated from e
            finally:
                session.close()
