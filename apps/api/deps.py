"""FastAPI dependencies."""

import threading
from typing import Optional

from core.config import Settings, settings
from db.session import create_engine, create_session_factory, init_db
from db.sqlalchemy_store import SqlAlchemyReservationStore
from services.notifier import LoggingNotifier
from services.reservation_service import ReservationService


_service: Optional[ReservationService] = None
_service_lock = threading.Lock()


def build_reservation_service(config: Optional[Settings] = None) -> ReservationService:
    """
    Wire a reservation service against the configured database.

    Args:
        config: Settings (global settings by default)

    Returns:
        ReservationService backed by SqlAlchemyReservationStore
    """
    config = config or settings
    engine = create_engine(config=config)
    init_db(engine)
    store = SqlAlchemyReservationStore(
        create_session_factory(engine),
        default_work_starts=config.default_work_starts,
        default_work_ends=config.default_work_ends,
        timeout_seconds=config.store_timeout_seconds,
    )
    return ReservationService(store, notifier=LoggingNotifier(), config=config)


def get_reservation_service() -> ReservationService:
    """Get or create the process-wide reservation service."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = build_reservation_service()
    return _service
