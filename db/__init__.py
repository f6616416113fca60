"""Database layer for the table reservation engine."""

from .base import Base, TimestampMixin, UTCDateTime
from .models_sqlalchemy import RestaurantModel, ReservationModel, ReservationEventModel
from .session import (
    create_engine,
    create_test_engine,
    create_session_factory,
    init_db,
    drop_db,
    DatabaseConfig,
)
from .store import ReservationStore, StoreTransaction, InMemoryReservationStore
from .sqlalchemy_store import SqlAlchemyReservationStore

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    # Models
    "RestaurantModel",
    "ReservationModel",
    "ReservationEventModel",
    # Session
    "create_engine",
    "create_test_engine",
    "create_session_factory",
    "init_db",
    "drop_db",
    "DatabaseConfig",
    # Stores
    "ReservationStore",
    "StoreTransaction",
    "InMemoryReservationStore",
    "SqlAlchemyReservationStore",
]
