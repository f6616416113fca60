"""Pytest configuration and fixtures for reservation engine tests."""
import itertools
from datetime import datetime, timedelta

import pytest
import pytz

from core.config import Settings
from db.session import create_session_factory, create_test_engine, init_db
from db.sqlalchemy_store import SqlAlchemyReservationStore
from db.store import InMemoryReservationStore
from domain.models import ReservationRequest
from services.notifier import RecordingNotifier
from services.reservation_service import ReservationService


UTC = pytz.UTC


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """Aware UTC instant on a March 2024 day."""
    return datetime(2024, 3, day, hour, minute, tzinfo=UTC)


class FakeClock:
    """Callable clock that tests move forward explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def test_settings():
    """Settings independent of the environment and any .env file."""
    return Settings(
        _env_file=None,
        app_env="development",
        database_url="sqlite:///:memory:",
        store_timeout_seconds=5.0,
    )


@pytest.fixture(scope="function")
def clock():
    """Clock fixed at 08:00 UTC on the test day."""
    return FakeClock(at(8))


@pytest.fixture(scope="function")
def notifier():
    """Notifier that records every dispatched event."""
    return RecordingNotifier()


@pytest.fixture(scope="function")
def memory_store(test_settings):
    """In-memory reservation store."""
    return InMemoryReservationStore(
        default_work_starts=test_settings.default_work_starts,
        default_work_ends=test_settings.default_work_ends,
        timeout_seconds=test_settings.store_timeout_seconds,
    )


@pytest.fixture(scope="function")
def db_engine(test_settings):
    """Create an in-memory SQLite database engine for testing."""
    engine = create_test_engine(config=test_settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def sql_store(db_engine, test_settings):
    """Reservation store on the in-memory SQLite engine."""
    return SqlAlchemyReservationStore(
        create_session_factory(db_engine),
        default_work_starts=test_settings.default_work_starts,
        default_work_ends=test_settings.default_work_ends,
        timeout_seconds=test_settings.store_timeout_seconds,
    )


@pytest.fixture(scope="function")
def file_sql_store(tmp_path, test_settings):
    """Reservation store on a file-backed SQLite database, one connection per session."""
    engine = create_test_engine(f"sqlite:///{tmp_path / 'reservations.db'}", config=test_settings)
    init_db(engine)
    yield SqlAlchemyReservationStore(
        create_session_factory(engine),
        default_work_starts=test_settings.default_work_starts,
        default_work_ends=test_settings.default_work_ends,
        timeout_seconds=test_settings.store_timeout_seconds,
    )
    engine.dispose()


@pytest.fixture(scope="function", params=["memory", "sqlalchemy"])
def store(request):
    """Run the test once against each store implementation."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture(scope="function")
def restaurant(store):
    """Restaurant open 10:00-22:00."""
    with store.transaction() as tx:
        return tx.add_restaurant("Test Bistro", "10:00", "22:00")


@pytest.fixture(scope="function")
def reservation_service(store, notifier, test_settings, clock):
    """Create a reservation service instance for testing."""
    return ReservationService(store, notifier=notifier, config=test_settings, clock=clock)


@pytest.fixture(scope="function")
def make_request(restaurant):
    """Factory for guest requests; each call gets a fresh phone number unless given one."""
    phones = itertools.count(1)

    def _make(**kwargs):
        data = {
            "restaurant_id": restaurant.id,
            "table_id": "T1",
            "guest_name": "John Doe",
            "guest_phone": f"+1 (555) 000-{next(phones):04d}",
            "guest_email": "john@example.com",
            "guest_count": 2,
            "requested_at": at(12),
        }
        data.update(kwargs)
        return ReservationRequest(**data)
    return _make
