"""Database engine and session management for the reservation engine."""

from typing import Any, Dict, Optional

from sqlalchemy import create_engine as sa_create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from core.config import Settings, settings as default_settings


class DatabaseConfig:
    """Database configuration settings."""

    # Connection pool settings
    POOL_SIZE: int = 5
    MAX_OVERFLOW: int = 10
    POOL_RECYCLE: int = 3600
    POOL_PRE_PING: bool = True


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _is_sqlite_memory(url: str) -> bool:
    database = make_url(url).database
    return _is_sqlite(url) and database in (None, "", ":memory:")


def _postgres_timeout_options(timeout_seconds: float) -> str:
    """Server-side statement and lock-wait limits, in milliseconds."""
    timeout_ms = int(timeout_seconds * 1000)
    return f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}"


def _engine_kwargs(url: str, config: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "echo": config.db_echo,
        "isolation_level": config.db_isolation_level,
    }
    if _is_sqlite(url):
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": config.store_timeout_seconds,
        }
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
    else:
        if make_url(url).get_backend_name() == "postgresql":
            kwargs["connect_args"] = {"options": _postgres_timeout_options(config.store_timeout_seconds)}
        kwargs.update(
            pool_size=DatabaseConfig.POOL_SIZE,
            max_overflow=DatabaseConfig.MAX_OVERFLOW,
            pool_timeout=config.store_timeout_seconds,
            pool_recycle=DatabaseConfig.POOL_RECYCLE,
            pool_pre_ping=DatabaseConfig.POOL_PRE_PING,
        )
    return kwargs


def _use_immediate_transactions(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock at BEGIN.

    pysqlite only opens a transaction before DML, so the conflict reads of
    an admission would otherwise run outside it.
    """
    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(url: str, kwargs: Dict[str, Any]) -> Engine:
    engine = sa_create_engine(url, **kwargs)
    if _is_sqlite(url):
        _use_immediate_transactions(engine)
    return engine


def create_engine(url: Optional[str] = None, config: Optional[Settings] = None) -> Engine:
    """
    Create SQLAlchemy engine.

    Args:
        url: Database URL (settings.database_url by default)
        config: Settings providing isolation level and timeouts

    Returns:
        SQLAlchemy engine
    """
    config = config or default_settings
    url = url or config.database_url
    return _build_engine(url, _engine_kwargs(url, config))


def create_test_engine(url: str = "sqlite:///:memory:", config: Optional[Settings] = None) -> Engine:
    """
    Create engine for testing.

    In-memory SQLite shares one connection across threads; any other URL
    gets a NullPool so each session opens its own connection.
    """
    config = config or default_settings
    kwargs = _engine_kwargs(url, config)
    if not _is_sqlite_memory(url):
        for key in ("pool_size", "max_overflow", "pool_timeout", "pool_recycle", "pool_pre_ping"):
            kwargs.pop(key, None)
        kwargs["poolclass"] = NullPool
    return _build_engine(url, kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        bind=engine,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(engine: Engine) -> None:
    """Initialize database by creating all tables."""
    from .base import Base
    from . import models_sqlalchemy  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_db(engine: Engine) -> None:
    """Drop all database tables. Use with caution!"""
    from .base import Base

    Base.metadata.drop_all(bind=engine)
