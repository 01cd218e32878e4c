"""Database engine and session setup.

Production Pattern:
- Singleton engine per process, shared by the store and the doctor directory
- Connection health checks via pool_pre_ping
- Automatic table creation via init_database()
- In-memory SQLite shares one connection so every session sees the same data
"""
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from appointment_engine import config
from appointment_engine.database_models import Base
from appointment_engine.errors import StoreUnavailableError

# Global engine (initialized on first use)
_engine: Optional[Engine] = None


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    Args:
        database_url: SQLAlchemy connection string

    Returns:
        Engine instance
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            return create_engine(
                database_url,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        return create_engine(database_url, connect_args=connect_args)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,  # Connection acquisition timeout
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """
    Session factory used by the store adapters.

    expire_on_commit=False keeps loaded attributes readable after commit.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def store_errors(operation: str):
    """
    Translate infrastructure failures into StoreUnavailableError.

    IntegrityError is re-raised untouched: constraint violations are domain
    outcomes (a lost claim) that the caller maps itself.

    Args:
        operation: Name of the store operation, used in the error message
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        raise StoreUnavailableError(f"Store unavailable during {operation}: {e}") from e


def init_database(engine: Engine) -> None:
    """
    Create all scheduling tables.

    Safe to call multiple times (idempotent).
    """
    Base.metadata.create_all(engine)


def get_engine() -> Engine:
    """
    Get or create the process-wide engine from DATABASE_URL.

    Returns:
        Engine instance with tables created
    """
    global _engine

    if _engine is None:
        _engine = build_engine(config.DATABASE_URL)
        init_database(_engine)

    return _engine


def close_engine():
    """
    Dispose the global engine.

    Call this during application shutdown to close all pooled connections.
    """
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None
