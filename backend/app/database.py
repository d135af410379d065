"""Database engine and session management.

The engine and session factory are built explicitly by ``create_app`` and
stored on ``app.state``; nothing here opens a connection at import time.
"""

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import Settings, settings as default_settings

# Base class for models
Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    """Create an engine tuned for the configured database."""
    if settings.database_url.startswith("sqlite"):
        engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False}
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    # PostgreSQL: connection pool sized for typical web workloads.
    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite defaults foreign_keys to OFF; turn it on for every connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """Dependency for FastAPI routes to get a request-scoped session.

    Rolls back the transaction on unhandled exceptions so that the
    connection is returned to the pool in a clean state.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return getattr(request.app.state, "settings", default_settings)


def get_storage(request: Request):
    """FileStorage collaborator created by create_app."""
    return request.app.state.storage
