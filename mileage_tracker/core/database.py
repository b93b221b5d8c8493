"""
Database configuration and session management
"""
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from ..config.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# backends with an INSERT ... ON CONFLICT construct for the daily stats upsert
SUPPORTED_BACKENDS = ("sqlite", "postgresql")


def build_engine(database_url: str) -> Engine:
    """Create an engine with per-backend connection options."""
    backend = make_url(database_url).get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend '{backend}'; DATABASE_URL must use one of: "
            f"{', '.join(SUPPORTED_BACKENDS)}"
        )

    if backend == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # in-memory databases live as long as their single connection
            options["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **options)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=settings.DATABASE_POOL_RECYCLE,
        pool_size=10,
        max_overflow=20,
        echo=False,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    module = type(dbapi_connection).__module__
    if module.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Creates a new database session for each request.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_database(bind: Engine = None):
    """Initialize database with tables."""
    # models register themselves on Base.metadata when imported
    from .. import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_database_health() -> bool:
    """Check if database connection is healthy."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def cleanup_database():
    """Clean up database connections."""
    engine.dispose()
    logger.info("Database connections cleaned up")


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "SUPPORTED_BACKENDS",
    "build_engine",
    "get_db",
    "init_database",
    "cleanup_database",
    "check_database_health",
]
