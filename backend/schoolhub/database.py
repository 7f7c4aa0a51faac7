"""Database connection and session management."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Tuple, Type

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

logger = logging.getLogger(__name__)

IN_MEMORY_URL = "sqlite://"

# Base class for models
Base = declarative_base()

# Session factory; bound by configure_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

engine: Engine = None


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with pooling suited to the backend behind ``url``."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in (IN_MEMORY_URL, "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        new_engine = create_engine(url, echo=echo, **kwargs)
        event.listen(new_engine, "connect", _set_sqlite_pragma)
        event.listen(new_engine, "begin", _sqlite_begin)
        return new_engine
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_size=10,
        max_overflow=20,
        echo=echo,
    )


def configure_engine(url: str, echo: bool = False) -> Engine:
    """(Re)bind the process-wide engine and session factory."""
    global engine
    if engine is not None:
        engine.dispose()
    engine = build_engine(url, echo=echo)
    SessionLocal.configure(bind=engine)
    event.listen(engine, "checkout", _receive_checkout)
    event.listen(engine, "checkin", _receive_checkin)
    return engine


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """Create all tables in the database."""
    # Import models so every table is registered on Base.metadata
    from . import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error creating tables: {e}")
        raise


def upsert(db: Session, model: Type, key: Dict[str, Any], values: Dict[str, Any],
           on_create: Dict[str, Any] = None) -> Tuple[Any, bool]:
    """Insert the row identified by ``key`` or update it in place.

    The unique constraint on ``key`` is the arbiter: when a concurrent writer
    inserts first, the insert fails inside a savepoint and the existing row is
    updated instead. Returns ``(row, created)``.
    """
    row = db.query(model).filter_by(**key).first()
    if row is None:
        db.flush()
        row = model(**key, **values, **(on_create or {}))
        try:
            with db.begin_nested():
                db.add(row)
            return row, True
        except IntegrityError:
            row = db.query(model).filter_by(**key).first()
            if row is None:
                raise
            logger.info(f"Concurrent insert of {model.__name__} {key}; updating existing row")
    for name, value in values.items():
        setattr(row, name, value)
    return row, False


def check_database_connection() -> bool:
    """Check if database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def init_database() -> str:
    """Connect to the configured database, falling back to in-memory SQLite.

    Returns the URL that ended up bound.
    """
    settings = get_settings()
    try:
        configure_engine(settings.database_url, echo=settings.sql_debug)
        connected = check_database_connection()
    except (SQLAlchemyError, ImportError) as e:
        logger.error(f"Could not create engine for configured database: {e}")
        connected = False

    url = settings.database_url
    if not connected:
        logger.warning("Configured database unreachable, using in-memory SQLite")
        configure_engine(IN_MEMORY_URL, echo=settings.sql_debug)
        url = IN_MEMORY_URL
    create_tables()
    return url


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce foreign keys and let SQLAlchemy drive transactions (SAVEPOINT support)."""
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_begin(conn):
    # In-memory databases hand the same connection to every session
    if not conn.connection.dbapi_connection.in_transaction:
        conn.exec_driver_sql("BEGIN")


def _receive_checkout(dbapi_connection, connection_record, connection_proxy):
    logger.debug("Connection checked out from pool")


def _receive_checkin(dbapi_connection, connection_record):
    logger.debug("Connection checked in to pool")
