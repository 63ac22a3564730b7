"""Database session factory, configuration and unit of work.

Provides database connectivity and session management for the DocShare
backend. Every state-changing moderation call runs inside a ``UnitOfWork``:
entity updates, ledger appends and counter updates share one transaction and
either all commit or all roll back.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from config import settings
from domain.moderation.errors import StorageError
from store.counters import CounterProjection
from store.entity_store import EntityStore
from store.ledger import AuditLedger

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

# Pool settings only apply to PostgreSQL (not SQLite)
_engine_kwargs = {
    "pool_pre_ping": True,  # Verify connections before using
    "echo": False,
}

if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    _engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions outside of requests.

    Usage:
        with get_db_session() as session:
            session.query(User).all()

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @app.get("/users")
        def list_users(db: Session = Depends(get_db)):
            return db.query(User).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class UnitOfWork:
    """Single atomic boundary for one logical moderation operation.

    Wraps a session and exposes the entity store, the audit ledger and the
    counter projection bound to that session. Leaving the ``with`` block
    normally commits; any exception rolls everything back. Database failures
    surface as ``StorageError`` and are never retried here.

    Example:
        with UnitOfWork(db) as uow:
            file = uow.store.lock_file(file_id)
            ...
            uow.ledger.append(...)
    """

    def __init__(self, session: Session):
        self.session = session
        self.store = EntityStore(session)
        self.ledger = AuditLedger(session)
        self.counters = CounterProjection(session)

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.session.rollback()
            if isinstance(exc, SQLAlchemyError):
                logger.error("Unit of work aborted by storage failure", exc_info=exc)
                raise StorageError(
                    "Storage failure, operation rolled back",
                    context={"cause": type(exc).__name__},
                ) from exc
            return False

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Commit failed, unit of work rolled back", exc_info=e)
            raise StorageError(
                "Storage failure, operation rolled back",
                context={"cause": type(e).__name__},
            ) from e
        return False

    def flush(self) -> None:
        self.session.flush()


UnitOfWorkFactory = Callable[[], UnitOfWork]


def unit_of_work_factory(session: Session) -> UnitOfWorkFactory:
    """Bind a session so services can open fresh units of work on demand."""
    return lambda: UnitOfWork(session)
