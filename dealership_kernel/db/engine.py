"""
Module: dealership_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  Single point of database connection
    configuration for the kernel.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT import
    from services/, selectors/ or domain/ (create_tables imports models lazily).

Invariants enforced:
    - PostgreSQL: READ COMMITTED with explicit row-level locking
      (SELECT ... FOR UPDATE) wherever a read is followed by a dependent write.
    - SQLite: every transaction starts with BEGIN IMMEDIATE, so transactions
      take the database write lock up front and serialize.  SQLite ignores
      FOR UPDATE; the early write lock gives the same read-modify-write
      atomicity.
    - session_scope() commits on success and rolls back on any exception.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url().
    - ConcurrencyConflictError from session_scope() when the store reports a
      lock timeout, deadlock or serialization failure.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from dealership_kernel.exceptions import ConcurrencyConflictError
from dealership_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

# SQLSTATE codes PostgreSQL uses for retryable contention
_RETRYABLE_PGCODES = frozenset({"40001", "40P01", "55P03"})
_RETRYABLE_MESSAGES = ("database is locked", "deadlock", "could not serialize")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: int = 30,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Calling again overwrites the previous engine (call reset_engine() first
    to dispose its pool).

    Args:
        database_url: postgresql://... or sqlite:///path/to/file.db
        echo: If True, log all SQL statements.
        pool_size: Connections kept in the pool.
        max_overflow: Connections allowed beyond pool_size.
        pool_pre_ping: Test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        sqlite_busy_timeout: Seconds a SQLite connection waits for the
            write lock before failing with "database is locked".

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "sqlite":
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            connect_args={
                "check_same_thread": False,
                "timeout": sqlite_busy_timeout,
            },
        )
        _install_sqlite_transaction_hooks(_engine)
    else:
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "echo": echo,
        },
    )

    return _engine


def _install_sqlite_transaction_hooks(engine: Engine) -> None:
    """Take over pysqlite transaction handling so BEGIN IMMEDIATE is used."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's implicit BEGIN; we emit our own below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory.

    Useful for multi-threaded callers where each thread needs its own session.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def is_retryable_contention(exc: DBAPIError) -> bool:
    """True when a DBAPI error signals lock contention rather than a bug."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _RETRYABLE_MESSAGES)


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
    operation: str = "transaction",
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    On normal exit the session is committed and closed.  On exception it is
    rolled back and closed and the exception re-raised; lock contention is
    re-raised as ConcurrencyConflictError.

    Usage:
        with session_scope() as session:
            InventoryLedger(session).adjust_stock(...)
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started", extra={"operation": operation})
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed", extra={"operation": operation})
    except DBAPIError as exc:
        session.rollback()
        if is_retryable_contention(exc):
            logger.warning(
                "transaction_conflict",
                extra={"operation": operation, "detail": str(exc.orig)},
            )
            raise ConcurrencyConflictError(operation, str(exc.orig)) from exc
        logger.error("transaction_rolled_back", exc_info=True)
        raise
    except Exception:
        session.rollback()
        logger.warning(
            "transaction_rolled_back",
            extra={"operation": operation},
            exc_info=True,
        )
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create all tables defined by the kernel models.

    Raises:
        RuntimeError: If engine is not initialized.
    """
    from dealership_kernel.db.base import Base
    import dealership_kernel.models  # noqa: F401  (registers all tables)

    engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info(
        "tables_created",
        extra={"table_count": len(Base.metadata.sorted_tables)},
    )


def drop_tables() -> None:
    """Drop all tables. Primarily for testing."""
    from dealership_kernel.db.base import Base
    import dealership_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test cleanup)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)


def is_postgres() -> bool:
    """Check if the current engine is PostgreSQL."""
    if _engine is None:
        return False
    return _engine.dialect.name == "postgresql"
