"""
SQLAlchemy engine singleton with production-ready connection pooling.

PostgreSQL is the production store; calendar row locks are taken with
SELECT ... FOR UPDATE and bounded by ``lock_timeout``. SQLite is supported for
local runs and the test suite: there every transaction is opened with
BEGIN IMMEDIATE so that writers serialize on the database lock for at most
LOCK_TIMEOUT_MS instead of failing on lock upgrade.
"""

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import DBAPIError

from hotel_booking.config import DATABASE_URL, LOCK_TIMEOUT_MS
from hotel_booking.errors import LockTimeout

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")


def _install_sqlite_locking(engine: Engine) -> None:
    """
    Take over transaction control from pysqlite.

    pysqlite defers BEGIN until the first write and does not support SAVEPOINT
    reliably on its own. Emitting BEGIN IMMEDIATE ourselves makes a transaction
    hold the write lock from its first statement, the SQLite counterpart of
    locking the calendar rows up front.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={LOCK_TIMEOUT_MS}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given database URL.

    Args:
        url: SQLAlchemy database URL
        echo: Log emitted SQL (development only)

    Returns:
        Engine: configured engine
    """
    if make_url(url).get_backend_name() == "sqlite":
        sqlite_engine = create_engine(
            url,
            future=True,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": LOCK_TIMEOUT_MS / 1000},
        )
        _install_sqlite_locking(sqlite_engine)
        return sqlite_engine

    return create_engine(
        url,
        future=True,
        # Connection pool settings
        pool_size=10,  # Number of connections to maintain in the pool
        max_overflow=20,  # Additional connections when pool is exhausted
        pool_pre_ping=True,  # Verify connections before using (detect stale connections)
        pool_recycle=3600,  # Recycle connections after 1 hour
        echo=echo,
    )


def apply_lock_timeout(conn: Connection) -> None:
    """
    Bound how long the current transaction may wait on row locks.

    On PostgreSQL this is transaction-scoped (SET LOCAL). SQLite already got
    its bound from busy_timeout when the connection was opened.
    """
    if conn.dialect.name == "postgresql":
        conn.execute(text(f"SET LOCAL lock_timeout = '{int(LOCK_TIMEOUT_MS)}ms'"))


engine: Engine = build_engine(DATABASE_URL)


def check_engine_health(db_engine: Engine | None = None) -> bool:
    """
    Check if database engine is healthy and connections are working.

    Used by the /ready endpoint before allowing traffic to the service.

    Args:
        db_engine: Engine to probe (defaults to the module singleton)

    Returns:
        bool: True if database is reachable and healthy, False otherwise
    """
    try:
        with (db_engine or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


# PostgreSQL SQLSTATEs that mean "gave up waiting for a lock"
LOCK_NOT_AVAILABLE = "55P03"
DEADLOCK_DETECTED = "40P01"


def is_lock_timeout(exc: DBAPIError) -> bool:
    """Whether a driver error means the lock wait bound was hit (retryable)."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in (LOCK_NOT_AVAILABLE, DEADLOCK_DETECTED):
        return True
    return "database is locked" in str(exc.orig)


@contextmanager
def translate_lock_errors(action: str) -> Iterator[None]:
    """
    Re-raise lock waits that hit the bound as LockTimeout.

    Other driver errors propagate unchanged.
    """
    try:
        yield
    except DBAPIError as e:
        if is_lock_timeout(e):
            raise LockTimeout(f"Timed out waiting for locks while trying to {action}") from e
        raise
