"""
Process-wide engine and session factory.

Only PostgreSQL and SQLite are supported.  Concurrency safety does not rest
on the isolation level: stock levels, order numbers and order status moves
are all single atomic UPDATE statements, so PostgreSQL runs at READ
COMMITTED.  SQLite gets ``BEGIN IMMEDIATE`` on every transaction (writers
queue on the file lock for up to ``pool_timeout`` seconds) and has
pysqlite's own transaction handling switched off so SAVEPOINTs behave.
Every SQLite connection also gets the exact decimal functions from
db/types.py.
"""

import atexit

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.types import register_sqlite_functions
from stock_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

SUPPORTED_DIALECTS = ("postgresql", "sqlite")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_begin_immediate(engine: Engine, busy_timeout_s: int) -> None:
    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA busy_timeout = {busy_timeout_s * 1000}")
            cursor.execute("PRAGMA foreign_keys = ON")
        finally:
            cursor.close()
        register_sqlite_functions(dbapi_connection)

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine for ``database_url`` and make it the current one.

    Pool settings apply to PostgreSQL; for SQLite ``pool_timeout`` doubles
    as the busy timeout on the database file.

    Raises:
        ValueError: If the URL names an unsupported dialect.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    dialect = url.get_backend_name()
    if dialect not in SUPPORTED_DIALECTS:
        raise ValueError(
            f"Unsupported database dialect {dialect!r}; expected one of {SUPPORTED_DIALECTS}"
        )

    if dialect == "postgresql":
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"timeout": pool_timeout, "check_same_thread": False},
        )
        _sqlite_begin_immediate(engine, pool_timeout)

    if _engine is not None:
        _engine.dispose()
    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "database": url.database, "echo": echo},
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for new sessions; each thread should make its own."""
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


def create_tables() -> None:
    from stock_kernel.db.base import Base
    import stock_kernel.models  # noqa: F401  (registers every mapped table)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every stock table.  Tests only."""
    from stock_kernel.db.base import Base
    import stock_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
