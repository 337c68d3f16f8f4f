"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and the transactional scope (unit of work) used by every ledger operation.
Architecture position: Kernel > DB.  May import from db/ only (plus models/
    inside create_tables so Base.metadata is populated).

Invariants enforced:
    - Exactly one LedgerDatabase (engine + pool) per process, constructed at
      startup and passed explicitly to the services that need it.  There is
      no module-level engine.
    - PostgreSQL sessions run at READ COMMITTED, with explicit row-level
      locking (SELECT ... FOR UPDATE) where the transfer protocol needs it.
    - SQLite (local development and tests) opens every transaction with
      BEGIN IMMEDIATE so writers are serialized at the database.
    - session_scope() commits on normal exit and rolls back on every
      exception path.

Failure modes:
    - OperationalError / DBAPIError propagate out of session_scope() after
      rollback; LedgerStore translates them into StoreError.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """
    Take over pysqlite transaction handling so BEGIN IMMEDIATE is emitted.

    pysqlite defers BEGIN until the first write, which lets two units of work
    read the same balance before either takes the write lock.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
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
    Create a SQLAlchemy engine for the ledger.

    Args:
        database_url: PostgreSQL (production) or SQLite file URL.
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url)
    backend = url.get_backend_name()

    if backend == "sqlite":
        if url.database in (None, "", ":memory:"):
            raise ValueError("SQLite ledger requires a file database, not :memory:")
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            connect_args={"timeout": pool_timeout},
        )
        _enable_sqlite_immediate_transactions(engine)
    else:
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

    logger.info(
        "engine_initialized",
        extra={
            "dialect": backend,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "echo": echo,
        },
    )
    return engine


class LedgerDatabase:
    """
    The process-wide handle on the ledger's durable store.

    Contract:
        Constructed once at startup (see ledger_kernel.bootstrap) and injected
        into LedgerStore.  Owns the engine, its connection pool, and the
        session factory.  dispose() releases every pooled connection.

    Guarantees:
        - session_scope() is the only way kernel code obtains a session.
        - Each session_scope() call checks out its own connection, so
          concurrent callers on different threads never share a session.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @classmethod
    def from_url(cls, database_url: str, **engine_options) -> "LedgerDatabase":
        """Build a LedgerDatabase from a URL; see init_engine_from_url for options."""
        return cls(init_engine_from_url(database_url, **engine_options))

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def is_postgres(self) -> bool:
        """Check if the engine is PostgreSQL."""
        return self.dialect_name == "postgresql"

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed.  The exception
            is re-raised to the caller.

        Usage:
            with database.session_scope() as session:
                session.add(entity)
                # Commits on successful exit, rolls back on exception
        """
        session = self._session_factory()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.debug("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def ping(self) -> None:
        """
        Check the database is reachable.

        Raises:
            Whatever the driver raises (OperationalError, DBAPIError).
        """
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def create_tables(self, install_triggers: bool = True) -> None:
        """
        Create the wallets and transactions tables if they don't exist.

        On PostgreSQL, also installs the immutability triggers when
        install_triggers is True.  Idempotent.
        """
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.create_all(self.engine)

        if install_triggers and self.is_postgres:
            from ledger_kernel.db.triggers import install_immutability_triggers

            install_immutability_triggers(self.engine)

        logger.info(
            "tables_created",
            extra={"dialect": self.dialect_name, "triggers": install_triggers and self.is_postgres},
        )

    def drop_tables(self) -> None:
        """Drop the ledger tables, removing the PostgreSQL immutability triggers first."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        if self.is_postgres:
            from ledger_kernel.db.triggers import uninstall_immutability_triggers

            uninstall_immutability_triggers(self.engine)

        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Release every pooled connection."""
        self.engine.dispose()
        logger.info("engine_disposed", extra={"dialect": self.dialect_name})
