"""
Bootstrap -- cold-start wiring of the ledger.

Responsibility:
    Builds the single LedgerDatabase for the process, proves the store is
    reachable, ensures tables and triggers exist, registers the ORM
    immutability listeners, and seeds the configured wallets.

Architecture position:
    Kernel entry point.  Called once by the outer surface (scripts/cli)
    with a LedgerConfig obtained from ledger_config.load_config().

Invariants enforced:
    - Fatal-at-startup: any failing step (including a missing trigger SQL
      file or other OSError) raises BootstrapError and releases
      the connection pool.  There is no partially-available mode.
    - Safe to run on every startup: table creation, trigger installation and
      seeding are all idempotent.
"""

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.exceptions import BootstrapError, LedgerKernelError
from ledger_kernel.logging_config import configure_logging, get_logger
from ledger_kernel.services.ledger_store import LedgerStore

if TYPE_CHECKING:
    from ledger_config.schema import LedgerConfig

logger = get_logger("bootstrap")


def bootstrap_ledger(config: "LedgerConfig", install_triggers: bool = True) -> LedgerStore:
    """
    Bring the ledger up from configuration.

    Returns:
        A LedgerStore bound to the freshly created LedgerDatabase.

    Raises:
        BootstrapError: With ``stage`` set to one of "engine", "ping",
            "create_tables" or "seed".
    """
    configure_logging(level=config.logging.level)

    try:
        database = LedgerDatabase.from_url(
            config.database.url, **config.database.engine_options()
        )
    except (SQLAlchemyError, ValueError, ImportError) as exc:
        logger.critical("bootstrap_failed", extra={"stage": "engine"}, exc_info=True)
        raise BootstrapError("engine", str(exc)) from exc

    store = LedgerStore(database)
    try:
        _run_stage("ping", store.ping)
        _run_stage("create_tables", lambda: database.create_tables(install_triggers=install_triggers))
        register_immutability_listeners()
        seeded = _run_stage(
            "seed",
            lambda: store.seed_wallets(
                config.seed.wallet_count, config.seed.initial_balance
            ),
        )
    except BootstrapError:
        database.dispose()
        raise

    logger.info(
        "ledger_bootstrapped",
        extra={"dialect": database.dialect_name, "seeded_count": len(seeded)},
    )
    return store


def _run_stage(stage: str, step):
    try:
        return step()
    except (LedgerKernelError, SQLAlchemyError, OSError) as exc:
        logger.critical("bootstrap_failed", extra={"stage": stage}, exc_info=True)
        raise BootstrapError(stage, str(exc)) from exc
