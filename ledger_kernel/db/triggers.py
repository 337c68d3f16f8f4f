"""
Module: ledger_kernel.db.triggers
Responsibility: Loading, installing, and verifying PostgreSQL immutability
    triggers (Layer 2 of 2).  This is the database-level complement to the
    ORM-level listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced (via 3 PostgreSQL triggers across 2 SQL files):
    - transactions rows: no UPDATE, no DELETE.
    - wallets.address: never changes after insert.

Failure modes:
    - PostgreSQL RAISE EXCEPTION on any trigger violation (surfaced by
      SQLAlchemy as InternalError/DatabaseError).
    - FileNotFoundError if SQL files are missing from the sql/ directory.

Only PostgreSQL is supported; callers skip installation on other dialects.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

SQL_DIR = Path(__file__).parent / "sql"

# Numbered for predictable order
TRIGGER_FILES = [
    "01_transactions.sql",
    "02_wallet_address.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_transaction_immutability_update",
    "trg_transaction_immutability_delete",
    "trg_wallet_address_immutability",
]


def _load_sql_file(filename: str) -> str:
    """
    Load SQL content from a file in the sql/ directory.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    return (SQL_DIR / filename).read_text(encoding="utf-8")


def _load_all_trigger_sql() -> str:
    """Load and concatenate all trigger SQL files in numbered order."""
    sql_parts = []
    for filename in TRIGGER_FILES:
        sql_parts.append(f"-- Loading: {filename}")
        sql_parts.append(_load_sql_file(filename))
        sql_parts.append("")
    return "\n".join(sql_parts)


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers.

    Preconditions: Tables must exist.  Engine must be connected to PostgreSQL.
    Postconditions: All triggers in ALL_TRIGGER_NAMES are installed.
        Functions use CREATE OR REPLACE and triggers are dropped first, so
        re-installation is idempotent.
    """
    with engine.connect() as conn:
        conn.execute(text(_load_all_trigger_sql()))
        conn.commit()


def uninstall_immutability_triggers(engine: Engine) -> None:
    """Remove database-level immutability triggers. Tests and migrations only."""
    with engine.connect() as conn:
        conn.execute(text(_load_sql_file(DROP_FILE)))
        conn.commit()


def get_installed_triggers(engine: Engine) -> list[str]:
    """Get list of installed immutability triggers."""
    trigger_list = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    check_sql = f"""
    SELECT tgname FROM pg_trigger
    WHERE tgname IN ({trigger_list})
    ORDER BY tgname;
    """

    with engine.connect() as conn:
        result = conn.execute(text(check_sql))
        return [row[0] for row in result]


def triggers_installed(engine: Engine) -> bool:
    """Check if all immutability triggers are installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)
