"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The transactions table is the audit trail of every committed transfer.  Rows
are inserted once and never modified.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/sql/*.sql (PostgreSQL triggers)
    - Catches raw SQL, bulk UPDATE statements, direct psql access

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable         | Why
--------------------|------------------------|----------------------------------
LedgerTransaction   | ALWAYS (from creation) | Transfer history is append-only

Wallets are NOT protected here: their balance is the mutable projection the
transfer protocol maintains.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup
"""

from sqlalchemy import event

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_transaction_immutability(mapper, connection, target):
    """Reject any UPDATE of a transaction record."""
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "LedgerTransaction", "entity_id": str(target.id), "op": "update"},
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerTransaction",
        entity_id=str(target.id),
        reason="Transaction records are append-only",
    )


def _check_transaction_delete(mapper, connection, target):
    """Reject any DELETE of a transaction record."""
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "LedgerTransaction", "entity_id": str(target.id), "op": "delete"},
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerTransaction",
        entity_id=str(target.id),
        reason="Transaction records cannot be deleted",
    )


_LISTENERS = (
    ("before_update", _check_transaction_immutability),
    ("before_delete", _check_transaction_delete),
)


def register_immutability_listeners() -> None:
    """
    Register ORM listeners that keep transaction records append-only.

    Idempotent: listeners already registered are skipped.
    """
    from ledger_kernel.models.transaction import LedgerTransaction

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(LedgerTransaction, event_name, listener_fn):
            event.listen(LedgerTransaction, event_name, listener_fn)

    logger.debug("immutability_listeners_registered")
