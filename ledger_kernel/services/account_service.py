"""
AccountService -- domain-facing orchestration over the LedgerStore.

Responsibility:
    Translates the collaborator contract (send, get_balance,
    get_last_transactions) onto LedgerStore calls.  This is the seam where
    cross-cutting business rules (fees, limits, auditing) attach without
    touching the store.

Architecture position:
    Kernel > Services.  Called by the adapter layer (scripts/cli); calls
    LedgerStore only.

Invariants enforced:
    - No cached state: every call round-trips to the store.
    - Error semantics are preserved: every kernel error raised by the store
      propagates unchanged.
"""

from decimal import Decimal

from ledger_kernel.domain.dtos import TransactionRecord
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.account")


class AccountService:
    """
    Pass-through service over a LedgerStore.

    Usage:
        service = AccountService(store)
        record = service.send(sender, receiver, "30.0")
        balance = service.get_balance(sender)
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def send(
        self,
        from_address: str,
        to_address: str,
        amount: Decimal | int | float | str,
    ) -> TransactionRecord:
        """Transfer ``amount`` from one wallet to another."""
        logger.debug("send_requested", extra={"amount": str(amount)})
        return self._store.transfer(from_address, to_address, amount)

    def get_balance(self, address: str) -> Decimal:
        """Current committed balance of ``address``."""
        logger.debug("balance_requested", extra={"address": address})
        return self._store.get_balance(address)

    def get_last_transactions(self, count: int) -> list[TransactionRecord]:
        """The ``count`` most recent transaction records, newest first."""
        logger.debug("history_requested", extra={"count": count})
        return self._store.get_recent_transactions(count)
