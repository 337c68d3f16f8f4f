"""ORM models for the ledger kernel."""

from ledger_kernel.models.transaction import LedgerTransaction
from ledger_kernel.models.wallet import Wallet

__all__ = [
    "LedgerTransaction",
    "Wallet",
]
