"""
Ledger Kernel Services.

- LedgerStore: atomic transfers, balance/history reads, wallet seeding
- AccountService: pass-through orchestration used by adapters
"""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.ledger_store import LedgerStore

__all__ = [
    "AccountService",
    "LedgerStore",
]
