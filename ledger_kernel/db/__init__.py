"""Database layer - engine, unit of work, base classes, types, immutability."""

from ledger_kernel.db.base import Base
from ledger_kernel.db.engine import LedgerDatabase, init_engine_from_url
from ledger_kernel.db.types import Address, Money, normalize_money, round_money, to_amount

__all__ = [
    "Base",
    "LedgerDatabase",
    "init_engine_from_url",
    "Address",
    "Money",
    "normalize_money",
    "round_money",
    "to_amount",
]
