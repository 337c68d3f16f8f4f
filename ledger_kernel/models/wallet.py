"""
Module: ledger_kernel.models.wallet
Responsibility: ORM persistence for wallets -- the addressable accounts whose
    balances the transfer protocol moves value between.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Solvency: balance >= 0, backed by the ck_wallet_balance_non_negative
      CHECK constraint (the transfer protocol enforces it first).
    - address is the primary key and never changes after insert.

Failure modes:
    - IntegrityError if a flush would drive balance below zero.
    - WalletNotFoundError (raised by LedgerStore) when a lookup misses.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.db.types import Address, Money


class Wallet(Base):
    """
    A single wallet row.

    Contract:
        balance is mutated only by LedgerStore (transfer protocol and
        initial seeding), always under a row lock.
    """

    __tablename__ = "wallets"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    address: Mapped[Address] = mapped_column(primary_key=True)

    balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<Wallet {self.address} balance={self.balance}>"
