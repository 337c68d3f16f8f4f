"""
Module: ledger_kernel.models.transaction
Responsibility: ORM persistence for transaction records -- the append-only
    audit trail of committed transfers.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: rows are never updated or deleted (ORM listeners in
      db/immutability.py, PostgreSQL triggers in db/sql/).
    - amount > 0, backed by the ck_transaction_amount_positive constraint.
    - timestamp is assigned by the database at insert.

Audit relevance:
    from_address/to_address are plain columns rather than foreign keys so
    that history survives independently of the wallets table.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.db.types import Address, Money


class LedgerTransaction(Base):
    """
    One committed transfer.

    Named LedgerTransaction to keep it distinct from database transactions;
    the table is ``transactions``.
    """

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        Index("idx_transactions_recent", "timestamp", "id"),
    )

    # Fetch id and the server-assigned timestamp on INSERT
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    from_address: Mapped[Address] = mapped_column(nullable=False)

    to_address: Mapped[Address] = mapped_column(nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction {self.id} {self.from_address} -> "
            f"{self.to_address} amount={self.amount}>"
        )
