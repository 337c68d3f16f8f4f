"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read paths over the wallet and transaction tables: point
    balance lookups, wallet listing, and recent transaction history.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Recent history is ordered by timestamp DESC, then id DESC, so records
      committed within the same clock tick still come back newest first.
    - Reads never take row locks; under READ COMMITTED they observe only
      committed transfers, never a half-applied one.
"""

from decimal import Decimal

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import TransactionRecord, WalletSnapshot
from ledger_kernel.models.transaction import LedgerTransaction
from ledger_kernel.models.wallet import Wallet
from ledger_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector):
    """Read-only queries for balances and transaction history."""

    def balance_of(self, address: str) -> Decimal | None:
        """Return the balance of ``address``, or None if no such wallet."""
        return self.session.execute(
            select(Wallet.balance).where(Wallet.address == address)
        ).scalar_one_or_none()

    def wallet_count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(Wallet)
        ).scalar_one()

    def list_wallets(self, limit: int | None = None) -> list[WalletSnapshot]:
        """Wallets ordered by address."""
        stmt = select(Wallet.address, Wallet.balance).order_by(Wallet.address)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            WalletSnapshot(address=row.address, balance=row.balance)
            for row in self.session.execute(stmt)
        ]

    def total_balance(self) -> Decimal:
        """Sum of all wallet balances (conservation checks)."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Wallet.balance), 0))
        ).scalar_one()
        return Decimal(str(total))

    def recent_transactions(self, limit: int) -> list[TransactionRecord]:
        """
        Return up to ``limit`` records, most recent first.

        Args:
            limit: Maximum number of records; <= 0 yields an empty list.
        """
        if limit <= 0:
            return []

        rows = self.session.execute(
            select(LedgerTransaction)
            .order_by(LedgerTransaction.timestamp.desc(), LedgerTransaction.id.desc())
            .limit(limit)
        ).scalars()
        return [_to_record(row) for row in rows]

    def transaction_count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(LedgerTransaction)
        ).scalar_one()


def _to_record(row: LedgerTransaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        from_address=row.from_address,
        to_address=row.to_address,
        amount=row.amount,
        timestamp=row.timestamp,
    )
