"""
Data Transfer Objects -- immutable values returned across the kernel boundary.

Services and selectors never hand ORM instances to callers; they return these
frozen dataclasses so that a detached or expired row can't leak out of a
unit of work.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class WalletSnapshot:
    """Balance of one wallet as of the read that produced it."""

    address: str
    balance: Decimal


@dataclass(frozen=True)
class TransactionRecord:
    """
    One committed transfer.

    ``id`` is the insertion identifier; it only matters for ordering
    records that share a timestamp.
    """

    id: int
    from_address: str
    to_address: str
    amount: Decimal
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (amount as string, ISO timestamp)."""
        return {
            "id": self.id,
            "from": self.from_address,
            "to": self.to_address,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat(),
        }
