"""Pure domain helpers: addresses and immutable DTOs."""

from ledger_kernel.domain.address import (
    ADDRESS_LENGTH,
    generate_address,
    is_valid_address,
    validate_address,
)
from ledger_kernel.domain.dtos import TransactionRecord, WalletSnapshot

__all__ = [
    "ADDRESS_LENGTH",
    "generate_address",
    "is_valid_address",
    "validate_address",
    "TransactionRecord",
    "WalletSnapshot",
]
