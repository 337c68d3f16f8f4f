"""CLI utilities: amount formatting, request validation, error-to-exit-code mapping."""

import json
import sys
from decimal import Decimal

from ledger_kernel.db.types import normalize_money
from ledger_kernel.domain.address import validate_address
from ledger_kernel.exceptions import (
    BootstrapError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidAmountError,
    StoreError,
    WalletNotFoundError,
)

EXIT_OK = 0
EXIT_INVALID_REQUEST = 2
EXIT_NOT_FOUND = 3
EXIT_CONFLICT = 4
EXIT_UNAVAILABLE = 5

# Most specific first; first isinstance match wins
_STATUS_BY_ERROR: tuple[tuple[type[Exception], str, int], ...] = (
    (InvalidAmountError, "invalid_request", EXIT_INVALID_REQUEST),
    (InvalidAddressError, "invalid_request", EXIT_INVALID_REQUEST),
    (WalletNotFoundError, "not_found", EXIT_NOT_FOUND),
    (InsufficientFundsError, "conflict", EXIT_CONFLICT),
    (StoreError, "unavailable", EXIT_UNAVAILABLE),
    (BootstrapError, "unavailable", EXIT_UNAVAILABLE),
)


def status_for(exc: Exception) -> tuple[str, int]:
    """Map a kernel error onto a client-facing (category, exit code)."""
    for error_type, category, exit_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return category, exit_code
    return "internal", EXIT_UNAVAILABLE


def fmt_amount(v) -> str:
    """Format amount for display without trailing zeros (70.000000000 -> 70)."""
    d = Decimal(str(v)).normalize()
    return format(d, "f")


def parse_address(value: str) -> str:
    """Validate a wallet address taken from the command line."""
    return validate_address(value)


def parse_amount(value: str) -> Decimal:
    """Validate a transfer amount taken from the command line."""
    amount = normalize_money(value)
    if amount <= 0:
        raise InvalidAmountError(value)
    return amount


def emit(payload) -> None:
    print(json.dumps(payload, indent=2))


def emit_error(exc: Exception, category: str) -> None:
    body = {
        "error": getattr(exc, "code", type(exc).__name__),
        "category": category,
        "message": str(exc),
    }
    print(json.dumps(body), file=sys.stderr)


__all__ = [
    "EXIT_OK",
    "EXIT_INVALID_REQUEST",
    "EXIT_NOT_FOUND",
    "EXIT_CONFLICT",
    "EXIT_UNAVAILABLE",
    "emit",
    "emit_error",
    "fmt_amount",
    "parse_address",
    "parse_amount",
    "status_for",
]
