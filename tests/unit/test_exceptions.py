"""Kernel exception hierarchy: codes, attributes and messages."""

import pytest

from ledger_kernel.exceptions import (
    AddressGenerationError,
    BootstrapError,
    ImmutabilityViolationError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidAmountError,
    LedgerKernelError,
    StoreError,
    StoreUnavailableError,
    TransferError,
    WalletAlreadyExistsError,
    WalletError,
    WalletNotFoundError,
)


@pytest.mark.parametrize(
    "exc, parent, code",
    [
        (InvalidAmountError(0), TransferError, "INVALID_AMOUNT"),
        (InsufficientFundsError("a", "10", "20"), TransferError, "INSUFFICIENT_FUNDS"),
        (InvalidAddressError("x"), WalletError, "INVALID_ADDRESS"),
        (WalletNotFoundError("a"), WalletError, "WALLET_NOT_FOUND"),
        (WalletAlreadyExistsError("a"), WalletError, "WALLET_ALREADY_EXISTS"),
        (AddressGenerationError("boom"), WalletError, "ADDRESS_GENERATION_FAILED"),
        (StoreError("transfer", "down"), LedgerKernelError, "STORE_ERROR"),
        (StoreUnavailableError("down"), StoreError, "STORE_UNAVAILABLE"),
        (ImmutabilityViolationError("LedgerTransaction", "1", "no"), LedgerKernelError, "IMMUTABILITY_VIOLATION"),
        (BootstrapError("ping", "down"), LedgerKernelError, "BOOTSTRAP_FAILED"),
    ],
)
def test_hierarchy_and_codes(exc, parent, code):
    assert isinstance(exc, parent)
    assert isinstance(exc, LedgerKernelError)
    assert exc.code == code


def test_insufficient_funds_attributes():
    exc = InsufficientFundsError(address="a" * 64, balance="100", amount="150")
    assert exc.address == "a" * 64
    assert exc.balance == "100"
    assert exc.amount == "150"


def test_wallet_not_found_role_in_message():
    assert str(WalletNotFoundError("abc", role="receiver")).startswith("Receiver wallet not found")
    assert WalletNotFoundError("abc").role is None


def test_store_unavailable_operation():
    exc = StoreUnavailableError("connection refused")
    assert exc.operation == "ping"
    assert "connection refused" in str(exc)


def test_bootstrap_stage():
    exc = BootstrapError("seed", "boom")
    assert exc.stage == "seed"
    assert "seed" in str(exc)
