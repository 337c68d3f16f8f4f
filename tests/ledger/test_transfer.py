"""
Transfer protocol tests.

Verifies:
- A valid send debits, credits and records in one unit of work
- Rejected sends (bad amount, missing wallet, insufficient funds) change nothing
- A storage fault mid-transfer rolls everything back and surfaces StoreError
- Conservation of the total balance
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from ledger_kernel.db.types import MAX_MONEY
from ledger_kernel.domain.address import generate_address
from ledger_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    LedgerKernelError,
    StoreError,
    WalletNotFoundError,
)
from ledger_kernel.services.ledger_store import LedgerStore


def _snapshot(store: LedgerStore) -> tuple[dict[str, Decimal], int]:
    balances = {w.address: w.balance for w in store.list_wallets()}
    return balances, len(store.get_recent_transactions(1000))


class TestSuccessfulTransfer:

    def test_send_30(self, service, two_wallets):
        w1, w2 = two_wallets

        record = service.send(w1, w2, 30.0)

        assert service.get_balance(w1) == Decimal("70")
        assert service.get_balance(w2) == Decimal("130")
        assert record.from_address == w1
        assert record.to_address == w2
        assert record.amount == Decimal("30")
        assert record.timestamp is not None

        history = service.get_last_transactions(1)
        assert len(history) == 1
        assert history[0].id == record.id
        assert history[0].amount == Decimal("30")

    def test_exact_balance_empties_wallet(self, service, two_wallets):
        w1, w2 = two_wallets
        service.send(w1, w2, "100")
        assert service.get_balance(w1) == Decimal("0")
        assert service.get_balance(w2) == Decimal("200")

    def test_fractional_amount(self, service, two_wallets):
        w1, w2 = two_wallets
        service.send(w1, w2, "0.25")
        assert service.get_balance(w1) == Decimal("99.75")
        assert service.get_balance(w2) == Decimal("100.25")

    def test_self_transfer_nets_to_zero_and_is_recorded(self, service, two_wallets):
        w1, _ = two_wallets
        service.send(w1, w1, "40")
        assert service.get_balance(w1) == Decimal("100")
        assert service.get_last_transactions(1)[0].to_address == w1

    def test_record_ids_increase(self, service, two_wallets):
        w1, w2 = two_wallets
        first = service.send(w1, w2, "1")
        second = service.send(w2, w1, "1")
        assert second.id > first.id


class TestRejectedTransfer:

    @pytest.mark.parametrize("amount", [0, "0", -5, "-0.01", "abc", float("nan"), True])
    def test_invalid_amount(self, service, store, two_wallets, amount):
        w1, w2 = two_wallets
        before = _snapshot(store)
        with pytest.raises(InvalidAmountError):
            service.send(w1, w2, amount)
        assert _snapshot(store) == before

    def test_amount_rounding_below_precision_is_zero(self, service, two_wallets):
        w1, w2 = two_wallets
        with pytest.raises(InvalidAmountError):
            service.send(w1, w2, "0.0000000001")

    @pytest.mark.parametrize("amount", [1e20, "1e20", Decimal("123456789012345678901")])
    def test_huge_amount_raises_kernel_error(self, service, store, two_wallets, amount):
        w1, w2 = two_wallets
        before = _snapshot(store)
        with pytest.raises(LedgerKernelError):
            service.send(w1, w2, amount)
        assert _snapshot(store) == before

    @pytest.mark.parametrize(
        "amount",
        [MAX_MONEY, "1e29", "-1e40", Decimal("99999999999999999999999999999.9999999995")],
    )
    def test_amount_beyond_column_precision(self, service, store, two_wallets, amount):
        w1, w2 = two_wallets
        before = _snapshot(store)
        with pytest.raises(InvalidAmountError) as exc_info:
            service.send(w1, w2, amount)
        assert "storable precision" in str(exc_info.value)
        assert _snapshot(store) == before

    def test_receiver_balance_overflow(self, service, store, make_wallet):
        sender, receiver = make_wallet("10"), make_wallet("99999999999999999999999999995")
        before = _snapshot(store)
        with pytest.raises(InvalidAmountError):
            service.send(sender, receiver, "5")
        assert _snapshot(store) == before

    def test_unknown_receiver(self, service, store, two_wallets):
        w1, _ = two_wallets
        before = _snapshot(store)
        with pytest.raises(WalletNotFoundError) as exc_info:
            service.send(w1, "unknown-address", 10)
        assert exc_info.value.role == "receiver"
        assert exc_info.value.address == "unknown-address"
        assert _snapshot(store) == before

    def test_unknown_sender(self, service, store, two_wallets):
        _, w2 = two_wallets
        ghost = generate_address()
        before = _snapshot(store)
        with pytest.raises(WalletNotFoundError) as exc_info:
            service.send(ghost, w2, 10)
        assert exc_info.value.role == "sender"
        assert _snapshot(store) == before

    def test_insufficient_funds(self, service, store, two_wallets):
        w1, w2 = two_wallets
        before = _snapshot(store)
        with pytest.raises(InsufficientFundsError) as exc_info:
            service.send(w1, w2, "100.01")
        assert exc_info.value.address == w1
        assert _snapshot(store) == before

    def test_insufficient_funds_checked_before_receiver(self, service, two_wallets):
        w1, _ = two_wallets
        with pytest.raises(InsufficientFundsError):
            service.send(w1, "unknown-address", "1000")

    def test_empty_wallet_cannot_send(self, service, make_wallet):
        empty, rich = make_wallet("0"), make_wallet("10")
        with pytest.raises(InsufficientFundsError):
            service.send(empty, rich, "0.000000001")


class TestAtomicity:

    def test_fault_during_record_insert_rolls_back(self, monkeypatch, service, store, two_wallets):
        w1, w2 = two_wallets
        before = _snapshot(store)

        def _fail(self, session, from_address, to_address, amount):
            raise OperationalError("INSERT INTO transactions", {}, Exception("connection lost"))

        monkeypatch.setattr(LedgerStore, "_append_record", _fail)

        with pytest.raises(StoreError) as exc_info:
            service.send(w1, w2, "30")

        assert exc_info.value.operation == "transfer"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        monkeypatch.undo()
        assert _snapshot(store) == before

    def test_fault_after_debit_leaves_no_record(self, monkeypatch, service, store, two_wallets):
        w1, w2 = two_wallets

        def _fail(self, session, from_address, to_address, amount):
            session.flush()
            raise OperationalError("INSERT INTO transactions", {}, Exception("disk full"))

        monkeypatch.setattr(LedgerStore, "_append_record", _fail)
        with pytest.raises(StoreError):
            service.send(w1, w2, "100")
        monkeypatch.undo()

        assert service.get_balance(w1) == Decimal("100")
        assert service.get_balance(w2) == Decimal("100")
        assert service.get_last_transactions(10) == []


class TestConservation:

    def test_total_unchanged_by_transfers(self, service, store, make_wallet):
        wallets = [make_wallet("100") for _ in range(4)]
        total = store.total_balance()

        moves = [(0, 1, "12.5"), (1, 2, "50"), (2, 3, "0.001"), (3, 0, "99"), (0, 2, "7")]
        for src, dst, amount in moves:
            service.send(wallets[src], wallets[dst], amount)

        assert store.total_balance() == total == Decimal("400")
        assert all(w.balance >= 0 for w in store.list_wallets())
