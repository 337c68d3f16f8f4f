"""
LedgerStore -- the atomic transfer protocol and the ledger's read paths.

Responsibility:
    Sole writer of the wallets and transactions tables.  Moves value between
    wallets as one indivisible unit of work, appends the transaction record,
    and serves balance and history reads.  Also owns idempotent seeding.

Architecture position:
    Kernel > Services -- imperative shell over LedgerDatabase.
    Called by AccountService (request path) and ledger_kernel.bootstrap
    (startup path).

Invariants enforced:
    - Solvency: a transfer is rejected unless the sender's locked balance
      covers the amount, so no balance ever goes below zero.
    - Atomicity: debit, credit and record insert commit together or not at
      all.  Every failure path rolls the unit of work back.
    - No lost update: both wallet rows are locked with SELECT ... FOR UPDATE,
      in ascending address order, before the funds check.  A second transfer
      touching either wallet waits for the first to commit and then reads the
      committed balance.  On SQLite, BEGIN IMMEDIATE serializes the whole
      unit instead.
    - Conservation: the sender is debited and the receiver credited by the
      same rounded amount.
    - Idempotent seeding: the wallet count is checked under a seeding lock
      and only the shortfall is inserted.

Failure modes:
    - InvalidAmountError: amount <= 0, non-numeric, non-finite, 10**29 or
      more, or a credit that would take the receiver to 10**29.
    - WalletNotFoundError: sender or receiver missing (role attribute says
      which); nothing is written.
    - InsufficientFundsError: sender balance below amount; nothing is written.
    - StoreError: any SQLAlchemy/driver failure, raised after rollback with
      the original exception chained.

Audit relevance:
    transfer_committed / transfer_rejected / transfer_failed are logged with
    addresses (and, once committed, the transaction id) bound into LogContext,
    so every balance movement is traceable to exactly one log line and one
    transaction row.
"""

from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.db.types import MAX_MONEY, money_context, normalize_money
from ledger_kernel.domain.address import generate_address, validate_address
from ledger_kernel.domain.dtos import TransactionRecord, WalletSnapshot
from ledger_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    StoreError,
    StoreUnavailableError,
    WalletAlreadyExistsError,
    WalletNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.transaction import LedgerTransaction
from ledger_kernel.models.wallet import Wallet
from ledger_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("services.ledger_store")

# pg_advisory_xact_lock key guarding seed_wallets ("LEDGSEED")
SEED_LOCK_KEY = 0x4C45444753454544


def _insert_ignoring_conflicts(dialect_name: str):
    """Return the dialect's INSERT construct, which supports ON CONFLICT."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ValueError(f"Unsupported ledger dialect: {dialect_name}")
    return insert


class LedgerStore:
    """
    The ledger's only writer.

    Contract:
        Every public method runs in its own unit of work obtained from the
        injected LedgerDatabase.  Nothing is cached between calls: each read
        round-trips to the database.

    Guarantees:
        - transfer() either commits debit + credit + record, or leaves the
          ledger exactly as it was.
        - Domain errors (InvalidAmountError, WalletNotFoundError,
          InsufficientFundsError) pass through unchanged; storage faults
          surface as StoreError.

    Non-goals:
        - Does NOT retry.  A StoreError leaves no partial state, so the
          caller may retry safely.
        - Does NOT validate address format on transfer; an unknown or
          malformed address is simply not found.
    """

    def __init__(self, database: LedgerDatabase):
        self._db = database

    @property
    def database(self) -> LedgerDatabase:
        return self._db

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    def ping(self) -> None:
        """
        Liveness probe.

        Raises:
            StoreUnavailableError: If the database cannot be reached.
        """
        try:
            self._db.ping()
        except SQLAlchemyError as exc:
            logger.error("store_ping_failed", exc_info=True)
            raise StoreUnavailableError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self, address: str) -> Decimal:
        """
        Point read of a wallet's committed balance.

        Raises:
            WalletNotFoundError: If no wallet has this address.
            StoreError: On database failure.
        """
        try:
            with self._db.session_scope() as session:
                balance = LedgerSelector(session).balance_of(address)
        except SQLAlchemyError as exc:
            raise StoreError("get_balance", str(exc)) from exc

        if balance is None:
            raise WalletNotFoundError(address)
        return balance

    def get_recent_transactions(self, limit: int) -> list[TransactionRecord]:
        """
        Most recent transaction records first (timestamp DESC, id DESC).

        ``limit <= 0`` returns an empty list; rejecting such a count is the
        adapter's job.
        """
        try:
            with self._db.session_scope() as session:
                return LedgerSelector(session).recent_transactions(limit)
        except SQLAlchemyError as exc:
            raise StoreError("get_recent_transactions", str(exc)) from exc

    def list_wallets(self, limit: int | None = None) -> list[WalletSnapshot]:
        try:
            with self._db.session_scope() as session:
                return LedgerSelector(session).list_wallets(limit)
        except SQLAlchemyError as exc:
            raise StoreError("list_wallets", str(exc)) from exc

    def wallet_count(self) -> int:
        try:
            with self._db.session_scope() as session:
                return LedgerSelector(session).wallet_count()
        except SQLAlchemyError as exc:
            raise StoreError("wallet_count", str(exc)) from exc

    def total_balance(self) -> Decimal:
        try:
            with self._db.session_scope() as session:
                return LedgerSelector(session).total_balance()
        except SQLAlchemyError as exc:
            raise StoreError("total_balance", str(exc)) from exc

    # ------------------------------------------------------------------
    # Transfer protocol
    # ------------------------------------------------------------------

    def transfer(
        self,
        from_address: str,
        to_address: str,
        amount: Decimal | int | float | str,
    ) -> TransactionRecord:
        """
        Move ``amount`` from one wallet to another as one unit of work.

        Steps:
        1. Normalize and reject amount <= 0 before any I/O
        2. Lock both wallet rows (ascending address order)
        3. Sender must exist and cover the amount
        4. Receiver must exist (never auto-created)
        5. Debit sender, credit receiver, append the record
        6. Commit

        Returns:
            The committed TransactionRecord.

        Raises:
            InvalidAmountError, WalletNotFoundError, InsufficientFundsError,
            StoreError.
        """
        value = self._normalize_amount(amount)

        with LogContext.bind(from_address=from_address, to_address=to_address):
            try:
                with self._db.session_scope() as session:
                    record = self._apply_transfer(session, from_address, to_address, value)
            except (WalletNotFoundError, InsufficientFundsError) as exc:
                logger.warning(
                    "transfer_rejected",
                    extra={"code": exc.code, "amount": value},
                )
                raise
            except SQLAlchemyError as exc:
                logger.error(
                    "transfer_failed",
                    extra={"amount": value},
                    exc_info=True,
                )
                raise StoreError("transfer", str(exc)) from exc

            with LogContext.bind(transaction_id=record.id):
                logger.info("transfer_committed", extra={"amount": value})
            return record

    @staticmethod
    def _normalize_amount(amount: Decimal | int | float | str) -> Decimal:
        value = normalize_money(amount)
        if value <= 0:
            raise InvalidAmountError(amount)
        return value

    def _apply_transfer(
        self,
        session: Session,
        from_address: str,
        to_address: str,
        amount: Decimal,
    ) -> TransactionRecord:
        wallets = self._lock_wallets(session, from_address, to_address)

        sender = wallets.get(from_address)
        if sender is None:
            raise WalletNotFoundError(from_address, role="sender")

        if sender.balance < amount:
            raise InsufficientFundsError(
                address=from_address,
                balance=str(sender.balance),
                amount=str(amount),
            )

        receiver = wallets.get(to_address)
        if receiver is None:
            raise WalletNotFoundError(to_address, role="receiver")

        with money_context():
            if receiver is not sender and receiver.balance + amount >= MAX_MONEY:
                raise InvalidAmountError(amount, "receiver balance would exceed storable precision")
            # Self-transfer: sender is receiver, so the pair nets to zero
            sender.balance = sender.balance - amount
            receiver.balance = receiver.balance + amount
        session.flush()

        return self._append_record(session, from_address, to_address, amount)

    def _lock_wallets(
        self,
        session: Session,
        *addresses: str,
    ) -> dict[str, Wallet]:
        """
        Lock the given wallet rows FOR UPDATE, one at a time in sorted order.

        Sorted acquisition means two transfers over the same pair in opposite
        directions request the locks in the same order and cannot deadlock.
        Missing wallets are simply absent from the result.
        """
        locked: dict[str, Wallet] = {}
        for address in sorted(set(addresses)):
            wallet = session.execute(
                select(Wallet)
                .where(Wallet.address == address)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if wallet is not None:
                locked[address] = wallet
        return locked

    def _append_record(
        self,
        session: Session,
        from_address: str,
        to_address: str,
        amount: Decimal,
    ) -> TransactionRecord:
        """Insert the transaction row; id and timestamp come back from the server."""
        row = LedgerTransaction(
            from_address=from_address,
            to_address=to_address,
            amount=amount,
        )
        session.add(row)
        session.flush()
        return TransactionRecord(
            id=row.id,
            from_address=row.from_address,
            to_address=row.to_address,
            amount=amount,
            timestamp=row.timestamp,
        )

    # ------------------------------------------------------------------
    # Wallet creation and seeding
    # ------------------------------------------------------------------

    def create_wallet(
        self,
        address: str | None = None,
        balance: Decimal | int | float | str = Decimal("0"),
    ) -> WalletSnapshot:
        """
        Create one wallet.

        Args:
            address: Explicit address (validated), or None to generate one.
            balance: Opening balance, must be >= 0.

        Raises:
            InvalidAddressError: Malformed explicit address.
            InvalidAmountError: Negative or non-numeric balance.
            WalletAlreadyExistsError: Address already present.
            StoreError: On database failure.
        """
        address = validate_address(address) if address is not None else generate_address()
        opening = normalize_money(balance)
        if opening < 0:
            raise InvalidAmountError(balance, "opening balance must not be negative")

        try:
            with self._db.session_scope() as session:
                insert = _insert_ignoring_conflicts(self._db.dialect_name)
                result = session.execute(
                    insert(Wallet)
                    .values(address=address, balance=opening)
                    .on_conflict_do_nothing(index_elements=["address"])
                )
                if result.rowcount == 0:
                    raise WalletAlreadyExistsError(address)
        except SQLAlchemyError as exc:
            raise StoreError("create_wallet", str(exc)) from exc

        logger.info("wallet_created", extra={"address": address, "balance": opening})
        return WalletSnapshot(address=address, balance=opening)

    def seed_wallets(
        self,
        count: int,
        balance: Decimal | int | float | str,
    ) -> list[str]:
        """
        Ensure at least ``count`` wallets exist, creating the shortfall.

        Each new wallet gets a fresh address and ``balance``.  Running this
        any number of times, concurrently or not, leaves exactly
        max(count, existing) wallets.

        Returns:
            Addresses created by this call (empty when nothing was missing).
        """
        opening = normalize_money(balance)
        if opening < 0:
            raise InvalidAmountError(balance, "seed balance must not be negative")

        try:
            with self._db.session_scope() as session:
                self._acquire_seed_lock(session)
                existing = LedgerSelector(session).wallet_count()
                missing = count - existing
                if missing <= 0:
                    logger.info(
                        "wallet_seeding_skipped",
                        extra={"existing": existing, "target": count},
                    )
                    return []

                addresses = [generate_address() for _ in range(missing)]
                insert = _insert_ignoring_conflicts(self._db.dialect_name)
                session.execute(
                    insert(Wallet)
                    .values([{"address": a, "balance": opening} for a in addresses])
                    .on_conflict_do_nothing(index_elements=["address"])
                )
        except SQLAlchemyError as exc:
            logger.error("wallet_seeding_failed", exc_info=True)
            raise StoreError("seed_wallets", str(exc)) from exc

        logger.info(
            "wallets_seeded",
            extra={"created_count": len(addresses), "target": count, "balance": opening},
        )
        return addresses

    def _acquire_seed_lock(self, session: Session) -> None:
        """
        Serialize concurrent seeders for the rest of the unit of work.

        SQLite needs nothing extra: BEGIN IMMEDIATE already holds the
        database write lock.
        """
        if self._db.is_postgres:
            session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": SEED_LOCK_KEY},
            )
