"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the account service, the CLI adapter, tests) must be able to tell an
insufficient-funds rejection from a storage fault without parsing messages.

Every error:
  1. Has its own exception class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (address, amount, balance, ...)

Example:
    try:
        service.send(sender, receiver, Decimal("60"))
    except InsufficientFundsError as e:
        log.warning("rejected", extra={"balance": e.balance})
        respond(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- TransferError
    |   +-- InvalidAmountError
    |   +-- InsufficientFundsError
    |
    +-- WalletError
    |   +-- InvalidAddressError
    |   +-- WalletNotFoundError
    |   +-- WalletAlreadyExistsError
    |   +-- AddressGenerationError
    |
    +-- StoreError
    |   +-- StoreUnavailableError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- BootstrapError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Transfer        | INVALID_AMOUNT              | Amount <= 0, NaN, infinite, non-numeric
                | INSUFFICIENT_FUNDS          | Sender balance below requested amount
----------------|-----------------------------|-----------------------------------------
Wallet          | INVALID_ADDRESS             | Not 64 lowercase hex characters
                | WALLET_NOT_FOUND            | Sender or receiver row absent
                | WALLET_ALREADY_EXISTS       | Explicit create of an existing address
                | ADDRESS_GENERATION_FAILED   | OS entropy source unavailable
----------------|-----------------------------|-----------------------------------------
Store           | STORE_ERROR                 | Query/commit/rollback fault
                | STORE_UNAVAILABLE           | Liveness probe failed
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a transaction record
----------------|-----------------------------|-----------------------------------------
Bootstrap       | BOOTSTRAP_FAILED            | Fatal startup step failed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Nothing is retried inside the kernel.  A StoreError raised by a transfer
   means the unit of work was rolled back, so a caller-side retry is safe.

2. BootstrapError is fatal: the process must not start serving.

===============================================================================
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Transfer-related exceptions


class TransferError(LedgerKernelError):
    """Base exception for transfer rejections."""

    code: str = "TRANSFER_ERROR"


class InvalidAmountError(TransferError):
    """Transfer amount is not a positive finite number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str = "amount must be greater than 0"):
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InsufficientFundsError(TransferError):
    """Sender balance is below the requested amount."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, address: str, balance: str, amount: str):
        self.address = address
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds in wallet {address}: "
            f"balance={balance}, requested={amount}"
        )


# Wallet-related exceptions


class WalletError(LedgerKernelError):
    """Base exception for wallet-related errors."""

    code: str = "WALLET_ERROR"


class InvalidAddressError(WalletError):
    """Address is not 64 lowercase hexadecimal characters."""

    code: str = "INVALID_ADDRESS"

    def __init__(self, address: object):
        self.address = str(address)
        super().__init__(f"Invalid wallet address: {address!r}")


class WalletNotFoundError(WalletError):
    """
    Wallet with given address was not found.

    ``role`` records which side of a transfer was missing ("sender" or
    "receiver"); it is None for plain lookups.
    """

    code: str = "WALLET_NOT_FOUND"

    def __init__(self, address: str, role: str | None = None):
        self.address = address
        self.role = role
        if role:
            super().__init__(f"{role.capitalize()} wallet not found: {address}")
        else:
            super().__init__(f"Wallet not found: {address}")


class WalletAlreadyExistsError(WalletError):
    """Wallet with given address already exists."""

    code: str = "WALLET_ALREADY_EXISTS"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Wallet already exists: {address}")


class AddressGenerationError(WalletError):
    """Secure random source could not produce an address."""

    code: str = "ADDRESS_GENERATION_FAILED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to generate wallet address: {reason}")


# Store-related exceptions


class StoreError(LedgerKernelError):
    """
    Storage fault during a unit of work.

    The unit of work has been rolled back when this is raised; the original
    driver/SQLAlchemy exception is chained as ``__cause__``.
    """

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store failure during {operation}: {detail}")


class StoreUnavailableError(StoreError):
    """Liveness probe against the store failed."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, detail: str):
        super().__init__("ping", detail)


# Immutability exceptions


class ImmutabilityError(LedgerKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Transaction records are written once by a committed transfer and never
    change afterwards.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Bootstrap exceptions


class BootstrapError(LedgerKernelError):
    """A fatal startup step failed; the process must not serve requests."""

    code: str = "BOOTSTRAP_FAILED"

    def __init__(self, stage: str, detail: str):
        self.stage = stage
        self.detail = detail
        super().__init__(f"Bootstrap failed at {stage}: {detail}")
