"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and conversion helpers for ledger
    columns.  Centralizes precision and amount normalization so that every
    model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Amounts entering the kernel are finite Decimals.  Floats are converted
      through their shortest ``repr`` so 30.0 becomes Decimal("30.0"), never
      Decimal(30.0000000000000017...).
    - Amounts are bounded below MAX_MONEY (10**29) and rounded to 9 places
      inside a 40-digit context, so nothing overflows the column or the
      default 28-digit decimal context.
    - Address columns are exactly 64 characters.

Failure modes:
    - InvalidAmountError from to_amount() on non-numeric, NaN or infinite
      input.
    - InvalidAmountError from normalize_money() on amounts of 10**29 or more.
"""

from contextlib import AbstractContextManager
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext
from typing import Annotated

from sqlalchemy import Numeric, String

from ledger_kernel.exceptions import InvalidAmountError

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# 32 bytes rendered as lowercase hex
Address = Annotated[str, String(64)]

MONEY_PRECISION = 38
MONEY_DECIMAL_PLACES = 9

# Smallest magnitude a Numeric(38, 9) column cannot store
MAX_MONEY = Decimal(10) ** (MONEY_PRECISION - MONEY_DECIMAL_PLACES)
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_amount(value: Decimal | int | float | str) -> Decimal:
    """
    Normalize a caller-supplied amount into a Decimal.

    Postconditions: Returns a finite Decimal.  Sign is NOT checked here;
        the transfer protocol rejects amounts <= 0 itself.

    Raises:
        InvalidAmountError: If value is a bool, not numeric, NaN or infinite.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "amount must be numeric")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(value, "amount must be numeric") from None
    else:
        raise InvalidAmountError(value, "amount must be numeric")

    if not result.is_finite():
        raise InvalidAmountError(value, "amount must be finite")
    return result


def money_context() -> AbstractContextManager[Context]:
    """
    Decimal context wide enough for any Numeric(38, 9) value.

    The default context keeps 28 significant digits, which silently rounds
    sums of large balances and makes quantize() fail above ~1e19.
    """
    return localcontext(prec=MONEY_PRECISION + 2)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the stored column precision.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).
    """
    quantize_str = "0." + "0" * decimal_places
    with money_context():
        return value.quantize(Decimal(quantize_str), rounding=rounding)


def normalize_money(value: Decimal | int | float | str) -> Decimal:
    """
    to_amount() + round_money(), bounded to what a Money column can hold.

    Sign is not checked.  Every amount or balance entering the kernel goes
    through here.

    Raises:
        InvalidAmountError: Non-numeric or non-finite input, or a magnitude
            of MAX_MONEY or more.
    """
    amount = to_amount(value)
    if amount.copy_abs() >= MAX_MONEY:
        raise InvalidAmountError(value, "amount exceeds storable precision")
    rounded = round_money(amount)
    # 99...9.9999999995 rounds up onto the bound
    if rounded.copy_abs() >= MAX_MONEY:
        raise InvalidAmountError(value, "amount exceeds storable precision")
    return rounded
