"""
Address -- wallet identifier generation and format validation.

Responsibility:
    Produces collision-resistant 256-bit wallet addresses rendered as 64
    lowercase hexadecimal characters, and validates that format at the
    adapter boundary.

Architecture position:
    Kernel > Domain -- pure functions, no database access.  The one I/O
    boundary is the operating system's CSPRNG (``secrets``).

Invariants enforced:
    - Addresses come from ``secrets.token_bytes`` (os.urandom).  A seeded or
      time-based PRNG is never used.
    - A valid address matches ``^[0-9a-f]{64}$`` exactly: no prefix, no
      uppercase, no whitespace.

Failure modes:
    - AddressGenerationError if the OS entropy source is unavailable.
    - InvalidAddressError from validate_address() on malformed input.
"""

import re
import secrets

from ledger_kernel.exceptions import AddressGenerationError, InvalidAddressError

ADDRESS_BYTES = 32
ADDRESS_LENGTH = ADDRESS_BYTES * 2

_ADDRESS_RE = re.compile(r"[0-9a-f]{64}")


def generate_address() -> str:
    """
    Generate a new wallet address.

    Returns:
        64 lowercase hex characters encoding 32 random bytes.

    Raises:
        AddressGenerationError: If the secure random source fails.
    """
    try:
        raw = secrets.token_bytes(ADDRESS_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise AddressGenerationError(str(exc)) from exc
    return raw.hex()


def is_valid_address(value: object) -> bool:
    """Return True iff value is a 64-character lowercase hex string."""
    return isinstance(value, str) and _ADDRESS_RE.fullmatch(value) is not None


def validate_address(value: object) -> str:
    """
    Validate an address supplied by a caller.

    Returns:
        The address unchanged.

    Raises:
        InvalidAddressError: If value is not a well-formed address.
    """
    if not is_valid_address(value):
        raise InvalidAddressError(value)
    return value
