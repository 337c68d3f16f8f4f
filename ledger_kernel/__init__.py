"""
Ledger Kernel

A wallet ledger with:
- Atomic transfers under row-level locking
- Append-only transaction history
- Solvency enforcement (no negative balances)
- Idempotent wallet seeding
"""

__version__ = "0.1.0"
