"""
Ledger CLI -- command-line adapter over the wallet ledger.

Each invocation loads configuration, bootstraps the ledger, runs one
command, and exits with a status code that reflects the error category.

Entry point: python -m scripts.cli.main
"""

from scripts.cli.main import main

__all__ = ["main"]
