"""CLI entry point: bootstrap the ledger, then run one command against it.

Usage:
    python -m scripts.cli.main [--config PATH] bootstrap
    python -m scripts.cli.main wallets [--limit N]
    python -m scripts.cli.main balance ADDRESS
    python -m scripts.cli.main send FROM TO AMOUNT
    python -m scripts.cli.main transactions --count N

Output is JSON on stdout.  Failures print a JSON error body on stderr and
exit with the code from scripts.cli.util.status_for().
"""

import argparse
import sys
from uuid import uuid4

import yaml

from ledger_config import ConfigError, load_config
from ledger_kernel.bootstrap import bootstrap_ledger
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.account_service import AccountService
from scripts.cli.util import (
    EXIT_INVALID_REQUEST,
    EXIT_OK,
    EXIT_UNAVAILABLE,
    emit,
    emit_error,
    fmt_amount,
    parse_address,
    parse_amount,
    status_for,
)

logger = get_logger("cli")


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger",
        description="Wallet ledger: balances, transfers and transaction history.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: $LEDGER_CONFIG, then built-in defaults)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("bootstrap", help="Create tables and seed wallets, then report the wallet count")

    p_wallets = sub.add_parser("wallets", help="List wallets and balances")
    p_wallets.add_argument("--limit", type=_positive_int, default=None)

    p_balance = sub.add_parser("balance", help="Show the balance of one wallet")
    p_balance.add_argument("address")

    p_send = sub.add_parser("send", help="Transfer funds between two wallets")
    p_send.add_argument("from_address", metavar="FROM")
    p_send.add_argument("to_address", metavar="TO")
    p_send.add_argument("amount", metavar="AMOUNT")

    p_tx = sub.add_parser("transactions", help="Show the most recent transactions")
    p_tx.add_argument("--count", type=_positive_int, required=True)

    return parser


def _validate(args: argparse.Namespace) -> None:
    """Reject malformed input before the store is touched."""
    if args.command == "balance":
        args.address = parse_address(args.address)
    elif args.command == "send":
        args.from_address = parse_address(args.from_address)
        args.to_address = parse_address(args.to_address)
        args.amount = parse_amount(args.amount)


def _run_command(args: argparse.Namespace, store, service: AccountService):
    if args.command == "bootstrap":
        return {"wallets": store.wallet_count(), "dialect": store.database.dialect_name}

    if args.command == "wallets":
        return [
            {"address": w.address, "balance": fmt_amount(w.balance)}
            for w in store.list_wallets(args.limit)
        ]

    if args.command == "balance":
        balance = service.get_balance(args.address)
        return {"address": args.address, "balance": fmt_amount(balance)}

    if args.command == "send":
        record = service.send(args.from_address, args.to_address, args.amount)
        return record.to_dict()

    if args.command == "transactions":
        return [r.to_dict() for r in service.get_last_transactions(args.count)]

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    with LogContext.bind(correlation_id=str(uuid4())):
        try:
            _validate(args)
        except LedgerKernelError as exc:
            emit_error(exc, "invalid_request")
            return EXIT_INVALID_REQUEST

        try:
            config = load_config(args.config)
        except (ConfigError, OSError, yaml.YAMLError) as exc:
            emit_error(exc, "config")
            return EXIT_UNAVAILABLE

        try:
            store = bootstrap_ledger(config)
        except LedgerKernelError as exc:
            category, exit_code = status_for(exc)
            emit_error(exc, category)
            return exit_code

        try:
            emit(_run_command(args, store, AccountService(store)))
        except LedgerKernelError as exc:
            category, exit_code = status_for(exc)
            logger.info(
                "cli_command_failed",
                extra={"command": args.command, "category": category},
            )
            emit_error(exc, category)
            return exit_code
        finally:
            store.database.dispose()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
