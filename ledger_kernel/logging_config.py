"""
Module: ledger_kernel.logging_config
Responsibility: Render ledger log records as one JSON object per line and
    carry the ledger context (correlation id, transfer endpoints, committed
    transaction id) onto every line logged while that context is bound.
Architecture position: Kernel > cross-cutting.  Imported by db/, services/,
    bootstrap and the CLI adapter.  MUST NOT import from any of them.

Line shape:
    {"ts": ..., "level": ..., "logger": ..., "message": <event name>,
     <bound context fields>, <extra= fields>,
     "error": {"type", "message", "code", "attributes"}, "traceback": ...}

    "error" and "traceback" appear only when the record carries exc_info.
    Decimal amounts are rendered as strings so no precision is lost.

Usage:
    with LogContext.bind(from_address=sender, to_address=receiver):
        logger.info("transfer_committed", extra={"amount": amount})
"""

__all__ = [
    "LEDGER_CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import IO, Any
from uuid import UUID

LEDGER_CONTEXT_FIELDS = ("correlation_id", "from_address", "to_address", "transaction_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)


def _merge(fields: dict[str, object]) -> Mapping[str, str]:
    unknown = sorted(set(fields) - set(LEDGER_CONTEXT_FIELDS))
    if unknown:
        raise ValueError(f"unknown log context field(s): {', '.join(unknown)}")
    merged = dict(_bound.get())
    merged.update((name, str(value)) for name, value in fields.items() if value is not None)
    return MappingProxyType(merged)


class LogContext:
    """
    Ledger fields stamped onto every line logged in the current context.

    Backed by a single ContextVar, so each thread (and each asyncio task)
    sees only what it bound itself.  Values are stored as strings; None
    values are ignored.  Field names outside LEDGER_CONTEXT_FIELDS raise
    ValueError rather than being dropped silently.
    """

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def set(**fields: object) -> None:
        """Merge fields into the context until clear() or the context ends."""
        _bound.set(_merge(fields))

    @staticmethod
    def clear() -> None:
        _bound.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: object) -> Iterator[None]:
        """Merge fields for the duration of a with-block, then restore."""
        token = _bound.set(_merge(fields))
        try:
            yield
        finally:
            _bound.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _describe_error(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
    attributes = {
        name: value
        for name, value in vars(exc).items()
        if not name.startswith("_") and name != "code"
    }
    if attributes:
        error["attributes"] = attributes
    return error


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, bound context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_bound.get())

        for name, value in vars(record).items():
            if name not in _RECORD_ATTRIBUTES and name not in payload:
                payload[name] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _describe_error(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


_ROOT_LOGGER = "ledger_kernel"

# Set on the handler configure_logging() installs
_STRUCTURED_MARK = "_ledger_structured"

_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the ledger_kernel hierarchy, e.g. get_logger("bootstrap")."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


def _structured_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, _STRUCTURED_MARK, False)]


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """
    Install the structured handler on the ledger_kernel logger.

    Only the first call installs anything; later calls return the already
    configured logger unchanged, so bootstrap can call this on every start.

    Args:
        level: Logging level as an int or a name such as "warning".
        stream: Stream for the default StreamHandler (default: stderr).
        handler: Use this handler instead of a StreamHandler.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    with _lock:
        if _structured_handlers(root):
            return root
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())

        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _STRUCTURED_MARK, True)

        root.addHandler(installed)
        root.setLevel(level)
        root.propagate = False
    return root


def reset_logging() -> None:
    """Remove the structured handler so configure_logging() can run again.  Test use."""
    root = logging.getLogger(_ROOT_LOGGER)
    with _lock:
        for installed in _structured_handlers(root):
            root.removeHandler(installed)
        root.setLevel(logging.NOTSET)
        root.propagate = True
