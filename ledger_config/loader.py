"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Parses YAML documents and environment variables into the frozen
``ledger_config.schema`` dataclasses.  Callers use
``ledger_config.load_config()``; the functions here are its building blocks.

Resolution order
----------------
built-in defaults  <  YAML file  <  environment variables

Environment variables
---------------------
* ``DATABASE_URL`` -- full SQLAlchemy URL (wins over DB_*).
* ``DB_HOST``, ``DB_PORT`` (default 5432), ``DB_USER``, ``DB_PASSWORD``,
  ``DB_NAME`` -- assembled into a PostgreSQL URL when DATABASE_URL is unset
  and DB_HOST is present.
* ``LEDGER_LOG_LEVEL``, ``LEDGER_SEED_WALLETS``, ``LEDGER_SEED_BALANCE``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types / out-of-range values / unknown keys  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml
from sqlalchemy.engine import URL

from ledger_config.schema import DatabaseConfig, LedgerConfig, LoggingConfig, SeedConfig

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Configuration value is missing, malformed, or out of range."""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top-level YAML must be a mapping")
    return data


def _require_int(section: str, key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            raise ConfigError(f"{section}.{key} must be an integer, got {value!r}") from None
    if value < minimum:
        raise ConfigError(f"{section}.{key} must be >= {minimum}, got {value}")
    return value


def _require_bool(section: str, key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{section}.{key} must be a boolean, got {value!r}")


def _require_decimal(section: str, key: str, value: Any) -> Decimal:
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ConfigError(f"{section}.{key} must be numeric, got {value!r}") from None
    if not result.is_finite() or result < 0:
        raise ConfigError(f"{section}.{key} must be a finite number >= 0, got {value!r}")
    return result


def _require_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in _VALID_LEVELS:
        raise ConfigError(f"logging.level must be one of {_VALID_LEVELS}, got {value!r}")
    return level


def _check_keys(section: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ConfigError(f"Unknown key(s) in {section}: {sorted(unknown)}")


def parse_database(data: Mapping[str, Any], base: DatabaseConfig) -> DatabaseConfig:
    """Parse the ``database`` section over ``base``."""
    _check_keys(
        "database",
        data,
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle", "pool_pre_ping"},
    )
    updates: dict[str, Any] = {}
    if "url" in data:
        if not isinstance(data["url"], str) or not data["url"].strip():
            raise ConfigError("database.url must be a non-empty string")
        updates["url"] = data["url"].strip()
    if "echo" in data:
        updates["echo"] = _require_bool("database", "echo", data["echo"])
    if "pool_pre_ping" in data:
        updates["pool_pre_ping"] = _require_bool("database", "pool_pre_ping", data["pool_pre_ping"])
    for key, minimum in (("pool_size", 1), ("max_overflow", 0), ("pool_timeout", 1), ("pool_recycle", -1)):
        if key in data:
            updates[key] = _require_int("database", key, data[key], minimum)
    return replace(base, **updates)


def parse_seed(data: Mapping[str, Any], base: SeedConfig) -> SeedConfig:
    """Parse the ``seed`` section over ``base``."""
    _check_keys("seed", data, {"wallet_count", "initial_balance"})
    updates: dict[str, Any] = {}
    if "wallet_count" in data:
        updates["wallet_count"] = _require_int("seed", "wallet_count", data["wallet_count"], 0)
    if "initial_balance" in data:
        updates["initial_balance"] = _require_decimal("seed", "initial_balance", data["initial_balance"])
    return replace(base, **updates)


def parse_logging(data: Mapping[str, Any], base: LoggingConfig) -> LoggingConfig:
    _check_keys("logging", data, {"level"})
    if "level" in data:
        return replace(base, level=_require_level(data["level"]))
    return base


def parse_config(data: Mapping[str, Any], base: LedgerConfig | None = None) -> LedgerConfig:
    """
    Parse a whole configuration document.

    Preconditions:
        - ``data`` is a mapping with optional ``database``, ``seed`` and
          ``logging`` sections.
    Postconditions:
        - Returns a new ``LedgerConfig``; keys absent from ``data`` keep the
          value from ``base`` (or the built-in default).
    """
    base = base or LedgerConfig()
    _check_keys("config", data, {"database", "seed", "logging"})

    sections = {}
    for name in ("database", "seed", "logging"):
        section = data.get(name) or {}
        if not isinstance(section, Mapping):
            raise ConfigError(f"{name} section must be a mapping")
        sections[name] = section

    return LedgerConfig(
        database=parse_database(sections["database"], base.database),
        seed=parse_seed(sections["seed"], base.seed),
        logging=parse_logging(sections["logging"], base.logging),
    )


def database_url_from_env(env: Mapping[str, str]) -> str | None:
    """
    Resolve a database URL from the environment.

    DATABASE_URL wins.  Otherwise, when DB_HOST is set, DB_* variables are
    assembled into a PostgreSQL URL.  Returns None when neither is present.
    """
    if env.get("DATABASE_URL"):
        return env["DATABASE_URL"]
    if not env.get("DB_HOST"):
        return None
    url = URL.create(
        "postgresql+psycopg2",
        username=env.get("DB_USER") or None,
        password=env.get("DB_PASSWORD") or None,
        host=env["DB_HOST"],
        port=_require_int("env", "DB_PORT", env.get("DB_PORT", "5432"), 1),
        database=env.get("DB_NAME") or None,
    )
    return url.render_as_string(hide_password=False)


def apply_env_overrides(config: LedgerConfig, env: Mapping[str, str]) -> LedgerConfig:
    """Overlay environment variables on an already-parsed configuration."""
    overrides: dict[str, dict[str, Any]] = {"database": {}, "seed": {}, "logging": {}}

    url = database_url_from_env(env)
    if url:
        overrides["database"]["url"] = url
    if env.get("LEDGER_LOG_LEVEL"):
        overrides["logging"]["level"] = env["LEDGER_LOG_LEVEL"]
    if env.get("LEDGER_SEED_WALLETS"):
        overrides["seed"]["wallet_count"] = env["LEDGER_SEED_WALLETS"]
    if env.get("LEDGER_SEED_BALANCE"):
        overrides["seed"]["initial_balance"] = env["LEDGER_SEED_BALANCE"]

    return parse_config(overrides, base=config)


def compute_checksum(config: LedgerConfig) -> str:
    """
    Deterministic SHA-256 of a configuration, with the database password
    masked so the checksum can be logged.
    """
    payload = asdict(config)
    payload["database"]["url"] = _mask_url(config.database.url)
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _mask_url(url: str) -> str:
    from sqlalchemy.engine import make_url
    from sqlalchemy.exc import ArgumentError

    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        logging.getLogger("ledger_kernel.config").warning(
            "config_url_unparseable", extra={"url_length": len(url)}
        )
        return "<unparseable>"
