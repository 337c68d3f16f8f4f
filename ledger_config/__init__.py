"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``load_config()``.  No other component reads configuration files or
    environment variables directly.

Architecture position:
    Configuration -- sits beside ``ledger_kernel``.  The kernel never imports
    from ``ledger_config``; ``ledger_kernel.bootstrap`` receives a
    ``LedgerConfig`` from its caller.

Failure modes:
    - ``FileNotFoundError`` -- explicit config path does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ConfigError`` -- invalid values.

Audit relevance:
    Every successful ``load_config()`` call emits a ``ledger_config_loaded``
    log entry carrying the configuration checksum (password masked).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from ledger_config.loader import (
    ConfigError,
    apply_env_overrides,
    compute_checksum,
    load_yaml_file,
    parse_config,
)
from ledger_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingConfig,
    SeedConfig,
)

_logger = logging.getLogger("ledger_kernel.config")

CONFIG_ENV_VAR = "LEDGER_CONFIG"


def load_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Falls back to ``$LEDGER_CONFIG``; when
            neither is given, only defaults and environment apply.
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        A frozen ``LedgerConfig``.
    """
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_ENV_VAR)

    config = LedgerConfig()
    if path:
        config = parse_config(load_yaml_file(Path(path)))
    config = apply_env_overrides(config, env)

    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_path": str(path) if path else None,
            "checksum": compute_checksum(config),
            "seed_wallets": config.seed.wallet_count,
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "DatabaseConfig",
    "LedgerConfig",
    "LoggingConfig",
    "SeedConfig",
    "compute_checksum",
    "load_config",
]
