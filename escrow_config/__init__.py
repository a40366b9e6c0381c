"""
escrow_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Returns a frozen ``LedgerConfig``.

Architecture position:
    Configuration -- sits above ``escrow_kernel``.  The kernel never imports
    from ``escrow_config``; callers pass the ``LedgerConfig`` in.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ConfigValidationError`` (a ``ValueError``) -- unknown key or value
      out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``escrow_config_loaded`` log entry with the config checksum, tying the
    fee ceiling in force back to the exact file that set it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from escrow_config.loader import (
    ConfigValidationError,
    compute_checksum,
    load_config_file,
    log_level_number,
    parse_config,
)
from escrow_config.schema import LedgerConfig

_logger = logging.getLogger("escrow_kernel.config")

# Default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to escrow_config/sets/default.yaml.

    Returns:
        Validated, frozen ``LedgerConfig``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    _logger.info(
        "escrow_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "default_platform_fee_pct": config.default_platform_fee_pct,
            "max_platform_fee_pct": config.max_platform_fee_pct,
        },
    )
    return config


__all__ = [
    "ConfigValidationError",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "compute_checksum",
    "get_active_config",
    "load_config_file",
    "log_level_number",
    "parse_config",
]
