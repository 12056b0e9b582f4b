"""
dealership_config -- single public entrypoint for dealership configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or DEALERSHIP_* environment variables directly.

Architecture position:
    Configuration.  This package sits above ``dealership_kernel``; the
    kernel MUST NEVER import from ``dealership_config``.  ``bridges``
    translates a loaded config into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- unknown sections or keys in the YAML.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dealership_config.loader import apply_env_overrides, load_config
from dealership_config.schema import (
    DatabaseConfig,
    DealershipConfig,
    InventoryConfig,
    LoggingConfig,
    NumberingConfig,
    WorkflowConfig,
)

_logger = logging.getLogger("dealership_kernel.config")

ENV_CONFIG_PATH = "DEALERSHIP_CONFIG"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> DealershipConfig:
    """
    The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then the
    ``DEALERSHIP_CONFIG`` environment variable, then the packaged
    ``defaults.yaml``.  Environment overrides are applied last.

    Args:
        config_path: Explicit configuration file.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        A frozen DealershipConfig.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(ENV_CONFIG_PATH) or _DEFAULT_CONFIG_FILE)

    config = apply_env_overrides(load_config(path), env)

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "database_backend": config.database.url.split(":", 1)[0],
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "DealershipConfig",
    "InventoryConfig",
    "LoggingConfig",
    "NumberingConfig",
    "WorkflowConfig",
    "get_active_config",
    "load_config",
]
