"""
Configuration Loader (``dealership_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the frozen dataclasses of
``dealership_config.schema``, then applies environment overrides.  Runtime
callers go through ``dealership_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys in a section  -> ``ValueError``.
* A section that is not a mapping  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from dealership_config.schema import (
    DatabaseConfig,
    DealershipConfig,
    InventoryConfig,
    LoggingConfig,
    NumberingConfig,
    WorkflowConfig,
)

ENV_DATABASE_URL = "DEALERSHIP_DATABASE_URL"
ENV_LOG_LEVEL = "DEALERSHIP_LOG_LEVEL"

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "inventory": InventoryConfig,
    "workflow": WorkflowConfig,
    "numbering": NumberingConfig,
    "logging": LoggingConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_section(name: str, data: Any) -> Any:
    """Parse one top-level section into its dataclass, rejecting unknown keys."""
    cls = _SECTIONS[name]
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {', '.join(unknown)}")
    return cls(**data)


def parse_config(data: Mapping[str, Any]) -> DealershipConfig:
    """Build a DealershipConfig from an already-loaded mapping."""
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(unknown)}")
    sections = {name: parse_section(name, data.get(name)) for name in _SECTIONS}
    return DealershipConfig(**sections, checksum=compute_checksum(data))


def compute_checksum(data: Mapping[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML content."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def apply_env_overrides(
    config: DealershipConfig,
    environ: Mapping[str, str],
) -> DealershipConfig:
    """Return a copy of ``config`` with DEALERSHIP_* environment values applied."""
    database_url = environ.get(ENV_DATABASE_URL)
    if database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=database_url),
        )
    log_level = environ.get(ENV_LOG_LEVEL)
    if log_level:
        config = dataclasses.replace(
            config,
            logging=dataclasses.replace(config.logging, level=log_level.upper()),
        )
    return config


def load_config(path: Path | str) -> DealershipConfig:
    """Load and parse a configuration file (no environment overrides)."""
    return parse_config(load_yaml_file(Path(path)))
