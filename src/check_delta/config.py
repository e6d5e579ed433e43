"""Workspace configuration helpers."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

import yaml

from .constants import (
    CONFIG_FILE,
    DEFAULT_INCLUDE,
    DEFAULT_STALE_SECONDS,
    DEFAULT_SUBCOMMAND,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class DeltaConfig:
    """Per-workspace defaults; command-line options take precedence."""

    subcommand: str = DEFAULT_SUBCOMMAND
    program: Optional[str] = None  # build tool; defaults to the one running us
    stale_time: float = DEFAULT_STALE_SECONDS  # seconds
    jobs: int = 1
    include: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    ignore: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.stale_time < 0:
            raise ConfigError(f"stale_time must be non-negative, got {self.stale_time}")
        if self.jobs < 1:
            raise ConfigError(f"jobs must be at least 1, got {self.jobs}")


def _patterns(value, key: str) -> List[str]:
    """Accept a single pattern or a list of patterns."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ConfigError(f"{key} must be a pattern or a list of patterns, got {value!r}")


def _optional_str(value, key: str) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise ConfigError(f"{key} must be a string, got {value!r}")


def load_delta_config(root: Path) -> DeltaConfig:
    """Load configuration from <workspace_root>/.check-delta.yaml if present.

    An unreadable or malformed file is reported and ignored.
    """
    cfg_path = root / CONFIG_FILE
    if not cfg_path.exists():
        return DeltaConfig()

    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
        return DeltaConfig()

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping", cfg_path)
        return DeltaConfig()

    defaults = DeltaConfig()
    try:
        return DeltaConfig(
            subcommand=_optional_str(data.get("subcommand", defaults.subcommand), "subcommand")
            or defaults.subcommand,
            program=_optional_str(data.get("program", defaults.program), "program"),
            stale_time=float(data.get("stale_time", defaults.stale_time)),
            jobs=int(data.get("jobs", defaults.jobs)),
            include=_patterns(data.get("include", defaults.include), "include"),
            ignore=_patterns(data.get("ignore", defaults.ignore), "ignore"),
        )
    except (TypeError, ValueError, ConfigError) as e:
        logger.warning("Ignoring invalid config %s: %s", cfg_path, e)
        return DeltaConfig()
