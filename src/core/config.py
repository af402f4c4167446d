from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from extractors.exceptions import ConfigurationError

HOME_ENV_VAR = "WINCLONE_HOME"


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    log_max_mb: int = 5
    log_backup_count: int = 3


@dataclass(slots=True)
class ScanConfig:
    """Scan configuration from config.yml."""

    progress_interval: int = 50  # Log progress every N uninstall entries


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    logs_dir: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for diagnostics."""
        data = {
            "base_dir": str(self.base_dir),
            "logs_dir": str(self.logs_dir),
            "logging": {
                "level": self.logging.level,
                "log_max_mb": self.logging.log_max_mb,
                "log_backup_count": self.logging.log_backup_count,
            },
            "scan": {"progress_interval": self.scan.progress_interval},
        }
        return json.dumps(data, indent=2, sort_keys=True)


def default_base_dir() -> Path:
    """Return the per-user application directory (``$WINCLONE_HOME`` wins)."""
    env_dir = os.environ.get(HOME_ENV_VAR)
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".config" / "winclone"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            content = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(content, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level.")
    return content


def _section(overrides: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = overrides.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping.")
    return section


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'{key}' must be a positive integer, got {value!r}")
    return value


def load_app_config(base_dir: Path, config_path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_yaml = config_path or base_dir / "config" / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    logs_dir = base_dir / "logs"

    logging_cfg = _section(config_overrides, "logging")
    level = str(logging_cfg.get("level", "INFO")).upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"Unknown logging level: {level}")
    logging_config = LoggingConfig(
        level=level,
        log_max_mb=_positive_int(logging_cfg, "log_max_mb", 5),
        log_backup_count=_positive_int(logging_cfg, "log_backup_count", 3),
    )

    scan_cfg = _section(config_overrides, "scan")
    scan_config = ScanConfig(
        progress_interval=_positive_int(scan_cfg, "progress_interval", 50),
    )

    return AppConfig(
        base_dir=base_dir,
        logs_dir=logs_dir,
        logging=logging_config,
        scan=scan_config,
    )
