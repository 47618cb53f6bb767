"""
Configuration loading for xmltail.

Project config files live in the `_xmltail/` folder.

Priority (highest to lowest):
1. Environment variables (XMLTAIL_* prefix)
2. _xmltail/config.{ENVIRONMENT}.json (environment-specific overrides)
3. _xmltail/config.json (per-project)
4. Default values

Usage:
    >>> from xmltail.config_loader import ConfigLoader
    >>> config = ConfigLoader.load(project_root=".")
    >>> tailer_config = tailer_config_from(config)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from xmltail.config import TailerConfig, parse_bool

CONFIG_DIR = "_xmltail"
ENVIRONMENT_VAR = "XMLTAIL_ENV"

BOOL_FIELDS = {"skip.to.end", "readAll"}
INT_FIELDS = {"pollIntervalMs", "idleIntervalMs", "watchIntervalMs", "port", "recentRecords"}


class ConfigSchema:
    """Schema validation and defaults for xmltail configuration."""

    DEFAULTS = {
        "tailer": {
            "logDir": None,
            "skip.to.end": False,
            "readAll": False,
            "pollIntervalMs": 100,
            "idleIntervalMs": 5000,
            "watchIntervalMs": 500,
        },
        "output": {
            "format": "plain",
            "color": "auto",
            "logLevel": "info",
        },
        "server": {
            "host": "localhost",
            "port": 8002,
            "recentRecords": 200,
        },
    }

    # field -> (type, description)
    SCHEMA = {
        "tailer": {
            "logDir": (str, "Directory the producer writes its log files to"),
            "skip.to.end": (bool, "Start the first file at its current end"),
            "readAll": (bool, "Queue all older log files as backlog at startup"),
            "pollIntervalMs": (int, "Delay before re-reading a file at end-of-stream"),
            "idleIntervalMs": (int, "Backoff while no file is queued"),
            "watchIntervalMs": (int, "Directory polling period"),
        },
        "output": {
            "format": (str, "Record output format: plain or json"),
            "color": (str, "Color mode: auto, always or never"),
            "logLevel": (str, "Log level: debug, info, warn, error"),
        },
        "server": {
            "host": (str, "Status server bind host"),
            "port": (int, "Status server port"),
            "recentRecords": (int, "Number of recent records kept for /records"),
        },
    }

    ENUMS = {
        ("output", "format"): ["plain", "json"],
        ("output", "color"): ["auto", "always", "never"],
        ("output", "logLevel"): ["debug", "info", "warn", "error"],
    }

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate configuration against schema.

        Raises:
            ValueError: If validation fails, listing every problem found
        """
        errors = []

        for section, fields in cls.SCHEMA.items():
            if section not in config or not isinstance(config[section], dict):
                errors.append(f"Missing required section: {section}")
                continue

            for field, (field_type, _) in fields.items():
                if field not in config[section]:
                    continue
                value = config[section][field]
                if value is None:
                    continue
                # bool is an int subclass; do not accept it for numeric fields
                wrong_bool = field_type is int and isinstance(value, bool)
                if wrong_bool or not isinstance(value, field_type):
                    errors.append(
                        f"Invalid type for {section}.{field}: "
                        f"expected {field_type.__name__}, "
                        f"got {type(value).__name__}"
                    )

        for (section, field), allowed in cls.ENUMS.items():
            value = config.get(section, {}).get(field)
            if value is not None and value not in allowed:
                errors.append(
                    f"Invalid {section}.{field}: {value}. "
                    f"Must be one of: {', '.join(allowed)}"
                )

        for field in ("pollIntervalMs", "idleIntervalMs", "watchIntervalMs"):
            value = config.get("tailer", {}).get(field)
            if isinstance(value, int) and not isinstance(value, bool) and value <= 0:
                errors.append(f"Invalid tailer.{field}: must be positive")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(errors))

        return config

    @classmethod
    def get_default(cls) -> Dict[str, Any]:
        """Fresh copy of DEFAULTS."""
        return json.loads(json.dumps(cls.DEFAULTS))  # Deep copy


class ConfigLoader:
    """Builds the effective configuration from defaults, files and env vars."""

    ENV_VAR_MAPPINGS = {
        "XMLTAIL_LOG_DIR": ("tailer", "logDir"),
        "XMLTAIL_SKIP_TO_END": ("tailer", "skip.to.end"),
        "XMLTAIL_READ_ALL": ("tailer", "readAll"),
        "XMLTAIL_POLL_INTERVAL_MS": ("tailer", "pollIntervalMs"),
        "XMLTAIL_IDLE_INTERVAL_MS": ("tailer", "idleIntervalMs"),
        "XMLTAIL_WATCH_INTERVAL_MS": ("tailer", "watchIntervalMs"),
        "XMLTAIL_OUTPUT_FORMAT": ("output", "format"),
        "XMLTAIL_COLOR": ("output", "color"),
        "XMLTAIL_LOG_LEVEL": ("output", "logLevel"),
        "XMLTAIL_HOST": ("server", "host"),
        "XMLTAIL_PORT": ("server", "port"),
        "XMLTAIL_RECENT_RECORDS": ("server", "recentRecords"),
    }

    @classmethod
    def load(
        cls,
        project_root: str = ".",
        environment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the effective configuration for a project.

        Args:
            project_root: Directory holding the `_xmltail/` folder
            environment: Name selecting `config.{environment}.json`;
                         XMLTAIL_ENV is used when None

        Raises:
            ValueError: If a config file cannot be read or the result is invalid
        """
        if environment is None:
            environment = os.environ.get(ENVIRONMENT_VAR)

        config_dir = Path(project_root) / CONFIG_DIR
        layers = [config_dir / "config.json"]
        if environment:
            layers.append(config_dir / f"config.{environment}.json")

        config = ConfigSchema.get_default()
        for path in layers:
            if path.is_file():
                config = _deep_merge(config, cls._read_layer(path))

        for env_var, (section, field) in cls.ENV_VAR_MAPPINGS.items():
            raw = os.environ.get(env_var)
            if raw is not None:
                config.setdefault(section, {})[field] = _coerce_env_value(env_var, field, raw)

        return ConfigSchema.validate(config)

    @staticmethod
    def _read_layer(path: Path) -> Dict[str, Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}")
        except OSError as e:
            raise ValueError(f"Cannot read {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return data


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(base))  # Deep copy
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _coerce_env_value(env_var: str, field: str, raw: str) -> Any:
    if field in BOOL_FIELDS:
        return parse_bool(raw)
    if field in INT_FIELDS:
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"Invalid value for {env_var}: must be an integer")
    return raw


def tailer_config_from(config: Dict[str, Any]) -> TailerConfig:
    """Build a TailerConfig from the `tailer` section of a loaded config."""
    return TailerConfig.from_properties(config.get("tailer", {}))


def load_config(
    project_root: str = ".",
    environment: Optional[str] = None,
) -> Dict[str, Any]:
    """Shorthand for ConfigLoader.load()."""
    return ConfigLoader.load(project_root=project_root, environment=environment)
