"""Configuration management for Time Ledger."""

import copy
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

from time_ledger.core.days import DayBoundaryResolver, load_timezone

logger = logging.getLogger(__name__)


def _merged(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``base`` with ``override`` applied recursively."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _merged(result[key], value)
        else:
            result[key] = value
    return result


def _leaf_keys(tree: dict[str, Any], prefix: str = "") -> Iterator[str]:
    for key, value in tree.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _leaf_keys(value, f"{dotted}.")
        else:
            yield dotted


class ConfigManager:
    """YAML-backed settings for the ledger, validated with a JSON schema."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "ledger_path": "~/.time-ledger/ledger.tl",
            "timezone": None,
            "day_start_offset": 0,
            "date_format": "%Y-%m-%d",
            "time_format": "%H:%M",
        },
        "display": {
            "show_seconds": True,
            "recent_limit": 20,
        },
        "advanced": {
            "backup_on_save": False,
            "log_level": "WARNING",
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "ledger_path": {"type": "string"},
                    "timezone": {"type": ["string", "null"]},
                    "day_start_offset": {"type": "integer", "minimum": 0, "maximum": 23},
                    "date_format": {"type": "string"},
                    "time_format": {"type": "string"},
                },
            },
            "display": {
                "type": "object",
                "properties": {
                    "show_seconds": {"type": "boolean"},
                    "recent_limit": {"type": "integer", "minimum": 1, "maximum": 1000},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "backup_on_save": {"type": "boolean"},
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Load the config file, writing defaults if it does not exist yet.

        Args:
            config_path: Config file location. Defaults to ~/.time-ledger/config.yml

        Raises:
            ValueError: If the existing file is invalid. It is moved aside to
                ``.yml.backup`` and defaults are written in its place.
        """
        self.config_path = config_path or Path.home() / ".time-ledger" / "config.yml"
        self._config: dict[str, Any] = copy.deepcopy(self.DEFAULT_CONFIG)

        if not self.config_path.exists():
            self.save()
            return

        with open(self.config_path, encoding="utf-8") as f:
            stored = yaml.safe_load(f) or {}
        self._config = _merged(self.DEFAULT_CONFIG, stored)
        try:
            self.validate()
        except ValueError as e:
            self._replace_invalid_file(e)

    def _replace_invalid_file(self, error: ValueError) -> None:
        backup_path = self.config_path.with_suffix(".yml.backup")
        self.config_path.rename(backup_path)
        self.reset()
        logger.warning(f"Invalid config moved to {backup_path}")
        raise ValueError(
            f"Config validation failed, backed up to {backup_path}. Using defaults. Error: {error}"
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``general.day_start_offset``.

        Missing keys and null values both give ``default``.
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a dotted key and save.

        The previous configuration is kept if the new value does not validate.

        Raises:
            ValueError: If configuration is invalid after setting
        """
        previous = copy.deepcopy(self._config)
        *parents, leaf = key.split(".")
        node = self._config
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
        try:
            self.validate()
        except ValueError:
            self._config = previous
            raise
        self.save()

    def validate(self) -> bool:
        """Check the configuration against CONFIG_SCHEMA.

        Raises:
            ValueError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e.message}") from e
        return True

    def save(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def reset(self) -> None:
        """Restore and save the defaults."""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    def get_all_keys(self) -> list[str]:
        """Every leaf key in dotted form, in file order.

        Example:
            >>> config.get_all_keys()[:3]
            ['version', 'general.ledger_path', 'general.timezone']
        """
        return list(_leaf_keys(self._config))

    @property
    def ledger_path(self) -> Path:
        return Path(self.get("general.ledger_path")).expanduser()

    def resolver(self) -> DayBoundaryResolver:
        """Day-boundary resolver for the configured timezone and offset.

        Raises:
            ConfigurationFatalError: If the timezone name is unknown
        """
        return DayBoundaryResolver(
            day_start_offset=self.get("general.day_start_offset", 0),
            tz=load_timezone(self.get("general.timezone")),
        )
