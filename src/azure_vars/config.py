"""Configuration management for azure-vars."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ORGANIZATION_ENV = "ADO_ORGANIZATION"
PROJECT_ENV = "ADO_PROJECT"
CONFIG_DIR_ENV = "AZURE_VARS_CONFIG_DIR"


class ConfigError(Exception):
    """Configuration missing or unreadable; fatal at startup."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass
class Config:
    selected_organization: str | None = None
    preferences: dict[str, str] = field(default_factory=dict)

    @property
    def project(self) -> str | None:
        return self.preferences.get("project") or None

    def with_env_overrides(self, environ: dict[str, str] | None = None) -> Config:
        """Apply ADO_ORGANIZATION / ADO_PROJECT for this run only."""
        env = os.environ if environ is None else environ
        prefs = dict(self.preferences)
        if env.get(PROJECT_ENV):
            prefs["project"] = env[PROJECT_ENV]
        return replace(
            self,
            selected_organization=env.get(ORGANIZATION_ENV) or self.selected_organization,
            preferences=prefs,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.selected_organization:
            data["organization"] = self.selected_organization
        if self.preferences:
            data["preferences"] = dict(self.preferences)
        return data


def get_config_dir() -> Path:
    """Get the azure-vars config directory."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config) / "azure-vars"


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.yaml"


class ConfigStore:
    """Reads the config at startup and writes it back at clean shutdown."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_config_path()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Config:
        if not self.path.exists():
            raise ConfigError(
                f"Config file not found at {self.path}. Please run 'init' first."
            )
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.path} must contain a mapping")

        organization = data.get("organization")
        prefs = data.get("preferences") or {}
        if not isinstance(prefs, dict):
            raise ConfigError("'preferences' must be a mapping")
        # Older files kept the project at the top level
        if data.get("project") and "project" not in prefs:
            prefs["project"] = data["project"]

        logger.info("Loaded config from %s", self.path)
        return Config(
            selected_organization=str(organization) if organization else None,
            preferences={str(k): str(v) for k, v in prefs.items() if v is not None},
        )

    def save(self, config: Config) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(config.to_dict(), sort_keys=False), encoding="utf-8"
        )
        logger.info("Saved config to %s", self.path)
