"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tidal_cli.exceptions import ConfigurationError
from tidal_cli.models.config import TidalConfig

log = logging.getLogger(__name__)

# Environment variables that take precedence over the INI file
ENV_OVERRIDES = {
    "TIDAL_CLIENT_ID": "client_id",
    "TIDAL_CLIENT_SECRET": "client_secret",
    "TIDAL_TOKEN_SESSION_PATH": "credential_path",
}

_DEFAULTS: dict[str, Any] = {
    key: field.default
    for key, field in TidalConfig.model_fields.items()
    if key in TidalConfig.get_ini_keys()
}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> TidalConfig:
        """
        Loads configuration from the INI file and the environment, applies CLI
        overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated TidalConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path)
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        elif not self._env_overrides():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'tidal-cli init' first."
            )

        config_from_file.update(self._env_overrides())

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return TidalConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        for key in sorted(TidalConfig.get_ini_keys()):
            value = settings.get(key, _DEFAULTS.get(key))
            if value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _env_overrides() -> dict[str, str]:
        return {
            key: os.environ[env]
            for env, key in ENV_OVERRIDES.items()
            if os.environ.get(env)
        }

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        return {
            "client_id": section.get("client_id", ""),
            "client_secret": section.get("client_secret", ""),
            "credential_path": section.get(
                "credential_path", str(_DEFAULTS["credential_path"])
            ),
            "auth_url": section.get("auth_url", _DEFAULTS["auth_url"]),
            "api_url": section.get("api_url", _DEFAULTS["api_url"]),
            "scope": section.get("scope", _DEFAULTS["scope"]),
            "user_agent": section.get("user_agent", _DEFAULTS["user_agent"]),
            "request_timeout": section.getfloat(
                "request_timeout", _DEFAULTS["request_timeout"]
            ),
            "audio_quality": section.get("audio_quality", _DEFAULTS["audio_quality"]),
            "cache_dir": section.get("cache_dir", str(_DEFAULTS["cache_dir"])),
            "cache_capacity_mb": section.getint(
                "cache_capacity_mb", _DEFAULTS["cache_capacity_mb"]
            ),
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key in sorted(TidalConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = str(_DEFAULTS.get(key, ""))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
