"""
Configuration Manager - JSON-based settings and source configuration management.

This module provides centralized configuration management for OtakuHub,
handling fetch, cache and rendering settings plus per-source configuration
with validation, environment overrides and default value management.
"""

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from otakuhub.core.config_defaults import get_default_settings, get_default_sources
from otakuhub.core.config_schemas import AppSettings, SourceConfig, SourcesConfig
from otakuhub.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


ENV_CACHE_TTL = "SCRAPE_CACHE_TTL"
ENV_REDIS_URL = "REDIS_URL"
ENV_LOG_LEVEL = "OTAKUHUB_LOG_LEVEL"
ENV_CONFIG_DIR = "OTAKUHUB_CONFIG_DIR"


def apply_env_overrides(settings: AppSettings, environ: Optional[Mapping[str, str]] = None) -> AppSettings:
    """
    Apply environment variable overrides to loaded settings.

    Overrides are not written back to disk.

    Args:
        settings: Settings loaded from file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        A validated copy of the settings with overrides applied

    Raises:
        ConfigurationError: If an override value is invalid
    """
    environ = os.environ if environ is None else environ
    data = settings.model_dump()

    if environ.get(ENV_CACHE_TTL):
        try:
            data["cache"]["ttl"] = int(environ[ENV_CACHE_TTL])
        except ValueError:
            raise ConfigurationError(f"{ENV_CACHE_TTL} must be an integer number of seconds")

    if environ.get(ENV_REDIS_URL):
        data["cache"]["redis_url"] = environ[ENV_REDIS_URL]

    if environ.get(ENV_LOG_LEVEL):
        data["logging"]["level"] = environ[ENV_LOG_LEVEL]

    try:
        return AppSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment override: {e}")


class ConfigManager:
    """
    Manages application configuration with JSON persistence and validation.

    Provides thread-safe access to configuration data with automatic
    validation, corrupt-file recovery and environment overrides.
    """

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files. Defaults to
                        ``$OTAKUHUB_CONFIG_DIR`` or './config'.
            environ: Environment used for overrides (defaults to ``os.environ``)
        """
        self._environ = os.environ if environ is None else environ
        self.config_dir = Path(config_dir or self._environ.get(ENV_CONFIG_DIR) or "config")
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._settings_file = self.config_dir / "settings.json"
        self._sources_file = self.config_dir / "sources.json"

        self._lock = Lock()
        self._settings: Optional[AppSettings] = None
        self._sources: Optional[SourcesConfig] = None

        self._load_configurations()

    def _load_configurations(self) -> None:
        """Load all configuration files."""
        self._settings = apply_env_overrides(self._load_settings(), self._environ)
        self._sources = self._load_sources()
        logger.debug(f"Configuration loaded from {self.config_dir}")

    def _backup_corrupt(self, path: Path, error: Exception) -> None:
        backup_path = path.with_suffix('.json.backup')
        logger.warning(f"Invalid configuration file {path.name}, using defaults: {error}")
        path.replace(backup_path)
        logger.warning(f"Corrupted configuration backed up to {backup_path}")

    def _load_settings(self) -> AppSettings:
        """Load and validate application settings."""
        if not self._settings_file.exists():
            logger.info("Settings file not found, creating default configuration")
            settings = get_default_settings()
            self._save_settings(settings)
            return settings

        try:
            with open(self._settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return AppSettings.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            self._backup_corrupt(self._settings_file, e)
            settings = get_default_settings()
            self._save_settings(settings)
            return settings

    def _load_sources(self) -> SourcesConfig:
        """Load and validate sources configuration."""
        if not self._sources_file.exists():
            logger.info("Sources file not found, creating default configuration")
            sources = get_default_sources()
            self._save_sources(sources)
            return sources

        try:
            with open(self._sources_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            sources = SourcesConfig.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            self._backup_corrupt(self._sources_file, e)
            sources = get_default_sources()
            self._save_sources(sources)
            return sources

        # Built-in sources missing from an older file get their defaults
        for name, default in get_default_sources().sources.items():
            if name not in sources.sources:
                sources.add_source(name, default)

        return sources

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        """Write JSON atomically through a temporary file."""
        temp_file = path.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_file.replace(path)
            logger.debug(f"{path.name} saved successfully")
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise ConfigurationError(f"Failed to save {path.name}: {e}", config_path=str(path))

    def _save_settings(self, settings: AppSettings) -> None:
        self._write_json(self._settings_file, settings.model_dump())

    def _save_sources(self, sources: SourcesConfig) -> None:
        self._write_json(self._sources_file, sources.model_dump())

    @property
    def settings(self) -> AppSettings:
        """Get current application settings (thread-safe)."""
        with self._lock:
            if self._settings is None:
                self._settings = apply_env_overrides(self._load_settings(), self._environ)
            return self._settings

    @property
    def sources(self) -> SourcesConfig:
        """Get current sources configuration (thread-safe)."""
        with self._lock:
            if self._sources is None:
                self._sources = self._load_sources()
            return self._sources

    def update_setting(self, key_path: str, value: Any) -> None:
        """
        Update a specific setting using dot notation.

        Args:
            key_path: Dot-separated path to the setting (e.g., 'cache.ttl')
            value: New value for the setting

        Raises:
            ConfigurationError: If key path is invalid or value is invalid
        """
        with self._lock:
            if self._settings is None:
                raise ConfigurationError("Settings not loaded")

            settings_dict = self._settings.model_dump()

            keys = key_path.split('.')
            current = settings_dict

            for key in keys[:-1]:
                if not isinstance(current, dict) or key not in current:
                    raise ConfigurationError(f"Invalid setting path: {key_path}")
                current = current[key]

            final_key = keys[-1]
            if not isinstance(current, dict) or final_key not in current:
                raise ConfigurationError(f"Invalid setting key: {final_key}")

            current[final_key] = value

            try:
                updated_settings = AppSettings.model_validate(settings_dict)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid setting value: {e}")

            self._settings = updated_settings
            self._save_settings(updated_settings)
            logger.info(f"Setting updated: {key_path} = {value}")

    def get_setting(self, key_path: str, default: Any = None) -> Any:
        """
        Get a specific setting using dot notation.

        Args:
            key_path: Dot-separated path to the setting
            default: Default value if setting not found

        Returns:
            The setting value or default
        """
        with self._lock:
            if self._settings is None:
                return default

            current: Any = self._settings.model_dump()
            try:
                for key in key_path.split('.'):
                    current = current[key]
                return current
            except (KeyError, TypeError):
                return default

    def update_source_config(self, source_name: str, config: Dict[str, Any]) -> None:
        """
        Update configuration for a specific source.

        Args:
            source_name: Name of the source
            config: Fields to merge into the source entry

        Raises:
            ConfigurationError: If configuration is invalid
        """
        with self._lock:
            if self._sources is None:
                raise ConfigurationError("Sources configuration not loaded")

            sources_dict = self._sources.model_dump()
            sources_dict['sources'].setdefault(source_name, {}).update(config)

            try:
                updated_sources = SourcesConfig.model_validate(sources_dict)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid source configuration: {e}")

            self._sources = updated_sources
            self._save_sources(updated_sources)
            logger.info(f"Source configuration updated: {source_name}")

    def enable_source(self, source_name: str) -> None:
        self.update_source_config(source_name, {"enabled": True})

    def disable_source(self, source_name: str) -> None:
        self.update_source_config(source_name, {"enabled": False})

    def get_enabled_sources(self) -> Dict[str, SourceConfig]:
        """Get enabled source configurations sorted by priority."""
        with self._lock:
            if self._sources is None:
                return {}
            return self._sources.get_enabled_sources()

    def reload_configuration(self) -> None:
        """Reload configuration from files."""
        with self._lock:
            logger.info("Reloading configuration from files")
            self._load_configurations()

    def reset_to_defaults(self) -> None:
        """Reset all configuration to default values."""
        with self._lock:
            logger.warning("Resetting configuration to defaults")
            self._save_settings(get_default_settings())
            self._save_sources(get_default_sources())
            self._load_configurations()


# Export configuration manager
__all__ = [
    "ConfigManager",
    "apply_env_overrides",
    "ENV_CACHE_TTL",
    "ENV_REDIS_URL",
    "ENV_LOG_LEVEL",
    "ENV_CONFIG_DIR",
]
