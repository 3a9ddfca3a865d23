"""
Configuration Defaults - Default configuration templates.

This module provides the default settings and the built-in source table
(origin URL and minimum request interval per source).
"""

import json
from pathlib import Path
from typing import Any, Dict

from otakuhub.core.config_schemas import AppSettings, SourceConfig, SourcesConfig


DEFAULT_SOURCES: Dict[str, Dict[str, Any]] = {
    "otakudesu": {
        "name": "Otakudesu",
        "description": "Indonesian anime series, subtitled episodes",
        "base_url": "https://otakudesu.best",
        "rate_limit": 1.0,
    },
    "samehadaku": {
        "name": "Samehadaku",
        "description": "Indonesian anime series with deferred player resolution",
        "base_url": "https://samehadaku.li",
        "rate_limit": 1.0,
    },
    "anichin": {
        "name": "Anichin",
        "description": "Chinese animation (donghua) with weekly schedule",
        "base_url": "https://anichin.watch",
        "rate_limit": 1.0,
    },
    "komiku": {
        "name": "Komiku",
        "description": "Manga, manhwa and manhua reader",
        "base_url": "https://komiku.cc",
        "rate_limit": 1.0,
    },
    "meionovel": {
        "name": "MeioNovel",
        "description": "Translated light and web novels",
        "base_url": "https://meionovels.com",
        "rate_limit": 1.0,
    },
    "lk21": {
        "name": "LK21",
        "description": "Indonesian-subtitled films, with series on a companion site",
        "base_url": "https://tv8.lk21official.cc",
        "rate_limit": 1.5,
        "series_url": "https://tv3.nontondrama.my",
    },
    "kuramanime": {
        "name": "Kuramanime",
        "description": "Indonesian anime series with a multi-server player",
        "base_url": "https://v13.kuramanime.tel",
        "rate_limit": 0.5,
    },
    "subnime": {
        "name": "Subnime",
        "description": "Indonesian anime series with ranged episode lists",
        "base_url": "https://subnime.com",
        "rate_limit": 1.0,
    },
}

DEFAULT_RATE_LIMIT = 1.0
SOURCE_TABLE_KEYS = ("name", "description")


def source_config(info: Dict[str, Any]) -> Dict[str, Any]:
    """Adapter config for one built-in source table entry."""
    config = {key: value for key, value in info.items() if key not in SOURCE_TABLE_KEYS}
    config.setdefault("rate_limit", DEFAULT_RATE_LIMIT)
    config.setdefault("timeout", 20)
    return config


def get_default_settings() -> AppSettings:
    """
    Get default application settings.

    Returns:
        AppSettings instance with sensible defaults
    """
    return AppSettings()


def get_default_sources() -> SourcesConfig:
    """
    Get the default sources configuration.

    Every built-in source is enabled with its own request interval and
    priority, in table order. Extra per-source keys (such as a companion
    site URL) are carried into the source config.

    Returns:
        SourcesConfig instance
    """
    sources_config = SourcesConfig()

    for priority, (key, info) in enumerate(DEFAULT_SOURCES.items(), start=1):
        sources_config.add_source(key, SourceConfig(
            enabled=True,
            priority=priority,
            name=info["name"],
            description=info["description"],
            config=source_config(info),
        ))

    return sources_config


def create_default_config_files(config_dir: Path) -> None:
    """
    Create default configuration files in the specified directory.

    Existing files are left alone.

    Args:
        config_dir: Directory to create configuration files in
    """
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / "settings.json"
    if not settings_file.exists():
        with open(settings_file, 'w', encoding='utf-8') as f:
            json.dump(get_default_settings().model_dump(), f, indent=2, ensure_ascii=False)

    sources_file = config_dir / "sources.json"
    if not sources_file.exists():
        with open(sources_file, 'w', encoding='utf-8') as f:
            json.dump(get_default_sources().model_dump(), f, indent=2, ensure_ascii=False)


# Export utility functions
__all__ = [
    "DEFAULT_SOURCES",
    "DEFAULT_RATE_LIMIT",
    "source_config",
    "get_default_settings",
    "get_default_sources",
    "create_default_config_files",
]
