"""
Configuration Schemas - Pydantic models for configuration validation.

This module defines the data structures and validation rules for the
fetch, cache, rendering and logging settings and for the per-source
configuration using Pydantic models.
"""

import logging
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from otakuhub.core.cache import DEFAULT_REDIS_URL, DEFAULT_TTL
from otakuhub.core.fetcher import DEFAULT_USER_AGENT


logger = logging.getLogger(__name__)


class FetchSettings(BaseModel):
    """HTTP fetch configuration shared by every source."""

    timeout: int = Field(
        default=20,
        ge=5,
        le=300,
        description="Total request timeout in seconds"
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retry attempts for transport errors"
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Base delay in seconds for linear retry backoff"
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent to every origin"
    )
    accept_language: str = Field(
        default="id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
        description="Accept-Language header sent to every origin"
    )


class CacheSettings(BaseModel):
    """Two-tier cache configuration."""

    enabled: bool = Field(
        default=True,
        description="Use the shared Redis tier (the in-process tier is always on)"
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        description="Redis connection URL for the shared tier"
    )
    ttl: int = Field(
        default=DEFAULT_TTL,
        ge=1,
        description="Default entry lifetime in seconds"
    )
    memory_max_entries: int = Field(
        default=100,
        ge=1,
        description="In-process tier size ceiling"
    )
    memory_evict_count: int = Field(
        default=20,
        ge=1,
        description="Entries evicted when the ceiling is exceeded"
    )

    @field_validator('redis_url')
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Only accept redis:// style URLs."""
        if not re.match(r'^rediss?://|^unix://', v):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    @model_validator(mode='after')
    def validate_eviction(self) -> 'CacheSettings':
        if self.memory_evict_count > self.memory_max_entries:
            self.memory_evict_count = self.memory_max_entries
        return self


class RenderSettings(BaseModel):
    """Headless browser configuration."""

    headless: bool = Field(default=True, description="Run Chrome without a window")
    page_load_timeout: float = Field(
        default=30.0,
        ge=5.0,
        le=300.0,
        description="Navigation timeout in seconds"
    )
    network_idle_timeout: float = Field(
        default=10.0,
        ge=0.0,
        le=120.0,
        description="Upper bound on the network idle wait"
    )
    network_idle_window: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Seconds without new resource loads counted as idle"
    )
    interaction_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=10.0,
        description="Pause after clicking a server or tab"
    )
    load_more_max_attempts: int = Field(default=150, ge=1, description="Load-more click ceiling")
    load_more_delay: float = Field(default=0.3, ge=0.0, description="Pause between load-more clicks")
    scroll_max_attempts: int = Field(default=200, ge=1, description="Scroll ceiling")
    scroll_stall_limit: int = Field(default=15, ge=1, description="Scrolls without growth before stopping")
    scroll_delay: float = Field(default=1.0, ge=0.0, description="Pause between scrolls")
    window_size: str = Field(default="1920,1080", description="Browser window size WIDTH,HEIGHT")
    stealth: bool = Field(default=True, description="Apply selenium-stealth patches")

    @field_validator('window_size')
    @classmethod
    def validate_window_size(cls, v: str) -> str:
        if not re.match(r'^\d{3,5},\d{3,5}$', v):
            raise ValueError("window_size must look like '1920,1080'")
        return v

    def driver_options(self, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, Any]:
        """Keyword arguments for :class:`~otakuhub.core.renderer.SeleniumDriver`."""
        return {
            "headless": self.headless,
            "page_load_timeout": self.page_load_timeout,
            "network_idle_timeout": self.network_idle_timeout,
            "network_idle_window": self.network_idle_window,
            "interaction_delay": self.interaction_delay,
            "window_size": self.window_size,
            "user_agent": user_agent,
            "use_stealth": self.stealth,
        }


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level"
    )

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class AppSettings(BaseModel):
    """Main application settings container."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class SourceConfig(BaseModel):
    """Configuration for an individual source adapter."""

    enabled: bool = Field(
        default=True,
        description="Whether the source is enabled"
    )
    priority: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Source priority (lower numbers = higher priority)"
    )
    name: Optional[str] = Field(
        default=None,
        description="Display name for the source"
    )
    description: Optional[str] = Field(
        default=None,
        description="Description of the source"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific configuration (base_url, rate_limit, timeout)"
    )

    @field_validator('config')
    @classmethod
    def validate_config(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Validate source-specific configuration."""
        if 'rate_limit' in v and (not isinstance(v['rate_limit'], (int, float)) or v['rate_limit'] < 0):
            raise ValueError("rate_limit must be a non-negative number")

        if 'timeout' in v and (not isinstance(v['timeout'], int) or v['timeout'] < 1):
            raise ValueError("timeout must be a positive integer")

        if 'base_url' in v and not str(v['base_url']).startswith(('http://', 'https://')):
            raise ValueError("base_url must be an http(s) URL")

        return v


class GlobalSourceConfig(BaseModel):
    """Global configuration for source management."""

    max_concurrent_sources: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of sources queried concurrently"
    )
    operation_timeout: int = Field(
        default=60,
        ge=5,
        le=600,
        description="Per-source timeout for fan-out operations in seconds"
    )


class SourcesConfig(BaseModel):
    """Sources configuration container."""

    sources: Dict[str, SourceConfig] = Field(
        default_factory=dict,
        description="Individual source configurations"
    )
    global_config: GlobalSourceConfig = Field(
        default_factory=GlobalSourceConfig,
        description="Global source management settings"
    )

    @model_validator(mode='after')
    def validate_source_priorities(self) -> 'SourcesConfig':
        """Warn about duplicate priorities without failing validation."""
        priorities: Dict[int, str] = {}
        for name, config in self.sources.items():
            if config.priority in priorities:
                logger.warning(
                    f"Duplicate priority {config.priority} for sources "
                    f"{name} and {priorities[config.priority]}"
                )
            priorities[config.priority] = name

        return self

    def get_enabled_sources(self) -> Dict[str, SourceConfig]:
        """Get all enabled sources sorted by priority."""
        enabled = {
            name: config for name, config in self.sources.items()
            if config.enabled
        }

        return dict(sorted(
            enabled.items(),
            key=lambda item: item[1].priority
        ))

    def add_source(self, name: str, config: SourceConfig) -> None:
        self.sources[name] = config

    def remove_source(self, name: str) -> bool:
        """Remove a source configuration. Returns True if removed."""
        return self.sources.pop(name, None) is not None

    def get_source(self, name: str) -> Optional[SourceConfig]:
        return self.sources.get(name)


# Export all configuration models
__all__ = [
    "FetchSettings",
    "CacheSettings",
    "RenderSettings",
    "LoggingSettings",
    "AppSettings",
    "SourceConfig",
    "GlobalSourceConfig",
    "SourcesConfig",
]
