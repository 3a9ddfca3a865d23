"""
CLI Context - Global application context and state management.

This module holds the configuration manager created by the CLI callback so
that commands can reach it without circular imports, and runs command
coroutines against a short-lived source manager.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from otakuhub.core.config_manager import ConfigManager
from otakuhub.core.source_manager import SourceManager


T = TypeVar("T")

# Global application state
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        raise RuntimeError("Configuration manager not initialized")
    return _config_manager


def set_config_manager(config_manager: ConfigManager) -> None:
    """Set the global configuration manager instance."""
    global _config_manager
    _config_manager = config_manager


async def _with_sources(operation: Callable[[SourceManager], Awaitable[T]]) -> T:
    manager = SourceManager(get_config_manager())
    try:
        return await operation(manager)
    finally:
        await manager.cleanup()


def run_with_sources(operation: Callable[[SourceManager], Awaitable[T]]) -> T:
    """
    Run a coroutine against a fresh source manager.

    The manager's HTTP sessions and cache connections are closed before
    returning, including when the operation raises.

    Args:
        operation: Coroutine function taking the source manager

    Returns:
        The operation's result
    """
    return asyncio.run(_with_sources(operation))


# Export context functions
__all__ = [
    "get_config_manager",
    "set_config_manager",
    "run_with_sources",
]
