"""
Subnime Plugin - Anime source adapter for subnime.com
"""

from .plugin import SubnimePlugin, plugin_metadata, default_config
from .parser import SubnimeParser

__all__ = [
    "SubnimePlugin",
    "SubnimeParser",
    "plugin_metadata",
    "default_config",
]
