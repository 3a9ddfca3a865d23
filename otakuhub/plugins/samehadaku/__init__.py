"""
Samehadaku Plugin - Anime source adapter for samehadaku.li
"""

from .plugin import SamehadakuPlugin, plugin_metadata, default_config
from .parser import SamehadakuParser

__all__ = [
    "SamehadakuPlugin",
    "SamehadakuParser",
    "plugin_metadata",
    "default_config",
]
