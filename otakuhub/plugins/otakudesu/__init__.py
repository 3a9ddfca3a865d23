"""
Otakudesu Plugin - Anime source adapter for otakudesu.best
"""

from .plugin import OtakudesuPlugin, plugin_metadata, default_config
from .parser import OtakudesuParser

__all__ = [
    "OtakudesuPlugin",
    "OtakudesuParser",
    "plugin_metadata",
    "default_config",
]
