"""
MeioNovel Plugin - Novel source adapter for meionovels.com
"""

from .plugin import MeioNovelPlugin, plugin_metadata, default_config
from .parser import MeioNovelParser

__all__ = [
    "MeioNovelPlugin",
    "MeioNovelParser",
    "plugin_metadata",
    "default_config",
]
