"""
Kuramanime Plugin - Anime source adapter for kuramanime
"""

from .plugin import KuramanimePlugin, plugin_metadata, default_config
from .parser import KuramanimeParser

__all__ = [
    "KuramanimePlugin",
    "KuramanimeParser",
    "plugin_metadata",
    "default_config",
]
