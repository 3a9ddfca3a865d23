"""
Komiku Plugin - Comic source adapter for komiku.cc
"""

from .plugin import KomikuPlugin, plugin_metadata, default_config
from .parser import KomikuParser

__all__ = [
    "KomikuPlugin",
    "KomikuParser",
    "plugin_metadata",
    "default_config",
]
