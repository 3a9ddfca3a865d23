"""
Anichin Plugin - Donghua source adapter for anichin.watch
"""

from .plugin import AnichinPlugin, plugin_metadata, default_config
from .parser import AnichinParser

__all__ = [
    "AnichinPlugin",
    "AnichinParser",
    "plugin_metadata",
    "default_config",
]
