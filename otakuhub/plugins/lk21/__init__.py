"""
LK21 Plugin - Film source adapter for lk21 and its series site
"""

from .plugin import Lk21Plugin, plugin_metadata, default_config
from .parser import Lk21Parser

__all__ = [
    "Lk21Plugin",
    "Lk21Parser",
    "plugin_metadata",
    "default_config",
]
