"""
CLI Commands - Individual command implementations.

This module contains the catalog browsing and source management commands
registered on the main application.
"""

from otakuhub.cli.commands import catalog, sources

__all__ = ["catalog", "sources"]
