"""
CLI Layer - Command-line interface components.

This module contains the Typer-based CLI application that drives the
source manager for browsing and debugging.
"""

from otakuhub.cli.main import app

__all__ = ["app"]
