"""
Console Management - Centralized Rich console configuration.

This module provides the shared Rich console used by every CLI command so
that output settings are configured in one place.
"""

from typing import Optional

from rich.console import Console
from rich.theme import Theme


OTAKUHUB_THEME = Theme({
    "title": "bold cyan",
    "muted": "dim",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "info": "blue",
    "accent": "magenta",
})

# Global console instance
_console: Optional[Console] = None


def setup_console(
    force_terminal: Optional[bool] = None,
    width: Optional[int] = None,
    no_color: bool = False,
) -> Console:
    """
    Set up and configure the global Rich console.

    Args:
        force_terminal: Force terminal mode detection
        width: Console width override
        no_color: Disable colored output

    Returns:
        Configured Rich Console instance
    """
    global _console

    console_kwargs = {
        "theme": OTAKUHUB_THEME,
        "stderr": False,
        "force_terminal": force_terminal,
        "no_color": no_color,
    }
    if width is not None:
        console_kwargs["width"] = width

    _console = Console(**console_kwargs)
    return _console


def get_console() -> Console:
    """
    Get the global Rich console instance.

    Creates a default console if none exists.
    """
    global _console

    if _console is None:
        _console = setup_console()

    return _console


# Export console management functions
__all__ = ["setup_console", "get_console", "OTAKUHUB_THEME"]
