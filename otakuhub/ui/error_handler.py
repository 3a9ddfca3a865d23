"""
Error Handler - Error displays with context and suggestions.

This module renders OtakuHub errors as Rich panels with a short list of
suggestions tailored to the error type.
"""

import traceback
from typing import List, Optional

from rich.markup import escape
from rich.panel import Panel

from otakuhub.core.exceptions import (
    ConfigurationError,
    FetchFailure,
    OtakuHubError,
    RenderingFailure,
    SourceError,
    UnsupportedOperation,
)
from otakuhub.ui.console import get_console


def _suggestions(error: Exception) -> List[str]:
    if isinstance(error, ConfigurationError):
        return [
            "Check the JSON syntax of the configuration file",
            "Delete the file to regenerate defaults",
        ]
    if isinstance(error, UnsupportedOperation):
        return ["Run [cyan]otakuhub sources[/cyan] to see each source's capabilities"]
    if isinstance(error, SourceError):
        return [
            "Run [cyan]otakuhub sources[/cyan] to list known sources",
            "Check that the source is enabled in sources.json",
        ]
    if isinstance(error, FetchFailure):
        return ["Check your network connection", "The site may be down or blocking requests"]
    if isinstance(error, RenderingFailure):
        return ["Check that Chrome and a matching chromedriver are installed"]
    return []


def handle_error(error: Exception, context: Optional[str] = None, show_traceback: bool = False) -> None:
    """
    Display an error with appropriate formatting.

    Args:
        error: Exception to display
        context: Where the error occurred
        show_traceback: Whether to include the full traceback
    """
    console = get_console()
    message = error.message if isinstance(error, OtakuHubError) else str(error) or type(error).__name__

    parts = [f"[error]{escape(message)}[/error]"]
    if isinstance(error, ConfigurationError) and error.config_path:
        parts.append(f"\n[muted]Configuration file:[/muted] [cyan]{error.config_path}[/cyan]")
    if context:
        parts.append(f"\n[muted]Context:[/muted] {context}")

    suggestions = _suggestions(error)
    if suggestions:
        parts.append("\n\n[info]Suggestions:[/info]")
        parts.extend(f"• {suggestion}" for suggestion in suggestions)

    if show_traceback:
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        parts.append(f"\n[muted]{escape(trace)}[/muted]")

    console.print(Panel("\n".join(parts), title=type(error).__name__, border_style="red", padding=(1, 2)))


def display_warning(message: str) -> None:
    get_console().print(f"[warning]⚠ {message}[/warning]")


def display_info(message: str) -> None:
    get_console().print(f"[info]ℹ {message}[/info]")


# Export error handling functions
__all__ = ["handle_error", "display_warning", "display_info"]
