"""
CLI Main Application - Typer app entry point.

This module provides the main CLI application entry point: logging and
console setup, configuration loading and command registration.
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import typer

from otakuhub import __version__
from otakuhub.core.config_manager import ConfigManager
from otakuhub.core.exceptions import OtakuHubError
from otakuhub.ui import setup_console, get_console, handle_error
from otakuhub.cli.context import get_config_manager, set_config_manager


NOISY_LOGGERS = ("aiohttp", "urllib3", "selenium", "redis")

# Create main Typer application
app = typer.Typer(
    name="otakuhub",
    help="🎌 Anime, donghua, comic and novel catalog aggregator",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version information and exit",
        is_flag=True,
    ),
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory path",
        exists=False,
        file_okay=False,
        dir_okay=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode with detailed logging",
        is_flag=True,
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
        is_flag=True,
    ),
) -> None:
    """
    🎌 OtakuHub - Catalog aggregator for Indonesian fan sites.

    Browse latest releases, search, read details, resolve stream servers
    and read chapters across otakudesu, samehadaku, anichin, komiku,
    meionovel, lk21, kuramanime and subnime from one command line.
    """
    setup_console(no_color=no_color)

    if version:
        get_console().print(f"[title]OtakuHub[/title] version [success]{__version__}[/success]")
        raise typer.Exit()

    try:
        config_manager = ConfigManager(config_dir)
        set_config_manager(config_manager)
    except OtakuHubError as e:
        handle_error(e, "During application initialization")
        raise typer.Exit(1)

    _setup_logging(config_manager.settings.logging.level, debug)


def _setup_logging(level: str = "WARNING", debug: bool = False) -> None:
    """
    Set up application logging.

    Args:
        level: Configured log level name
        debug: Force debug logging
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    if not debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _register_commands() -> None:
    """Register commands with the main app."""
    # Import commands here to avoid circular imports
    from otakuhub.cli.commands import catalog, sources

    app.command(name="latest")(catalog.latest)
    app.command(name="search")(catalog.search)
    app.command(name="detail")(catalog.detail)
    app.command(name="stream")(catalog.stream)
    app.command(name="chapter")(catalog.chapter)
    app.command(name="schedule")(catalog.schedule)
    app.command(name="sources")(sources.sources)


# Register commands at module level to ensure they're available for help
_register_commands()


def cli_main() -> None:
    """
    Main CLI entry point for the otakuhub command.

    This function is called when the user runs 'otakuhub' from the command line.
    """
    try:
        app()
    except KeyboardInterrupt:
        get_console().print("\n[warning]Operation cancelled by user[/warning]")
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        handle_error(e, "Unexpected error in CLI")
        sys.exit(1)


# Export main components
__all__ = [
    "app",
    "cli_main",
    "get_config_manager",
]
