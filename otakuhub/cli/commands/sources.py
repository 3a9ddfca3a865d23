"""
Sources Command - Source status and enable/disable management.

This module lists the discovered source adapters with their capabilities
and toggles sources in ``sources.json``.
"""

from typing import Any, Dict, Optional

import typer

from otakuhub.cli.context import get_config_manager, run_with_sources
from otakuhub.core.exceptions import OtakuHubError
from otakuhub.core.source_manager import SourceManager
from otakuhub.ui import display_info, get_console, handle_error, sources_table


def sources(
    enable: Optional[str] = typer.Option(None, "--enable", help="Enable a source"),
    disable: Optional[str] = typer.Option(None, "--disable", help="Disable a source"),
    as_json: bool = typer.Option(False, "--json", help="Print status as JSON"),
) -> None:
    """
    🔌 List sources with their capabilities.

    Examples:

        otakuhub sources

        otakuhub sources --disable meionovel
    """
    config_manager = get_config_manager()
    try:
        if enable:
            config_manager.enable_source(enable)
            display_info(f"Enabled source: {enable}")
        if disable:
            config_manager.disable_source(disable)
            display_info(f"Disabled source: {disable}")
    except OtakuHubError as e:
        handle_error(e, "Updating source configuration")
        raise typer.Exit(1)

    async def load(manager: SourceManager) -> Dict[str, Any]:
        for name in manager.enabled_sources():
            manager.get_source(name)
        return manager.get_source_status()

    status = run_with_sources(load)
    if as_json:
        get_console().print_json(data=status)
    else:
        get_console().print(sources_table(status))


# Export command
__all__ = ["sources"]
