"""
Catalog Commands - Browse listings, details, streams, chapters and schedules.

Every command prints a Rich rendering by default, or the normalized model
as JSON with ``--json``.
"""

import json
from typing import Any, Dict, List, Optional

import typer
from pydantic import BaseModel

from otakuhub.cli.context import run_with_sources
from otakuhub.core.exceptions import OtakuHubError
from otakuhub.core.models import WeeklySchedule
from otakuhub.core.source_manager import SourceManager
from otakuhub.ui import (
    catalog_table,
    chapter_panel,
    detail_panel,
    display_info,
    display_warning,
    get_console,
    handle_error,
    schedule_table,
    search_tables,
    stream_table,
)


JSON_OPTION = typer.Option(False, "--json", help="Print the normalized record as JSON")


def _print_json(payload: Any) -> None:
    if isinstance(payload, BaseModel):
        text = payload.model_dump_json(by_alias=True)
    else:
        text = json.dumps(payload, ensure_ascii=False)
    get_console().print_json(text)


def _run(operation, context: str) -> Any:
    try:
        return run_with_sources(operation)
    except OtakuHubError as e:
        handle_error(e, context)
        raise typer.Exit(1)


def _require(record: Any, what: str) -> Any:
    if record is None:
        display_warning(f"{what} not found or the source could not be reached")
        raise typer.Exit(1)
    return record


def latest(
    source: str = typer.Argument(..., help="Source name, e.g. otakudesu"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    as_json: bool = JSON_OPTION,
) -> None:
    """
    📺 Show the latest releases of a source.

    Examples:

        otakuhub latest otakudesu

        otakuhub latest komiku --json
    """
    result = _run(lambda manager: manager.list_latest(source, page), f"Listing {source}")
    if as_json:
        _print_json(result)
    else:
        get_console().print(catalog_table(result, title=f"{source} latest · page {page}"))


def search(
    query: str = typer.Argument(..., help="Search query"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Search a single source"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number (single source only)"),
    as_json: bool = JSON_OPTION,
) -> None:
    """
    🔍 Search one source, or every enabled source concurrently.

    Examples:

        otakuhub search naruto

        otakuhub search "solo leveling" --source komiku
    """
    if source:
        result = _run(lambda manager: manager.search(source, query, page), f"Searching {source}")
        if as_json:
            _print_json(result)
        else:
            get_console().print(catalog_table(result, title=f"{source}: {query}"))
        return

    results = _run(lambda manager: manager.search_all(query), "Searching all sources")
    if as_json:
        _print_json({name: page.model_dump(mode="json", by_alias=True) for name, page in results.items()})
        return

    tables = list(search_tables(results))
    if not tables:
        display_info(f"No results for '{query}'")
    for table in tables:
        get_console().print(table)


def detail(
    source: str = typer.Argument(..., help="Source name"),
    slug: str = typer.Argument(..., help="Series, comic or novel slug"),
    as_json: bool = JSON_OPTION,
) -> None:
    """📋 Show metadata and units of one title."""
    record = _require(_run(lambda manager: manager.get_detail(source, slug), f"Loading {source}/{slug}"), slug)
    if as_json:
        _print_json(record)
    else:
        get_console().print(detail_panel(record))


def stream(
    source: str = typer.Argument(..., help="Source name"),
    unit: str = typer.Argument(..., help="Episode slug"),
    as_json: bool = JSON_OPTION,
) -> None:
    """▶️  Resolve playback servers for an episode."""
    record = _require(_run(lambda manager: manager.get_stream(source, unit), f"Resolving {source}/{unit}"), unit)
    if as_json:
        _print_json(record)
        return
    if not record.servers:
        display_warning("No servers found for this episode")
    get_console().print(stream_table(record))


def chapter(
    source: str = typer.Argument(..., help="Source name"),
    slugs: List[str] = typer.Argument(..., help="Chapter slug (novels: novel slug then chapter slug)"),
    as_json: bool = JSON_OPTION,
) -> None:
    """
    📖 Read one comic or novel chapter.

    Examples:

        otakuhub chapter komiku one-piece-chapter-1100

        otakuhub chapter meionovel shadow-slave chapter-1
    """
    def load(manager: SourceManager):
        return manager.get_chapter(source, *slugs)

    try:
        record = _run(load, f"Loading chapter from {source}")
    except ValueError as e:
        handle_error(e, "Invalid chapter arguments")
        raise typer.Exit(2)

    record = _require(record, "/".join(slugs))
    if as_json:
        _print_json(record)
    else:
        get_console().print(chapter_panel(record))


def schedule(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Only this source"),
    as_json: bool = JSON_OPTION,
) -> None:
    """🗓️  Show weekly release schedules."""
    async def load(manager: SourceManager) -> Dict[str, WeeklySchedule]:
        names = [source] if source else manager.sources_supporting("get_schedule")
        return {name: await manager.get_schedule(name) for name in names}

    schedules = _run(load, "Loading schedules")
    if as_json:
        _print_json({name: value.model_dump(mode="json") for name, value in schedules.items()})
        return

    if not schedules:
        display_info("No enabled source publishes a schedule")
    for name, value in schedules.items():
        get_console().print(schedule_table(value, name))


# Export commands
__all__ = ["latest", "search", "detail", "stream", "chapter", "schedule"]
