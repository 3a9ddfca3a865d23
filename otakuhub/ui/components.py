"""
UI Components - Rich renderings of catalog records.

This module turns the normalized models into tables and panels for the
CLI. Each function returns a renderable; printing is left to the caller.
"""

from typing import Any, Dict, Iterable

from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from otakuhub.core.models import (
    CatalogItem,
    ChapterContent,
    ContentDetail,
    EpisodeDetail,
    PagedResult,
    WeeklySchedule,
)


def catalog_table(page: PagedResult[CatalogItem], title: str = "Results") -> Table:
    """Table of listing items with a footer noting whether more pages exist."""
    table = Table(title=title, caption="more pages available" if page.has_next else None, expand=True)
    table.add_column("#", style="muted", justify="right", width=4)
    table.add_column("Title", style="title", ratio=3)
    table.add_column("Slug", style="accent", ratio=2)
    table.add_column("Type", width=10)
    table.add_column("Latest", ratio=1)
    table.add_column("Status", width=10)

    for index, item in enumerate(page.data, 1):
        table.add_row(
            str(index),
            escape(item.title),
            item.slug,
            item.type or "",
            escape(item.latest_unit or ""),
            item.status or "",
        )
    return table


def detail_panel(detail: ContentDetail, max_units: int = 30) -> Panel:
    """
    Panel with a detail's metadata and the tail of its unit list.

    Args:
        detail: Content detail
        max_units: Number of most recent units shown
    """
    meta = Table.grid(padding=(0, 2))
    meta.add_column(style="muted")
    meta.add_column()
    fields = (
        ("Type", detail.type), ("Status", detail.status), ("Score", detail.score),
        ("Studio", detail.studio), ("Author", detail.author), ("Released", detail.released),
        ("Season", detail.season), ("Duration", detail.duration), ("Total", detail.total_units),
        ("Genres", ", ".join(detail.genres)),
    )
    for label, value in fields:
        if value:
            meta.add_row(label, escape(value))

    units = Table(title=f"{len(detail.units)} units", expand=True)
    units.add_column("No.", justify="right", width=8)
    units.add_column("Title", ratio=3)
    units.add_column("Slug", style="accent", ratio=2)
    units.add_column("Date", width=14)
    for unit in detail.units[-max_units:]:
        units.add_row(unit.number, escape(unit.title), unit.slug, unit.date or "")

    synopsis = Text(detail.synopsis, style="muted")
    return Panel(Group(meta, Text(), synopsis, Text(), units), title=escape(detail.title), border_style="cyan")


def stream_table(episode: EpisodeDetail) -> Table:
    table = Table(title=escape(episode.title or episode.slug), expand=True)
    table.add_column("Server", ratio=1)
    table.add_column("Quality", width=8)
    table.add_column("URL", style="accent", ratio=3, overflow="fold")
    for server in episode.servers:
        table.add_row(escape(server.name), server.quality, server.url)
    if episode.prev_slug or episode.next_slug:
        table.caption = f"prev: {episode.prev_slug or '-'}  next: {episode.next_slug or '-'}"
    return table


def chapter_panel(chapter: ChapterContent) -> Panel:
    if chapter.images:
        body: Any = Text("\n".join(chapter.images))
    else:
        body = Text(chapter.text or "")
    subtitle = f"prev: {chapter.prev_slug or '-'}  next: {chapter.next_slug or '-'}"
    return Panel(body, title=escape(chapter.title or chapter.slug), subtitle=subtitle, border_style="cyan")


def schedule_table(schedule: WeeklySchedule, source: str) -> Table:
    table = Table(title=f"{source} schedule", expand=True)
    table.add_column("Day", style="title", width=10)
    table.add_column("Time", width=6)
    table.add_column("Title", ratio=3)
    table.add_column("Episode", ratio=1)
    for day, entries in schedule.by_day().items():
        for entry in entries:
            table.add_row(day.capitalize(), entry.time or "", escape(entry.title), entry.episode or "")
    return table


def sources_table(status: Dict[str, Any]) -> Table:
    table = Table(title=f"{status['discovered']} sources", expand=True)
    table.add_column("Source", style="title")
    table.add_column("Enabled", width=8)
    table.add_column("Capabilities", ratio=3)
    table.add_column("Error", style="error", ratio=1)
    for name, info in status["sources"].items():
        table.add_row(
            name,
            "[success]yes[/success]" if info["enabled"] else "[muted]no[/muted]",
            ", ".join(info.get("capabilities", [])),
            escape(info["error"] or ""),
        )
    return table


def search_tables(results: Dict[str, PagedResult[CatalogItem]]) -> Iterable[Table]:
    for source, page in results.items():
        if len(page):
            yield catalog_table(page, title=source)


# Export components
__all__ = [
    "catalog_table",
    "detail_panel",
    "stream_table",
    "chapter_panel",
    "schedule_table",
    "sources_table",
    "search_tables",
]
