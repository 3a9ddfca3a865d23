"""
Core Data Models - Pydantic models for normalized catalog records.

This module defines the shared domain model every source adapter produces:
catalog items, content details with their ordered units, stream servers,
paged listings and release schedules. All records carry the (source, slug)
pair needed to re-resolve them without outside context.
"""

import re
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


TITLE_MAX_LENGTH = 100
DEFAULT_SYNOPSIS = "Tidak ada sinopsis."
DEFAULT_QUALITY = "HD"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ContentType(str, Enum):
    """Kinds of content a source can serve."""

    SERIES = "series"
    FILM = "film"
    COMIC = "comic"
    NOVEL = "novel"

    def __str__(self) -> str:
        return self.value


def unit_sort_key(number: str) -> float:
    """Numeric sort key for a unit number label; non-numeric labels sort last."""
    match = re.search(r'\d+(?:\.\d+)?', number or "")
    return float(match.group(0)) if match else float("inf")


class CatalogItem(BaseModel):
    """
    Represents one series, film, comic or novel as seen in a listing.

    The slug is the primary key within a source namespace.
    """

    id: str = Field(..., description="Stable identifier, same as slug")
    slug: str = Field(..., min_length=1, description="Source-scoped slug")
    title: str = Field(..., description="Display title")
    source: str = Field(..., min_length=1, description="Source name")
    content_type: ContentType = Field(ContentType.SERIES, description="Kind of content")
    poster: str = Field("", description="Poster image URL")
    type: Optional[str] = Field(None, description="Source-specific type label (TV, Manhwa, ...)")
    status: Optional[str] = Field(None, description="Airing or publication status")
    rating: Optional[str] = Field(None, description="Rating label as shown by the source")
    latest_unit: Optional[str] = Field(None, description="Latest episode or chapter label")
    genres: List[str] = Field(default_factory=list, description="Genre tags")
    url: str = Field("", description="Canonical page URL on the source")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Collapse whitespace and truncate long titles."""
        return re.sub(r'\s+', ' ', v).strip()[:TITLE_MAX_LENGTH]

    @field_validator('genres')
    @classmethod
    def validate_genres(cls, v: List[str]) -> List[str]:
        """Drop blank and duplicate genre tags."""
        return list(dict.fromkeys(genre.strip() for genre in v if genre and genre.strip()))

    def __str__(self) -> str:
        return f"{self.title} ({self.source})"


class Unit(BaseModel):
    """One episode or chapter belonging to a content detail."""

    id: str = Field(..., description="Stable identifier, same as slug")
    slug: str = Field(..., min_length=1, description="Unit slug")
    source: str = Field(..., min_length=1, description="Source name")
    number: str = Field("", description="Unit number label, not guaranteed numeric")
    title: str = Field("", description="Unit title")
    url: str = Field("", description="Unit page URL")
    date: Optional[str] = Field(None, description="Release date label")
    variant: Optional[str] = Field(None, description="Translation variant (HTL/MTL) for novels")


class ContentDetail(CatalogItem):
    """
    Full record for a catalog item with metadata and its units.

    Units are always ascending by number regardless of markup order.
    """

    synopsis: str = Field(DEFAULT_SYNOPSIS, description="Synopsis text")
    alternative_titles: List[str] = Field(default_factory=list, description="Alternate titles")
    studio: Optional[str] = Field(None, description="Studio or producer")
    author: Optional[str] = Field(None, description="Author for comics and novels")
    released: Optional[str] = Field(None, description="Release information")
    score: Optional[str] = Field(None, description="Score label")
    duration: Optional[str] = Field(None, description="Episode duration label")
    season: Optional[str] = Field(None, description="Airing season")
    total_units: Optional[str] = Field(None, description="Total episode/chapter label")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    director: Optional[str] = Field(None, description="Director, for films")
    cast: List[str] = Field(default_factory=list, description="Leading cast, for films")
    country: Optional[str] = Field(None, description="Country of production")
    trailer_url: Optional[str] = Field(None, description="Trailer page URL")
    units: List[Unit] = Field(default_factory=list, description="Episodes or chapters, ascending")
    related: List[CatalogItem] = Field(default_factory=list, description="Related items")

    @field_validator('synopsis')
    @classmethod
    def validate_synopsis(cls, v: str) -> str:
        """Fall back to the placeholder for blank synopses."""
        v = (v or "").strip()
        return v or DEFAULT_SYNOPSIS


class StreamServer(BaseModel):
    """One resolved candidate playback URL for a unit."""

    name: str = Field("Server", description="Server label")
    url: str = Field(..., min_length=1, description="Playable or embeddable URL")
    quality: str = Field(DEFAULT_QUALITY, description="Best-effort quality label")
    source: str = Field("", description="Source name")

    @field_validator('url')
    @classmethod
    def normalize_url(cls, v: str) -> str:
        """Add a scheme to protocol-relative URLs."""
        v = v.strip()
        return f"https:{v}" if v.startswith("//") else v


class EpisodeDetail(BaseModel):
    """Playback record for one episode: its servers and neighbours."""

    source: str = Field(..., min_length=1, description="Source name")
    slug: str = Field(..., min_length=1, description="Episode slug")
    title: str = Field("", description="Episode page title")
    parent_title: str = Field("", description="Series title")
    episode_number: str = Field("", description="Episode number label")
    servers: List[StreamServer] = Field(default_factory=list, description="Discovered servers")
    prev_slug: Optional[str] = Field(None, description="Previous episode slug")
    next_slug: Optional[str] = Field(None, description="Next episode slug")


class ChapterContent(BaseModel):
    """Reading record for one comic or novel chapter."""

    source: str = Field(..., min_length=1, description="Source name")
    slug: str = Field(..., min_length=1, description="Chapter slug")
    title: str = Field("", description="Chapter title")
    parent_title: str = Field("", description="Comic or novel title")
    chapter_number: str = Field("", description="Chapter number label")
    images: List[str] = Field(default_factory=list, description="Page image URLs (comics)")
    text: Optional[str] = Field(None, description="Chapter text (novels)")
    prev_slug: Optional[str] = Field(None, description="Previous chapter slug")
    next_slug: Optional[str] = Field(None, description="Next chapter slug")


ItemT = TypeVar("ItemT")


class PagedResult(BaseModel, Generic[ItemT]):
    """Paged listing envelope: ``{data, hasNext}``."""

    model_config = ConfigDict(populate_by_name=True)

    data: List[ItemT] = Field(default_factory=list, description="Page items")
    has_next: bool = Field(False, alias="hasNext", description="Whether a next page appears to exist")

    @classmethod
    def empty(cls) -> "PagedResult":
        return cls(data=[], has_next=False)

    def __len__(self) -> int:
        return len(self.data)


class ScheduleEntry(BaseModel):
    """One scheduled release within a day bucket."""

    title: str = Field(..., description="Series title")
    slug: str = Field(..., min_length=1, description="Series slug")
    source: str = Field(..., min_length=1, description="Source name")
    day: str = Field(..., description="Day-of-week bucket")
    time: Optional[str] = Field(None, description="Release time HH:MM, source-local")
    poster: str = Field("", description="Poster image URL")
    episode: Optional[str] = Field(None, description="Upcoming episode label")
    url: str = Field("", description="Series page URL")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        return v.strip()[:TITLE_MAX_LENGTH]

    @field_validator('day')
    @classmethod
    def validate_day(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in WEEKDAYS:
            raise ValueError(f"Unknown day bucket: {v}")
        return v

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        """Normalize H:MM to HH:MM."""
        if not v:
            return None
        match = re.fullmatch(r'(\d{1,2}):(\d{2})', v.strip())
        if not match:
            raise ValueError("Release time must be in HH:MM format")
        return f"{int(match.group(1)):02d}:{match.group(2)}"


class WeeklySchedule(BaseModel):
    """Release schedule grouped by day of week."""

    monday: List[ScheduleEntry] = Field(default_factory=list)
    tuesday: List[ScheduleEntry] = Field(default_factory=list)
    wednesday: List[ScheduleEntry] = Field(default_factory=list)
    thursday: List[ScheduleEntry] = Field(default_factory=list)
    friday: List[ScheduleEntry] = Field(default_factory=list)
    saturday: List[ScheduleEntry] = Field(default_factory=list)
    sunday: List[ScheduleEntry] = Field(default_factory=list)

    def add(self, entry: ScheduleEntry) -> bool:
        """Add an entry to its day bucket unless that slug is already there."""
        bucket: List[ScheduleEntry] = getattr(self, entry.day)
        if any(existing.slug == entry.slug for existing in bucket):
            return False
        bucket.append(entry)
        return True

    def by_day(self) -> Dict[str, List[ScheduleEntry]]:
        return {day: getattr(self, day) for day in WEEKDAYS}

    def __len__(self) -> int:
        return sum(len(entries) for entries in self.by_day().values())


# Export all models
__all__ = [
    "ContentType",
    "CatalogItem",
    "ContentDetail",
    "Unit",
    "StreamServer",
    "EpisodeDetail",
    "ChapterContent",
    "PagedResult",
    "ScheduleEntry",
    "WeeklySchedule",
    "unit_sort_key",
    "DEFAULT_SYNOPSIS",
    "DEFAULT_QUALITY",
    "TITLE_MAX_LENGTH",
    "WEEKDAYS",
]
