"""Tests for the normalized catalog models."""

import pytest
from pydantic import ValidationError

from otakuhub.core.models import (
    DEFAULT_SYNOPSIS,
    CatalogItem,
    ContentDetail,
    PagedResult,
    ScheduleEntry,
    StreamServer,
    WeeklySchedule,
    unit_sort_key,
)


def entry(slug: str, day: str = "monday", time=None) -> ScheduleEntry:
    return ScheduleEntry(title=slug.title(), slug=slug, source="anichin", day=day, time=time)


class TestCatalogRecords:
    def test_title_is_collapsed_and_truncated(self):
        item = CatalogItem(id="x", slug="x", title="  A\n  very   " + "long " * 40, source="otakudesu")

        assert item.title.startswith("A very long long")
        assert len(item.title) == 100

    def test_genres_deduplicated(self):
        item = CatalogItem(id="x", slug="x", title="X", source="komiku", genres=["Action", " ", "Action", "Drama "])
        assert item.genres == ["Action", "Drama"]

    def test_blank_synopsis_gets_placeholder(self):
        detail = ContentDetail(id="x", slug="x", title="X", source="otakudesu", synopsis="   ")
        assert detail.synopsis == DEFAULT_SYNOPSIS

    def test_empty_slug_rejected(self):
        with pytest.raises(ValidationError):
            CatalogItem(id="", slug="", title="X", source="otakudesu")

    def test_protocol_relative_server_url(self):
        server = StreamServer(url="//player.test/embed/1")
        assert server.url == "https://player.test/embed/1"
        assert server.quality == "HD"

    def test_unit_sort_key(self):
        labels = ["Episode 10", "Special", "Episode 2", "Chapter 1.5"]
        assert sorted(labels, key=unit_sort_key) == ["Chapter 1.5", "Episode 2", "Episode 10", "Special"]


class TestPagedResult:
    def test_serializes_with_has_next_alias(self):
        page = PagedResult[CatalogItem](data=[], has_next=True)

        assert page.model_dump(by_alias=True) == {"data": [], "hasNext": True}
        assert PagedResult[CatalogItem].model_validate({"data": [], "hasNext": True}).has_next is True

    def test_empty(self):
        page = PagedResult[CatalogItem].empty()
        assert len(page) == 0
        assert page.has_next is False


class TestSchedule:
    def test_time_normalized(self):
        assert entry("a", time="9:30").time == "09:30"
        assert entry("a", time="").time is None

    @pytest.mark.parametrize("kwargs", [{"day": "someday"}, {"time": "half past nine"}])
    def test_invalid_entry(self, kwargs):
        with pytest.raises(ValidationError):
            entry("a", **kwargs)

    def test_add_skips_duplicate_slugs_per_day(self):
        schedule = WeeklySchedule()

        assert schedule.add(entry("perfect-world"))
        assert not schedule.add(entry("perfect-world"))
        assert schedule.add(entry("perfect-world", day="Friday"))

        assert len(schedule) == 2
        assert [e.slug for e in schedule.by_day()["friday"]] == ["perfect-world"]
