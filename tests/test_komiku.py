"""Tests for the komiku comic adapter."""

import pytest

from otakuhub.core.exceptions import UnsupportedOperation
from otakuhub.plugins.komiku import KomikuPlugin

from tests.conftest import FakeDriver


BASE = "https://komiku.cc"


def grid(count: int, prefix: str = "comic") -> str:
    cards = "".join(
        f'<a href="/komik/{prefix}-{i}"><img src="https://img.komiku.cc/{prefix}-{i}.jpg">'
        f'<h3>{prefix.title()} {i}</h3><span>Chapter {i}</span></a>'
        f'<a href="/{prefix}-{i}-chapter-{i}">Chapter {i}</a>'
        for i in range(1, count + 1)
    )
    return f"<div class='grid'>{cards}</div>"


SYNOPSIS = (
    "Sung Jinwoo is the weakest hunter of all mankind, until a mysterious "
    "system chooses him as its only player and everything begins to change."
)

DETAIL = f"""
<h1>Solo Leveling</h1>
<img src="https://img.komiku.cc/cover/solo-leveling.jpg" alt="komik solo leveling">
<div class="info">
  <span>Type:</span><span>Manhwa</span>
  <span>Author: Chugong</span>
  <span>Rilis: Maret 2018</span>
</div>
<p>Short blurb.</p>
<p>{SYNOPSIS}</p>
<div class="genres"><a href="/genre/action">Action</a><a href="/genre/fantasy">Fantasy</a></div>
<div class="btn-group"><a href="/solo-leveling-chapter-1">Baca Chapter Awal</a></div>
<div class="btn"><a href="/solo-leveling-chapter-200">Chapter 200</a></div>
<div class="chapters">
  <div><a href="/solo-leveling-chapter-10">Chapter 10 2 hari</a></div>
  <div><a href="/solo-leveling-chapter-2">Chapter 2 3 bulan</a></div>
  <div><a href="/solo-leveling-chapter-10">Chapter 10</a></div>
  <div><a href="/solo-leveling-chapter-1.5">Chapter 1.5</a></div>
</div>
"""

CHAPTER = """
<h1>Solo Leveling - Chapter 10</h1>
<img src="https://komiku.cc/logo.png">
<img src="https://img.komiku.cc/thumb/small.jpg" width="50">
<div id="readerarea">
  <img src="https://img.komiku.cc/upload/solo-10-1.jpg">
  <img src="https://img.komiku.cc/upload/solo-10-2.jpg">
  <img src="https://img.komiku.cc/upload/solo-10-1.jpg">
</div>
<a href="/solo-leveling-chapter-9">Prev</a>
<a href="/solo-leveling-chapter-11">Next</a>
"""


# ---------------------------------------------------------------------------
# Tests: listings
# ---------------------------------------------------------------------------

class TestListings:
    async def test_latest_is_capped_single_page(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KomikuPlugin, pages={"/": grid(30)})

        page = await plugin.list_latest(1)

        assert len(page) == 24
        assert page.has_next is False
        first = page.data[0]
        assert first.slug == "comic-1"
        assert first.title == "Comic 1"
        assert first.latest_unit == "Chapter 1"
        assert first.content_type == "comic"
        assert first.url == f"{BASE}/komik/comic-1"

        assert (await plugin.list_latest(2)).data == []
        assert fetcher.requests == ["/"]

    async def test_empty_listing_is_not_cached(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KomikuPlugin, pages={"/list": "<div>maintenance</div>"})

        assert (await plugin.list_all(1)).data == []
        assert (await plugin.list_all(1)).data == []

        assert fetcher.requests == ["/list", "/list"]

    async def test_typed_listing(self, make_plugin):
        html = grid(3, "manhwa") + '<a href="/manhwa/page/3">NEXT »</a>'
        plugin, fetcher, _ = make_plugin(KomikuPlugin, pages={"/manhwa/page/2": html})

        page = await plugin.list_by_type("Manhwa", 2)

        assert fetcher.requests == ["/manhwa/page/2"]
        assert len(page) == 3
        assert all(item.type == "Manhwa" for item in page.data)
        assert page.has_next is True

    async def test_unknown_type_is_unsupported(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KomikuPlugin)

        with pytest.raises(UnsupportedOperation):
            await plugin.list_by_type("webtoon")
        assert fetcher.requests == []

    async def test_search(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KomikuPlugin, pages={"/search?q=solo+leveling": grid(2, "solo")})

        page = await plugin.search("solo leveling")

        assert [item.slug for item in page.data] == ["solo-1", "solo-2"]
        assert (await plugin.search("solo leveling", page=2)).data == []
        assert fetcher.requests == ["/search?q=solo+leveling"]


# ---------------------------------------------------------------------------
# Tests: rendered detail
# ---------------------------------------------------------------------------

class TestDetail:
    async def test_expands_chapter_list_then_parses(self, make_plugin):
        plugin, fetcher, drivers = make_plugin(
            KomikuPlugin, driver=lambda: FakeDriver(html=DETAIL, text_clicks=3)
        )

        detail = await plugin.get_detail("solo-leveling")

        driver = drivers[0]
        assert driver.navigated == [f"{BASE}/komik/solo-leveling"]
        assert driver.text_click_calls == 4
        assert driver.closed
        assert fetcher.requests == []

        assert detail.title == "Solo Leveling"
        assert detail.type == "Manhwa"
        assert detail.author == "Chugong"
        assert detail.released == "2018"
        assert detail.synopsis == SYNOPSIS
        assert detail.genres == ["Action", "Fantasy"]
        assert detail.poster == "https://img.komiku.cc/cover/solo-leveling.jpg"

        assert [unit.number for unit in detail.units] == ["1.5", "2", "10"]
        assert detail.units[-1].date == "2 hari"
        assert detail.units[-1].url == f"{BASE}/solo-leveling-chapter-10"

    async def test_detail_is_cached(self, make_plugin):
        plugin, _, drivers = make_plugin(KomikuPlugin, driver=lambda: FakeDriver(html=DETAIL))

        await plugin.get_detail("solo-leveling")
        await plugin.get_detail("solo-leveling")

        assert len(drivers) == 1

    async def test_render_failure(self, make_plugin):
        plugin, _, drivers = make_plugin(KomikuPlugin, driver=lambda: FakeDriver(fail_on="content"))

        assert await plugin.get_detail("solo-leveling") is None
        assert drivers[0].closed


# ---------------------------------------------------------------------------
# Tests: chapters
# ---------------------------------------------------------------------------

class TestChapter:
    async def test_reader_page(self, make_plugin):
        plugin, _, _ = make_plugin(KomikuPlugin, pages={"/solo-leveling-chapter-10": CHAPTER})

        chapter = await plugin.get_chapter("solo-leveling-chapter-10")

        assert chapter.images == [
            "https://img.komiku.cc/upload/solo-10-1.jpg",
            "https://img.komiku.cc/upload/solo-10-2.jpg",
        ]
        assert chapter.parent_title == "Solo Leveling"
        assert chapter.chapter_number == "10"
        assert chapter.prev_slug == "solo-leveling-chapter-9"
        assert chapter.next_slug == "solo-leveling-chapter-11"

    async def test_only_chapters_with_images_are_cached(self, make_plugin):
        plugin, fetcher, _ = make_plugin(
            KomikuPlugin,
            pages={
                "/solo-leveling-chapter-10": CHAPTER,
                "/solo-leveling-chapter-11": "<h1>Solo Leveling - Chapter 11</h1>",
            },
        )

        await plugin.get_chapter("solo-leveling-chapter-10")
        await plugin.get_chapter("solo-leveling-chapter-10")
        empty = await plugin.get_chapter("solo-leveling-chapter-11")
        await plugin.get_chapter("solo-leveling-chapter-11")

        assert empty.images == []
        assert empty.chapter_number == "11"
        assert fetcher.requests == [
            "/solo-leveling-chapter-10",
            "/solo-leveling-chapter-11",
            "/solo-leveling-chapter-11",
        ]

    async def test_comic_slug_prefix_is_accepted(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KomikuPlugin, pages={"/solo-leveling-chapter-10": CHAPTER})

        chapter = await plugin.get_chapter("solo-leveling", "solo-leveling-chapter-10")

        assert chapter.chapter_number == "10"
        assert fetcher.requests == ["/solo-leveling-chapter-10"]

    @pytest.mark.parametrize("slugs", [(), ("",), ("a", "b", "c")])
    async def test_invalid_slug_arity(self, make_plugin, slugs):
        plugin, fetcher, _ = make_plugin(KomikuPlugin)

        with pytest.raises(ValueError):
            await plugin.get_chapter(*slugs)
        assert fetcher.requests == []

    async def test_capabilities(self, make_plugin):
        plugin, _, _ = make_plugin(KomikuPlugin)

        assert plugin.supports("get_chapter")
        assert plugin.supports("list_by_type")
        assert not plugin.supports("get_stream")
