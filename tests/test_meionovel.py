"""Tests for the meionovel adapter and its staged chapter discovery."""

import pytest
from bs4 import BeautifulSoup

from otakuhub.plugins.meionovel import MeioNovelPlugin
from otakuhub.plugins.meionovel.parser import MeioNovelParser, chapter_variant, parse_post_id
from otakuhub.plugins.meionovel.plugin import merge_units

from tests.conftest import FakeDriver


BASE = "https://meionovels.com"
AJAX = "/wp-admin/admin-ajax.php"


def chapter_items(novel: str, numbers, variant: str = "mtl") -> str:
    return "".join(
        f'<li class="wp-manga-chapter"><a href="{BASE}/novel/{novel}/{variant}/chapter-{n}/">Chapter {n}</a>'
        f'<span class="chapter-release-date"><i>{n} days ago</i></span></li>'
        for n in numbers
    )


def card(slug: str, title: str, badge: str = "") -> str:
    badge_html = f'<span class="manga-title-badges">{badge}</span>' if badge else ""
    return f"""
    <div class="page-item-detail">
      <div class="item-thumb"><a href="{BASE}/novel/{slug}/" title="{title}"><img src="https://cdn.test/{slug}.jpg"></a></div>
      <div class="post-title"><h3>{badge_html}<a href="{BASE}/novel/{slug}/">{title}</a></h3></div>
      <div class="list-chapter"><div class="chapter-item"><span class="chapter"><a href="{BASE}/novel/{slug}/mtl/chapter-9/">Chapter 9</a></span></div></div>
    </div>
    """


INLINE_DETAIL = f"""
<div class="post-title"><h1>Shadow Slave</h1></div>
<div class="summary_image"><img data-src="https://cdn.test/shadow-slave.jpg"></div>
<div class="post-content_item"><div class="summary-heading"><h5>Alternative</h5></div><div class="summary-content">Budak Bayangan</div></div>
<div class="post-content_item"><div class="summary-heading"><h5>Status</h5></div><div class="summary-content">OnGoing</div></div>
<div class="author-content"><a href="{BASE}/novel-author/guiltythree/">Guiltythree</a></div>
<div class="genres-content"><a href="{BASE}/novel-genre/fantasy/">Fantasy</a></div>
<div class="summary__content"><p>Growing up in poverty.</p><p>Sunny never expected much.</p></div>
<ul class="version-chap">
  {chapter_items("shadow-slave", [3, 2])}
  <li class="wp-manga-chapter"><a href="{BASE}/novel/shadow-slave/htl/chapter-1/">Chapter 1 HTL</a></li>
</ul>
<div class="related-manga-container">
  <div class="item"><div class="item-thumb"><a href="{BASE}/novel/other-novel/"><img src="https://cdn.test/o.jpg"></a></div>
  <div class="post-title"><h5><a href="{BASE}/novel/other-novel/">Other Novel</a></h5></div></div>
</div>
"""

AJAX_DETAIL = """
<div class="post-title"><h1>Lord of Mysteries</h1></div>
<input type="hidden" name="manga_id" value="4321">
<div class="genres-content"><a href="https://meionovels.com/novel-genre/fantasy/">Fantasy</a></div>
<div id="manga-chapters-holder"></div>
"""

LINK_DETAIL = f"""
<div class="post-title"><h1>Reverend Insanity</h1></div>
<div class="listing-chapters_wrap"><a href="{BASE}/novel/reverend-insanity/mtl/chapter-1/">Chapter 1</a></div>
"""

RENDERED_DETAIL = f"""
<ul class="version-chap">{chapter_items("reverend-insanity", [4, 3, 2, 1])}</ul>
"""

CHAPTER = f"""
<ol class="breadcrumb"><li><a href="{BASE}/">Home</a></li><li><a href="{BASE}/novel/shadow-slave/">Shadow Slave</a></li></ol>
<h1 class="entry-title">Shadow Slave Chapter 12</h1>
<div class="reading-content"><div class="text-left">
  <p>The Spell awakened.</p>
  <p>   </p>
  <p>Sunny opened his eyes.</p>
</div></div>
<div class="nav-previous"><a href="{BASE}/novel/shadow-slave/mtl/chapter-11/">Prev</a></div>
<div class="nav-next"><a href="{BASE}/novel/shadow-slave/mtl/chapter-13/">Next</a></div>
"""


# ---------------------------------------------------------------------------
# Tests: listings
# ---------------------------------------------------------------------------

class TestListings:
    async def test_latest_cards_with_variant_badge(self, make_plugin):
        html = card("shadow-slave", "Shadow Slave", "HTL") + card("lord-of-mysteries", "Lord of Mysteries")
        plugin, _, _ = make_plugin(MeioNovelPlugin, pages={"/novel/": html + '<div class="nav-previous"><a href="/novel/page/2/">Older</a></div>'})

        page = await plugin.list_latest()

        assert [item.slug for item in page.data] == ["shadow-slave", "lord-of-mysteries"]
        assert [item.type for item in page.data] == ["HTL", "MTL"]
        assert page.data[0].latest_unit == "Chapter 9"
        assert page.data[0].content_type == "novel"
        assert page.has_next is True

    async def test_paths(self, make_plugin):
        plugin, fetcher, _ = make_plugin(MeioNovelPlugin)

        await plugin.list_latest(2)
        await plugin.list_popular(1)
        await plugin.list_popular(2)
        await plugin.list_by_genre("fantasy")
        await plugin.search("shadow slave")

        assert fetcher.requests == [
            "/novel/page/2/",
            "/novel/?m_orderby=views",
            "/novel/page/2/?m_orderby=views",
            "/novel-genre/fantasy/",
            "/?s=shadow+slave&post_type=wp-manga",
        ]

    async def test_search_containers(self, make_plugin):
        html = f"""
        <div class="c-tabs-item__content"><div class="post-title"><h3><a href="{BASE}/novel/shadow-slave/">Shadow Slave</a></h3></div></div>
        <div class="c-tabs-item__content"><div class="post-title"><h3><a href="{BASE}/novel-genre/fantasy/">Fantasy</a></h3></div></div>
        """
        plugin, _, _ = make_plugin(MeioNovelPlugin, pages={"/?s=shadow&post_type=wp-manga": html})

        page = await plugin.search("shadow")

        assert [item.title for item in page.data] == ["Shadow Slave"]


# ---------------------------------------------------------------------------
# Tests: staged chapter discovery
# ---------------------------------------------------------------------------

class TestDetail:
    async def test_inline_chapters(self, make_plugin):
        plugin, fetcher, drivers = make_plugin(MeioNovelPlugin, pages={"/novel/shadow-slave/": INLINE_DETAIL})

        detail = await plugin.get_detail("shadow-slave")

        assert fetcher.requests == ["/novel/shadow-slave/"]
        assert fetcher.post_requests == []
        assert drivers == []

        assert detail.title == "Shadow Slave"
        assert detail.poster == "https://cdn.test/shadow-slave.jpg"
        assert detail.author == "Guiltythree"
        assert detail.status == "OnGoing"
        assert detail.alternative_titles == ["Budak Bayangan"]
        assert detail.synopsis == "Growing up in poverty.\n\nSunny never expected much."
        assert [unit.slug for unit in detail.units] == ["htl/chapter-1", "mtl/chapter-2", "mtl/chapter-3"]
        assert [unit.variant for unit in detail.units] == ["HTL", "MTL", "MTL"]
        assert detail.units[2].date == "3 days ago"
        assert [item.slug for item in detail.related] == ["other-novel"]

    async def test_chapter_fragment_when_page_lists_none(self, make_plugin):
        fragment = "<ul>" + chapter_items("lord-of-mysteries", [3, 2, 1]) + "</ul>"
        genre_page = card("lord-of-mysteries", "Lord of Mysteries") + card("shadow-slave", "Shadow Slave")
        plugin, fetcher, drivers = make_plugin(
            MeioNovelPlugin,
            pages={"/novel/lord-of-mysteries/": AJAX_DETAIL, "/novel-genre/fantasy/": genre_page},
            posts={AJAX: fragment},
        )

        detail = await plugin.get_detail("lord-of-mysteries")

        request = fetcher.post_requests[0]
        assert request["data"] == {"action": "manga_get_chapters", "manga": "4321"}
        assert request["headers"] == {"Referer": f"{BASE}/novel/lord-of-mysteries/"}
        assert drivers == []
        assert [unit.number for unit in detail.units] == ["1", "2", "3"]
        assert detail.synopsis == "Tidak ada sinopsis."
        # Related novels come from the first genre, without the novel itself
        assert [item.slug for item in detail.related] == ["shadow-slave"]

    async def test_sparse_chapters_trigger_rendering(self, make_plugin):
        plugin, fetcher, drivers = make_plugin(
            MeioNovelPlugin,
            pages={"/novel/reverend-insanity/": LINK_DETAIL},
            driver=lambda: FakeDriver(html=RENDERED_DETAIL, clickable=["span.content-readmore"], counts=[2, 4]),
        )

        detail = await plugin.get_detail("reverend-insanity")

        driver = drivers[0]
        assert driver.navigated == [f"{BASE}/novel/reverend-insanity/"]
        assert driver.clicks == [("span.content-readmore", 0)]
        assert driver.scrolls == 5
        assert driver.closed
        assert fetcher.post_requests == []
        assert [unit.slug for unit in detail.units] == [
            "mtl/chapter-1",
            "mtl/chapter-2",
            "mtl/chapter-3",
            "mtl/chapter-4",
        ]

    async def test_rendering_failure_keeps_earlier_chapters(self, make_plugin):
        plugin, _, drivers = make_plugin(
            MeioNovelPlugin,
            pages={"/novel/reverend-insanity/": LINK_DETAIL},
            driver=lambda: FakeDriver(fail_on="navigate"),
        )

        detail = await plugin.get_detail("reverend-insanity")

        assert drivers[0].closed
        assert [unit.slug for unit in detail.units] == ["mtl/chapter-1"]

    async def test_unreachable_novel(self, make_plugin):
        plugin, _, drivers = make_plugin(MeioNovelPlugin)

        assert await plugin.get_detail("missing") is None
        assert drivers == []


class TestParserHelpers:
    def test_read_buttons(self):
        doc = BeautifulSoup(
            f'<a class="btn-read-first" href="{BASE}/novel/x/htl/chapter-1/">Read First</a>'
            f'<a class="btn-read-last" href="{BASE}/novel/x/htl/chapter-50/">Read Last</a>',
            "html.parser",
        )

        units = MeioNovelParser(BASE).parse_read_buttons(doc, "x")

        assert [(u.slug, u.title, u.variant) for u in units] == [
            ("htl/chapter-1", "Chapter 1", "HTL"),
            ("htl/chapter-50", "Chapter 50 (Latest)", "HTL"),
        ]

    def test_post_id_sources(self):
        def post_id(html):
            return parse_post_id(BeautifulSoup(html, "html.parser"))

        assert post_id('<div class="rating-post-id" value="11"></div>') == "11"
        assert post_id('<input name="manga_id" value="22">') == "22"
        assert post_id('<script>var manga = {"manga_id": 33};</script>') == "33"
        assert post_id("<p>nothing</p>") == ""

    def test_chapter_slug_outside_novel(self):
        assert MeioNovelParser.chapter_slug(f"{BASE}/novel/x/mtl/chapter-2/", "x") == "mtl/chapter-2"
        assert MeioNovelParser.chapter_slug(f"{BASE}/novel/y/mtl/chapter-2/", "x") == ""

    def test_variant_and_merge(self):
        assert chapter_variant("Chapter 1", "htl/chapter-1") == "HTL"
        assert chapter_variant("Chapter 1") == "MTL"

        parser = MeioNovelParser(BASE)
        doc = BeautifulSoup(chapter_items("x", [1, 2]), "html.parser")
        first = parser.parse_chapter_items(doc, "x")
        again = parser.parse_chapter_items(BeautifulSoup(chapter_items("x", [2, 3]), "html.parser"), "x")
        assert [u.slug for u in merge_units(first, again)] == ["mtl/chapter-1", "mtl/chapter-2", "mtl/chapter-3"]


# ---------------------------------------------------------------------------
# Tests: chapter text
# ---------------------------------------------------------------------------

class TestChapter:
    async def test_requires_novel_and_chapter(self, make_plugin):
        plugin, fetcher, _ = make_plugin(MeioNovelPlugin)

        with pytest.raises(ValueError):
            await plugin.get_chapter("mtl/chapter-12")
        assert fetcher.requests == []

    async def test_chapter_text(self, make_plugin):
        plugin, fetcher, _ = make_plugin(
            MeioNovelPlugin, pages={"/novel/shadow-slave/mtl/chapter-12/": CHAPTER}
        )

        chapter = await plugin.get_chapter("shadow-slave", "mtl/chapter-12")

        assert chapter.text == "The Spell awakened.\n\nSunny opened his eyes."
        assert chapter.title == "Shadow Slave Chapter 12"
        assert chapter.parent_title == "Shadow Slave"
        assert chapter.chapter_number == "12"
        assert chapter.prev_slug == "mtl/chapter-11"
        assert chapter.next_slug == "mtl/chapter-13"
        assert chapter.images == []

    async def test_missing_text_placeholder(self, make_plugin):
        plugin, _, _ = make_plugin(MeioNovelPlugin, pages={"/novel/x/mtl/chapter-1/": "<h1 class='entry-title'>X</h1>"})

        chapter = await plugin.get_chapter("x", "mtl/chapter-1")

        assert chapter.text == "Konten tidak dapat dimuat."
        assert chapter.prev_slug is None
