"""Tests for the extraction strategy chain and shared slug heuristics."""

from bs4 import BeautifulSoup

from otakuhub.core.models import Unit
from otakuhub.plugins.common.extraction import (
    FieldChain,
    ascending_units,
    attr,
    first_present,
    has_next_page,
    infer_quality,
    map_info,
    parse_info_pairs,
    pattern,
    series_slug_from_unit,
    slug_from_path,
    text,
    texts,
)
from otakuhub.plugins.common.utils import TextCleaner, URLHelper


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def unit(number: str) -> Unit:
    return Unit(id=f"ep-{number}", slug=f"ep-{number}", source="test", number=number)


# ---------------------------------------------------------------------------
# Tests: strategies
# ---------------------------------------------------------------------------

class TestStrategies:
    def test_first_present_wins(self):
        doc = soup('<div><h2> </h2><span class="tt">  Second   Title </span><a title="Third"></a></div>')
        chain = FieldChain(text("h2"), text(".tt"), attr("a", "title"))
        assert chain(doc) == "Second Title"

    def test_third_strategy_used_when_first_two_are_empty(self):
        doc = soup('<div><h2></h2><span class="tt">   </span><a title=" Third Title "></a></div>')
        chain = FieldChain(text("h2"), text(".tt"), attr("a", "title"))
        assert chain(doc) == "Third Title"

    def test_exhausted_chain_gives_default(self):
        chain = FieldChain(text(".missing"), attr("img", "src"), default="fallback")
        assert chain(soup("<div></div>")) == "fallback"

    def test_none_node_gives_default(self):
        assert first_present(None, [text("h1")], "x") == "x"

    def test_attr_skips_data_uri_placeholders(self):
        doc = soup('<img src="data:image/gif;base64,AAAA" data-src="https://cdn.test/p.jpg">')
        assert attr("img", "src", "data-src")(doc) == "https://cdn.test/p.jpg"

    def test_attr_on_node_itself(self):
        link = soup('<a title="Solo Leveling" href="/x"></a>').a
        assert attr(None, "title")(link) == "Solo Leveling"

    def test_pattern(self):
        doc = soup('<span class="epx">Ep 12 | 20:30</span>')
        assert pattern(".epx", r"(\d{1,2}:\d{2})")(doc) == "20:30"
        assert pattern(".epx", r"Chapter (\d+)")(doc) is None

    def test_texts_dedupes_in_order(self):
        doc = soup('<a>Action</a><a> Comedy </a><a>Action</a><a></a>')
        assert texts(doc, "a") == ["Action", "Comedy"]


# ---------------------------------------------------------------------------
# Tests: slugs
# ---------------------------------------------------------------------------

class TestSlugs:
    def test_slug_from_path(self):
        assert slug_from_path("https://otakudesu.best/anime/one-piece-sub-indo/", "anime") == "one-piece-sub-indo"
        assert slug_from_path("/komik/solo-leveling?ref=home", "komik") == "solo-leveling"
        assert slug_from_path("https://site.test/genres/action/", "anime") == ""

    def test_series_slug_from_episode_url(self):
        url = "https://samehadaku.li/boruto-episode-293-subtitle-indonesia/"
        assert series_slug_from_unit(url) == "boruto"

    def test_series_slug_from_bare_slug(self):
        assert series_slug_from_unit("renegade-immortal-episode-12-sub-indo") == "renegade-immortal"
        assert series_slug_from_unit("already-a-series") == "already-a-series"

    def test_last_segment(self):
        assert URLHelper.last_segment("https://komiku.cc/one-piece-chapter-1100/") == "one-piece-chapter-1100"
        assert URLHelper.last_segment("/episode/x-episode-1/?a=b") == "x-episode-1"
        assert URLHelper.last_segment("") == ""


# ---------------------------------------------------------------------------
# Tests: page signals
# ---------------------------------------------------------------------------

class TestPageSignals:
    def test_has_next_from_selector(self):
        assert has_next_page(soup('<div class="hpage"><a class="r" href="/page/2">Next</a></div>'))

    def test_has_next_independent_of_items(self):
        assert not has_next_page(soup("<ul>" + "<li>x</li>" * 50 + "</ul>"))

    def test_has_next_from_link_text(self):
        doc = soup('<a href="/list/page/2">NEXT »</a>')
        assert has_next_page(doc, selectors=(), link_texts=("NEXT",))
        assert not has_next_page(doc, selectors=(), link_texts=("Selanjutnya",))

    def test_infer_quality(self):
        assert infer_quality("Mirror 720p") == "720p"
        assert infer_quality("FHD 1080") == "1080p"
        assert infer_quality("Server 1") == "HD"
        assert infer_quality("") == "HD"

    def test_info_pairs_and_aliases(self):
        doc = soup("<p>Skor: 8.5</p><p>Tipe : TV</p><p>No colon here</p><p>Status:</p><p>Skor: 1</p>")
        info = parse_info_pairs(doc.select("p"))
        assert info == {"skor": "8.5", "tipe": "TV"}
        assert map_info(info, {"score": ("score", "skor"), "type": ("type", "tipe"), "studio": ("studio",)}) == {
            "score": "8.5",
            "type": "TV",
        }


# ---------------------------------------------------------------------------
# Tests: unit ordering
# ---------------------------------------------------------------------------

class TestAscendingUnits:
    def test_newest_first_markup_becomes_ascending(self):
        ordered = ascending_units([unit("3"), unit("2"), unit("1")])
        assert [u.number for u in ordered] == ["1", "2", "3"]

    def test_numeric_not_lexicographic(self):
        ordered = ascending_units([unit("10"), unit("9"), unit("100"), unit("1.5")], newest_first=False)
        assert [u.number for u in ordered] == ["1.5", "9", "10", "100"]

    def test_unnumbered_units_go_last(self):
        ordered = ascending_units([unit("Special"), unit("2"), unit("1")])
        assert [u.number for u in ordered] == ["1", "2", "Special"]


class TestTextCleaner:
    def test_strip_episode_suffix(self):
        assert TextCleaner.strip_episode_suffix("Boruto Episode 293 Subtitle Indonesia") == "Boruto"

    def test_extract_number(self):
        assert TextCleaner.extract_number("Chapter 12.5 - End") == "12.5"
        assert TextCleaner.extract_number("no digits") == ""

    def test_title_from_slug(self):
        assert TextCleaner.title_from_slug("solo-leveling") == "Solo Leveling"
