"""Tests for the subnime adapter, its episode ranges and wrapper players."""

from otakuhub.plugins.subnime import SubnimePlugin
from otakuhub.plugins.subnime.parser import RANGE_SELECT, is_wrapper

from tests.conftest import FakeDriver


BASE = "https://subnime.com"


LISTING = f"""
<div class="grid">
  <div class="anime-card">
    <div class="card-poster"><img src="/img/frieren.jpg"></div>
    <div class="card-title"><a href="/anime/sousou-no-frieren">Sousou no  Frieren</a></div>
    <span class="episode-badge">Ep 28</span><span class="status-badge">Completed</span>
    <div class="info-item"><i class="fa-star"></i> 9.1</div>
    <div class="info-item"><i class="fa-tv"></i> TV</div>
  </div>
  <a class="anime-card" href="{BASE}/anime/dandadan" title="Dandadan"><img data-src="https://cdn.test/dandadan.jpg"></a>
  <div class="anime-card"><a href="{BASE}/anime/blue-lock"><h3>Blue Lock</h3></a></div>
  <div class="anime-card"><a href="{BASE}/genre/action">Action</a></div>
  <div class="anime-card"><div class="card-title"><a href="/anime/x">X</a></div></div>
</div>
<a rel="next" href="/?page=2">Next</a>
"""

DETAIL = """
<h1 class="hero-title">Sousou no Frieren</h1>
<div class="hero-poster"><img src="/img/frieren-big.jpg"></div>
<p class="hero-description">An elf mage outlives her party.</p>
<div class="info-item">Status: Completed</div>
<div class="info-item">Studio: Madhouse</div>
<div><h3>Aired</h3><p>Sep 29, 2023</p></div>
<a href="/genre/fantasy">Fantasy</a><span class="genre-badge">Adventure</span>
<button class="tab-btn">Episodes</button>
<select id="episode-range-select"><option>1-2</option><option>3-4</option></select>
<div id="episode-grid-view">
  <a href="/sousou-no-frieren-episode-2">2</a>
  <a href="/sousou-no-frieren-episode-1">1</a>
</div>
"""

SECOND_RANGE = """
<h1 class="hero-title">Sousou no Frieren</h1>
<div id="episode-grid-view">
  <a href="/sousou-no-frieren-episode-3">3</a>
  <a href="/sousou-no-frieren-episode-4">4</a>
</div>
"""

EPISODE = """
<h2>Sousou no Frieren Episode 3</h2>
<div class="servers">
  <button class="server-btn" data-url="https://subcrp.site/player.php?id=3">Blogger 720p</button>
  <button class="server-btn" data-url="https://filemoon.test/e/3">Filemoon</button>
  <button class="server-btn" data-url="https://mirror.subcrp.site/x">Mirror</button>
  <button class="server-btn">No URL</button>
</div>
<iframe src="https://ignored.test/embed"></iframe>
<a title="Episode Sebelumnya" href="/sousou-no-frieren-episode-2">Prev</a>
<a title="Episode Selanjutnya" href="/sousou-no-frieren-episode-4">Next</a>
"""

WRAPPER = '<iframe src="https://www.blogger.com/video.g?token=abc"></iframe>'


# ---------------------------------------------------------------------------
# Tests: listings
# ---------------------------------------------------------------------------

class TestListings:
    async def test_card_layouts(self, make_plugin):
        plugin, fetcher, _ = make_plugin(SubnimePlugin, pages={"/": LISTING})

        page = await plugin.list_latest()

        assert [item.slug for item in page.data] == ["sousou-no-frieren", "dandadan", "blue-lock"]
        frieren, dandadan, blue_lock = page.data
        assert frieren.title == "Sousou no Frieren"
        assert frieren.poster == f"{BASE}/img/frieren.jpg"
        assert frieren.latest_unit == "Ep 28"
        assert frieren.status == "Completed"
        assert frieren.rating == "9.1"
        assert frieren.type == "TV"
        assert frieren.url == f"{BASE}/anime/sousou-no-frieren"
        assert dandadan.title == "Dandadan"
        assert dandadan.poster == "https://cdn.test/dandadan.jpg"
        assert blue_lock.title == "Blue Lock"
        assert page.has_next is True

    async def test_paths(self, make_plugin):
        plugin, fetcher, _ = make_plugin(SubnimePlugin)

        await plugin.list_latest(2)
        await plugin.search("blue lock", 3)
        await plugin.list_by_genre("slice of life")

        assert fetcher.requests == [
            "/?page=2",
            "/search?q=blue+lock&page=3",
            "/search?genre=slice+of+life&page=1",
        ]


# ---------------------------------------------------------------------------
# Tests: detail
# ---------------------------------------------------------------------------

class TestDetail:
    async def test_every_episode_range_is_collected(self, make_plugin):
        plugin, _, drivers = make_plugin(
            SubnimePlugin,
            driver=lambda: FakeDriver(
                html=DETAIL,
                text_clicks=1,
                counts=[2],
                clickable=[RANGE_SELECT],
                option_pages={1: SECOND_RANGE},
            ),
        )

        detail = await plugin.get_detail("sousou-no-frieren")

        driver = drivers[0]
        assert driver.navigated == [f"{BASE}/anime/sousou-no-frieren"]
        assert driver.text_click_calls == 1
        assert driver.selections == [(RANGE_SELECT, 0), (RANGE_SELECT, 1)]
        assert driver.closed

        assert [(u.number, u.slug) for u in detail.units] == [
            ("1", "sousou-no-frieren-episode-1"),
            ("2", "sousou-no-frieren-episode-2"),
            ("3", "sousou-no-frieren-episode-3"),
            ("4", "sousou-no-frieren-episode-4"),
        ]
        assert detail.units[0].url == f"{BASE}/sousou-no-frieren-episode-1"
        assert detail.total_units == "4"

    async def test_metadata(self, make_plugin):
        plugin, _, _ = make_plugin(SubnimePlugin, driver=lambda: FakeDriver(html=DETAIL))

        detail = await plugin.get_detail("sousou-no-frieren")

        assert detail.title == "Sousou no Frieren"
        assert detail.poster == f"{BASE}/img/frieren-big.jpg"
        assert detail.synopsis == "An elf mage outlives her party."
        assert detail.status == "Completed"
        assert detail.studio == "Madhouse"
        assert detail.released == "Sep 29, 2023"
        assert detail.type == "TV"
        assert detail.genres == ["Fantasy", "Adventure"]

    async def test_document_title_fallback(self, make_plugin):
        page = "<title>Nonton Dandadan | Subnime</title>"
        plugin, _, _ = make_plugin(SubnimePlugin, driver=lambda: FakeDriver(html=page))

        detail = await plugin.get_detail("dandadan")

        assert detail.title == "Dandadan"
        assert detail.units == []
        assert detail.total_units is None

    async def test_untitled_page_is_none(self, make_plugin):
        plugin, _, _ = make_plugin(SubnimePlugin, driver=lambda: FakeDriver(html="<div></div>"))
        assert await plugin.get_detail("missing") is None


# ---------------------------------------------------------------------------
# Tests: streams
# ---------------------------------------------------------------------------

class TestStreams:
    def test_wrapper_markers(self):
        assert is_wrapper("https://subcrp.site/player.php?id=1")
        assert not is_wrapper("https://filemoon.test/e/1")

    async def test_servers_with_unwrapped_players(self, make_plugin):
        plugin, fetcher, drivers = make_plugin(
            SubnimePlugin,
            pages={"https://subcrp.site/player.php?id=3": WRAPPER},
            driver=lambda: FakeDriver(html=EPISODE),
        )

        episode = await plugin.get_stream("sousou-no-frieren-episode-3")

        assert drivers[0].navigated == [f"{BASE}/sousou-no-frieren-episode-3"]
        assert [(s.name, s.url, s.quality) for s in episode.servers] == [
            ("Blogger 720p", "https://www.blogger.com/video.g?token=abc", "720p"),
            ("Filemoon", "https://filemoon.test/e/3", "HD"),
            ("Mirror", "https://mirror.subcrp.site/x", "HD"),
        ]
        assert fetcher.requests == ["https://subcrp.site/player.php?id=3", "https://mirror.subcrp.site/x"]
        assert episode.title == "Sousou no Frieren Episode 3"
        assert episode.parent_title == "Sousou No Frieren"
        assert episode.episode_number == "3"
        assert episode.prev_slug == "sousou-no-frieren-episode-2"
        assert episode.next_slug == "sousou-no-frieren-episode-4"

    async def test_frames_used_without_server_buttons(self, make_plugin):
        page = """
        <h1>Frieren Special</h1>
        <iframe src="https://player.test/sp"></iframe>
        <iframe src="https://www.facebook.com/plugins/like"></iframe>
        """
        plugin, _, _ = make_plugin(SubnimePlugin, driver=lambda: FakeDriver(html=page))

        episode = await plugin.get_stream("frieren-special")

        assert [(s.name, s.url) for s in episode.servers] == [("HD-1", "https://player.test/sp")]
        assert episode.parent_title == "Frieren Special"
        assert episode.episode_number == ""

    async def test_render_failure_is_none(self, make_plugin):
        plugin, _, _ = make_plugin(SubnimePlugin, driver=lambda: FakeDriver(fail_on="content"))
        assert await plugin.get_stream("sousou-no-frieren-episode-3") is None

    async def test_capabilities(self, make_plugin):
        plugin, _, _ = make_plugin(SubnimePlugin)

        assert plugin.supports("get_stream")
        assert plugin.supports("list_by_genre")
        assert not plugin.supports("list_completed")
