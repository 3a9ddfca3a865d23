"""Tests for the kuramanime adapter and its server dropdown."""

from otakuhub.plugins.kuramanime import KuramanimePlugin
from otakuhub.plugins.kuramanime.parser import is_video_frame, unit_slug_from_link

from tests.conftest import FakeDriver


BASE = "https://v13.kuramanime.tel"
SERVER_SELECT = "#changeServer"


LISTING = f"""
<div class="row">
  <div class="product__item">
    <a href="{BASE}/anime/2564/one-piece">
      <div class="product__item__pic set-bg" data-setbg="https://cdn.test/op.jpg">
        <div class="ep">Ep 1100 / ?</div><div class="type">TV</div>
      </div>
    </a>
    <div class="product__item__text"><h5><a href="{BASE}/anime/2564/one-piece">One Piece</a></h5></div>
  </div>
  <div class="product__item">
    <a href="/anime/100/frieren/episode/28"><div class="product__item__pic" style="background-image: url('//cdn.test/frieren.jpg')"></div></a>
    <div class="ep-status">Ongoing</div>
  </div>
  <div class="product__item"><a href="{BASE}/properties/genre/action">Action</a></div>
  <div class="product__item"><a href="{BASE}/anime/2564/one-piece"><h5>Again</h5></a></div>
</div>
<ul class="pagination">
  <li class="page-item"><a class="page-link" href="?page=1">1</a></li>
  <li class="page-item"><a class="page-link next" href="?page=2">&raquo;</a></li>
</ul>
"""

LAST_PAGE = f"""
<div class="product__item"><a href="{BASE}/anime/9/old-show"><h5>Old Show</h5></a></div>
<ul class="pagination">
  <li class="page-item disabled"><a class="page-link next" href="#">&raquo;</a></li>
</ul>
"""

DETAIL = f"""
<title>One Piece - Kuramanime</title>
<div class="anime__details__pic set-bg" data-setbg="https://cdn.test/op-big.jpg"></div>
<div class="anime__details__title"><h3>One Piece</h3></div>
<div class="anime__details__text"><p>Luffy sets sail.</p></div>
<div class="anime__details__widget"><ul>
  <li>Tipe: TV</li>
  <li>Status: Sedang Tayang</li>
  <li>Skor: 8.7</li>
  <li>Studio: Toei Animation</li>
  <li>Musim: Fall 1999</li>
  <li>Episode: 1100</li>
</ul>
<a href="{BASE}/properties/genre/action">Action</a><a href="{BASE}/properties/genre/adventure">Adventure</a>
</div>
<div id="episodeListsSection">
  <a href="{BASE}/anime/2564/one-piece/episode/2">Ep 2</a>
  <a href="{BASE}/anime/2564/one-piece/episode/10">Ep 10</a>
  <a href="{BASE}/anime/2564/one-piece/episode/1">Ep 1</a>
  <a href="{BASE}/anime/2564/one-piece/episode/2">Ep 2 (again)</a>
</div>
"""

EPISODE = f"""
<h1>One Piece Episode 1100</h1>
<iframe src="https://kuramadrive.test/embed/1100"></iframe>
<select id="changeServer">
  <option value="kuramadrive" selected>Kuramadrive</option>
  <option value="filemoon">Filemoon</option>
  <option value="">Pilih server</option>
  <option value="chat">Chat</option>
</select>
<div class="prev-ep"><a href="{BASE}/anime/2564/one-piece/episode/1099">Prev</a></div>
<div class="next-ep"><a href="#">Next</a></div>
"""

OPTION_FRAMES = {
    0: "https://kuramadrive.test/embed/1100",
    1: "https://filemoon.test/e/abc",
    3: "https://kuramachat.test/room",
}


def episode_driver(**kwargs) -> FakeDriver:
    options = dict(html=EPISODE, clickable=[SERVER_SELECT], frame=OPTION_FRAMES[0], option_frames=OPTION_FRAMES)
    options.update(kwargs)
    return FakeDriver(**options)


# ---------------------------------------------------------------------------
# Tests: slugs and frames
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_unit_slug_from_link(self):
        assert unit_slug_from_link(f"{BASE}/anime/2564/one-piece/episode/3?x=1") == "2564/one-piece/episode/3"
        assert unit_slug_from_link("#") is None

    def test_video_frame_filter(self):
        assert is_video_frame("https://kuramadrive.test/embed/1", require_embed=True)
        assert not is_video_frame("https://kuramadrive.test/v/1", require_embed=True)
        assert is_video_frame("https://kuramadrive.test/v/1")
        assert not is_video_frame("https://kuramachat.test/embed/room")
        assert not is_video_frame(None)


# ---------------------------------------------------------------------------
# Tests: listings
# ---------------------------------------------------------------------------

class TestListings:
    async def test_cards(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KuramanimePlugin, pages={"/quick/ongoing?order_by=latest&page=1": LISTING})

        page = await plugin.list_latest()

        assert [item.slug for item in page.data] == ["2564/one-piece", "100/frieren"]
        one_piece, frieren = page.data
        assert one_piece.title == "One Piece"
        assert one_piece.poster == "https://cdn.test/op.jpg"
        assert one_piece.latest_unit == "Ep 1100 / ?"
        assert one_piece.type == "TV"
        assert one_piece.url == f"{BASE}/anime/2564/one-piece"
        assert frieren.title == "frieren"
        assert frieren.poster == "https://cdn.test/frieren.jpg"
        assert frieren.status == "Ongoing"
        assert page.has_next is True

    async def test_disabled_next_control(self, make_plugin):
        plugin, _, _ = make_plugin(KuramanimePlugin, pages={"/quick/finished?order_by=latest&page=4": LAST_PAGE})

        page = await plugin.list_completed(4)

        assert [item.slug for item in page.data] == ["9/old-show"]
        assert page.has_next is False

    async def test_paths(self, make_plugin):
        plugin, fetcher, _ = make_plugin(KuramanimePlugin)

        await plugin.search("one piece", 2)
        await plugin.list_by_genre("action", 3)
        await plugin.search("  ")

        assert fetcher.requests == [
            "/anime?search=one+piece&order_by=popular&page=2",
            "/properties/genre/action?page=3",
        ]


# ---------------------------------------------------------------------------
# Tests: detail
# ---------------------------------------------------------------------------

class TestDetail:
    async def test_rendered_detail(self, make_plugin):
        plugin, fetcher, drivers = make_plugin(
            KuramanimePlugin,
            driver=lambda: FakeDriver(html=DETAIL, clickable=["#episodeLists"]),
        )

        detail = await plugin.get_detail("2564/one-piece")

        driver = drivers[0]
        assert driver.navigated == [f"{BASE}/anime/2564/one-piece"]
        assert driver.clicks == [("#episodeLists", 0)]
        assert driver.closed
        assert fetcher.requests == []

        assert detail.title == "One Piece"
        assert detail.poster == "https://cdn.test/op-big.jpg"
        assert detail.synopsis == "Luffy sets sail."
        assert detail.type == "TV"
        assert detail.status == "Sedang Tayang"
        assert detail.score == "8.7"
        assert detail.studio == "Toei Animation"
        assert detail.season == "Fall 1999"
        assert detail.total_units == "1100"
        assert detail.genres == ["Action", "Adventure"]
        assert [(u.number, u.slug) for u in detail.units] == [
            ("1", "2564/one-piece/episode/1"),
            ("2", "2564/one-piece/episode/2"),
            ("10", "2564/one-piece/episode/10"),
        ]
        assert detail.units[0].url == f"{BASE}/anime/2564/one-piece/episode/1"

    async def test_page_without_title_is_none_and_not_cached(self, make_plugin):
        plugin, _, drivers = make_plugin(KuramanimePlugin, driver=lambda: FakeDriver(html="<div></div>"))

        assert await plugin.get_detail("1/missing") is None
        assert await plugin.get_detail("1/missing") is None
        assert len(drivers) == 2

    async def test_render_failure_is_none(self, make_plugin):
        plugin, _, drivers = make_plugin(KuramanimePlugin, driver=lambda: FakeDriver(fail_on="navigate"))

        assert await plugin.get_detail("2564/one-piece") is None
        assert drivers[0].closed


# ---------------------------------------------------------------------------
# Tests: streams
# ---------------------------------------------------------------------------

class TestStreams:
    async def test_every_dropdown_server_is_tried(self, make_plugin):
        plugin, _, drivers = make_plugin(KuramanimePlugin, driver=episode_driver)

        episode = await plugin.get_stream("2564/one-piece/episode/1100")

        driver = drivers[0]
        assert driver.navigated == [f"{BASE}/anime/2564/one-piece/episode/1100"]
        assert driver.selections == [(SERVER_SELECT, 0), (SERVER_SELECT, 1), (SERVER_SELECT, 3)]
        assert [(s.name, s.url, s.quality) for s in episode.servers] == [
            ("Default Player", "https://kuramadrive.test/embed/1100", "HD"),
            ("Filemoon", "https://filemoon.test/e/abc", "HD"),
        ]
        assert episode.parent_title == "One Piece"
        assert episode.episode_number == "1100"
        assert episode.prev_slug == "2564/one-piece/episode/1099"
        assert episode.next_slug is None
        assert driver.closed

    async def test_failing_option_keeps_default_player(self, make_plugin):
        plugin, _, _ = make_plugin(KuramanimePlugin, driver=lambda: episode_driver(fail_on="select_option"))

        episode = await plugin.get_stream("2564/one-piece/episode/1100")

        assert [s.name for s in episode.servers] == ["Default Player"]

    async def test_chat_frame_is_not_default_player(self, make_plugin):
        plugin, _, _ = make_plugin(
            KuramanimePlugin,
            driver=lambda: episode_driver(frame="https://kuramachat.test/widget", option_frames={1: "https://filemoon.test/e/abc"}),
        )

        episode = await plugin.get_stream("2564/one-piece/episode/1100")

        assert [(s.name, s.url) for s in episode.servers] == [("Filemoon", "https://filemoon.test/e/abc")]

    async def test_playerless_episode_is_not_cached(self, make_plugin):
        plugin, _, drivers = make_plugin(KuramanimePlugin, driver=lambda: FakeDriver(html="<h1>Episode 5</h1>"))

        first = await plugin.get_stream("7/new-show/episode/5")
        await plugin.get_stream("7/new-show/episode/5")

        assert first.servers == []
        assert first.parent_title == "New Show"
        assert len(drivers) == 2

    async def test_capabilities(self, make_plugin):
        plugin, _, _ = make_plugin(KuramanimePlugin)

        assert plugin.supports("get_stream")
        assert plugin.supports("list_completed")
        assert not plugin.supports("list_popular")
