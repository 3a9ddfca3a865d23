"""Tests for the bounded rendering loops and driver teardown."""

import pytest

from otakuhub.core.exceptions import RenderingFailure
from otakuhub.core.renderer import RenderingDriver

from tests.conftest import FakeDriver


class TestLoadMore:
    async def test_clicks_until_control_disappears(self):
        driver = FakeDriver(text_clicks=4)

        clicks = await driver.load_more(["load more"], max_attempts=150, delay=0)

        assert clicks == 4
        assert driver.text_click_calls == 5

    async def test_bounded_by_max_attempts(self):
        driver = FakeDriver(text_clicks=1000)

        clicks = await driver.load_more(["load more"], max_attempts=7, delay=0)

        assert clicks == 7
        assert driver.text_click_calls == 7

    async def test_interaction_failure_stops_loop(self):
        driver = FakeDriver(text_clicks=5, fail_on="click_by_text")
        assert await driver.load_more(["muat"], delay=0) == 0


class TestScrollUntilStalled:
    async def test_stops_after_stall_limit(self):
        driver = FakeDriver(counts=[1, 2, 3])

        total = await driver.scroll_until_stalled(".item", max_scrolls=200, stall_limit=3, delay=0)

        assert total == 3
        # Three growing scrolls, then three without growth
        assert driver.scrolls == 6

    async def test_bounded_by_max_scrolls(self):
        driver = FakeDriver(counts=list(range(1, 100)))

        total = await driver.scroll_until_stalled(".item", max_scrolls=10, stall_limit=3, delay=0)

        assert driver.scrolls == 10
        assert total == 10

    async def test_nothing_loaded(self):
        driver = FakeDriver(counts=[0])
        assert await driver.scroll_until_stalled(".item", stall_limit=2, delay=0) == 0
        assert driver.scrolls == 2


class TestRender:
    async def test_render_navigates_interacts_and_closes(self):
        driver = FakeDriver(html="<p>rendered</p>", text_clicks=2)

        async def interact(d):
            await d.load_more(["more"], delay=0)

        result = await driver.render("https://site.test/page", lambda html: html.upper(), interact)

        assert result == "<P>RENDERED</P>"
        assert driver.navigated == ["https://site.test/page"]
        assert driver.text_click_calls == 3
        assert driver.close_calls == 1

    async def test_render_closes_when_parse_raises(self):
        driver = FakeDriver(html="<p></p>")

        def parse(html):
            raise ValueError("bad markup")

        with pytest.raises(ValueError):
            await driver.render("https://site.test/page", parse)
        assert driver.closed

    async def test_render_closes_when_navigation_fails(self):
        driver = FakeDriver(fail_on="navigate")

        with pytest.raises(RenderingFailure):
            await driver.render("https://site.test/page", str)
        assert driver.closed

    async def test_context_manager_closes(self):
        async with FakeDriver(html="<p>x</p>") as driver:
            assert await driver.extract(len) == 8
        assert driver.closed


class ScriptedDriver(FakeDriver):
    """Driver whose page scripts report success and are recorded."""

    def __init__(self):
        super().__init__()
        self.scripts = []

    async def evaluate(self, script, *args):
        self.scripts.append(args)
        return True


class TestSelectOption:
    async def test_runs_select_script_with_arguments(self):
        driver = ScriptedDriver()

        assert await RenderingDriver.select_option(driver, "#changeServer", 2)
        assert driver.scripts == [("#changeServer", 2)]

    async def test_missing_select_is_false(self):
        driver = FakeDriver()
        assert await RenderingDriver.select_option(driver, "#changeServer", 0) is False
