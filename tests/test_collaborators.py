"""Tests for location sources, the IP locator client, renderers and the CLI."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from click.testing import CliRunner

from mapline.cli import cli
from mapline.clients.ip_locator import IpLocatorClient, LocatorChain, locator_order, parse_location
from mapline.controller import GuideLineController
from mapline.dashboard import _build_stats, _build_table, run_dashboard
from mapline.errors import LocationLookupError
from mapline.location import IpLocationSource, LocationSource, StaticLocationSource
from mapline.models import PALETTE, GeoPoint
from mapline.overlays import GuideLineOverlay, LocationOverlay
from mapline.permissions import PromptPermissionGate, StaticPermissionGate
from mapline.renderers.deck import ANIMATION_MS, DeckMapRenderer
from mapline.settings import GuideSettings
from mapline.sources import LOCATORS, LocatorConfig

PARIS = GeoPoint(48.8566, 2.3522)


def locator_config(
    fmt: str = "ip-api", max_retries: int = 0, name: str = "test", enabled: bool = True,
) -> LocatorConfig:
    return LocatorConfig(
        name=name,
        url=f"http://{name}.locator/json",
        poll_interval_seconds=60,
        max_retries=max_retries,
        retry_backoff_base=0.01,
        rate_limit_rpm=60000,
        timeout_seconds=1,
        format=fmt,
        enabled=enabled,
    )


def mock_client(handler, fmt: str = "ip-api", max_retries: int = 0) -> IpLocatorClient:
    return IpLocatorClient(locator_config(fmt, max_retries), transport=httpx.MockTransport(handler))


async def locate_once(client: IpLocatorClient) -> GeoPoint:
    try:
        return await client.locate()
    finally:
        await client.close()


# ── Locator response parsing ─────────────────────────────────────────────


class TestParseLocation:
    def test_ip_api(self):
        raw = json.dumps({"status": "success", "lat": 48.8566, "lon": 2.3522, "city": "Paris"})
        assert parse_location(raw, "ip-api") == PARIS

    def test_ipapi(self):
        raw = json.dumps({"ip": "203.0.113.9", "latitude": 48.8566, "longitude": 2.3522})
        assert parse_location(raw, "ipapi") == PARIS

    @pytest.mark.parametrize("raw, fmt", [
        (json.dumps({"status": "fail", "message": "private range"}), "ip-api"),
        (json.dumps({"error": True, "reason": "RateLimited"}), "ipapi"),
        (json.dumps({"status": "success"}), "ip-api"),
        (json.dumps({"status": "success", "lat": 120.0, "lon": 0.0}), "ip-api"),
        ("<html>nope</html>", "ip-api"),
        ("{}", "geojson"),
    ])
    def test_failures(self, raw, fmt):
        with pytest.raises(LocationLookupError):
            parse_location(raw, fmt)

    def test_registry_formats_are_supported(self):
        for config in LOCATORS.values():
            assert config.format in ("ip-api", "ipapi")


class TestIpLocatorClient:
    def test_locate(self):
        def handler(request):
            assert request.url == "http://test.locator/json"
            return httpx.Response(200, json={"status": "success", "lat": 48.8566, "lon": 2.3522})

        assert asyncio.run(locate_once(mock_client(handler))) == PARIS

    def test_retries_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"status": "success", "lat": 1.0, "lon": 2.0})

        point = asyncio.run(locate_once(mock_client(handler, max_retries=1)))
        assert point == GeoPoint(1.0, 2.0)
        assert len(calls) == 2

    def test_all_attempts_fail(self):
        def handler(request):
            return httpx.Response(500)

        with pytest.raises(LocationLookupError) as excinfo:
            asyncio.run(locate_once(mock_client(handler)))
        assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


class TestLocatorChain:
    def test_order_puts_preferred_first(self):
        locators = {
            "a": locator_config(name="a"),
            "b": locator_config(name="b"),
            "c": locator_config(name="c"),
        }
        order = locator_order("b", locators, ["a", "b", "c"])
        assert [config.name for config in order] == ["b", "a", "c"]

    def test_order_skips_disabled(self):
        locators = {
            "a": locator_config(name="a", enabled=False),
            "b": locator_config(name="b"),
        }
        assert [config.name for config in locator_order("a", locators, ["a", "b"])] == ["b"]

    def test_order_with_nothing_enabled(self):
        locators = {"a": locator_config(name="a", enabled=False)}
        with pytest.raises(LocationLookupError):
            locator_order("a", locators, ["a"])

    def test_falls_back_to_next_locator(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "down.locator":
                return httpx.Response(503)
            return httpx.Response(200, json={"status": "success", "lat": 48.8566, "lon": 2.3522})

        async def scenario():
            chain = LocatorChain(
                [locator_config(name="down"), locator_config(name="up")],
                transport=httpx.MockTransport(handler),
            )
            try:
                return await chain.locate()
            finally:
                await chain.close()

        assert asyncio.run(scenario()) == PARIS
        assert hosts == ["down.locator", "up.locator"]

    def test_all_locators_fail(self):
        def handler(request):
            return httpx.Response(500)

        async def scenario():
            chain = LocatorChain(
                [locator_config(name="a"), locator_config(name="b")],
                transport=httpx.MockTransport(handler),
            )
            try:
                return await chain.locate()
            finally:
                await chain.close()

        with pytest.raises(LocationLookupError) as excinfo:
            asyncio.run(scenario())
        assert "2 locator(s)" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, LocationLookupError)

    def test_empty_chain(self):
        with pytest.raises(LocationLookupError):
            LocatorChain([])


# ── Location sources ─────────────────────────────────────────────────────


class TestLocationSource:
    def test_fixes_dropped_while_disabled(self):
        source = LocationSource()
        source.deliver_fix(PARIS)
        assert source.my_location is None

        source.enable_my_location()
        source.deliver_fix(PARIS)
        assert source.my_location == PARIS

        source.disable_my_location()
        assert source.my_location is None

    def test_follow_recenters_renderer(self):
        renderer = DeckMapRenderer()
        source = LocationSource(renderer)
        source.enable_my_location()
        source.deliver_fix(PARIS)
        assert renderer.map_center == GeoPoint(0.0, 0.0)

        source.enable_follow_location()
        assert renderer.map_center == PARIS
        moved = GeoPoint(48.9, 2.4)
        source.deliver_fix(moved)
        assert renderer.map_center == moved

    def test_listeners(self):
        seen = []
        source = LocationSource()
        source.add_listener(seen.append)
        source.enable_my_location()
        source.deliver_fix(PARIS)
        source.remove_listener(seen.append)
        source.deliver_fix(GeoPoint(1.0, 1.0))
        assert seen == [PARIS]

    def test_static_source_scripted_fixes(self):
        source = StaticLocationSource(PARIS, fixes=[GeoPoint(1.0, 1.0)])
        assert source.my_location is None
        source.enable_my_location()
        assert source.my_location == PARIS
        assert source.advance() == GeoPoint(1.0, 1.0)
        assert source.my_location == GeoPoint(1.0, 1.0)
        assert source.advance() is None


class TestIpLocationSource:
    def test_refresh_delivers_fix(self):
        def handler(request):
            return httpx.Response(200, json={"status": "success", "lat": 48.8566, "lon": 2.3522})

        async def scenario():
            source = IpLocationSource([locator_config()], transport=httpx.MockTransport(handler))
            source.enable_my_location()
            await asyncio.sleep(0.05)
            location = source.my_location
            await source.close()
            return location

        assert asyncio.run(scenario()) == PARIS

    def test_lookup_error_is_recorded(self):
        def handler(request):
            return httpx.Response(200, json={"status": "fail", "message": "reserved range"})

        async def scenario():
            source = IpLocationSource([locator_config()], transport=httpx.MockTransport(handler))
            result = await source.refresh()
            await source.close()
            return source, result

        source, result = asyncio.run(scenario())
        assert result is None
        assert "reserved range" in source.last_error

    def test_refresh_uses_fallback_locator(self):
        def handler(request):
            if request.url.host == "primary.locator":
                return httpx.Response(200, json={"status": "fail", "message": "quota"})
            return httpx.Response(200, json={"status": "success", "lat": 48.8566, "lon": 2.3522})

        async def scenario():
            source = IpLocationSource(
                [locator_config(name="primary"), locator_config(name="backup")],
                transport=httpx.MockTransport(handler),
            )
            source.enable_my_location()
            point = await source.refresh()
            await source.close()
            return source, point

        source, point = asyncio.run(scenario())
        assert point == PARIS
        assert source.last_error is None
        assert source.config.name == "primary"


# ── Permission gates ─────────────────────────────────────────────────────


class TestPermissions:
    def test_static_gate(self):
        gate = StaticPermissionGate(granted=True)
        assert gate.check() is False
        assert asyncio.run(gate.request()) is True
        assert gate.check() is True
        assert gate.requests == 1

    def test_prompt_gate_asks_once(self, monkeypatch):
        answers = []

        def fake_confirm(prompt, default):
            answers.append(prompt)
            return False

        monkeypatch.setattr("mapline.permissions.click.confirm", fake_confirm)
        gate = PromptPermissionGate()

        async def scenario():
            return await gate.request(), await gate.request()

        assert asyncio.run(scenario()) == (False, False)
        assert len(answers) == 1
        assert gate.check() is False


# ── Renderer and overlays ────────────────────────────────────────────────


class TestDeckRenderer:
    def test_overlays_are_not_duplicated(self):
        renderer = DeckMapRenderer()
        overlay = GuideLineOverlay()
        renderer.add_overlay(overlay)
        renderer.add_overlay(overlay)
        assert renderer.overlays == [overlay]
        renderer.remove_overlay(overlay)
        renderer.remove_overlay(overlay)
        assert renderer.overlays == []

    def test_empty_overlays_draw_nothing(self):
        renderer = DeckMapRenderer()
        renderer.add_overlay(GuideLineOverlay())
        renderer.add_overlay(LocationOverlay(LocationSource()))
        renderer.invalidate()
        assert renderer.deck.layers == []
        assert renderer.redraw_count == 1

    def test_guide_line_layer(self):
        overlay = GuideLineOverlay(stroke_width=4.0, color=PALETTE["green"])
        overlay.set_points([PARIS, GeoPoint(48.86, 2.36)])
        layer = overlay.to_layer()
        assert layer.type == "PathLayer"
        assert layer.id == "guide-line"

    def test_animate_to_sets_transition(self):
        renderer = DeckMapRenderer(zoom=12.0)
        renderer.animate_to(PARIS)
        view_state = renderer.get_view_state()
        assert view_state.latitude == PARIS.latitude
        assert view_state.zoom == 12.0
        assert view_state.transition_duration == ANIMATION_MS

        renderer.invalidate()
        assert not hasattr(renderer.get_view_state(), "transition_duration")

    def test_to_html(self, tmp_path):
        renderer = DeckMapRenderer(center=PARIS)
        overlay = GuideLineOverlay()
        overlay.set_points([PARIS, GeoPoint(48.86, 2.36)])
        renderer.add_overlay(overlay)
        renderer.invalidate()

        path = renderer.to_html(str(tmp_path / "map.html"))
        html = (tmp_path / "map.html").read_text()
        assert path.endswith("map.html")
        assert "guide-line" in html


# ── Terminal dashboard ───────────────────────────────────────────────────


def make_controller(location: GeoPoint | None = PARIS) -> GuideLineController:
    renderer = DeckMapRenderer()
    return GuideLineController(
        renderer,
        StaticLocationSource(location, renderer=renderer),
        StaticPermissionGate(granted=True, pre_granted=True),
        GuideSettings(fix_poll_interval_seconds=0.001),
    )


class TestDashboard:
    def test_panels_render(self):
        from rich.console import Console

        with make_controller() as controller:
            controller.set_heading(30.0)
            console = Console(record=True, width=120)
            console.print(_build_stats(controller))
            console.print(_build_table(controller))
            text = console.export_text()

        assert "Heading: 30°" in text
        assert "48.856600" in text

    def test_run_dashboard_sweeps_heading(self):
        controller = make_controller()
        asyncio.run(run_dashboard(controller, sweep=30.0, refresh=0.0, ticks=2))
        assert controller.state.heading == 60.0
        assert controller.renderer.overlays == []


# ── CLI ──────────────────────────────────────────────────────────────────


class TestCli:
    def test_project(self):
        result = CliRunner().invoke(cli, ["project", "0", "0", "--heading", "90", "--distance", "111195"])
        assert result.exit_code == 0, result.output
        assert "1.00000" in result.output
        assert "0.000000" in result.output

    def test_project_rejects_bad_latitude(self):
        result = CliRunner().invoke(cli, ["project", "91", "0"])
        assert result.exit_code == 2
        assert "out of range" in result.output

    def test_line_writes_html(self, tmp_path):
        out = tmp_path / "guide.html"
        result = CliRunner().invoke(cli, [
            "line", "--lat", "48.8566", "--lon", "2.3522",
            "--heading", "45", "--length", "1000", "--color", "purple", "-o", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert out.exists()
        assert "48.856600,2.352200" in result.output
        assert "purple" in result.output

    def test_line_rejects_unknown_color(self, tmp_path):
        result = CliRunner().invoke(cli, [
            "line", "--lat", "1", "--lon", "1", "--color", "mauve", "-o", str(tmp_path / "x.html"),
        ])
        assert result.exit_code == 2
        assert "mauve" in result.output

    def test_line_needs_both_coordinates(self):
        result = CliRunner().invoke(cli, ["line", "--lat", "1"])
        assert result.exit_code == 2

    def test_line_rejects_bad_configured_color(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MAPLINE_COLOR", "mauve")
        result = CliRunner().invoke(cli, [
            "line", "--lat", "1", "--lon", "1", "-o", str(tmp_path / "x.html"),
        ])
        assert result.exit_code == 2
        assert "mauve" in result.output
