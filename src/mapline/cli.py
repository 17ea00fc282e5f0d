"""CLI entrypoint for mapline."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.table import Table

from mapline.clients.ip_locator import LocatorChain, locator_order
from mapline.controller import GuideLineController
from mapline.errors import LocationLookupError, ValidationError
from mapline.geo import destination_point
from mapline.location import IpLocationSource, StaticLocationSource
from mapline.models import PALETTE, GeoPoint
from mapline.permissions import PromptPermissionGate, StaticPermissionGate
from mapline.renderers.deck import DeckMapRenderer
from mapline.settings import load_settings
from mapline.sources import LOCATORS

console = Console()


def _point(lat: float, lon: float) -> GeoPoint:
    point = GeoPoint(lat, lon)
    errors = point.validate()
    if errors:
        raise click.BadParameter("; ".join(errors))
    return point


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """mapline: heading guide line over a live map position."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.argument("lat", type=float)
@click.argument("lon", type=float)
@click.option("--heading", default=0.0, help="Degrees clockwise from north.")
@click.option("--distance", default=500.0, help="Distance in meters.")
def project(lat: float, lon: float, heading: float, distance: float):
    """Print the point reached from LAT LON along a heading."""
    start = _point(lat, lon)
    if distance < 0:
        raise click.BadParameter("distance must not be negative", param_hint="--distance")
    end = destination_point(start, heading, distance)

    table = Table(title=f"{distance:.0f} m at {heading:.1f}°")
    table.add_column("Point", style="bold")
    table.add_column("Latitude", justify="right")
    table.add_column("Longitude", justify="right")
    table.add_row("Start", f"{start.latitude:.6f}", f"{start.longitude:.6f}")
    table.add_row("End", f"{end.latitude:.6f}", f"{end.longitude:.6f}")

    wrapped = end.normalized()
    if wrapped.longitude != end.longitude:
        table.add_row("End (wrapped)", f"{wrapped.latitude:.6f}", f"{wrapped.longitude:.6f}")

    console.print(table)


@cli.command()
@click.option("--lat", type=float, default=None, help="Start latitude (default: IP lookup).")
@click.option("--lon", type=float, default=None, help="Start longitude (default: IP lookup).")
@click.option("--heading", type=float, default=None, help="Degrees clockwise from north.")
@click.option("--length", type=float, default=None, help="Line length in meters.")
@click.option("--color", default=None, help=f"One of {', '.join(PALETTE)} or #RRGGBB.")
@click.option("--output", "-o", default="mapline.html", show_default=True, help="HTML file to write.")
def line(lat, lon, heading, length, color, output):
    """Draw the guide line on a map and save it as HTML."""
    if (lat is None) != (lon is None):
        raise click.UsageError("--lat and --lon must be given together")

    settings = load_settings()
    renderer = DeckMapRenderer(
        center=settings.initial_center,
        zoom=settings.zoom,
        map_provider=settings.map_provider,
        map_style=settings.map_style,
    )

    if lat is not None:
        source = StaticLocationSource(_point(lat, lon), renderer=renderer)
    else:
        try:
            source = StaticLocationSource(asyncio.run(_locate(settings.locator)), renderer=renderer)
        except LocationLookupError as exc:
            raise click.ClickException(str(exc)) from exc

    try:
        controller = GuideLineController(
            renderer, source, StaticPermissionGate(pre_granted=True), settings,
        )
        with controller:
            if heading is not None:
                controller.set_heading(heading)
            if length is not None:
                controller.set_length(length)
            if color is not None:
                controller.set_color(color)
            renderer.animate_to(controller.segment.start)
            renderer.invalidate()
            renderer.to_html(output)
            segment = controller.segment
    except ValidationError as exc:
        raise click.BadParameter("; ".join(exc.errors)) from exc

    click.echo(
        f"Wrote {output}: {segment.start.latitude:.6f},{segment.start.longitude:.6f} -> "
        f"{segment.end.latitude:.6f},{segment.end.longitude:.6f} ({segment.color.name})"
    )


async def _locate(locator: str) -> GeoPoint:
    chain = LocatorChain(locator_order(locator))
    try:
        return await chain.locate()
    finally:
        await chain.close()


@cli.command()
@click.option("--locator", default=None, type=click.Choice(list(LOCATORS)))
def locate(locator: str | None):
    """Look up the approximate position of this machine."""
    name = locator or load_settings().locator
    try:
        point = asyncio.run(_locate(name))
    except LocationLookupError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{point.latitude:.6f},{point.longitude:.6f}")


@cli.command()
@click.option("--heading", default=None, type=float, help="Initial heading in degrees.")
@click.option("--length", default=None, type=float, help="Line length in meters.")
@click.option("--sweep", default=0.0, help="Rotate the heading by this many degrees per tick.")
@click.option("--refresh", default=1.0, help="Refresh interval in seconds.")
@click.option("--yes", "-y", is_flag=True, help="Grant location access without asking.")
def watch(heading, length, sweep: float, refresh: float, yes: bool):
    """Live terminal view of the guide line following this machine's position."""
    from mapline.dashboard import run_dashboard

    settings = load_settings()
    if heading is not None:
        settings.default_heading = heading
    if length is not None:
        settings.default_length_m = length

    renderer = DeckMapRenderer(center=settings.initial_center, zoom=settings.zoom)
    gate = StaticPermissionGate() if yes else PromptPermissionGate()
    try:
        source = IpLocationSource(locator_order(settings.locator), renderer=renderer)
    except LocationLookupError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        controller = GuideLineController(renderer, source, gate, settings)
    except ValidationError as exc:
        raise click.BadParameter("; ".join(exc.errors)) from exc

    async def _run():
        try:
            await run_dashboard(controller, sweep=sweep, refresh=refresh)
        finally:
            await source.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


@cli.command("web")
@click.option("--port", default=8501, help="Streamlit port.")
def web(port: int):
    """Launch the Streamlit guide-line screen."""
    import subprocess
    import sys
    from pathlib import Path

    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(Path(__file__).with_name("dashboard_web.py")),
        "--server.port", str(port),
        "--server.headless", "true",
    ])
