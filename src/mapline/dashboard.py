"""Live terminal view of the guide line."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from mapline.controller import GuideLineController
from mapline.geo import initial_bearing_deg
from mapline.models import FixStatus

console = Console()

_STATUS_STYLE = {
    FixStatus.TRACKING: "green",
    FixStatus.AWAITING_FIX: "yellow",
    FixStatus.TIMED_OUT: "red",
    FixStatus.PERMISSION_DENIED: "red",
}


def _build_table(controller: GuideLineController) -> Table:
    table = Table(
        title=f"Guide line @ {datetime.now(timezone.utc):%H:%M:%S UTC}",
        expand=True,
    )
    table.add_column("Point", style="bold", width=8)
    table.add_column("Latitude", justify="right")
    table.add_column("Longitude", justify="right")

    segment = controller.segment
    if segment is None:
        table.add_row("-", "-", "-")
        return table

    for label, point in (("Start", segment.start), ("End", segment.end)):
        table.add_row(label, f"{point.latitude:.6f}", f"{point.longitude:.6f}")

    return table


def _build_stats(controller: GuideLineController) -> Panel:
    state = controller.state
    style = _STATUS_STYLE[controller.status]

    lines = [
        f"Status: [{style}]{controller.status.value}[/]",
        f"Heading: [bold]{state.heading:.0f}°[/]  Length: [bold]{state.length_m:.0f} m[/]  "
        f"Color: [{state.color.hex}]{state.color.name}[/]",
        f"Follow my location: {'on' if state.follow_location else 'off'}",
    ]
    segment = controller.segment
    if segment is not None:
        lines.append(
            f"Drawn: {segment.length_m:.0f} m at "
            f"{initial_bearing_deg(segment.start, segment.end):.1f}°"
        )

    return Panel("\n".join(lines), title="Heading guide", border_style="blue")


def _render(layout: Layout, controller: GuideLineController) -> None:
    layout["stats"].update(_build_stats(controller))
    layout["table"].update(_build_table(controller))


async def run_dashboard(
    controller: GuideLineController,
    sweep: float = 0.0,
    refresh: float = 1.0,
    ticks: int | None = None,
) -> None:
    """Run a live-updating guide-line view in the terminal.

    `sweep` rotates the heading by that many degrees per tick; `ticks` stops
    the loop after that many updates (None = until interrupted).
    """
    layout = Layout()
    layout.split_column(
        Layout(name="stats", size=6),
        Layout(name="table"),
    )

    async with controller:
        controller.subscribe(lambda _segment: _render(layout, controller))
        await controller.request_permission()

        with Live(layout, console=console, refresh_per_second=4, screen=ticks is None):
            tick = 0
            while ticks is None or tick < ticks:
                if sweep:
                    controller.set_heading(controller.state.heading + sweep)
                _render(layout, controller)
                tick += 1
                await asyncio.sleep(refresh)
