"""Guide-line controller.

Owns the guide-line settings and keeps the drawn line in step with them. Every
change of heading, length, color or permission, and every new location fix,
recomputes the segment from the latest position (falling back to the map
center) and publishes it to the renderer and to subscribers.

Once permission is held (at open or on a later grant) the controller polls the
location source for a first fix on a cancellable asyncio task; ``close()``
aborts it. With no running event loop the source is checked once instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from mapline.geo import destination_point
from mapline.location import LocationSource
from mapline.models import (
    FixStatus,
    GeoPoint,
    GuideLineSegment,
    GuideLineState,
    LineColor,
    normalize_heading,
    resolve_color,
    validate_length,
)
from mapline.overlays import GuideLineOverlay, LocationOverlay
from mapline.permissions import PermissionGate
from mapline.renderers.base import MapRenderer
from mapline.settings import GuideSettings

logger = logging.getLogger(__name__)

SegmentListener = Callable[[GuideLineSegment], None]


class GuideLineController:
    """Keeps a guide line drawn from the live position at a chosen heading."""

    def __init__(
        self,
        renderer: MapRenderer,
        location: LocationSource,
        permissions: PermissionGate,
        settings: GuideSettings | None = None,
    ):
        self.settings = settings or GuideSettings()
        self.renderer = renderer
        self.location = location
        self.permissions = permissions

        self.state = GuideLineState(
            heading=normalize_heading(self.settings.default_heading),
            length_m=validate_length(self.settings.default_length_m),
            color=resolve_color(self.settings.default_color),
            follow_location=self.settings.follow_location,
        )
        self.segment: GuideLineSegment | None = None
        self.status = FixStatus.AWAITING_FIX
        self.has_permission = permissions.check()

        self.guide_line = GuideLineOverlay(stroke_width=self.settings.stroke_width)
        self.location_overlay = LocationOverlay(location)

        self._listeners: list[SegmentListener] = []
        self._fix_task: asyncio.Task | None = None
        self._opened = False

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        """Attach overlays and center the map; pairs with ``close()``."""
        if self._opened:
            return
        self.renderer.set_zoom(self.settings.zoom)
        self.renderer.set_center(self.settings.initial_center)
        self.renderer.add_overlay(self.location_overlay)
        self.renderer.add_overlay(self.guide_line)
        self.location.attach(self.renderer)
        self.location.add_listener(self._on_fix)
        self._apply_follow()
        self._opened = True

        if self.has_permission:
            self.location.enable_my_location()
        self.refresh_guide_line()

        if self.has_permission:
            self._start_fix_polling()

    def close(self) -> None:
        """Cancel fix polling, stop location updates and detach overlays."""
        if self._fix_task is not None and not self._fix_task.done():
            self._fix_task.cancel()
        self._fix_task = None

        if not self._opened:
            return
        self.location.remove_listener(self._on_fix)
        self.location.disable_my_location()
        self.location.disable_follow_location()
        self.renderer.remove_overlay(self.location_overlay)
        self.renderer.remove_overlay(self.guide_line)
        self._opened = False
        logger.debug("Guide-line screen closed")

    def __enter__(self) -> GuideLineController:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> GuideLineController:
        self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
        await asyncio.sleep(0)

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: SegmentListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SegmentListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- user input --------------------------------------------------------

    def set_heading(self, heading: float) -> GuideLineSegment:
        self.state.heading = normalize_heading(heading)
        return self.refresh_guide_line()

    def set_length(self, length_m: float) -> GuideLineSegment:
        self.state.length_m = validate_length(length_m)
        return self.refresh_guide_line()

    def set_color(self, color: LineColor | str) -> GuideLineSegment:
        self.state.color = resolve_color(color)
        return self.refresh_guide_line()

    def set_follow_location(self, follow: bool) -> None:
        self.state.follow_location = follow
        self._apply_follow()

    def refresh(self) -> GuideLineSegment | None:
        """Manual refresh; does nothing without location permission."""
        if not self.has_permission:
            return None
        if self.location.my_location is not None and self.status is not FixStatus.TRACKING:
            self._set_status(FixStatus.TRACKING)
        return self.refresh_guide_line()

    # -- permission and first fix -----------------------------------------

    async def request_permission(self) -> bool:
        granted = await self.permissions.request()
        self.on_permission_result(granted)
        return granted

    def on_permission_result(self, granted: bool) -> None:
        self.has_permission = granted
        if granted:
            self.location.enable_my_location()
            if self.status is FixStatus.PERMISSION_DENIED:
                self._set_status(FixStatus.AWAITING_FIX)
        else:
            self.location.disable_my_location()
            self._set_status(FixStatus.PERMISSION_DENIED)

        self.refresh_guide_line()

        if granted:
            self._start_fix_polling()

    def _start_fix_polling(self) -> None:
        if self._fix_task is not None and not self._fix_task.done():
            self._fix_task.cancel()
        self._fix_task = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without an event loop there is nothing to wait on: check once.
            if not self._take_first_fix(1):
                self._fix_timed_out(1)
            return
        self._fix_task = loop.create_task(self._await_first_fix())

    def _take_first_fix(self, attempt: int) -> bool:
        loc = self.location.my_location
        if loc is None:
            return False
        logger.info("First fix after %d attempt(s): %.6f, %.6f", attempt, loc.latitude, loc.longitude)
        self.renderer.animate_to(loc)
        self._set_status(FixStatus.TRACKING)
        self.refresh_guide_line()
        return True

    def _fix_timed_out(self, attempts: int) -> None:
        self._set_status(FixStatus.TIMED_OUT)
        logger.warning(
            "No location fix after %d attempt(s); drawing from map center", attempts,
        )

    async def _await_first_fix(self) -> None:
        attempts = self.settings.fix_poll_attempts
        for attempt in range(attempts):
            if self._take_first_fix(attempt + 1):
                return
            await asyncio.sleep(self.settings.fix_poll_interval_seconds)

        self._fix_timed_out(attempts)

    async def wait_for_fix(self) -> FixStatus:
        """Wait for the in-flight first-fix poll, if any, and return the status."""
        task = self._fix_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self.status

    # -- recompute and publish ---------------------------------------------

    def current_start(self) -> GeoPoint:
        return self.location.my_location or self.renderer.map_center

    def refresh_guide_line(self) -> GuideLineSegment:
        start = self.current_start()
        end = destination_point(start, self.state.heading, self.state.length_m)
        segment = GuideLineSegment(start=start, end=end, color=self.state.color)
        self._publish(segment)
        return segment

    def _publish(self, segment: GuideLineSegment) -> None:
        self.segment = segment
        self.guide_line.set_points([segment.start, segment.end])
        self.guide_line.color = segment.color
        self.renderer.invalidate()
        for listener in list(self._listeners):
            listener(segment)

    def _on_fix(self, point: GeoPoint) -> None:
        if not self.has_permission:
            return
        if self.status in (FixStatus.AWAITING_FIX, FixStatus.TIMED_OUT) and self._polling_done():
            self._set_status(FixStatus.TRACKING)
        self.refresh_guide_line()

    def _polling_done(self) -> bool:
        return self._fix_task is None or self._fix_task.done()

    def _apply_follow(self) -> None:
        if self.state.follow_location:
            self.location.enable_follow_location()
        else:
            self.location.disable_follow_location()

    def _set_status(self, status: FixStatus) -> None:
        if status is not self.status:
            logger.debug("Fix status %s -> %s", self.status.value, status.value)
            self.status = status
