"""Live-location sources feeding the guide-line controller."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

import httpx

from mapline.clients.ip_locator import LocatorChain
from mapline.errors import LocationLookupError
from mapline.models import GeoPoint
from mapline.renderers.base import MapRenderer
from mapline.sources import LocatorConfig

logger = logging.getLogger(__name__)

FixListener = Callable[[GeoPoint], None]


class LocationSource:
    """Holds the best-known position and follow-mode flag.

    Subclasses feed positions in through ``deliver_fix``. While my-location is
    disabled fixes are dropped; while following, each fix re-centers the
    attached renderer.
    """

    def __init__(self, renderer: MapRenderer | None = None):
        self._renderer = renderer
        self._location: GeoPoint | None = None
        self._enabled = False
        self._following = False
        self._listeners: list[FixListener] = []

    @property
    def my_location(self) -> GeoPoint | None:
        return self._location if self._enabled else None

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def is_following(self) -> bool:
        return self._following

    def attach(self, renderer: MapRenderer) -> None:
        self._renderer = renderer

    def enable_my_location(self) -> None:
        self._enabled = True

    def disable_my_location(self) -> None:
        self._enabled = False

    def enable_follow_location(self) -> None:
        self._following = True
        if self._renderer is not None and self.my_location is not None:
            self._renderer.animate_to(self.my_location)

    def disable_follow_location(self) -> None:
        self._following = False

    def add_listener(self, listener: FixListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: FixListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def deliver_fix(self, point: GeoPoint) -> None:
        if not self._enabled:
            logger.debug("Dropping fix %s: my-location disabled", point)
            return

        self._location = point
        if self._following and self._renderer is not None:
            self._renderer.set_center(point)
        for listener in list(self._listeners):
            listener(point)


class StaticLocationSource(LocationSource):
    """Location source fed by hand or from a scripted list of fixes."""

    def __init__(
        self,
        location: GeoPoint | None = None,
        renderer: MapRenderer | None = None,
        fixes: Iterable[GeoPoint] = (),
    ):
        super().__init__(renderer)
        self._initial = location
        self._pending = list(fixes)

    def enable_my_location(self) -> None:
        super().enable_my_location()
        if self._initial is not None and self._location is None:
            self.deliver_fix(self._initial)

    def advance(self) -> GeoPoint | None:
        """Deliver the next scripted fix, if any."""
        if not self._pending:
            return None
        point = self._pending.pop(0)
        self.deliver_fix(point)
        return point


class IpLocationSource(LocationSource):
    """Location source backed by periodic IP geolocation lookups.

    Locators are tried in the given order on every lookup; the first one sets
    the polling interval.
    """

    def __init__(
        self,
        configs: list[LocatorConfig],
        renderer: MapRenderer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(renderer)
        self._client = LocatorChain(configs, transport)
        self.config = self._client.config
        self._task: asyncio.Task | None = None
        self.last_error: str | None = None

    def enable_my_location(self) -> None:
        super().enable_my_location()
        if self._task is None or self._task.done():
            try:
                self._task = asyncio.get_running_loop().create_task(self._poll())
            except RuntimeError:
                logger.debug("[%s] no running event loop, call refresh() to look up", self.config.name)

    def disable_my_location(self) -> None:
        super().disable_my_location()
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def refresh(self) -> GeoPoint | None:
        """Perform one lookup and deliver the result."""
        try:
            point = await self._client.locate()
        except LocationLookupError as exc:
            self.last_error = str(exc)
            logger.error("[%s] error: %s", self.config.name, exc)
            return None

        self.last_error = None
        self.deliver_fix(point)
        return point

    async def _poll(self) -> None:
        logger.info("[%s] polling every %ss", self.config.name, self.config.poll_interval_seconds)
        while True:
            await self.refresh()
            await asyncio.sleep(self.config.poll_interval_seconds)

    async def close(self) -> None:
        self.disable_my_location()
        await self._client.close()
