"""Async IP geolocation client: coarse live position from the public IP address."""

from __future__ import annotations

import asyncio
import json
import logging
import time

import httpx

from mapline.errors import LocationLookupError
from mapline.models import GeoPoint
from mapline.sources import LOCATOR_PRIORITY, LOCATORS, LocatorConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple token-bucket rate limiter."""

    def __init__(self, rpm: int):
        self.min_interval = 60.0 / max(rpm, 1)
        self._last_call = 0.0

    async def acquire(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_call
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)
        self._last_call = time.monotonic()


def parse_location(raw: str, fmt: str) -> GeoPoint:
    """Parse a locator response body into a GeoPoint.

    Raises:
        LocationLookupError: if the body is not JSON, reports a failure, or has
            no usable coordinates.
    """
    try:
        d = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocationLookupError(f"{fmt}: response is not JSON") from exc

    if fmt == "ip-api":
        if d.get("status") != "success":
            raise LocationLookupError(f"ip-api: lookup failed ({d.get('message', 'unknown')})")
        lat, lon = d.get("lat"), d.get("lon")
    elif fmt == "ipapi":
        if d.get("error"):
            raise LocationLookupError(f"ipapi: lookup failed ({d.get('reason', 'unknown')})")
        lat, lon = d.get("latitude"), d.get("longitude")
    else:
        raise LocationLookupError(f"unsupported locator format {fmt!r}")

    if lat is None or lon is None:
        raise LocationLookupError(f"{fmt}: response has no coordinates")

    point = GeoPoint(float(lat), float(lon))
    errors = point.validate()
    if errors:
        raise LocationLookupError(f"{fmt}: {'; '.join(errors)}")
    return point


class IpLocatorClient:
    """Async HTTP client for IP geolocation services."""

    def __init__(self, config: LocatorConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._rate_limiter = RateLimiter(config.rate_limit_rpm)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def locate(self) -> GeoPoint:
        """Look up the current position of this host."""
        raw_text = await self._request_with_retry()
        return parse_location(raw_text, self.config.format)

    async def _request_with_retry(self) -> str:
        """Make HTTP request with exponential backoff retry."""
        client = await self._get_client()
        last_exc: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await client.get(self.config.url)
                resp.raise_for_status()
                return resp.text
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_exc = exc
                if attempt < self.config.max_retries:
                    backoff = self.config.retry_backoff_base ** attempt
                    logger.warning(
                        "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                        self.config.name, attempt + 1, self.config.max_retries + 1,
                        exc, backoff,
                    )
                    await asyncio.sleep(backoff)

        raise LocationLookupError(
            f"{self.config.name}: all {self.config.max_retries + 1} attempts failed"
        ) from last_exc


def locator_order(
    preferred: str,
    locators: dict[str, LocatorConfig] = LOCATORS,
    priority: list[str] = LOCATOR_PRIORITY,
) -> list[LocatorConfig]:
    """Enabled locators to try: `preferred` first, then the rest by priority."""
    names = [preferred] + [name for name in priority if name != preferred]
    configs = [locators[name] for name in names if name in locators and locators[name].enabled]
    if not configs:
        raise LocationLookupError(f"no enabled locator among {', '.join(names)}")
    return configs


class LocatorChain:
    """Tries each locator in turn until one produces a position."""

    def __init__(self, configs: list[LocatorConfig], transport: httpx.AsyncBaseTransport | None = None):
        if not configs:
            raise LocationLookupError("no locator configured")
        self.configs = configs
        self._clients = [IpLocatorClient(config, transport) for config in configs]

    @property
    def config(self) -> LocatorConfig:
        return self.configs[0]

    async def locate(self) -> GeoPoint:
        last_exc: LocationLookupError | None = None
        for client in self._clients:
            try:
                return await client.locate()
            except LocationLookupError as exc:
                last_exc = exc
                logger.warning("%s: %s, trying next locator", client.config.name, exc)

        raise LocationLookupError(
            f"all {len(self._clients)} locator(s) failed (last: {last_exc})"
        ) from last_exc

    async def close(self) -> None:
        for client in self._clients:
            await client.close()
