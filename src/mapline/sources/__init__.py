"""Registry of IP geolocation services usable as a live-location source."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class LocatorConfig:
    """Configuration for a single IP geolocation service."""

    name: str
    url: str
    poll_interval_seconds: int
    max_retries: int
    retry_backoff_base: float
    rate_limit_rpm: int
    timeout_seconds: int
    format: str                 # "ip-api" or "ipapi"
    enabled: bool


LOCATORS: dict[str, LocatorConfig] = {
    "ip-api": LocatorConfig(
        name="ip-api",
        url="http://ip-api.com/json/",
        poll_interval_seconds=60,
        max_retries=3,
        retry_backoff_base=2.0,
        rate_limit_rpm=40,
        timeout_seconds=10,
        format="ip-api",
        enabled=True,
    ),
    "ipapi": LocatorConfig(
        name="ipapi",
        url="https://ipapi.co/json/",
        poll_interval_seconds=120,
        max_retries=3,
        retry_backoff_base=2.0,
        rate_limit_rpm=20,
        timeout_seconds=10,
        format="ipapi",
        enabled=True,
    ),
}

# Fallback order after the configured locator (lower index = tried first).
# Disabled locators are skipped.
LOCATOR_PRIORITY = ["ip-api", "ipapi"]
