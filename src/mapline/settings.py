"""Runtime settings for the guide-line screen."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from mapline.models import GeoPoint


@dataclass
class GuideSettings:
    """Defaults and limits for the guide line, map viewport and fix polling."""

    default_heading: float = 0.0
    default_length_m: float = 500.0
    default_color: str = "teal"
    follow_location: bool = True

    # Slider ranges of the control panel
    min_length_m: float = 50.0
    max_length_m: float = 5000.0
    heading_step: float = 30.0
    length_step: float = 250.0

    fix_poll_interval_seconds: float = 0.5
    fix_poll_attempts: int = 10

    initial_center: GeoPoint = field(default_factory=lambda: GeoPoint(0.0, 0.0))
    zoom: float = 16.0
    stroke_width: float = 6.0
    map_provider: str = "carto"
    map_style: str = "light"

    locator: str = "ip-api"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> GuideSettings:
    """Build settings from `MAPLINE_*` environment variables over the defaults."""
    defaults = GuideSettings()
    return GuideSettings(
        default_heading=_env_float("MAPLINE_HEADING", defaults.default_heading),
        default_length_m=_env_float("MAPLINE_LENGTH_M", defaults.default_length_m),
        default_color=os.getenv("MAPLINE_COLOR", defaults.default_color),
        follow_location=_env_bool("MAPLINE_FOLLOW", defaults.follow_location),
        fix_poll_interval_seconds=_env_float(
            "MAPLINE_FIX_POLL_INTERVAL", defaults.fix_poll_interval_seconds,
        ),
        fix_poll_attempts=_env_int("MAPLINE_FIX_POLL_ATTEMPTS", defaults.fix_poll_attempts),
        initial_center=GeoPoint(
            _env_float("MAPLINE_CENTER_LAT", defaults.initial_center.latitude),
            _env_float("MAPLINE_CENTER_LON", defaults.initial_center.longitude),
        ),
        zoom=_env_float("MAPLINE_ZOOM", defaults.zoom),
        stroke_width=_env_float("MAPLINE_STROKE_WIDTH", defaults.stroke_width),
        map_provider=os.getenv("MAPLINE_MAP_PROVIDER", defaults.map_provider),
        map_style=os.getenv("MAPLINE_MAP_STYLE", defaults.map_style),
        locator=os.getenv("MAPLINE_LOCATOR", defaults.locator),
    )
