"""Data models for the heading guide line."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, asdict, field
from enum import Enum

from mapline.errors import ValidationError


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float             # [-90, 90] for a valid input point
    longitude: float            # [-180, 180]; projected points may exceed it

    @property
    def lon_lat(self) -> list[float]:
        """Coordinates in deck.gl / GeoJSON order."""
        return [self.longitude, self.latitude]

    def normalized(self) -> GeoPoint:
        """Copy with longitude wrapped into [-180, 180)."""
        lon = (self.longitude + 180.0) % 360.0 - 180.0
        return GeoPoint(self.latitude, lon)

    def validate(self) -> list[str]:
        """Return range errors (empty = valid)."""
        errors: list[str] = []

        if not math.isfinite(self.latitude) or not -90 <= self.latitude <= 90:
            errors.append(f"latitude {self.latitude} out of range [-90, 90]")

        if not math.isfinite(self.longitude) or not -180 <= self.longitude <= 180:
            errors.append(f"longitude {self.longitude} out of range [-180, 180]")

        return errors

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> GeoPoint:
        d = json.loads(raw)
        return cls(latitude=float(d["latitude"]), longitude=float(d["longitude"]))


@dataclass(frozen=True)
class LineColor:
    """Opaque RGB stroke color."""

    name: str
    red: int
    green: int
    blue: int

    @property
    def rgb(self) -> list[int]:
        return [self.red, self.green, self.blue]

    @property
    def hex(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"

    @classmethod
    def from_hex(cls, name: str, value: str) -> LineColor:
        digits = value.lstrip("#")
        if len(digits) != 6:
            raise ValidationError([f"color {value!r} is not #RRGGBB"])
        try:
            r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        except ValueError:
            raise ValidationError([f"color {value!r} is not #RRGGBB"]) from None
        return cls(name, r, g, b)


PALETTE: dict[str, LineColor] = {
    "teal": LineColor.from_hex("teal", "#00BCD4"),
    "deep_orange": LineColor.from_hex("deep_orange", "#FF5722"),
    "green": LineColor.from_hex("green", "#4CAF50"),
    "purple": LineColor.from_hex("purple", "#9C27B0"),
}

DEFAULT_COLOR = PALETTE["teal"]


def resolve_color(color: LineColor | str) -> LineColor:
    """Accept a LineColor, a palette name or a #RRGGBB string."""
    if isinstance(color, LineColor):
        return color
    key = color.strip().lower().replace("-", "_").replace(" ", "_")
    if key in PALETTE:
        return PALETTE[key]
    if color.startswith("#"):
        return LineColor.from_hex(color, color)
    raise ValidationError([f"unknown color {color!r} (choose from {', '.join(PALETTE)})"])


def color_options(current: LineColor) -> tuple[list[str], int]:
    """Dropdown choices (palette names) and the index of `current`.

    A color outside the palette is offered first, under its own name.
    """
    options = list(PALETTE)
    if current.name not in PALETTE:
        options.insert(0, current.name)
    return options, options.index(current.name)


class FixStatus(str, Enum):
    """Where the controller stands with respect to a live location fix."""

    AWAITING_FIX = "awaiting_fix"
    TRACKING = "tracking"
    TIMED_OUT = "timed_out"
    PERMISSION_DENIED = "permission_denied"


@dataclass
class GuideLineState:
    """User-controlled settings of the guide line."""

    heading: float = 0.0        # Degrees clockwise from north, [0, 360)
    length_m: float = 500.0     # Meters, > 0
    color: LineColor = field(default=DEFAULT_COLOR)
    follow_location: bool = True


@dataclass(frozen=True)
class GuideLineSegment:
    """The two endpoints and color of the drawn guide line."""

    start: GeoPoint
    end: GeoPoint
    color: LineColor

    @property
    def path(self) -> list[list[float]]:
        return [self.start.lon_lat, self.end.lon_lat]

    @property
    def length_m(self) -> float:
        from mapline.geo import haversine_m
        return haversine_m(self.start, self.end)


def normalize_heading(heading: float) -> float:
    """Validate a heading and fold it into [0, 360)."""
    if not math.isfinite(heading):
        raise ValidationError([f"heading {heading} is not a finite number"])
    h = heading % 360.0
    # Tiny negative headings round up to 360.0
    return 0.0 if h >= 360.0 else h


def validate_length(length_m: float) -> float:
    if not math.isfinite(length_m) or length_m <= 0:
        raise ValidationError([f"length {length_m} must be a positive number of meters"])
    return float(length_m)
