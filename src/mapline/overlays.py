"""Map overlays owned by the guide-line screen."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

import pydeck as pdk

from mapline.models import DEFAULT_COLOR, GeoPoint, LineColor

if TYPE_CHECKING:
    from mapline.location import LocationSource


class Overlay(abc.ABC):
    """Something drawn on top of the base map."""

    layer_id: str

    @abc.abstractmethod
    def to_layer(self) -> pdk.Layer | None:
        """Build the deck.gl layer for the current contents (None = nothing to draw)."""


class GuideLineOverlay(Overlay):
    """Two-point polyline with a stroke color and width."""

    layer_id = "guide-line"

    def __init__(self, stroke_width: float = 6.0, color: LineColor = DEFAULT_COLOR):
        self.stroke_width = stroke_width
        self.color = color
        self.points: list[GeoPoint] = []

    def set_points(self, points: list[GeoPoint]) -> None:
        self.points = list(points)

    def to_layer(self) -> pdk.Layer | None:
        if len(self.points) < 2:
            return None

        return pdk.Layer(
            "PathLayer",
            data=[{
                "path": [p.lon_lat for p in self.points],
                "color": self.color.rgb + [255],
                "color_name": self.color.name,
            }],
            id=self.layer_id,
            get_path="path",
            get_color="color",
            get_width=self.stroke_width,
            width_units="pixels",
            width_min_pixels=self.stroke_width,
            pickable=True,
        )


class LocationOverlay(Overlay):
    """Marker at the live position reported by a location source."""

    layer_id = "my-location"

    def __init__(self, source: LocationSource, radius_pixels: float = 8.0):
        self.source = source
        self.radius_pixels = radius_pixels

    def to_layer(self) -> pdk.Layer | None:
        loc = self.source.my_location
        if loc is None:
            return None

        return pdk.Layer(
            "ScatterplotLayer",
            data=[{"position": loc.lon_lat}],
            id=self.layer_id,
            get_position="position",
            get_fill_color=[33, 150, 243, 220],
            get_line_color=[255, 255, 255],
            stroked=True,
            line_width_min_pixels=2,
            radius_units="pixels",
            get_radius=self.radius_pixels,
        )
