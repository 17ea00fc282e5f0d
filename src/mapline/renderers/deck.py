"""Pydeck map renderer.

Renders the overlays onto a deck.gl map:
- Guide line as a PathLayer ([lon, lat] order, RGBA colors)
- Live position as a ScatterplotLayer
- Base map from the configured provider (Carto tiles by default, no API key)
"""

from __future__ import annotations

import logging

import pydeck as pdk

from mapline.models import GeoPoint
from mapline.renderers.base import MapRenderer

logger = logging.getLogger(__name__)

ANIMATION_MS = 1000


class DeckMapRenderer(MapRenderer):
    """Keeps the latest `pdk.Deck` for the current overlays and viewport.

    Example:
        renderer = DeckMapRenderer(center=GeoPoint(48.85, 2.35))
        renderer.invalidate()
        renderer.to_html("guide.html")
    """

    def __init__(
        self,
        center: GeoPoint = GeoPoint(0.0, 0.0),
        zoom: float = 16.0,
        map_provider: str = "carto",
        map_style: str = "light",
    ):
        super().__init__(center, zoom)
        self.map_provider = map_provider
        self.map_style = map_style
        self._transition_ms = 0
        self.deck: pdk.Deck = self._build_deck()

    def animate_to(self, center: GeoPoint) -> None:
        self._transition_ms = ANIMATION_MS
        super().animate_to(center)

    def get_view_state(self) -> pdk.ViewState:
        view_state = pdk.ViewState(
            latitude=self.map_center.latitude,
            longitude=self.map_center.longitude,
            zoom=self.zoom,
            pitch=0,
            bearing=0,
        )
        if self._transition_ms:
            view_state.transition_duration = self._transition_ms
        return view_state

    def get_layers(self) -> list[pdk.Layer]:
        """Layers of all overlays with something to draw, in overlay order."""
        layers = []
        for overlay in self.overlays:
            layer = overlay.to_layer()
            if layer is not None:
                layers.append(layer)
        return layers

    def _build_deck(self) -> pdk.Deck:
        return pdk.Deck(
            layers=self.get_layers(),
            initial_view_state=self.get_view_state(),
            map_provider=self.map_provider,
            map_style=self.map_style,
            tooltip={"text": "{color_name}"},
        )

    def redraw(self) -> None:
        self.deck = self._build_deck()
        self._transition_ms = 0
        logger.debug("Redraw #%d with %d layer(s)", self.redraw_count, len(self.deck.layers))

    def to_html(self, path: str) -> str:
        """Write the current map to a standalone HTML file."""
        self.deck.to_html(path, open_browser=False, notebook_display=False)
        return path
