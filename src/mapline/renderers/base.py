"""Abstract map renderer: overlay list, viewport and redraw-on-demand."""

from __future__ import annotations

import abc
import logging

from mapline.models import GeoPoint
from mapline.overlays import Overlay

logger = logging.getLogger(__name__)


class MapRenderer(abc.ABC):
    """Map collaborator the controller draws into."""

    def __init__(self, center: GeoPoint = GeoPoint(0.0, 0.0), zoom: float = 16.0):
        self.overlays: list[Overlay] = []
        self._center = center
        self._zoom = zoom
        self.redraw_count = 0

    @property
    def map_center(self) -> GeoPoint:
        return self._center

    @property
    def zoom(self) -> float:
        return self._zoom

    def add_overlay(self, overlay: Overlay) -> None:
        if overlay not in self.overlays:
            self.overlays.append(overlay)

    def remove_overlay(self, overlay: Overlay) -> None:
        if overlay in self.overlays:
            self.overlays.remove(overlay)

    def set_center(self, center: GeoPoint) -> None:
        self._center = center

    def set_zoom(self, zoom: float) -> None:
        self._zoom = zoom

    def animate_to(self, center: GeoPoint) -> None:
        """Move the viewport to `center`; renderers may transition smoothly."""
        self.set_center(center)

    def invalidate(self) -> None:
        """Request a redraw with the current overlays and viewport."""
        self.redraw_count += 1
        self.redraw()

    @abc.abstractmethod
    def redraw(self) -> None:
        """Rebuild the rendered map."""
