"""Map renderers the guide line is drawn into."""

from mapline.renderers.base import MapRenderer
from mapline.renderers.deck import DeckMapRenderer

__all__ = ["MapRenderer", "DeckMapRenderer"]
