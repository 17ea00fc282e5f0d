"""mapline: heading guide line drawn from a live map position."""

__version__ = "0.1.0"
