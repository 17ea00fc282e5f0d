"""Exception types raised by mapline."""

from __future__ import annotations


class MaplineError(Exception):
    """Base class for mapline errors."""


class ValidationError(MaplineError, ValueError):
    """Raised when a guide-line setting or coordinate fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class LocationLookupError(MaplineError):
    """Raised when a location service cannot produce a position."""
