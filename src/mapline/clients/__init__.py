"""HTTP clients for location services."""

from mapline.clients.ip_locator import (
    IpLocatorClient,
    LocatorChain,
    RateLimiter,
    locator_order,
    parse_location,
)

__all__ = ["IpLocatorClient", "LocatorChain", "RateLimiter", "locator_order", "parse_location"]
