"""
Adapters package for the IP info service.

Contains the HTTP client for the upstream geolocation API. The adapter
encapsulates the endpoint, request headers and timeout, and maps transport
and decoding failures to the shared fetch errors.

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .geo_client import GeoApiClient

__all__ = [
    "GeoApiClient",
]
