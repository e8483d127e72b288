"""
IP Info Service package.

The service answers ``GET /`` with the caller's public IP geolocation,
backed by a single upstream API and a one-entry cache that is refreshed
at most once per freshness window.

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: HTTP client for the upstream geolocation API.
- app.caching: Single-slot cache coordinator.
- app.domain: The GeoRecord value type.
"""
