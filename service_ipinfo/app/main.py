"""
IP info service: serves the caller's public IP geolocation.
"""

from typing import Optional

from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import FetchError
from service_ipinfo.app.adapters.geo_client import GeoApiClient
from service_ipinfo.app.caching.single_slot import Fetcher, SingleSlotCache


SERVICE_NAME = "ipinfo"
FETCH_FAILED_MESSAGE = "Failed to fetch IP information"


class IpInfoService(BaseService):
    """IP info service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, fetcher: Optional[Fetcher] = None):
        super().__init__(SERVICE_NAME, config=config)
        self.geo_client = fetcher or GeoApiClient(
            self.config.upstream_url,
            user_agent=self.config.upstream_user_agent,
            timeout=self.config.upstream_timeout_seconds,
        )
        self.cache = SingleSlotCache(
            self.geo_client,
            metrics=self.metrics,
            single_flight=self.config.single_flight,
        )

        @self.app.on_event("startup")
        async def _startup():
            if self.config.warm_on_startup:
                await self._warm_cache()

        self._setup_ipinfo_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.ipinfo_service = self

    async def _warm_cache(self):
        """Fetch the first record before traffic arrives; failures are not fatal."""
        try:
            record = await self.cache.refresh()
        except FetchError as exc:
            self.logger.warning("Cache warm failed", code=exc.code, error=exc.message)
            return
        self.logger.info("Cache warmed", address=record.address)

    def _cors_headers(self):
        return {"Access-Control-Allow-Origin": "*"}

    def _setup_ipinfo_routes(self):
        """Set up the geolocation route."""

        @self.app.get("/")
        async def get_ip_info():
            """Return the caller's public IP geolocation record."""
            try:
                record = await self.cache.get_or_fetch()
            except FetchError as exc:
                self.logger.error(
                    "Error fetching IP info",
                    code=exc.code,
                    error=exc.message,
                    details=exc.details,
                )
                self.metrics.record_error(exc.code)
                return JSONResponse(
                    status_code=500,
                    content={"error": FETCH_FAILED_MESSAGE},
                    headers=self._cors_headers(),
                )

            self.logger.info("Returned IP info", address=record.address)
            return JSONResponse(content=record.to_dict(), headers=self._cors_headers())


def create_app(config: Optional[ServiceConfig] = None, fetcher: Optional[Fetcher] = None):
    """Create the FastAPI application."""
    service = IpInfoService(config=config, fetcher=fetcher)
    return service.app


def main():
    """Run the IP info service."""
    service = IpInfoService()
    service.logger.info(
        "Visit the service root to get your IP information",
        url=f"http://localhost:{service.config.port}/",
        upstream=service.config.upstream_url,
    )
    service.run()


if __name__ == "__main__":
    main()
