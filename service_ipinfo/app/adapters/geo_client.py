"""
Upstream geolocation API client.
"""

from typing import Any, Dict
import json

import httpx

from shared.logging import get_logger
from shared.errors import NetworkError, ParseError

from ..domain.records import GeoRecord


DEFAULT_UPSTREAM_URL = "https://ifconfig.co/json"
DEFAULT_USER_AGENT = "ipinfo-gateway/1.0"
DEFAULT_TIMEOUT_SECONDS = 10.0


class GeoApiClient:
    """Client for the public geolocation endpoint.

    Each :meth:`fetch` issues exactly one GET request. The client keeps no
    state between calls and never retries; failures surface as
    :class:`NetworkError` or :class:`ParseError`.
    """

    def __init__(
        self,
        url: str = DEFAULT_UPSTREAM_URL,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self.logger = get_logger("ipinfo.geo_client")

    @property
    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}

    async def fetch(self) -> GeoRecord:
        """Fetch the caller's geolocation record from the upstream API."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(self.url, headers=self.headers)
        except httpx.TimeoutException as exc:
            self.logger.warning("Upstream request timed out", url=self.url, timeout=self.timeout)
            raise NetworkError(
                "Upstream request timed out",
                details={"url": self.url, "timeout": self.timeout},
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("Upstream request failed", url=self.url, error=str(exc))
            raise NetworkError(
                f"Upstream request failed: {exc}",
                details={"url": self.url},
            ) from exc

        if not response.is_success:
            self.logger.warning(
                "Upstream returned failure status",
                url=self.url,
                status_code=response.status_code,
            )
            raise NetworkError(
                f"Unexpected status {response.status_code}",
                details={"url": self.url, "status_code": response.status_code},
            )

        payload = self._decode(response)
        record = GeoRecord.from_payload(payload)
        self.logger.debug("Upstream record retrieved", url=self.url, address=record.address)
        return record

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self.logger.warning("Upstream returned invalid JSON", url=self.url, error=str(exc))
            raise ParseError(
                "Upstream response is not valid JSON",
                details={"url": self.url, "body": response.text[:200]},
            ) from exc
