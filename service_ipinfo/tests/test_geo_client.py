"""
Unit tests for the upstream geolocation client.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_ipinfo.app.adapters.geo_client import GeoApiClient
from service_ipinfo.tests.helpers import create_upstream_payload
from shared.errors import FetchError, NetworkError, ParseError


UPSTREAM_URL = "https://geo.example.test/json"


def _response(status_code: int = 200, content=None) -> httpx.Response:
    if content is None:
        content = json.dumps(create_upstream_payload())
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request("GET", UPSTREAM_URL),
    )


class TestGeoApiClient:
    """Test cases for GeoApiClient."""

    @pytest.fixture
    def geo_client(self):
        """Create GeoApiClient instance."""
        return GeoApiClient(UPSTREAM_URL, user_agent="ipinfo-gateway-test/1.0", timeout=2.5)

    @pytest.mark.asyncio
    async def test_fetch_success(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_get = AsyncMock(return_value=_response())
            mock_client.return_value.__aenter__.return_value.get = mock_get

            record = await geo_client.fetch()

            assert record.address == "203.0.113.7"
            assert record.country == "Wonderland"
            mock_client.assert_called_once_with(timeout=2.5, follow_redirects=True)
            mock_get.assert_awaited_once_with(
                UPSTREAM_URL,
                headers={"User-Agent": "ipinfo-gateway-test/1.0", "Accept": "application/json"},
            )

    @pytest.mark.asyncio
    async def test_fetch_partial_payload(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(content=json.dumps({"ip": "198.51.100.1", "mystery": 1}))
            )

            record = await geo_client.fetch()

            assert record.address == "198.51.100.1"
            assert record.city is None
            assert record.organization is None

    @pytest.mark.asyncio
    async def test_connection_error(self, geo_client):
        cause = httpx.ConnectError("Connection refused")
        with patch('httpx.AsyncClient') as mock_client:
            mock_get = AsyncMock(side_effect=cause)
            mock_client.return_value.__aenter__.return_value.get = mock_get

            with pytest.raises(NetworkError) as excinfo:
                await geo_client.fetch()

            assert excinfo.value.__cause__ is cause
            assert excinfo.value.code == "UPSTREAM_NETWORK_ERROR"
            # No retries.
            assert mock_get.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ReadTimeout("timed out")
            )

            with pytest.raises(NetworkError) as excinfo:
                await geo_client.fetch()

            assert excinfo.value.details["timeout"] == 2.5

    @pytest.mark.asyncio
    async def test_failure_status(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(status_code=503, content=b"Service Unavailable")
            )

            with pytest.raises(NetworkError) as excinfo:
                await geo_client.fetch()

            assert excinfo.value.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_invalid_json(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(content=b"<html>rate limited</html>")
            )

            with pytest.raises(ParseError) as excinfo:
                await geo_client.fetch()

            assert excinfo.value.code == "UPSTREAM_PARSE_ERROR"
            assert "rate limited" in excinfo.value.details["body"]

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(content=json.dumps(["203.0.113.7"]))
            )

            with pytest.raises(ParseError):
                await geo_client.fetch()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        b'{"ip": "1.2.3.4", "latitude": NaN}',
        b'{"ip": "1.2.3.4", "longitude": Infinity}',
        b'{"ip": "1.2.3.4", "latitude": -Infinity}',
        b'{"ip": "1.2.3.4", "latitude": 1e400}',
        b'{"ip": "1.2.3.4", "longitude": 1' + b"0" * 400 + b'}',
    ])
    async def test_out_of_range_coordinates(self, geo_client, body):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(content=body)
            )

            with pytest.raises(ParseError) as excinfo:
                await geo_client.fetch()

            assert excinfo.value.details["field"] in ("latitude", "longitude")

    @pytest.mark.asyncio
    async def test_follows_redirects(self, geo_client):
        moved_url = "https://geo.example.test/v2/json"

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == UPSTREAM_URL:
                return httpx.Response(301, headers={"Location": moved_url})
            return httpx.Response(200, json=create_upstream_payload())

        real_client = httpx.AsyncClient

        def client_factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with patch('httpx.AsyncClient', side_effect=client_factory):
            record = await geo_client.fetch()

        assert record.address == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_errors_share_fetch_error_base(self, geo_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("Name or service not known")
            )

            with pytest.raises(FetchError):
                await geo_client.fetch()

    def test_defaults(self):
        client = GeoApiClient()

        assert client.url == "https://ifconfig.co/json"
        assert client.headers["User-Agent"] == "ipinfo-gateway/1.0"
        assert client.timeout == 10.0
