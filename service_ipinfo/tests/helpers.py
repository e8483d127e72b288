"""
Test doubles and factory methods for the IP info service tests.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence, Union

from service_ipinfo.app.domain.records import GeoRecord


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher:
    """Fetcher that replays scripted outcomes and counts invocations.

    Each outcome is either a ``GeoRecord`` to return or an exception to raise.
    The last outcome repeats once the script runs out.
    """

    def __init__(self, outcomes: Sequence[Union[GeoRecord, Exception]], delay: float = 0.0):
        if not outcomes:
            raise ValueError("StubFetcher needs at least one outcome")
        self.outcomes: List[Union[GeoRecord, Exception]] = list(outcomes)
        self.delay = delay
        self.calls = 0

    async def fetch(self) -> GeoRecord:
        index = min(self.calls, len(self.outcomes) - 1)
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class UniqueFetcher:
    """Fetcher returning a distinct record per call after a fixed delay."""

    def __init__(self, delay: float = 0.1):
        self.delay = delay
        self.calls = 0
        self.returned: List[GeoRecord] = []
        self.completed_at: List[float] = []

    async def fetch(self) -> GeoRecord:
        self.calls += 1
        call_number = self.calls
        await asyncio.sleep(self.delay)
        record = create_geo_record(address=f"10.0.{call_number // 256}.{call_number % 256}")
        self.returned.append(record)
        self.completed_at.append(time.monotonic())
        return record


def create_geo_record(address: str = "1.2.3.4", country: Optional[str] = None, **fields: Any) -> GeoRecord:
    """Create a record with only the given fields populated."""
    return GeoRecord(address=address, country=country, **fields)


def create_upstream_payload(**overrides: Any) -> Dict[str, Any]:
    """Create an ifconfig.co-shaped JSON payload."""
    payload: Dict[str, Any] = {
        "ip": "203.0.113.7",
        "ip_decimal": 3405803783,
        "country": "Wonderland",
        "country_iso": "WL",
        "country_eu": False,
        "region_name": "Queen's Garden",
        "region_code": "QG",
        "zip_code": "12345",
        "city": "Tea Party",
        "latitude": 51.5072,
        "longitude": -0.1276,
        "time_zone": "Europe/London",
        "asn": "AS64500",
        "asn_org": "Looking Glass Networks",
        "user_agent": {"product": "ipinfo-gateway", "version": "1.0"},
    }
    payload.update(overrides)
    return payload
