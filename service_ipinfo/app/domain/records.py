"""
Geolocation record returned by the upstream API and served to clients.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from shared.errors import ParseError


# Wire name -> accepted upstream names, canonical first. ifconfig.co sends the
# alias spellings; other providers use the canonical ones.
_STRING_FIELDS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("country", "country", ("country",)),
    ("country_code", "country_code", ("country_code", "country_iso")),
    ("city", "city", ("city",)),
    ("region", "region", ("region", "region_name")),
    ("region_code", "region_code", ("region_code",)),
    ("postal_code", "zip", ("zip", "zip_code")),
    ("timezone", "timezone", ("timezone", "time_zone")),
    ("asn", "asn", ("asn",)),
    ("organization", "org", ("org", "asn_org")),
)


@dataclass(frozen=True)
class GeoRecord:
    """Structured representation of the caller's public address and location."""

    address: str
    country: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    region_code: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    asn: Optional[str] = None
    organization: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names; absent values stay ``None``."""
        payload: Dict[str, Any] = {"ip": self.address}
        for attribute, wire_name, _ in _STRING_FIELDS:
            payload[wire_name] = getattr(self, attribute)
        payload["latitude"] = self.latitude
        payload["longitude"] = self.longitude
        return payload

    @classmethod
    def from_payload(cls, payload: Any) -> "GeoRecord":
        """Build a record from an upstream JSON object.

        Unknown fields are ignored and missing ones become ``None``. Values of
        the wrong type raise :class:`ParseError`.
        """
        if not isinstance(payload, Mapping):
            raise ParseError(
                "Upstream response is not a JSON object",
                details={"type": type(payload).__name__},
            )

        address = payload.get("ip")
        if not isinstance(address, str) or not address:
            raise ParseError("Upstream response has no address", details={"field": "ip"})

        values: Dict[str, Any] = {"address": address}
        for attribute, _, names in _STRING_FIELDS:
            values[attribute] = cls._optional_str(payload, names)
        values["latitude"] = cls._optional_float(payload, "latitude")
        values["longitude"] = cls._optional_float(payload, "longitude")
        return cls(**values)

    @staticmethod
    def _optional_str(payload: Mapping[str, Any], names: Tuple[str, ...]) -> Optional[str]:
        for name in names:
            value = payload.get(name)
            if value is None:
                continue
            # Some providers send the ASN as a bare number.
            if isinstance(value, int) and not isinstance(value, bool):
                return str(value)
            if not isinstance(value, str):
                raise ParseError(
                    f"Field '{name}' must be a string",
                    details={"field": name, "type": type(value).__name__},
                )
            return value
        return None

    @staticmethod
    def _optional_float(payload: Mapping[str, Any], name: str) -> Optional[float]:
        value = payload.get(name)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ParseError(
                f"Field '{name}' must be numeric",
                details={"field": name, "type": type(value).__name__},
            )
        try:
            result = float(value)
        except OverflowError as e:
            raise ParseError(f"Field '{name}' is out of range", details={"field": name}) from e
        # JSON responses cannot carry NaN or infinities.
        if not math.isfinite(result):
            raise ParseError(f"Field '{name}' must be finite", details={"field": name})
        return result
