"""
Domain types shared by the IP info service.
"""

from .records import GeoRecord

__all__ = ["GeoRecord"]
