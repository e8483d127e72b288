"""
IP info caching package.

Provides the single-slot cache that fronts the upstream geolocation API.
Entries are short-lived and expire purely by age; there is no explicit
invalidation.
"""

from .single_slot import (
    EMPTY_SLOT,
    FRESHNESS_WINDOW_SECONDS,
    CacheSlot,
    Fetcher,
    SingleSlotCache,
)

__all__ = [
    "EMPTY_SLOT",
    "FRESHNESS_WINDOW_SECONDS",
    "CacheSlot",
    "Fetcher",
    "SingleSlotCache",
]
