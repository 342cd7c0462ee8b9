"""
TTL caches for Cloudflare zone and record listings
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, List

from cachetools import TTLCache

from cloudflare_dns_operator.cloudflare.models import DnsRecord, Zone

logger = logging.getLogger(__name__)

ZONES_TTL = 300.0
RECORDS_TTL = 60.0
MAX_ZONES = 1024

_ZONES_KEY = "zones"


class TtlCache:
    """cachetools.TTLCache behind a lock, with per-key invalidation generations.

    The lock only brackets the lookup and the store. Fetching happens outside of
    it, so concurrent misses for the same key may both hit the API. A fetch that
    overlaps an invalidation of its key is returned but never stored.
    """

    def __init__(
        self, ttl: float, clock: Callable[[], float] = time.monotonic, maxsize: int = MAX_ZONES
    ):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._entries = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._generations: Dict[Hashable, int] = {}

    def get(self, key: Hashable) -> Any:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def get_or_fetch(self, key: Hashable, fetch: Callable[[], Any]) -> Any:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                return value
            generation = self._generations.get(key, 0)

        value = fetch()

        with self._lock:
            if self._generations.get(key, 0) == generation:
                self._entries[key] = value
            else:
                logger.debug(f"Not caching listing of {key}, invalidated while fetching")
        return value


class ProviderCache:
    """Zone list cache plus one record list cache per zone"""

    def __init__(
        self,
        zones_ttl: float = ZONES_TTL,
        records_ttl: float = RECORDS_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.zones = TtlCache(zones_ttl, clock, maxsize=1)
        self.records = TtlCache(records_ttl, clock)

    def zone_list(self, fetch: Callable[[], List[Zone]]) -> List[Zone]:
        return self.zones.get_or_fetch(_ZONES_KEY, fetch)

    def record_list(self, zone_id: str, fetch: Callable[[], List[DnsRecord]]) -> List[DnsRecord]:
        return self.records.get_or_fetch(zone_id, fetch)

    def invalidate_zone(self, zone_id: str) -> None:
        logger.debug(f"Invalidating cached records of zone {zone_id}")
        self.records.invalidate(zone_id)
