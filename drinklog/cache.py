"""Short-lived memoization for computed stats.

Keyed by (section, period, range, record count). Entries expire after a TTL and
the whole cache is dropped whenever the drink set changes. Never a store of record.
"""

import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from drinklog.models import DateRange

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


def cache_key(section: str, period: str, date_range: DateRange, record_count: int) -> Tuple:
    return (section, period, date_range.start.isoformat(), date_range.end.isoformat(), record_count)


class StatsCache:
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        value = self.get(key)
        if value is None:
            value = compute()
            self.set(key, value)
        return value

    def invalidate(self) -> None:
        if self._entries:
            logger.debug("Dropping %d cached stats entries", len(self._entries))
        self._entries.clear()
