"""Process-local guard against double-dispatching a reminder.

The persisted reminder flag is authoritative; this guard only stops two
evaluations inside one process from sending the same reminder while the
flag write is still in flight. Entries expire after a TTL and the map is
capped, so it cannot grow without bound.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta
from threading import Lock


class DispatchGuard:
    """Bounded TTL set of reminder keys already claimed by this process."""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 10000) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_entries = max_entries
        self._claims: OrderedDict[str, datetime] = OrderedDict()
        self._lock = Lock()

    @staticmethod
    def key(appointment_id: str, window: str) -> str:
        return f"{appointment_id}-{window}"

    def claim(self, key: str, now: datetime) -> bool:
        """Claim ``key``; False if it is already held and not expired."""
        with self._lock:
            self._evict(now)
            if key in self._claims:
                return False
            self._claims[key] = now
            while len(self._claims) > self.max_entries:
                self._claims.popitem(last=False)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._claims.pop(key, None)

    def _evict(self, now: datetime) -> None:
        # Insertion order equals claim order, so expired keys sit at the front
        while self._claims:
            oldest_key, claimed_at = next(iter(self._claims.items()))
            if now - claimed_at < self.ttl:
                break
            del self._claims[oldest_key]

    def __contains__(self, key: str) -> bool:
        return key in self._claims

    def __len__(self) -> int:
        return len(self._claims)
