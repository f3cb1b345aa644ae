"""In-memory memo of aggregated rates keyed by currency pair."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.providers.schemas import AggregatedRate, CurrencyPair
from app.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: AggregatedRate
    stored_at: datetime


class RateCache:
    """Per-pair cache of aggregation decisions.

    ``ttl=None`` keeps entries for the lifetime of the process; a positive
    ``ttl`` expires them lazily when read. Each pair owns a lock that callers
    hold while computing a missing entry, so concurrent requests for one pair
    trigger a single provider fan-out.
    """

    def __init__(self, ttl: timedelta | None = None, clock: Clock = utc_now) -> None:
        if ttl is not None and ttl <= timedelta(0):
            ttl = None
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[CurrencyPair, CacheEntry] = {}
        self._pair_locks: dict[CurrencyPair, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def ttl(self) -> timedelta | None:
        return self._ttl

    def lock_for(self, pair: CurrencyPair) -> threading.Lock:
        with self._registry_lock:
            return self._pair_locks.setdefault(pair, threading.Lock())

    def get(self, pair: CurrencyPair) -> AggregatedRate | None:
        entry = self._entries.get(pair)
        if entry is None:
            return None
        if self._is_expired(entry):
            with self._registry_lock:
                if self._entries.get(pair) is entry:
                    del self._entries[pair]
            logger.debug("Cached rate for %s expired", pair)
            return None
        return entry.value

    def put(self, pair: CurrencyPair, value: AggregatedRate) -> None:
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._registry_lock:
            self._entries[pair] = entry

    def invalidate(self, pair: CurrencyPair) -> bool:
        with self._registry_lock:
            return self._entries.pop(pair, None) is not None

    def clear(self) -> None:
        with self._registry_lock:
            self._entries.clear()
        logger.info("Cleared rate cache")

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - entry.stored_at >= self._ttl
