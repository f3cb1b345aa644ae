"""Bounded, self-pruning in-memory history of observed rates per currency pair."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from app.providers.schemas import CurrencyPair
from app.services.fx_conversion import to_decimal
from app.utils.currency import normalize_currency
from app.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)


class HistoryNotFoundError(LookupError):
    """Raised when no retained history exists for the requested base or pair."""


@dataclass(frozen=True)
class ExchangeRateHistory:
    """Consolidated rate history for one base currency.

    ``rates`` maps each observation timestamp (ascending) to the rates of every
    target currency recorded at exactly that instant.
    """

    base: str
    timestamp: datetime
    rates: dict[datetime, dict[str, Decimal]]


@dataclass
class _PairSeries:
    lock: threading.Lock = field(default_factory=threading.Lock)
    points: dict[datetime, Decimal] = field(default_factory=dict)
    retired: bool = False


class HistoryStore:
    """Per-pair time series pruned to a fixed retention window whenever touched."""

    def __init__(self, retention: timedelta = DEFAULT_RETENTION, clock: Clock = utc_now) -> None:
        if retention <= timedelta(0):
            raise ValueError("retention must be a positive duration")
        self._retention = retention
        self._clock = clock
        self._series: dict[CurrencyPair, _PairSeries] = {}
        self._registry_lock = threading.Lock()

    @property
    def retention(self) -> timedelta:
        return self._retention

    def record(self, pair: CurrencyPair, timestamp: datetime, rate: Decimal) -> None:
        observed_at = ensure_utc(timestamp)
        value = to_decimal(rate)
        with self._locked_series(pair) as series:
            series.points[observed_at] = value
            removed = self._prune(series, self._cutoff())
        if removed:
            logger.debug("Removed %s old entries for %s", removed, pair)
        logger.debug("Stored conversion rate for %s: %s at %s", pair, value, observed_at)

    def query(self, base: str) -> ExchangeRateHistory:
        normalized_base = normalize_currency(base)
        cutoff = self._cutoff()
        consolidated: dict[datetime, dict[str, Decimal]] = {}

        for pair, series in self._snapshot_series():
            if pair.base != normalized_base:
                continue
            with series.lock:
                self._prune(series, cutoff)
                points = list(series.points.items())
            for observed_at, rate in points:
                consolidated.setdefault(observed_at, {})[pair.quote] = rate

        if not consolidated:
            logger.warning("No conversion history available for base currency: %s", normalized_base)
            raise HistoryNotFoundError(f"No conversion history available for {normalized_base}")

        ordered = {observed_at: consolidated[observed_at] for observed_at in sorted(consolidated)}
        logger.info(
            "Retrieved conversion history for %s with %s time points",
            normalized_base,
            len(ordered),
        )
        return ExchangeRateHistory(base=normalized_base, timestamp=self._clock(), rates=ordered)

    def latest_rate(self, pair: CurrencyPair) -> Decimal:
        with self._registry_lock:
            series = self._series.get(pair)
        if series is not None:
            with series.lock:
                self._prune(series, self._cutoff())
                if series.points:
                    return series.points[max(series.points)]
        raise HistoryNotFoundError(f"No conversion history available for {pair}")

    def available_pairs(self) -> list[str]:
        return sorted(pair.key for pair, series in self._snapshot_series() if series.points)

    def available_bases(self) -> list[str]:
        return sorted({pair.base for pair, series in self._snapshot_series() if series.points})

    def prune_all(self) -> int:
        """Prune every pair and drop series left empty; returns points removed."""

        cutoff = self._cutoff()
        removed = 0
        with self._registry_lock:
            for pair, series in list(self._series.items()):
                with series.lock:
                    removed += self._prune(series, cutoff)
                    if not series.points:
                        series.retired = True
                        del self._series[pair]
        if removed:
            logger.info("Pruned %s expired history entries", removed)
        return removed

    def clear(self) -> None:
        with self._registry_lock:
            for series in self._series.values():
                series.retired = True
            self._series.clear()
        logger.info("Cleared all conversion history")

    def __len__(self) -> int:
        return sum(len(series.points) for _, series in self._snapshot_series())

    @contextmanager
    def _locked_series(self, pair: CurrencyPair) -> Iterator[_PairSeries]:
        while True:
            with self._registry_lock:
                series = self._series.setdefault(pair, _PairSeries())
            series.lock.acquire()
            if not series.retired:
                break
            series.lock.release()
        try:
            yield series
        finally:
            series.lock.release()

    def _snapshot_series(self) -> list[tuple[CurrencyPair, _PairSeries]]:
        with self._registry_lock:
            return list(self._series.items())

    def _cutoff(self) -> datetime:
        return ensure_utc(self._clock()) - self._retention

    @staticmethod
    def _prune(series: _PairSeries, cutoff: datetime) -> int:
        expired = [observed_at for observed_at in series.points if observed_at < cutoff]
        for observed_at in expired:
            del series.points[observed_at]
        return len(expired)
