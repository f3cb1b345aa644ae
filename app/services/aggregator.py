"""Concurrent fan-out across rate providers with a fallback/averaging policy."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from time import perf_counter

from app.logging import provider_log_extra
from app.providers.base import BaseRateProvider, ProviderError
from app.providers.schemas import AggregatedRate, CurrencyPair, RateQuote
from app.services.fx_conversion import mean_rate
from app.services.rate_cache import RateCache

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 10.0


class AggregationError(Exception):
    """Raised when no provider produced a usable rate for a pair."""

    def __init__(self, message: str, *, pair: CurrencyPair, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.pair = pair
        self.failures = failures or {}


@dataclass(frozen=True)
class ProviderOutcome:
    """Result slot for one provider in a fan-out round."""

    provider: str
    quote: RateQuote | None = None
    error: str | None = None
    duration_ms: float | None = None

    @property
    def ok(self) -> bool:
        return self.quote is not None


def average_label(providers: Sequence[str]) -> str:
    return f"Average({'+'.join(providers)})"


class FallbackAggregator:
    """Query every provider in parallel and reconcile their answers.

    No successes fails the pair, a single success is returned as-is, and two
    or more successes are averaged. Decisions are memoised in a
    :class:`RateCache` until invalidated or expired.
    """

    def __init__(
        self,
        providers: Sequence[BaseRateProvider],
        cache: RateCache | None = None,
        *,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        if not providers:
            raise ValueError("FallbackAggregator requires at least one provider.")
        self._providers = list(providers)
        self._cache = cache if cache is not None else RateCache()
        self._timeout = timeout
        self._inflight: set[ThreadPoolExecutor] = set()
        self._inflight_lock = threading.Lock()
        self._closed = False

    @property
    def providers(self) -> list[BaseRateProvider]:
        return list(self._providers)

    @property
    def cache(self) -> RateCache:
        return self._cache

    @property
    def timeout(self) -> float:
        return self._timeout

    def get_rate(self, pair: CurrencyPair) -> AggregatedRate:
        """Return the cached decision for ``pair`` or aggregate a fresh one."""

        cached = self._cache.get(pair)
        if cached is not None:
            return cached

        with self._cache.lock_for(pair):
            cached = self._cache.get(pair)
            if cached is not None:
                return cached

            logger.info("Fetching rates for %s from %s providers", pair, len(self._providers))
            outcomes = self.fetch_all(pair)
            decision = self.reconcile(pair, outcomes)
            self._cache.put(pair, decision)
            return decision

    def fetch_all(self, pair: CurrencyPair) -> list[ProviderOutcome]:
        """Run one fetch per provider concurrently and wait for every slot to settle.

        Each round gets its own workers, one per provider, so a provider that
        hangs in one round never delays a fetch in another.
        """

        executor = self._open_round()
        try:
            started = perf_counter()
            futures: list[Future[RateQuote]] = [
                executor.submit(provider.fetch, pair) for provider in self._providers
            ]
            wait(futures, timeout=self._timeout)

            outcomes: list[ProviderOutcome] = []
            for provider, future in zip(self._providers, futures):
                outcome = self._collect(self._provider_name(provider), future, started)
                self._log_outcome(pair, outcome)
                outcomes.append(outcome)
            return outcomes
        finally:
            self._close_round(executor)

    def reconcile(self, pair: CurrencyPair, outcomes: Sequence[ProviderOutcome]) -> AggregatedRate:
        successes = [(outcome.provider, outcome.quote) for outcome in outcomes if outcome.quote]

        if not successes:
            failures = {outcome.provider: outcome.error or "unknown error" for outcome in outcomes}
            raise AggregationError(
                f"All providers failed to provide exchange rates for {pair}",
                pair=pair,
                failures=failures,
            )

        if len(successes) == 1:
            name, quote = successes[0]
            return AggregatedRate(
                pair=pair,
                rate=quote.rate,
                provider=name,
                observed_at=quote.observed_at,
            )

        names = tuple(name for name, _ in successes)
        rate = mean_rate(quote.rate for _, quote in successes)
        observed_at = max(quote.observed_at for _, quote in successes)
        logger.info("Using average rate for %s: %s", pair, rate)
        return AggregatedRate(
            pair=pair,
            rate=rate,
            provider=average_label(names),
            observed_at=observed_at,
            contributors=names,
        )

    def invalidate(self, pair: CurrencyPair) -> bool:
        return self._cache.invalidate(pair)

    def clear_cache(self) -> None:
        self._cache.clear()

    def shutdown(self) -> None:
        """Refuse new rounds and abandon the ones still running."""

        with self._inflight_lock:
            self._closed = True
            executors = list(self._inflight)
            self._inflight.clear()
        for executor in executors:
            executor.shutdown(wait=False, cancel_futures=True)

    def _open_round(self) -> ThreadPoolExecutor:
        with self._inflight_lock:
            if self._closed:
                raise RuntimeError("FallbackAggregator has been shut down.")
            executor = ThreadPoolExecutor(
                max_workers=len(self._providers), thread_name_prefix="rate-provider"
            )
            self._inflight.add(executor)
        return executor

    def _close_round(self, executor: ThreadPoolExecutor) -> None:
        with self._inflight_lock:
            self._inflight.discard(executor)
        # workers stuck in a timed-out fetch exit once the fetch returns
        executor.shutdown(wait=False, cancel_futures=True)

    def _collect(self, name: str, future: Future[RateQuote], started: float) -> ProviderOutcome:
        if not future.done():
            future.cancel()
            return ProviderOutcome(
                provider=name,
                error=f"timed out after {self._timeout}s",
                duration_ms=(perf_counter() - started) * 1000,
            )

        duration_ms = (perf_counter() - started) * 1000
        try:
            quote = future.result()
        except ProviderError as exc:
            return ProviderOutcome(provider=name, error=str(exc), duration_ms=duration_ms)
        except Exception as exc:
            logger.exception("Provider %s raised an unexpected error", name)
            return ProviderOutcome(
                provider=name,
                error=f"unexpected error: {exc}",
                duration_ms=duration_ms,
            )
        return ProviderOutcome(provider=name, quote=quote, duration_ms=duration_ms)

    @staticmethod
    def _log_outcome(pair: CurrencyPair, outcome: ProviderOutcome) -> None:
        if outcome.ok:
            logger.info(
                "Provider fetch succeeded",
                extra=provider_log_extra(
                    provider=outcome.provider,
                    pair=pair.key,
                    event="provider.fetch",
                    status="success",
                    duration_ms=outcome.duration_ms,
                ),
            )
            return

        logger.warning(
            "Provider %s failed for %s: %s",
            outcome.provider,
            pair,
            outcome.error,
            extra=provider_log_extra(
                provider=outcome.provider,
                pair=pair.key,
                event="provider.fetch",
                status="error",
                duration_ms=outcome.duration_ms,
                error=outcome.error,
            ),
        )

    @staticmethod
    def _provider_name(provider: BaseRateProvider) -> str:
        return getattr(provider, "name", provider.__class__.__name__)
