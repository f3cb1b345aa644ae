"""Conversion engine orchestrating aggregation, arithmetic and history recording."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from time import perf_counter
from typing import Any

from app.logging import conversion_log_extra
from app.providers.registry import init_providers
from app.providers.schemas import CurrencyPair
from app.services.aggregator import AggregationError, FallbackAggregator
from app.services.fx_conversion import convert_amount, to_decimal
from app.services.history_store import ExchangeRateHistory, HistoryStore
from app.services.rate_cache import RateCache
from app.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

SAME_CURRENCY = "SAME_CURRENCY"
ENGINE_EXT_KEY = "conversion_engine"


class ConversionError(Exception):
    """Raised when a conversion cannot be completed."""

    def __init__(self, message: str, *, pair: CurrencyPair | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.pair = pair


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    converted_amount: Decimal
    provider: str
    timestamp: datetime


class ConversionEngine:
    """Process-wide entry point for conversions and rate history.

    Callers are expected to validate input (positive amount, three-letter
    codes) before calling in.
    """

    def __init__(
        self,
        aggregator: FallbackAggregator,
        history: HistoryStore | None = None,
        *,
        clock: Clock = utc_now,
        max_workers: int = 4,
    ) -> None:
        self._aggregator = aggregator
        self._history = history if history is not None else HistoryStore(clock=clock)
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="conversion")

    @property
    def aggregator(self) -> FallbackAggregator:
        return self._aggregator

    @property
    def history(self) -> HistoryStore:
        return self._history

    def convert(self, amount: Decimal | str | int, from_currency: str, to_currency: str) -> ConversionResult:
        amount_dec = to_decimal(amount)
        pair = CurrencyPair(from_currency, to_currency)
        if pair.is_identity:
            return self._same_currency(amount_dec, pair)

        started = perf_counter()
        try:
            decision = self._aggregator.get_rate(pair)
            now = self._clock()
            converted = convert_amount(amount_dec, decision.rate)
            self._history.record(pair, now, decision.rate)
        except AggregationError as exc:
            logger.error(
                "Currency conversion failed for %s %s to %s: %s",
                amount_dec,
                pair.base,
                pair.quote,
                exc,
                extra=conversion_log_extra(
                    pair=pair.key,
                    amount=amount_dec,
                    status="error",
                    duration_ms=(perf_counter() - started) * 1000,
                    error=str(exc),
                ),
            )
            raise ConversionError(f"Unable to convert currency: {exc}", pair=pair) from exc
        except Exception as exc:
            logger.exception("Unexpected error converting %s %s to %s", amount_dec, pair.base, pair.quote)
            raise ConversionError(
                f"Unable to convert currency {pair}: unexpected error ({exc})", pair=pair
            ) from exc

        logger.info(
            "Converted %s %s to %s %s",
            amount_dec,
            pair.base,
            converted,
            pair.quote,
            extra=conversion_log_extra(
                pair=pair.key,
                amount=amount_dec,
                status="success",
                rate=decision.rate,
                provider=decision.provider,
                duration_ms=(perf_counter() - started) * 1000,
            ),
        )
        return ConversionResult(
            amount=amount_dec,
            from_currency=pair.base,
            to_currency=pair.quote,
            rate=decision.rate,
            converted_amount=converted,
            provider=decision.provider,
            timestamp=now,
        )

    def convert_async(
        self, amount: Decimal | str | int, from_currency: str, to_currency: str
    ) -> Future[ConversionResult]:
        """Non-blocking variant of :meth:`convert`; the future raises ConversionError on failure."""

        pair = CurrencyPair(from_currency, to_currency)
        if pair.is_identity:
            future: Future[ConversionResult] = Future()
            future.set_result(self._same_currency(to_decimal(amount), pair))
            return future
        return self._executor.submit(self.convert, amount, from_currency, to_currency)

    def get_history(self, base: str) -> ExchangeRateHistory:
        return self._history.query(base)

    def clear_history(self) -> None:
        self._history.clear()

    def available_pairs(self) -> list[str]:
        return self._history.available_pairs()

    def available_bases(self) -> list[str]:
        return self._history.available_bases()

    def latest_rate(self, from_currency: str, to_currency: str) -> Decimal:
        return self._history.latest_rate(CurrencyPair(from_currency, to_currency))

    def clear_cache(self) -> None:
        self._aggregator.clear_cache()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._aggregator.shutdown()

    def _same_currency(self, amount: Decimal, pair: CurrencyPair) -> ConversionResult:
        return ConversionResult(
            amount=amount,
            from_currency=pair.base,
            to_currency=pair.quote,
            rate=Decimal("1"),
            converted_amount=amount,
            provider=SAME_CURRENCY,
            timestamp=self._clock(),
        )


def create_engine(providers, config: Mapping[str, Any]) -> ConversionEngine:
    """Build a conversion engine for ``providers`` from a Flask-style config mapping."""

    ttl_seconds = int(config.get("RATE_CACHE_TTL_SECONDS", 0))
    cache = RateCache(ttl=timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None)
    aggregator = FallbackAggregator(
        providers,
        cache,
        timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 10)),
    )
    history = HistoryStore(retention=timedelta(hours=int(config.get("HISTORY_RETENTION_HOURS", 24))))
    return ConversionEngine(
        aggregator,
        history,
        max_workers=int(config.get("CONVERSION_MAX_WORKERS", 4)),
    )


def init_engine(app) -> ConversionEngine:
    """Create the process-wide engine and store it on the Flask app."""

    providers = app.extensions.get("rate_providers") or init_providers(app)
    engine = create_engine(providers, app.config)
    app.extensions[ENGINE_EXT_KEY] = engine
    logger.info(
        "Conversion engine ready with providers: %s",
        ", ".join(provider.name for provider in providers),
    )
    return engine


def get_engine(app) -> ConversionEngine:
    engine = app.extensions.get(ENGINE_EXT_KEY)
    if engine is None:
        raise RuntimeError("Conversion engine has not been initialised.")
    return engine
