from __future__ import annotations

import threading
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from app.providers.base import ProviderError
from app.providers.mock import MockRateProvider
from app.services import conversion as conversion_module
from app.services.aggregator import FallbackAggregator
from app.services.conversion import (
    SAME_CURRENCY,
    ConversionEngine,
    ConversionError,
    create_engine,
)
from app.services.history_store import HistoryNotFoundError, HistoryStore
from app.services.rate_cache import RateCache
from tests.stubs import ManualClock, SequencedProvider

NOW = datetime(2025, 10, 13, 12, 0, tzinfo=UTC)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture()
def make_engine(clock: ManualClock):
    created: list[ConversionEngine] = []

    def _factory(*providers) -> ConversionEngine:
        aggregator = FallbackAggregator(list(providers), RateCache(clock=clock), timeout=2.0)
        engine = ConversionEngine(aggregator, HistoryStore(clock=clock), clock=clock)
        created.append(engine)
        return engine

    yield _factory

    for engine in created:
        engine.shutdown()


def test_same_currency_short_circuits(make_engine):
    provider = SequencedProvider("P1", ["0.9"])
    engine = make_engine(provider)

    result = engine.convert(Decimal("100.00"), "USD", "USD")

    assert result.rate == Decimal("1")
    assert result.converted_amount == Decimal("100.00")
    assert result.provider == SAME_CURRENCY
    assert result.timestamp == NOW
    assert provider.calls == []
    with pytest.raises(HistoryNotFoundError):
        engine.get_history("USD")


def test_same_currency_ignores_code_case(make_engine):
    provider = SequencedProvider("P1", ["0.9"])
    engine = make_engine(provider)

    result = engine.convert(Decimal("1"), "usd", "USD")
    deferred = engine.convert_async(Decimal("1"), "eur", " EUR ")

    assert result.provider == SAME_CURRENCY
    assert result.from_currency == result.to_currency == "USD"
    assert deferred.done()
    assert deferred.result().provider == SAME_CURRENCY
    assert provider.calls == []
    assert len(engine.history) == 0


def test_convert_averages_two_providers(make_engine):
    engine = make_engine(SequencedProvider("P1", ["0.90"]), SequencedProvider("P2", ["0.92"]))

    result = engine.convert(Decimal("100.00"), "USD", "EUR")

    assert result.rate == Decimal("0.910000")
    assert result.converted_amount == Decimal("91.00")
    assert str(result.converted_amount) == "91.00"
    assert result.provider == "Average(P1+P2)"
    assert result.from_currency == "USD"
    assert result.to_currency == "EUR"
    assert result.timestamp == NOW


def test_converted_amount_rounds_half_up(make_engine):
    engine = make_engine(SequencedProvider("P1", ["0.125"]))

    result = engine.convert(Decimal("1.00"), "USD", "EUR")

    assert result.converted_amount == Decimal("0.13")


def test_convert_records_history(make_engine):
    engine = make_engine(SequencedProvider("P1", ["0.90"]), SequencedProvider("P2", ["0.92"]))

    engine.convert(Decimal("100.00"), "USD", "EUR")
    history = engine.get_history("usd")

    assert history.base == "USD"
    assert history.rates == {NOW: {"EUR": Decimal("0.910000")}}
    assert engine.available_pairs() == ["USD/EUR"]
    assert engine.available_bases() == ["USD"]
    assert engine.latest_rate("USD", "EUR") == Decimal("0.910000")


def test_repeated_conversions_reuse_cached_rate(make_engine, clock: ManualClock):
    first = SequencedProvider("P1", ["0.90", "0.10"])
    second = SequencedProvider("P2", ["0.92", "0.20"])
    engine = make_engine(first, second)

    initial = engine.convert(Decimal("100.00"), "USD", "EUR")
    clock.advance(minutes=1)
    repeated = engine.convert(Decimal("100.00"), "USD", "EUR")

    assert repeated.rate == initial.rate
    assert repeated.converted_amount == initial.converted_amount
    assert repeated.provider == initial.provider
    assert len(first.calls) == 1
    assert len(engine.history) == 2


def test_all_providers_failing_raises_conversion_error(make_engine):
    engine = make_engine(
        SequencedProvider("P1", [ProviderError("down")]),
        SequencedProvider("P2", [ProviderError("also down")]),
    )

    with pytest.raises(ConversionError) as exc_info:
        engine.convert(Decimal("10"), "USD", "EUR")

    assert exc_info.value.message.startswith("Unable to convert currency")
    assert str(exc_info.value.pair) == "USD/EUR"
    assert len(engine.history) == 0


def test_unexpected_error_is_wrapped_and_logged(make_engine):
    engine = make_engine(SequencedProvider("P1", ["0.9"]))

    with patch.object(engine.history, "record", side_effect=RuntimeError("disk full")), patch.object(
        conversion_module.logger, "exception"
    ) as mock_exception:
        with pytest.raises(ConversionError, match="unexpected error") as exc_info:
            engine.convert(Decimal("10"), "USD", "EUR")

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    mock_exception.assert_called_once()


def test_convert_async_resolves_to_result(make_engine):
    provider = SequencedProvider("P1", ["0.90"])
    engine = make_engine(provider)

    future = engine.convert_async(Decimal("50.00"), "USD", "EUR")
    result = future.result(timeout=5)

    assert result.converted_amount == Decimal("45.00")
    assert provider.calls[0].thread != threading.current_thread().name


def test_convert_async_same_currency_is_already_done(make_engine):
    engine = make_engine(SequencedProvider("P1"))

    future = engine.convert_async(Decimal("5"), "EUR", "EUR")

    assert future.done()
    assert future.result().provider == SAME_CURRENCY


def test_convert_async_failure_surfaces_through_future(make_engine):
    engine = make_engine(SequencedProvider("P1", [ProviderError("down")]))

    future = engine.convert_async(Decimal("5"), "USD", "EUR")

    with pytest.raises(ConversionError):
        future.result(timeout=5)


def test_clear_history_and_cache(make_engine):
    provider = SequencedProvider("P1", ["0.90", "0.80"])
    engine = make_engine(provider)
    engine.convert(Decimal("1"), "USD", "EUR")

    engine.clear_history()
    engine.clear_cache()

    with pytest.raises(HistoryNotFoundError):
        engine.get_history("USD")
    assert engine.convert(Decimal("1"), "USD", "EUR").rate == Decimal("0.80")


def test_concurrent_conversions_fan_out_once(make_engine):
    provider = SequencedProvider("P1", ["0.90"], delay=0.2)
    engine = make_engine(provider)
    results = []

    def _convert():
        results.append(engine.convert(Decimal("10"), "USD", "EUR"))

    threads = [threading.Thread(target=_convert) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(provider.calls) == 1
    assert {result.rate for result in results} == {Decimal("0.90")}


def test_create_engine_reads_config():
    engine = create_engine(
        [MockRateProvider()],
        {
            "RATE_CACHE_TTL_SECONDS": 60,
            "REQUEST_TIMEOUT_SECONDS": 3,
            "HISTORY_RETENTION_HOURS": 6,
            "CONVERSION_MAX_WORKERS": 2,
        },
    )
    try:
        assert engine.aggregator.cache.ttl is not None
        assert engine.aggregator.cache.ttl.total_seconds() == 60
        assert engine.aggregator.timeout == 3.0
        assert engine.history.retention.total_seconds() == 6 * 3600
        assert engine.convert(Decimal("100"), "USD", "EUR").provider == "mock"
    finally:
        engine.shutdown()


def test_successful_conversion_is_logged_with_extras(make_engine):
    engine = make_engine(SequencedProvider("P1", ["0.90"]))

    with patch.object(conversion_module.logger, "info") as mock_info:
        engine.convert(Decimal("10"), "USD", "EUR")

    extra = mock_info.call_args.kwargs["extra"]
    assert extra["event"] == "conversion.completed"
    assert extra["pair"] == "USD/EUR"
    assert extra["amount"] == "10"
    assert extra["rate"] == "0.90"
    assert extra["provider"] == "P1"
    assert extra["duration_ms"] >= 0
