"""ExchangeRate-API provider unit tests."""

from __future__ import annotations

from datetime import UTC
from decimal import Decimal

import pytest
import responses

from app.providers.base import ProviderError
from app.providers.exchangerate_client import ExchangeRateApiClient, ExchangeRateApiClientConfig
from app.providers.exchangerate_provider import ExchangeRateApiProvider
from app.providers.schemas import CurrencyPair
from tests.fixtures import read_fixture

pytestmark = pytest.mark.providers

LATEST_USD_URL = "https://api.exchangerate-api.com/v4/latest/USD"


@pytest.fixture()
def provider() -> ExchangeRateApiProvider:
    config = ExchangeRateApiClientConfig(
        base_url="https://api.exchangerate-api.com/v4",
        timeout=2,
        max_retries=1,
        backoff_seconds=0,
    )
    return ExchangeRateApiProvider(ExchangeRateApiClient(config))


@responses.activate
def test_fetch_returns_quote_for_requested_currency(provider: ExchangeRateApiProvider) -> None:
    responses.add(
        responses.GET,
        LATEST_USD_URL,
        body=read_fixture("exchangerate_api_latest_usd.json"),
        content_type="application/json",
        status=200,
    )

    quote = provider.fetch(CurrencyPair("USD", "EUR"))

    assert quote.rate == Decimal("0.92")
    assert quote.provider == "ExchangeRate-API"
    assert quote.observed_at.tzinfo is UTC
    assert len(responses.calls) == 1


@responses.activate
def test_fetch_fails_for_unsupported_quote_currency(provider: ExchangeRateApiProvider) -> None:
    responses.add(
        responses.GET,
        LATEST_USD_URL,
        body=read_fixture("exchangerate_api_latest_usd.json"),
        content_type="application/json",
    )

    with pytest.raises(ProviderError, match="does not support currency NGN"):
        provider.fetch(CurrencyPair("USD", "NGN"))


@responses.activate
def test_fetch_wraps_http_errors(provider: ExchangeRateApiProvider) -> None:
    responses.add(responses.GET, LATEST_USD_URL, status=500)

    with pytest.raises(ProviderError) as exc_info:
        provider.fetch(CurrencyPair("USD", "EUR"))

    assert "Failed to fetch" in str(exc_info.value)
    assert len(responses.calls) == 1


@responses.activate
def test_fetch_rejects_error_payload(provider: ExchangeRateApiProvider) -> None:
    responses.add(
        responses.GET,
        LATEST_USD_URL,
        json={"result": "error", "error-type": "unsupported-code"},
    )

    with pytest.raises(ProviderError, match="unsupported-code"):
        provider.fetch(CurrencyPair("USD", "EUR"))


@responses.activate
def test_fetch_rejects_payload_without_rates(provider: ExchangeRateApiProvider) -> None:
    responses.add(responses.GET, LATEST_USD_URL, json={"base": "USD"})

    with pytest.raises(ProviderError, match="missing 'rates'"):
        provider.fetch(CurrencyPair("USD", "EUR"))


@responses.activate
def test_fetch_rejects_non_positive_rate(provider: ExchangeRateApiProvider) -> None:
    responses.add(responses.GET, LATEST_USD_URL, json={"rates": {"EUR": 0}})

    with pytest.raises(ProviderError, match="invalid rate"):
        provider.fetch(CurrencyPair("USD", "EUR"))


def test_from_config_uses_defaults_for_blank_base_url():
    provider = ExchangeRateApiProvider.from_config(
        {"EXCHANGERATE_API_BASE_URL": " ", "REQUEST_TIMEOUT_SECONDS": 3}
    )
    assert provider.name == "ExchangeRate-API"
