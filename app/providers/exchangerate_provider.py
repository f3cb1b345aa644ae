"""ExchangeRate-API provider implementation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.providers.base import BaseRateProvider, ProviderError
from app.providers.schemas import CurrencyPair, RateQuote

from .exchangerate_client import (
    ExchangeRateApiClient,
    ExchangeRateApiClientConfig,
    ExchangeRateApiError,
)


class ExchangeRateApiProvider(BaseRateProvider):
    """Provider that reads the latest table for the base currency from ExchangeRate-API."""

    name = "ExchangeRate-API"

    def __init__(self, client: ExchangeRateApiClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ExchangeRateApiProvider:
        base_url_value = config.get("EXCHANGERATE_API_BASE_URL")
        if not isinstance(base_url_value, str) or not base_url_value.strip():
            base_url = "https://api.exchangerate-api.com/v4"
        else:
            base_url = base_url_value
        client_config = ExchangeRateApiClientConfig(
            base_url=base_url,
            timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 10)),
            max_retries=int(config.get("PROVIDER_MAX_RETRIES", 1)),
            backoff_seconds=float(config.get("PROVIDER_BACKOFF_SECONDS", 0.5)),
        )
        return cls(ExchangeRateApiClient(client_config))

    def fetch(self, pair: CurrencyPair) -> RateQuote:
        try:
            payload = self._client.latest(pair.base)
        except ExchangeRateApiError as exc:
            raise ProviderError(str(exc)) from exc

        return self._select_rate(payload["rates"], pair, self.name)
