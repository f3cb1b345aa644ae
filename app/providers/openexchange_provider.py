"""Open Exchange Rates provider implementation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.providers.base import BaseRateProvider, ProviderError
from app.providers.schemas import CurrencyPair, RateQuote

from .openexchange_client import (
    OpenExchangeRatesClient,
    OpenExchangeRatesClientConfig,
    OpenExchangeRatesError,
)


class OpenExchangeRatesProvider(BaseRateProvider):
    """Provider that fetches the latest rates from openexchangerates.org."""

    name = "OpenExchangeRates"

    def __init__(self, client: OpenExchangeRatesClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> OpenExchangeRatesProvider:
        client_config = OpenExchangeRatesClientConfig(
            base_url=str(config.get("OPENEXCHANGERATES_BASE_URL") or "https://openexchangerates.org/api"),
            app_id=str(config.get("OPENEXCHANGERATES_APP_ID") or ""),
            timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 10)),
            max_retries=int(config.get("PROVIDER_MAX_RETRIES", 1)),
            backoff_seconds=float(config.get("PROVIDER_BACKOFF_SECONDS", 0.5)),
        )
        return cls(OpenExchangeRatesClient(client_config))

    def fetch(self, pair: CurrencyPair) -> RateQuote:
        try:
            payload = self._client.latest(pair.base)
        except OpenExchangeRatesError as exc:
            raise ProviderError(str(exc)) from exc

        return self._select_rate(payload["rates"], pair, self.name)
