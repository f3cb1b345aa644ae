"""Mock provider implementation for testing and local development."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from app.services.fx_conversion import quantize_rate

from .base import BaseRateProvider, ProviderError
from .schemas import CurrencyPair, RateQuote

DEFAULT_USD_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.90"),
    "GBP": Decimal("0.78"),
    "JPY": Decimal("150.12"),
    "CHF": Decimal("0.88"),
    "CAD": Decimal("1.36"),
}


class MockRateProvider(BaseRateProvider):
    """Deterministic provider answering from an in-memory USD-based table."""

    name = "mock"

    def __init__(self, usd_rates: Mapping[str, Decimal] | None = None) -> None:
        table = usd_rates if usd_rates is not None else DEFAULT_USD_RATES
        self._usd_rates = {code.upper(): Decimal(str(value)) for code, value in table.items()}

    def fetch(self, pair: CurrencyPair) -> RateQuote:
        try:
            base_rate = self._usd_rates[pair.base]
            quote_rate = self._usd_rates[pair.quote]
        except KeyError as exc:
            raise ProviderError(f"{self.name} does not support currency {exc.args[0]}") from exc

        rate = quantize_rate(quote_rate / base_rate)
        return RateQuote(rate=rate, provider=self.name)
