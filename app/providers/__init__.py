"""Provider interfaces and data structures for FX rate sources."""

from .base import BaseRateProvider, ProviderError
from .exchangerate_client import (
    ExchangeRateApiClient,
    ExchangeRateApiClientConfig,
    ExchangeRateApiError,
)
from .exchangerate_provider import ExchangeRateApiProvider
from .mock import MockRateProvider
from .openexchange_client import (
    OpenExchangeRatesClient,
    OpenExchangeRatesClientConfig,
    OpenExchangeRatesError,
)
from .openexchange_provider import OpenExchangeRatesProvider
from .schemas import CurrencyPair, RateQuote

__all__ = [
    "BaseRateProvider",
    "ProviderError",
    "CurrencyPair",
    "RateQuote",
    "ExchangeRateApiClient",
    "ExchangeRateApiClientConfig",
    "ExchangeRateApiError",
    "ExchangeRateApiProvider",
    "MockRateProvider",
    "OpenExchangeRatesClient",
    "OpenExchangeRatesClientConfig",
    "OpenExchangeRatesError",
    "OpenExchangeRatesProvider",
]
