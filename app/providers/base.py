"""Abstract interface for FX rate providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .schemas import CurrencyPair, RateQuote


class ProviderError(Exception):
    """Raised when an upstream provider cannot fulfill a request."""


class BaseRateProvider(ABC):
    """Defines the interface all FX rate providers must implement.

    Implementations issue at most one upstream call per ``fetch`` and report
    every failure (network, status, payload, unsupported currency, timeout) as
    :class:`ProviderError`.
    """

    name: str

    @abstractmethod
    def fetch(self, pair: CurrencyPair) -> RateQuote:
        """Retrieve the current rate converting ``pair.base`` into ``pair.quote``."""

    @staticmethod
    def _select_rate(rates: Mapping[str, Any], pair: CurrencyPair, provider: str) -> RateQuote:
        normalized = {str(code).strip().upper(): value for code, value in rates.items()}
        value = normalized.get(pair.quote)
        if value is None:
            raise ProviderError(f"{provider} does not support currency {pair.quote}")
        try:
            return RateQuote(rate=value, provider=provider)
        except ValueError as exc:
            raise ProviderError(f"{provider} returned an invalid rate for {pair}: {exc}") from exc
