"""Dataclasses describing normalized FX provider payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.utils.currency import normalize_currency
from app.utils.datetime import ensure_utc, utc_now


def _to_positive_decimal(value: Decimal | float | int | str) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Rate must be numeric: {value!r}") from exc
    if not rate.is_finite() or rate <= 0:
        raise ValueError(f"Rate must be a positive number: {value!r}")
    return rate


@dataclass(frozen=True)
class CurrencyPair:
    """Ordered (base, quote) currency pair used as the engine's cache and history key."""

    base: str
    quote: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "base", normalize_currency(self.base))
        object.__setattr__(self, "quote", normalize_currency(self.quote))

    @property
    def key(self) -> str:
        return f"{self.base}/{self.quote}"

    @property
    def is_identity(self) -> bool:
        return self.base == self.quote

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class RateQuote:
    """A single provider's answer for a currency pair."""

    rate: Decimal
    provider: str
    observed_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", _to_positive_decimal(self.rate))
        object.__setattr__(self, "observed_at", ensure_utc(self.observed_at))
        if not self.provider or not self.provider.strip():
            raise ValueError("provider must be provided for RateQuote")


@dataclass(frozen=True)
class AggregatedRate:
    """Reconciled rate for a pair plus the provenance label of its contributors."""

    pair: CurrencyPair
    rate: Decimal
    provider: str
    observed_at: datetime = field(default_factory=utc_now)
    contributors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", _to_positive_decimal(self.rate))
        object.__setattr__(self, "observed_at", ensure_utc(self.observed_at))
        if not self.contributors:
            object.__setattr__(self, "contributors", (self.provider,))
