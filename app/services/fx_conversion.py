"""Shared Decimal utilities for rate averaging and amount conversion."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, getcontext, localcontext

ROUNDING_PRECISION = 28
RATE_PLACES = Decimal("0.000001")
AMOUNT_PLACES = Decimal("0.01")


def get_decimal_context():
    """Return the shared Decimal context used across FX conversions."""

    context = getcontext().copy()
    context.prec = ROUNDING_PRECISION
    context.rounding = ROUND_HALF_UP
    return context


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert input into a Decimal using the shared context."""

    context = get_decimal_context()
    with localcontext(context):
        return Decimal(str(value))


def quantize_rate(value: Decimal | int | float | str) -> Decimal:
    """Round a rate to six decimal places, half-up."""

    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def quantize_amount(value: Decimal | int | float | str) -> Decimal:
    """Round a monetary amount to two decimal places, half-up."""

    return to_decimal(value).quantize(AMOUNT_PLACES, rounding=ROUND_HALF_UP)


def mean_rate(rates: Iterable[Decimal | int | float | str]) -> Decimal:
    """Arithmetic mean of the supplied rates, rounded with :func:`quantize_rate`."""

    values = [to_decimal(rate) for rate in rates]
    if not values:
        raise ValueError("Cannot average an empty set of rates.")

    context = get_decimal_context()
    with localcontext(context):
        total = sum(values, Decimal("0"))
        return quantize_rate(total / Decimal(len(values)))


def convert_amount(
    amount: Decimal | int | float | str,
    rate: Decimal | int | float | str,
) -> Decimal:
    """Multiply ``amount`` by ``rate`` and round the result to cents."""

    context = get_decimal_context()
    with localcontext(context):
        return quantize_amount(to_decimal(amount) * to_decimal(rate))
