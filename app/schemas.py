"""Schemas for API requests and responses."""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, fields, validate

CURRENCY_CODE_PATTERN = r"^[A-Z]{3}$"
CURRENCY_CODE_MESSAGE = "Currency code must be 3 uppercase letters"


def _currency_field(**kwargs) -> fields.String:
    return fields.String(
        required=True,
        validate=validate.Regexp(CURRENCY_CODE_PATTERN, error=CURRENCY_CODE_MESSAGE),
        **kwargs,
    )


class HealthStatusSchema(Schema):
    status = fields.String(required=True)
    app = fields.String()
    providers = fields.List(fields.String())


class ConversionQuerySchema(Schema):
    amount = fields.Decimal(
        required=True,
        validate=validate.Range(min=Decimal("0.01"), error="Amount must be greater than 0"),
    )
    from_currency = _currency_field(data_key="from")
    to_currency = _currency_field(data_key="to")


class ConversionResponseSchema(Schema):
    amount = fields.Decimal(as_string=True)
    from_currency = fields.String(data_key="fromCurrency")
    to_currency = fields.String(data_key="toCurrency")
    rate = fields.Decimal(as_string=True, data_key="exchangeRate")
    converted_amount = fields.Decimal(as_string=True, data_key="convertedAmount")
    provider = fields.String()
    timestamp = fields.DateTime()


class HistoryResponseSchema(Schema):
    base = fields.String(required=True)
    timestamp = fields.DateTime(required=True)
    rates = fields.Dict(
        keys=fields.String(),
        values=fields.Dict(keys=fields.String(), values=fields.Decimal(as_string=True)),
    )


class CurrencyPairQuerySchema(Schema):
    from_currency = _currency_field(data_key="from")
    to_currency = _currency_field(data_key="to")


class LatestRateSchema(Schema):
    pair = fields.String(required=True)
    rate = fields.Decimal(as_string=True, required=True)


class StringListSchema(Schema):
    items = fields.List(fields.String(), required=True)
    count = fields.Integer(required=True)


class CurrenciesSchema(Schema):
    currencies = fields.List(fields.String(), required=True)
    count = fields.Integer(required=True)


class MessageSchema(Schema):
    message = fields.String(required=True)
