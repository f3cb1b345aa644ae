"""Route handlers for currency conversion."""

from __future__ import annotations

import logging

from flask import current_app
from flask.views import MethodView

from app.schemas import (
    ConversionQuerySchema,
    ConversionResponseSchema,
    CurrenciesSchema,
    HealthStatusSchema,
)
from app.services.conversion import get_engine

from . import blp

logger = logging.getLogger(__name__)

POPULAR_CURRENCIES = [
    "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "SEK", "NZD", "NGN",
    "PLN", "MXN", "SGD", "HKD", "NOK", "KRW", "TRY", "RUB", "INR", "BRL", "ZAR",
]


@blp.route("/convert")
class Convert(MethodView):
    @blp.arguments(ConversionQuerySchema, location="query")
    @blp.response(200, ConversionResponseSchema())
    def get(self, args):
        amount, from_currency, to_currency = args["amount"], args["from_currency"], args["to_currency"]
        logger.info("Currency conversion request: %s %s to %s", amount, from_currency, to_currency)

        return get_engine(current_app).convert(amount, from_currency, to_currency)


@blp.route("/convert-async")
class ConvertAsync(MethodView):
    @blp.arguments(ConversionQuerySchema, location="query")
    @blp.response(200, ConversionResponseSchema())
    def get(self, args):
        amount, from_currency, to_currency = args["amount"], args["from_currency"], args["to_currency"]
        logger.info("Async currency conversion request: %s %s to %s", amount, from_currency, to_currency)

        future = get_engine(current_app).convert_async(amount, from_currency, to_currency)
        return future.result()


@blp.route("/health")
class Health(MethodView):
    @blp.response(200, HealthStatusSchema())
    def get(self):
        engine = get_engine(current_app)
        return {
            "status": "ok",
            "app": current_app.config.get("APP_NAME", "currency-converter"),
            "providers": [provider.name for provider in engine.aggregator.providers],
        }


@blp.route("/currencies")
class Currencies(MethodView):
    @blp.response(200, CurrenciesSchema())
    def get(self):
        return {"currencies": POPULAR_CURRENCIES, "count": len(POPULAR_CURRENCIES)}
