"""Route handlers for rate history lookups."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from app.schemas import (
    CurrencyPairQuerySchema,
    HistoryResponseSchema,
    LatestRateSchema,
    MessageSchema,
    StringListSchema,
)
from app.services.conversion import get_engine

from . import blp


@blp.route("")
class History(MethodView):
    @blp.response(200, MessageSchema())
    def delete(self):
        get_engine(current_app).clear_history()
        return {"message": "Conversion history cleared."}


@blp.route("/pairs")
class HistoryPairs(MethodView):
    @blp.response(200, StringListSchema())
    def get(self):
        pairs = get_engine(current_app).available_pairs()
        return {"items": pairs, "count": len(pairs)}


@blp.route("/bases")
class HistoryBases(MethodView):
    @blp.response(200, StringListSchema())
    def get(self):
        bases = get_engine(current_app).available_bases()
        return {"items": bases, "count": len(bases)}


@blp.route("/latest")
class LatestRate(MethodView):
    @blp.arguments(CurrencyPairQuerySchema, location="query")
    @blp.response(200, LatestRateSchema())
    def get(self, args):
        from_currency, to_currency = args["from_currency"], args["to_currency"]
        rate = get_engine(current_app).latest_rate(from_currency, to_currency)
        return {"pair": f"{from_currency}/{to_currency}", "rate": rate}


@blp.route("/<string:base>")
class BaseHistory(MethodView):
    @blp.response(200, HistoryResponseSchema())
    def get(self, base: str):
        history = get_engine(current_app).get_history(base)
        return {
            "base": history.base,
            "timestamp": history.timestamp,
            "rates": {observed_at.isoformat(): rates for observed_at, rates in history.rates.items()},
        }
