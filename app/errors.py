"""Application-wide error utilities and handlers."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.services.conversion import ConversionError
from app.services.history_store import HistoryNotFoundError
from app.utils.datetime import utc_now

logger = logging.getLogger(__name__)


DEFAULT_STATUS_MESSAGES: dict[int, str] = {
    400: "Request could not be processed.",
    404: "Resource not found.",
    500: "An unexpected error occurred",
}


def error_body(status: int, error: str, message: str | None, **extra: Any) -> dict[str, Any]:
    """Build the JSON error envelope shared by every handler."""

    body: dict[str, Any] = {
        "timestamp": utc_now().isoformat(),
        "status": status,
        "error": error,
        "message": message or DEFAULT_STATUS_MESSAGES.get(status, "Request failed."),
    }
    body.update(extra)
    return body


def register_error_handlers(app: Flask) -> None:
    """Attach error handlers to the Flask application."""

    @app.errorhandler(ConversionError)
    def handle_conversion_error(error: ConversionError):
        extra = {"pair": error.pair.key} if error.pair is not None else {}
        body = error_body(400, "Currency Conversion Error", error.message, **extra)
        return jsonify(body), 400

    @app.errorhandler(HistoryNotFoundError)
    def handle_history_not_found(error: HistoryNotFoundError):
        body = error_body(404, "History Not Found", str(error))
        return jsonify(body), 404

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unhandled error while processing request")
        body = error_body(500, "Internal Server Error", None)
        return jsonify(body), 500
