"""Application factory for the currency converter service."""

from __future__ import annotations

import atexit

from flask import Flask
from flask_smorest import Api

from config import get_config

API_PREFIX = "/api/v1"


def create_app(config_name: str | None = None) -> Flask:
    """Application factory adhering to the Flask app factory pattern."""

    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    _configure_logging(app)
    _configure_api(app)
    api = _register_extensions(app)
    _register_blueprints(app, api)
    _register_error_handlers(app)
    return app


def _configure_logging(app: Flask) -> None:
    from .logging import init_request_logging, setup_logging

    if not app.config.get("TESTING"):
        setup_logging(app)
    init_request_logging(app)


def _configure_api(app: Flask) -> None:
    app.config.setdefault("API_TITLE", "Currency Converter API")
    app.config.setdefault("API_VERSION", "v1")
    app.config.setdefault("OPENAPI_VERSION", "3.0.3")
    app.config.setdefault("OPENAPI_URL_PREFIX", "/docs")
    app.config.setdefault("OPENAPI_SWAGGER_UI_PATH", "/")
    app.config.setdefault(
        "OPENAPI_SWAGGER_UI_URL",
        "https://cdn.jsdelivr.net/npm/swagger-ui-dist/",
    )


def _register_extensions(app: Flask) -> Api:
    """Build the providers, the conversion engine and the prune scheduler."""

    from .providers.registry import init_providers
    from .services import init_engine, init_scheduler, shutdown_scheduler

    init_providers(app)
    engine = init_engine(app)
    init_scheduler(app)

    def _shutdown() -> None:
        shutdown_scheduler(app)
        engine.shutdown()

    atexit.register(_shutdown)

    api = Api(app)
    app.extensions["smorest_api"] = api
    return api


def _register_blueprints(app: Flask, api: Api) -> None:
    """Register Flask blueprints."""

    from .conversions import blp as conversions_blp
    from .history import blp as history_blp

    api.register_blueprint(conversions_blp, url_prefix=API_PREFIX)
    api.register_blueprint(history_blp, url_prefix=f"{API_PREFIX}/history")


def _register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    from .errors import register_error_handlers

    register_error_handlers(app)
