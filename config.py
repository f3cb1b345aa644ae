"""Application configuration classes."""

from __future__ import annotations

import os

SUPPORTED_RATE_PROVIDERS = {"exchangerate_api", "openexchangerates", "mock"}
PROVIDER_ALIASES = {
    "exchangerate-api": "exchangerate_api",
    "exchangerate": "exchangerate_api",
    "openexchange": "openexchangerates",
    "oxr": "openexchangerates",
}


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "currency-converter"
    SECRET_KEY = _get_env("SECRET_KEY", "change-me")

    FX_RATE_PROVIDERS = _get_env("FX_RATE_PROVIDERS", "exchangerate_api,openexchangerates")
    REQUEST_TIMEOUT_SECONDS = float(_get_env("REQUEST_TIMEOUT_SECONDS", "10"))
    PROVIDER_MAX_RETRIES = int(_get_env("PROVIDER_MAX_RETRIES", "1"))
    PROVIDER_BACKOFF_SECONDS = float(_get_env("PROVIDER_BACKOFF_SECONDS", "0.5"))
    EXCHANGERATE_API_BASE_URL = _get_env(
        "EXCHANGERATE_API_BASE_URL", "https://api.exchangerate-api.com/v4"
    )
    OPENEXCHANGERATES_BASE_URL = _get_env(
        "OPENEXCHANGERATES_BASE_URL", "https://openexchangerates.org/api"
    )
    OPENEXCHANGERATES_APP_ID = _get_env("OPENEXCHANGERATES_APP_ID", "")

    # 0 keeps aggregated rates for the lifetime of the process.
    RATE_CACHE_TTL_SECONDS = int(_get_env("RATE_CACHE_TTL_SECONDS", "0"))
    HISTORY_RETENTION_HOURS = int(_get_env("HISTORY_RETENTION_HOURS", "24"))
    CONVERSION_MAX_WORKERS = int(_get_env("CONVERSION_MAX_WORKERS", "4"))

    HISTORY_PRUNE_ENABLED = _get_env("HISTORY_PRUNE_ENABLED", "true").lower() == "true"
    HISTORY_PRUNE_CRON = _get_env("HISTORY_PRUNE_CRON", "*/15 * * * *")
    SCHEDULER_TIMEZONE = _get_env("SCHEDULER_TIMEZONE", "UTC")

    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_env("LOG_JSON_ENABLED", "false").lower() == "true"
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration used by the test suite."""

    DEBUG = False
    TESTING = True
    FX_RATE_PROVIDERS = "mock"
    HISTORY_PRUNE_ENABLED = False


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If FX_RATE_PROVIDERS names an unknown provider.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_providers(config_cls)
    return config_cls


def parse_provider_names(value: str | None) -> list[str]:
    """Split a comma separated provider list into normalized identifiers."""

    names: list[str] = []
    for raw in (value or "").split(","):
        normalized = _normalize_provider(raw.strip())
        if normalized and normalized not in names:
            names.append(normalized)
    return names


def _validate_providers(config_cls: type[BaseConfig]) -> None:
    names = parse_provider_names(config_cls.FX_RATE_PROVIDERS)
    if not names:
        raise ValueError("FX_RATE_PROVIDERS must name at least one provider.")

    unknown = [name for name in names if name not in SUPPORTED_RATE_PROVIDERS]
    if unknown:
        raise ValueError(
            f"Unsupported FX_RATE_PROVIDERS {unknown}. "
            f"Allowed values: {sorted(SUPPORTED_RATE_PROVIDERS)}"
        )
    config_cls.FX_RATE_PROVIDERS = ",".join(names)


def _normalize_provider(value: str | None) -> str:
    if not value:
        return ""
    normalized = value.lower()
    return PROVIDER_ALIASES.get(normalized, normalized)
