"""Registry and factory for FX rate providers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List

from config import parse_provider_names

from .base import BaseRateProvider, ProviderError

ProviderFactory = Callable[[Mapping[str, Any]], BaseRateProvider]

_PROVIDER_FACTORIES: Dict[str, ProviderFactory] = {}


def _default_factories() -> Iterable[tuple[str, ProviderFactory]]:
    from .exchangerate_provider import ExchangeRateApiProvider
    from .mock import MockRateProvider
    from .openexchange_provider import OpenExchangeRatesProvider

    return [
        ("exchangerate_api", ExchangeRateApiProvider.from_config),
        ("openexchangerates", OpenExchangeRatesProvider.from_config),
        ("mock", lambda _config: MockRateProvider()),
    ]


def register_provider(name: str, factory: ProviderFactory) -> None:
    """Register a provider factory under the given name."""

    if not name:
        raise ValueError("Provider name cannot be empty.")
    _PROVIDER_FACTORIES[name.lower()] = factory


def unregister_provider(name: str) -> None:
    """Remove a provider factory; primarily for testing."""

    _PROVIDER_FACTORIES.pop(name.lower(), None)


def list_providers() -> List[str]:
    """Return the list of registered provider identifiers."""

    return sorted(_PROVIDER_FACTORIES.keys())


def get_provider(name: str, config: Mapping[str, Any] | None = None) -> BaseRateProvider:
    """Instantiate a provider by registry identifier."""

    provider_name = (name or "").strip().lower()
    try:
        factory = _PROVIDER_FACTORIES[provider_name]
    except KeyError as exc:
        available = ", ".join(list_providers()) or "none registered"
        raise ProviderError(
            f"Unknown provider '{provider_name}'. Available providers: {available}"
        ) from exc
    return factory(config or {})


def build_providers(names: str | Iterable[str], config: Mapping[str, Any]) -> List[BaseRateProvider]:
    """Instantiate every provider named in ``names``, preserving order."""

    identifiers = parse_provider_names(names) if isinstance(names, str) else list(names)
    if not identifiers:
        raise ProviderError("At least one rate provider must be configured.")
    return [get_provider(identifier, config) for identifier in identifiers]


def init_providers(app) -> List[BaseRateProvider]:
    """Build the configured providers and attach them to the Flask app."""

    providers = build_providers(app.config.get("FX_RATE_PROVIDERS", ""), app.config)
    app.extensions["rate_providers"] = providers
    return providers


def reset_registry(default_factories: Iterable[tuple[str, ProviderFactory]] | None = None) -> None:
    """Reset provider registry; useful for tests."""

    _PROVIDER_FACTORIES.clear()

    factories = default_factories or _default_factories()
    for name, factory in factories:
        register_provider(name, factory)


reset_registry()
