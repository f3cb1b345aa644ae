"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from app.services.aggregator import FallbackAggregator  # noqa: E402
from app.services.conversion import ENGINE_EXT_KEY, ConversionEngine  # noqa: E402
from app.services.history_store import HistoryStore  # noqa: E402
from app.services.rate_cache import RateCache  # noqa: E402
from tests.stubs import QueueItem, SequencedProvider  # noqa: E402


@pytest.fixture()
def app() -> Iterator:
    """Flask application wired to the deterministic mock provider."""

    flask_app = create_app("testing")
    yield flask_app

    engine = flask_app.extensions.get(ENGINE_EXT_KEY)
    if engine is not None:
        engine.shutdown()


@pytest.fixture()
def client(app):
    """Provide a Flask test client."""

    with app.test_client() as client:
        yield client


@pytest.fixture()
def engine_stub(app) -> Callable[..., tuple[ConversionEngine, list[SequencedProvider]]]:
    """Swap the application's engine for one backed by sequenced stub providers."""

    built: list[ConversionEngine] = []

    def _factory(
        *queues: Iterable[QueueItem],
        names: Iterable[str] | None = None,
        timeout: float = 2.0,
    ) -> tuple[ConversionEngine, list[SequencedProvider]]:
        provider_names = list(names) if names is not None else ["ProviderA", "ProviderB"]
        providers = [
            SequencedProvider(name, queue) for name, queue in zip(provider_names, queues)
        ]
        aggregator = FallbackAggregator(providers, RateCache(), timeout=timeout)
        engine = ConversionEngine(aggregator, HistoryStore())
        previous = app.extensions.get(ENGINE_EXT_KEY)
        if previous is not None:
            previous.shutdown()
        app.extensions[ENGINE_EXT_KEY] = engine
        built.append(engine)
        return engine, providers

    yield _factory

    for engine in built:
        engine.shutdown()
