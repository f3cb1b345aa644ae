"""Service layer modules."""

from .aggregator import AggregationError, FallbackAggregator, ProviderOutcome
from .conversion import (
    SAME_CURRENCY,
    ConversionEngine,
    ConversionError,
    ConversionResult,
    create_engine,
    get_engine,
    init_engine,
)
from .history_store import ExchangeRateHistory, HistoryNotFoundError, HistoryStore
from .rate_cache import RateCache
from .scheduler import init_scheduler, run_history_prune, shutdown_scheduler
