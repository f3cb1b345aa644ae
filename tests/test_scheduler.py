from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from apscheduler.schedulers.background import BackgroundScheduler
from freezegun import freeze_time

from app.providers.schemas import CurrencyPair
from app.services.scheduler import (
    PRUNE_STATE_KEY,
    SCHEDULER_EXT_KEY,
    init_scheduler,
    run_history_prune,
    shutdown_scheduler,
)


def test_scheduler_disabled_in_testing(app):
    assert init_scheduler(app) is None
    assert SCHEDULER_EXT_KEY not in app.extensions
    assert app.extensions[PRUNE_STATE_KEY] == {}


def test_run_history_prune_removes_expired_points(app, engine_stub):
    engine, _ = engine_stub(["0.9"])
    with freeze_time("2025-10-13T09:00:00Z") as frozen:
        engine.history.record(CurrencyPair("USD", "EUR"), datetime.now(UTC), Decimal("0.9"))
        frozen.tick(timedelta(hours=20))
        engine.history.record(CurrencyPair("USD", "GBP"), datetime.now(UTC), Decimal("0.8"))
        frozen.tick(timedelta(hours=10))

        removed = run_history_prune(app)

    assert removed == 1
    assert engine.available_pairs() == ["USD/GBP"]
    state = app.extensions[PRUNE_STATE_KEY]
    assert state["last_removed"] == 1
    assert isinstance(state["last_run"], datetime)


def test_run_history_prune_without_engine(app):
    app.extensions.pop("conversion_engine").shutdown()

    assert run_history_prune(app) == 0


def test_init_scheduler_registers_prune_job(app, monkeypatch):
    started = []
    monkeypatch.setattr(BackgroundScheduler, "start", lambda self: started.append(self))
    app.config["HISTORY_PRUNE_ENABLED"] = True
    app.config["HISTORY_PRUNE_CRON"] = "*/5 * * * *"

    scheduler = init_scheduler(app)

    assert scheduler is not None
    assert started == [scheduler]
    job = scheduler.get_job("prune_history")
    assert job is not None
    assert job.args == (app,)
    assert init_scheduler(app) is scheduler

    shutdown_scheduler(app)
