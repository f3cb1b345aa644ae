"""Scheduler setup for periodic history pruning."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import Flask

logger = logging.getLogger(__name__)

SCHEDULER_EXT_KEY = "apscheduler"
PRUNE_STATE_KEY = "history_prune_state"


def ensure_prune_state(app: Flask) -> dict[str, Any]:
    """Ensure the prune state dict exists on app extensions."""

    state = app.extensions.setdefault(PRUNE_STATE_KEY, {})
    if not isinstance(state, dict):
        state = {}
        app.extensions[PRUNE_STATE_KEY] = state
    return state


def run_history_prune(app: Flask) -> int:
    """Sweep expired points from every pair; returns the number removed."""

    from app.services.conversion import ENGINE_EXT_KEY  # Local import to avoid circular

    engine = app.extensions.get(ENGINE_EXT_KEY)
    if engine is None:
        logger.warning("No conversion engine configured; skipping history prune.")
        return 0

    removed = engine.history.prune_all()
    state = ensure_prune_state(app)
    state["last_run"] = datetime.now(UTC)
    state["last_removed"] = removed
    logger.info("Scheduled history prune removed %s entries", removed)
    return removed


def init_scheduler(app: Flask) -> BackgroundScheduler | None:
    """Start APScheduler with the history prune job if enabled."""

    ensure_prune_state(app)

    if not app.config.get("HISTORY_PRUNE_ENABLED", True):
        logger.info("History prune scheduler disabled via configuration.")
        return None

    if app.extensions.get(SCHEDULER_EXT_KEY):
        return app.extensions[SCHEDULER_EXT_KEY]

    scheduler = BackgroundScheduler(timezone=app.config.get("SCHEDULER_TIMEZONE", "UTC"))
    cron_expr = app.config.get("HISTORY_PRUNE_CRON", "*/15 * * * *")
    trigger = CronTrigger.from_crontab(cron_expr)
    scheduler.add_job(
        run_history_prune, trigger=trigger, args=[app], id="prune_history", replace_existing=True
    )
    scheduler.start()

    app.extensions[SCHEDULER_EXT_KEY] = scheduler
    logger.info("APScheduler started with cron '%s'", cron_expr)
    return scheduler


def shutdown_scheduler(app: Flask) -> None:
    scheduler = app.extensions.get(SCHEDULER_EXT_KEY)
    if scheduler and getattr(scheduler, "running", False):
        scheduler.shutdown(wait=False)
