#!/usr/bin/env python3
# content_integrity/tasks/schedule.py
"""
Background scheduler for periodic detection runs.

The engine itself has no scheduler; this application-level job is the
"caller" that invokes run_detection_now() on a timer. It uses APScheduler with
a BackgroundScheduler in-process, which suits single-process deployments.

Jobs:
  - `detection_job`: every DETECTION_CRON_HOURS hours on the hour, evaluates
    all eligible documents. Disabled when DETECTION_CRON_HOURS is 0.

Usage:
  from content_integrity.tasks.schedule import start_scheduler
  start_scheduler(app.state)      # inside the FastAPI lifespan

Notes:
  - Idempotent: calling start_scheduler() again returns the running instance.
  - DB sessions are opened per document by the loader.
  - Timezone is fixed to UTC for predictable triggers.
"""

from __future__ import annotations

import logging
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler

from content_integrity.db import crud

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None


def _detection_job(state: Any) -> None:
    """Job wrapper: collect eligible ids, run detection, log the tally."""
    config = state.detection_config
    with state.session_factory() as db:
        ids = crud.eligible_document_ids(db, config)
    result = state.evaluator.run_detection_now(
        ids,
        crud.document_loader(state.session_factory),
        config,
        max_workers=state.settings.batch_max_workers,
        cancel=state.shutdown_event,
    )
    logger.info(
        "Scheduled detection run complete",
        extra={"extra": {"count": result.count, "failed": result.failed}},
    )


def start_scheduler(state: Any) -> BackgroundScheduler | None:
    """
    Idempotently start the background scheduler.

    Returns:
        The scheduler instance, or None when the job is disabled.
    """
    global _scheduler
    hours = int(state.settings.detection_cron_hours or 0)
    if hours <= 0:
        return None
    if _scheduler:
        return _scheduler

    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_job(
        _detection_job,
        "cron",
        args=[state],
        minute=0,
        hour=f"*/{hours}",
        id="detection_job",
        replace_existing=True,
    )
    _scheduler.start()
    return _scheduler


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
