"""Dedicated APScheduler worker that generates tasks from recurring definitions."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from opsdesk.core.config import settings
from opsdesk.core.logging import configure_logging
from opsdesk.db.session import SessionLocal
from opsdesk.services.job_runner import run_recurring_generation


logger = logging.getLogger(__name__)

JOB_ID = "recurring_tasks_job"


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running recurring task generation once on startup")
            run_recurring_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_recurring_job,
        trigger="interval",
        minutes=settings.generation_interval_minutes,
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(
        "Registered recurring task job (every %s min, %s)",
        settings.generation_interval_minutes,
        settings.scheduler_timezone,
    )


def run_recurring_job() -> None:
    session = SessionLocal()
    try:
        result = run_recurring_generation(session)
        logger.info(
            "Recurring task job complete: processed=%s, generated=%s, scheduled=%s, skipped=%s",
            result.processed,
            result.generated,
            result.scheduled,
            result.skipped,
        )
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Recurring task job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
