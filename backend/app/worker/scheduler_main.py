"""Dedicated APScheduler worker process running the nightly reset."""
from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.clock import now_ms
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.job_runner import run_daily_reset_for_all_users, run_daily_summary_job
from app.services.streak_policy import policy_from_settings


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running nightly job once on startup")
            run_nightly_job()
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


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_nightly_job,
        trigger="cron",
        hour=settings.daily_reset_hour,
        minute=settings.daily_reset_minute,
        id="nightly_reset_job",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(
        "Registered scheduler jobs (time=%02d:%02d %s)",
        settings.daily_reset_hour,
        settings.daily_reset_minute,
        settings.scheduler_timezone,
    )


def scheduled_slot_ms(now: int) -> int:
    """Epoch millis of the latest configured nightly slot at or before ``now``."""
    tz = ZoneInfo(settings.scheduler_timezone)
    local = datetime.fromtimestamp(now / 1000, tz=tz)
    slot = local.replace(
        hour=settings.daily_reset_hour,
        minute=settings.daily_reset_minute,
        second=0,
        microsecond=0,
    )
    if slot > local:
        slot -= timedelta(days=1)
    return int(slot.timestamp()) * 1000


def run_nightly_job() -> None:
    """Summarise yesterday first, then sweep, so the summary sees the day as it was left."""
    session = SessionLocal()
    # Stamp the slot, not the firing instant; consecutive nights stay exactly a day apart.
    now = scheduled_slot_ms(now_ms())
    try:
        summarised = run_daily_summary_job(session, now)
        result = run_daily_reset_for_all_users(session, now, policy=policy_from_settings(settings))
        logger.info(
            "Nightly job complete: summaries=%s, users=%s, resets=%s, failed_tasks=%s, errors=%s",
            summarised,
            result.users_processed,
            result.resets_applied,
            result.tasks_failed,
            result.users_failed,
        )
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Nightly job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
