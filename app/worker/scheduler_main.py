"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.core.errors import TaskFlowError
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.storage import get_blob_store
from app.services.storage_sweeper import sweep_orphaned_blobs


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running jobs once on startup")
            run_storage_sweep_job()
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
        run_storage_sweep_job,
        trigger="interval",
        minutes=settings.storage_sweep_interval_minutes,
        id="storage_sweep_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Registered storage sweep every %d minute(s) (%s)",
        settings.storage_sweep_interval_minutes,
        settings.scheduler_timezone,
    )


def run_storage_sweep_job() -> None:
    session = SessionLocal()
    try:
        result = sweep_orphaned_blobs(session, get_blob_store())
        logger.info("Storage sweep complete: scanned=%s, removed=%s", result.scanned, result.removed)
    except TaskFlowError as exc:
        logger.error("Storage sweep failed: %s (%s)", exc.message, exc.code)
    except Exception:  # pragma: no cover - keep the scheduler thread alive
        logger.exception("Storage sweep failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
