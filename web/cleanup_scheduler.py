"""Background scheduler for the inactivity sweep that runs schedule.run_pending() in a loop."""

import threading
from datetime import datetime
from typing import Optional

import schedule

from qticket.services.cleanup import CleanupReport, CleanupService
from qticket.utils.logger import get_logger

logger = get_logger(__name__)

_stop = threading.Event()
_thread: Optional[threading.Thread] = None
_scheduler = schedule.Scheduler()
_service: Optional[CleanupService] = None


def _run_cleanup_job() -> Optional[CleanupReport]:
    """Run one sweep; errors are logged and the schedule keeps going"""
    if _service is None:
        return None
    try:
        return _service.run_cleanup()
    except Exception as e:
        logger.error("Scheduled cleanup failed", error=str(e))
        return None


def _scheduler_loop():
    """Run pending jobs until stopped"""
    logger.info("Cleanup scheduler loop started")

    while not _stop.is_set():
        try:
            _scheduler.run_pending()
        except Exception as e:
            logger.error("Error in cleanup scheduler loop", error=str(e))
        _stop.wait(60)

    logger.info("Cleanup scheduler loop stopped")


def start_cleanup_scheduler(
    service: CleanupService,
    interval_hours: int = 24,
    run_on_start: bool = True,
) -> None:
    """Start the cleanup scheduler background thread"""
    global _thread, _service

    if _thread is not None:
        logger.warning("Cleanup scheduler already running")
        return

    _service = service
    if run_on_start:
        _run_cleanup_job()

    _scheduler.clear()
    _scheduler.every(interval_hours).hours.do(_run_cleanup_job)

    _stop.clear()
    _thread = threading.Thread(
        target=_scheduler_loop,
        daemon=True,
        name="cleanup-scheduler",
    )
    _thread.start()
    logger.info("Cleanup scheduler background thread started", interval_hours=interval_hours)


def stop_cleanup_scheduler() -> None:
    """Stop the cleanup scheduler"""
    global _thread, _service

    _stop.set()
    if _thread is not None:
        _thread.join(timeout=5)
        _thread = None

    _scheduler.clear()
    _service = None
    logger.info("Cleanup scheduler stopped and cleared")


def is_running() -> bool:
    return _thread is not None and _thread.is_alive()


def next_run() -> Optional[datetime]:
    if not _scheduler.jobs:
        return None
    return _scheduler.next_run
