import logging
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.base import JobLookupError

from cbt.core.config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def _clock_job_id(submission_id: str) -> str:
    return f"exam_clock:{submission_id}"


def schedule_clock(submission_id: str, tick: Callable[[], Awaitable[None]]) -> bool:
    """Drive an attempt clock once per second. Returns False when scheduling is disabled."""
    if settings.TESTING or not scheduler.running:
        logger.debug(f"Clock scheduling skipped for submission {submission_id}")
        return False

    scheduler.add_job(
        tick,
        'interval',
        seconds=1,
        id=_clock_job_id(submission_id),
        name=f'Exam clock {submission_id}',
        replace_existing=True,
        max_instances=1,
        coalesce=False,
    )
    logger.info(f"Clock scheduled for submission {submission_id}")
    return True


def cancel_clock(submission_id: str):
    if not scheduler.running:
        return
    try:
        scheduler.remove_job(_clock_job_id(submission_id))
        logger.info(f"Clock cancelled for submission {submission_id}")
    except JobLookupError:
        pass


def start_scheduler():
    if settings.TESTING:
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started for exam clocks")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
