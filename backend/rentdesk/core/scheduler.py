"""
Scheduler Service for Tax Summary Recomputes

Uses APScheduler to run recompute jobs off the request thread. When
RECOMPUTE_ASYNC is disabled (the default) jobs run inline in the caller.
"""

import logging
from typing import Any, Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from rentdesk.core.config import settings

logger = logging.getLogger(__name__)

# A job id may be submitted again while its previous run is still executing.
# APScheduler's default of 1 would drop that second run.
MAX_INSTANCES_PER_JOB = 1000


class RecomputeScheduler:
    """Runs recompute jobs either inline or on a background scheduler."""

    def __init__(self, run_async: bool = False):
        self.run_async = run_async
        self.scheduler: Optional[BackgroundScheduler] = None
        if run_async:
            # One worker: recomputes run one at a time in submission order
            self.scheduler = BackgroundScheduler(
                executors={'default': ThreadPoolExecutor(max_workers=1)},
                job_defaults={
                    'max_instances': MAX_INSTANCES_PER_JOB,
                    'coalesce': True,
                },
            )
            self.scheduler.start()
            logger.info("Recompute scheduler started (background)")

    def submit(self, job_id: str, func: Callable[..., Any], *args) -> None:
        """
        Queue a job. A pending job with the same id is replaced, so a burst of
        changes to one period collapses into a single recompute. A job
        submitted while the same id is running queues behind it.
        """
        if self.scheduler is None:
            func(*args)
            return

        self.scheduler.add_job(
            func,
            args=list(args),
            id=job_id,
            name=job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug(f"Queued background job {job_id}")

    def shutdown(self, wait: bool = True):
        """Shutdown the scheduler."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=wait)
            self.scheduler = None
            logger.info("Recompute scheduler stopped")


# Global scheduler instance
_scheduler: Optional[RecomputeScheduler] = None


def get_scheduler() -> RecomputeScheduler:
    """Get the global scheduler, creating an inline one if none was started."""
    global _scheduler
    if _scheduler is None:
        _scheduler = RecomputeScheduler(run_async=False)
    return _scheduler


def start_scheduler(run_async: Optional[bool] = None) -> RecomputeScheduler:
    """Start the recompute scheduler."""
    global _scheduler
    if run_async is None:
        run_async = settings.RECOMPUTE_ASYNC
    if _scheduler is not None and _scheduler.run_async == run_async:
        logger.info("Recompute scheduler already running")
        return _scheduler

    if _scheduler is not None:
        _scheduler.shutdown()
    _scheduler = RecomputeScheduler(run_async=run_async)
    logger.info(f"Recompute scheduler configured (async={run_async})")
    return _scheduler


def stop_scheduler():
    """Stop the recompute scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown()
        _scheduler = None
