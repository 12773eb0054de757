import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Coroutine, List

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Manages the scheduling and execution of periodic async tasks using asyncio.

    A job may return an object with a ``requeue_after`` timedelta; when it
    does, that delay replaces the default interval before the next run.
    """

    def __init__(self):
        self.tasks: List[asyncio.Task] = []
        logger.debug("Scheduler initialized.")

    async def _run_periodically(self, interval_seconds: float, job_func: Callable[[], Coroutine[Any, Any, Any]]):
        """Internal loop to run a job periodically."""
        name = getattr(job_func, "__name__", repr(job_func))
        try:
            while True:
                delay = interval_seconds
                try:
                    result = await job_func()
                    requeue_after = getattr(result, "requeue_after", None)
                    if requeue_after is not None:
                        delay = requeue_after.total_seconds()
                except Exception as e:
                    logger.error(f"Error in scheduled job '{name}': {e}", exc_info=True)

                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.info(f"Job '{name}' cancelled.")
            raise

    def add_job(self, job_func: Callable[[], Coroutine[Any, Any, Any]], interval: timedelta):
        """
        Adds a new async job to the schedule. The first run starts immediately.
        """
        interval_seconds = interval.total_seconds()
        if interval_seconds <= 0:
            raise ValueError(f"Invalid interval for job '{job_func.__name__}': {interval}")

        task = asyncio.create_task(self._run_periodically(interval_seconds, job_func))
        self.tasks.append(task)
        logger.info(f"Scheduled job '{job_func.__name__}' to run every {interval}.")

    async def stop(self):
        """Cancels all scheduled tasks."""
        logger.info("Stopping scheduler...")
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()
