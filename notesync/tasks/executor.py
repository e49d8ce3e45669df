"""Task executor for background processing."""

import concurrent.futures
import logging

logger = logging.getLogger(__name__)


class BackgroundExecutor:
    """Thread pool owned by the application for fire-and-forget work."""

    def __init__(self, max_workers=2):
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="task",
        )

    def submit(self, func, *args, **kwargs):
        future = self._executor.submit(func, *args, **kwargs)
        future.add_done_callback(_log_failure)
        return future

    def shutdown(self, wait=True):
        """Shutdown the executor gracefully."""
        logger.info("Shutting down task executor")
        self._executor.shutdown(wait=wait)


def _log_failure(future):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Background task failed: {error}", exc_info=error)
