# jobs/tasks.py
import logging
from concurrent.futures import Future, ThreadPoolExecutor

logger = logging.getLogger(__name__)


class TaskRunner:
    """
    Fire-and-forget work that must not hold up an HTTP response.
    Exceptions raised by a task are logged here; nobody else waits on the future.
    """

    def __init__(self, max_workers: int = 4, name: str = "vip-task"):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)

    def submit(self, fn, *args, description: str = "", **kwargs) -> Future:
        label = description or getattr(fn, "__name__", "task")
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(lambda f: _log_failure(f, label))
        return future

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)


def _log_failure(future: Future, label: str):
    if future.cancelled():
        logger.warning(f"background task cancelled: {label}")
        return
    exc = future.exception()
    if exc is not None:
        logger.error(f"background task failed: {label}", exc_info=(type(exc), exc, exc.__traceback__))
