# src/hubscraper/utils/concurrency.py
import concurrent.futures
import logging
from typing import Any, Callable, Optional

from ..exceptions import SourceTimeoutError

logger = logging.getLogger(__name__)


def run_with_timeout(func: Callable[[], Any], timeout: Optional[float], label: str = "task") -> Any:
    """
    Runs ``func`` in a single worker thread and waits at most ``timeout`` seconds for it.

    The caller stays sequential: exactly one worker exists at a time and the caller blocks
    on it. On timeout a SourceTimeoutError is raised and the worker is abandoned (Python
    threads cannot be killed; the request timeout bounds how long it lingers).
    Exceptions raised by ``func`` propagate unchanged.
    """
    if not timeout:
        return func()

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"source-{label}")
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as e:
        logger.error(f"'{label}' exceeded its time budget of {timeout}s.")
        future.cancel()
        raise SourceTimeoutError(f"'{label}' timed out after {timeout}s", reason="timeout") from e
    finally:
        # Never wait for an abandoned worker
        executor.shutdown(wait=False, cancel_futures=True)
