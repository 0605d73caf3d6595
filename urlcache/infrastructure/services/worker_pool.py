"""Process-wide background worker pool.

Every cache load and background fetch is dispatched here unless a caller
injects its own executor.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

logger = logging.getLogger(__name__)

THREAD_NAME_PREFIX = "urlcache"

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_shared_executor(max_workers: Optional[int] = None) -> ThreadPoolExecutor:
    """Returns the shared executor, creating it on first use.

    Args:
        max_workers: Pool size used when the pool is created. Ignored once the
            pool exists. None selects the ThreadPoolExecutor default.
    """
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=THREAD_NAME_PREFIX)
            logger.debug(f"Created shared worker pool (max_workers={max_workers or 'default'})")
        return _executor


def shutdown_shared_executor(wait: bool = True) -> None:
    """Shuts the shared executor down; the next use creates a fresh one."""
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=wait)
            _executor = None
