"""Cache orchestration: memory, then disk, then network.

`Cache.load_data` never blocks the caller. Resolution runs on a worker
thread, hands the bytes to the completion as soon as a tier produces them,
and afterwards promotes the value into the faster tiers.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Optional, Union

from urlcache.domain.interfaces.cache import DataCompletionHandler, UrlCache
from urlcache.domain.interfaces.network import NetworkFetcher
from urlcache.domain.models.common import (
    CacheKey,
    CacheName,
    EmptyBody,
    FetchOutcome,
    FetchRequest,
    HttpError,
    RequestLike,
    Success,
    Tier,
    TransportError,
    as_request,
)
from urlcache.infrastructure.cache.disk_tier import DiskTier
from urlcache.infrastructure.cache.key_policy import KeyPolicy, url_key
from urlcache.infrastructure.cache.memory_tier import MemoryTier
from urlcache.infrastructure.filesystem.paths import namespace_dir
from urlcache.infrastructure.monitoring.logger_setup import notice
from urlcache.infrastructure.network.http_fetcher import HttpFetcher
from urlcache.infrastructure.services.worker_pool import get_shared_executor


class LoadHandle:
    """Tracks one `load_data` call.

    `cancel()` is cooperative: the worker checks it before each tier and
    before the network fetch, and a load that observes it stops without
    calling its completion.
    `key` is filled in by the worker once it has derived the cache key.
    """

    def __init__(self, request: FetchRequest):
        self.request = request
        self.key: Optional[CacheKey] = None
        self.source: Optional[Tier] = None
        self._cancel_event = threading.Event()
        self._future: Optional["Future[Optional[bytes]]"] = None

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def wait(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Blocks until the load, including promotions and writes, has finished.

        Returns:
            The loaded bytes, or None on a miss or cancellation.
        """
        if self._future is None:
            raise RuntimeError("Load has not been dispatched")
        return self._future.result(timeout=timeout)


class Cache(UrlCache):
    """A cache for data gathered using HTTP requests.

    Lookups go to memory, then disk, then the network. A disk hit is
    promoted into memory; a network hit is written to disk and memory.
    Every failure collapses into a None completion.
    """

    def __init__(
        self,
        name: str,
        *,
        cache_root: Optional[Union[str, Path]] = None,
        memory_max_items: Optional[int] = None,
        key_policy: KeyPolicy = url_key,
        fetcher: Optional[NetworkFetcher] = None,
        executor: Optional[Executor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initializes the cache and its disk namespace.

        Args:
            name: Namespace selecting the disk directory.
            cache_root: Overrides the platform cache directory.
            memory_max_items: Optional LRU capacity of the memory tier.
            key_policy: Maps a request to its cache key (URL only by default).
            fetcher: Network tier; defaults to an HttpFetcher.
            executor: Worker pool for loads; defaults to the shared pool.
            logger: Logger for tier hits, misses and failures.
        """
        self.name = CacheName(name)
        self.path = namespace_dir(name, cache_root)
        self.key_policy = key_policy
        self.memory = MemoryTier(max_items=memory_max_items)
        self.disk = DiskTier(self.path)
        self.fetcher = fetcher or HttpFetcher()
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._executor = executor
        self.logger.info(f"Cache {self.name} ready at {self.path}")

    # --- UrlCache Interface Implementation ---

    def load_data(self, url_or_request: RequestLike, completion: DataCompletionHandler) -> LoadHandle:
        """Loads the data for a URL or request in the background.

        Args:
            url_or_request: A URL string or a FetchRequest.
            completion: Called at most once, from a worker thread, with the
                bytes or with None if every tier failed. Not called for a
                load cancelled through the returned handle.

        Returns:
            A LoadHandle for cancelling or waiting on the load.
        """
        request = as_request(url_or_request)
        handle = LoadHandle(request)
        executor = self._executor or get_shared_executor()
        handle._future = executor.submit(self._resolve, handle, completion)
        return handle

    def load_data_sync(self, url_or_request: RequestLike, timeout: Optional[float] = None) -> Optional[bytes]:
        """Loads through the cache and blocks until the load has finished."""
        handle = self.load_data(url_or_request, lambda data: None)
        return handle.wait(timeout=timeout)

    # --- Resolution ---

    def _resolve(self, handle: LoadHandle, completion: DataCompletionHandler) -> Optional[bytes]:
        url = handle.request.url

        try:
            key = handle.key = self.key_policy(handle.request)
        except Exception as e:
            self.logger.error(f"Key policy failed for {url}: {e}", exc_info=True)
            self._complete(completion, None, url)
            return None

        if self._abandoned(handle):
            return None
        data = self.memory.get(key)
        if data is not None:
            self.logger.debug(f"Memory HIT for {url}")
            handle.source = Tier.MEMORY
            self._complete(completion, data, url)
            return data
        self.logger.debug(f"Memory MISS for {url}")

        if self._abandoned(handle):
            return None
        data = self.disk.get(key)
        if data is not None:
            self.logger.debug(f"Disk HIT for {url}")
            handle.source = Tier.DISK
            self._complete(completion, data, url)
            self.memory.set(key, data)
            return data
        self.logger.debug(f"Disk MISS for {url}")

        if self._abandoned(handle):
            return None
        outcome = self._fetch(handle.request)
        if not isinstance(outcome, Success):
            self._log_network_miss(url, outcome)
            self._complete(completion, None, url)
            return None

        self.logger.debug(f"Network HIT for {url}")
        handle.source = Tier.NETWORK
        data = outcome.data
        self._complete(completion, data, url)
        self.disk.set(key, data)
        self.memory.set(key, data)
        return data

    def _fetch(self, request: FetchRequest) -> FetchOutcome:
        try:
            return self.fetcher.fetch_outcome(request)
        except Exception as e:
            self.logger.error(f"Fetcher failed for {request.url}: {e}", exc_info=True)
            return TransportError(detail=str(e))

    def _abandoned(self, handle: LoadHandle) -> bool:
        if handle.cancelled:
            self.logger.debug(f"Load cancelled for {handle.request.url}")
            return True
        return False

    def _complete(self, completion: DataCompletionHandler, data: Optional[bytes], url: str) -> None:
        try:
            completion(data)
        except Exception:
            self.logger.exception(f"Completion handler for {url} raised")

    def _log_network_miss(self, url: str, outcome: FetchOutcome) -> None:
        if isinstance(outcome, TransportError):
            notice(self.logger, f"Network MISS for {url}: {outcome.detail}")
        elif isinstance(outcome, HttpError):
            notice(self.logger, f"Network MISS for {url}: {outcome.status_code}")
        elif isinstance(outcome, EmptyBody):
            notice(self.logger, f"Network MISS (0 bytes received) for {url}")
