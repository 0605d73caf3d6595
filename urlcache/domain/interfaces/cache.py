"""Interfaces for caching mechanisms.

Defines the contract for a single cache tier (memory, disk) and for the
URL cache that composes the tiers with a network fallback.
"""

import abc
from typing import Callable, Optional

# Import relevant domain models
from urlcache.domain.models.common import CacheKey, RequestLike

DataCompletionHandler = Callable[[Optional[bytes]], None]


class CacheTier(abc.ABC):
    """Abstract Base Class for one cache level."""

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Optional[bytes]:
        """Retrieves the bytes stored under `key`.

        Args:
            key: The cache key to look up.

        Returns:
            The cached bytes, or None if the tier holds nothing for the key.
            Tiers never raise on lookup.
        """
        pass

    @abc.abstractmethod
    def set(self, key: CacheKey, data: bytes) -> None:
        """Stores `data` under `key`.

        Writing the same bytes for a key twice is equivalent to writing once.

        Args:
            key: The cache key to store the bytes under.
            data: The raw bytes.
        """
        pass


class UrlCache(abc.ABC):
    """Abstract Base Class for caches of data gathered by HTTP requests."""

    @abc.abstractmethod
    def load_data(self, url_or_request: RequestLike, completion: DataCompletionHandler):
        """Loads the data for a URL or request without blocking the caller.

        Args:
            url_or_request: A URL string or a FetchRequest.
            completion: Called once, from a background thread, with the bytes
                or with None if every cache level failed.
        """
        pass
