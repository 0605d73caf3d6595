"""In-memory cache tier (L1).

A lock-guarded mapping from key to bytes that lives as long as the process.
"""

import logging
import threading
from collections import OrderedDict
from typing import Optional

from urlcache.domain.interfaces.cache import CacheTier
from urlcache.domain.models.common import CacheKey

logger = logging.getLogger(__name__)


class MemoryTier(CacheTier):
    """Thread-safe in-memory tier.

    Unbounded by default. When `max_items` is given, the least recently used
    entry is evicted once the limit is exceeded.
    """

    def __init__(self, max_items: Optional[int] = None):
        if max_items is not None and max_items < 1:
            raise ValueError(f"max_items must be positive, got {max_items}")
        self.max_items = max_items
        self._entries: "OrderedDict[CacheKey, bytes]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[bytes]:
        with self._lock:
            data = self._entries.get(key)
            if data is not None and self.max_items is not None:
                self._entries.move_to_end(key)
            return data

    def set(self, key: CacheKey, data: bytes) -> None:
        with self._lock:
            self._entries[key] = data
            if self.max_items is None:
                return
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_items:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from memory tier (max_items={self.max_items})")

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
