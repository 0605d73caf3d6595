"""urlcache: a memory, disk and network cache for remote byte resources."""

from urlcache.core.services.cache_service import Cache, LoadHandle
from urlcache.domain.models.common import FetchRequest, Tier
from urlcache.infrastructure.cache.key_policy import derive_key, request_key, url_key

__all__ = [
    "Cache",
    "FetchRequest",
    "LoadHandle",
    "Tier",
    "derive_key",
    "request_key",
    "url_key",
]

__version__ = "0.1.0"
