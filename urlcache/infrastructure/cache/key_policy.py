"""Cache key derivation.

Keys are content-addressed names: a hex digest of the identifying string,
usable both as memory map keys and as file names.
"""

import hashlib
from typing import Callable

from urlcache.domain.models.common import CacheKey, FetchRequest

KeyPolicy = Callable[[FetchRequest], CacheKey]


def derive_key(url: str) -> CacheKey:
    """Maps a URL string to its cache key (MD5, 32 hex chars).

    The URL is hashed exactly as given; no normalization is performed.
    """
    return CacheKey(hashlib.md5(url.encode("utf-8")).hexdigest())


def url_key(request: FetchRequest) -> CacheKey:
    """Default policy: only the URL identifies the entry."""
    return derive_key(request.url)


def request_key(request: FetchRequest) -> CacheKey:
    """Policy that also distinguishes method and headers.

    Header names are lower-cased and sorted so equivalent header mappings
    produce the same key.
    """
    headers = sorted((name.lower(), value) for name, value in request.headers.items())
    parts = [request.method.upper(), request.url]
    parts.extend(f"{name}:{value}" for name, value in headers)
    return derive_key("\n".join(parts))
