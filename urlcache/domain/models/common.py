"""Defines common Value Objects used across the cache contexts.

These objects represent simple values like cache keys and namespace names,
plus the request and fetch-outcome types passed between the tiers.
"""

import enum
from dataclasses import dataclass, field
from typing import Mapping, NewType, Union

# === Caching Context ===

# Using NewType for semantic clarity, although they are strings at runtime.
CacheKey = NewType("CacheKey", str)      # Hex digest naming a cache entry
CacheName = NewType("CacheName", str)    # Namespace selecting a disk directory


class Tier(enum.Enum):
    """The cache level that served a load."""
    MEMORY = "memory"
    DISK = "disk"
    NETWORK = "network"


# === Network Context ===

@dataclass(frozen=True)
class FetchRequest:
    """A request for a remote byte resource."""
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_url(cls, url: str) -> "FetchRequest":
        """Builds a plain GET request for `url`."""
        return cls(url=url)


RequestLike = Union[str, FetchRequest]


def as_request(url_or_request: RequestLike) -> FetchRequest:
    """Normalizes a URL string or FetchRequest into a FetchRequest."""
    if isinstance(url_or_request, FetchRequest):
        return url_or_request
    return FetchRequest.from_url(str(url_or_request))


# --- Fetch Outcomes ---
# Exactly one of these is produced per network fetch.

@dataclass(frozen=True)
class TransportError:
    """No response was obtained (connection, DNS or TLS failure)."""
    detail: str


@dataclass(frozen=True)
class HttpError:
    """A response arrived with a status code outside 200-299."""
    status_code: int


@dataclass(frozen=True)
class EmptyBody:
    """A 2xx response arrived without any body bytes."""


@dataclass(frozen=True)
class Success:
    """A 2xx response with a non-empty body."""
    data: bytes


FetchOutcome = Union[TransportError, HttpError, EmptyBody, Success]
