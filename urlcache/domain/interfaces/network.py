"""Interface for fetching remote resources.

The fetcher owns only the response classification policy; transport
configuration belongs to the underlying HTTP client.
"""

import abc
from typing import Callable

from urlcache.domain.models.common import FetchOutcome, FetchRequest

OutcomeHandler = Callable[[FetchOutcome], None]


class NetworkFetcher(abc.ABC):
    """Abstract Base Class for network fetchers."""

    @abc.abstractmethod
    def fetch_outcome(self, request: FetchRequest) -> FetchOutcome:
        """Performs the request on the current thread and classifies the result.

        Args:
            request: The request to issue.

        Returns:
            Exactly one of TransportError, HttpError, EmptyBody or Success.
            Never raises for network failures.
        """
        pass

    @abc.abstractmethod
    def fetch(self, request: FetchRequest, completion: OutcomeHandler) -> None:
        """Performs the request in the background.

        Args:
            request: The request to issue.
            completion: Called exactly once with the outcome, from a
                background thread.
        """
        pass
