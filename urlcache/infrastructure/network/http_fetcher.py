"""Network tier: HTTP fetches through `requests`.

Each fetch uses its own short-lived `requests.Session`, so no cookies or
pooled connections carry over between calls. The fetcher only decides how
a response is classified; TLS and connection handling stay with `requests`.
"""

import logging
from concurrent.futures import Executor
from typing import Optional

import requests

from urlcache.domain.interfaces.network import NetworkFetcher, OutcomeHandler
from urlcache.domain.models.common import (
    EmptyBody,
    FetchOutcome,
    FetchRequest,
    HttpError,
    Success,
    TransportError,
)
from urlcache.infrastructure.services.worker_pool import get_shared_executor

logger = logging.getLogger(__name__)

SUCCESS_STATUS_MIN = 200
SUCCESS_STATUS_MAX = 299


def classify_response(status_code: int, body: bytes) -> FetchOutcome:
    """Classifies a received response by status code and body length."""
    if not SUCCESS_STATUS_MIN <= status_code <= SUCCESS_STATUS_MAX:
        return HttpError(status_code=status_code)
    if not body:
        return EmptyBody()
    return Success(data=body)


class HttpFetcher(NetworkFetcher):
    """Fetches resources with `requests`."""

    def __init__(self, timeout: Optional[float] = None, executor: Optional[Executor] = None):
        """Initializes the fetcher.

        Args:
            timeout: Per-request timeout in seconds. None keeps the `requests`
                default (no timeout).
            executor: Executor for `fetch`; defaults to the shared pool.
        """
        self.timeout = timeout
        self._executor = executor

    def fetch_outcome(self, request: FetchRequest) -> FetchOutcome:
        try:
            with requests.Session() as session:
                response = session.request(
                    request.method,
                    request.url,
                    headers=dict(request.headers),
                    timeout=self.timeout,
                )
                body = response.content
                status_code = response.status_code
        except requests.RequestException as e:
            return TransportError(detail=str(e))
        return classify_response(status_code, body)

    def fetch(self, request: FetchRequest, completion: OutcomeHandler) -> None:
        executor = self._executor or get_shared_executor()
        executor.submit(self._fetch_and_complete, request, completion)

    def _fetch_and_complete(self, request: FetchRequest, completion: OutcomeHandler) -> None:
        try:
            outcome = self.fetch_outcome(request)
        except Exception as e:
            logger.error(f"Fetch failed for {request.url}: {e}", exc_info=True)
            outcome = TransportError(detail=str(e))
        try:
            completion(outcome)
        except Exception:
            logger.exception(f"Fetch completion handler for {request.url} raised")
