import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from urlcache.core.services.cache_service import Cache
from urlcache.domain.interfaces.network import NetworkFetcher, OutcomeHandler
from urlcache.domain.models.common import FetchOutcome, FetchRequest, HttpError
from urlcache.infrastructure.config.settings import clear_test_config


class FakeFetcher(NetworkFetcher):
    """Serves canned outcomes per URL and records every request."""

    def __init__(self, outcomes: Optional[Dict[str, FetchOutcome]] = None,
                 default: Optional[FetchOutcome] = None):
        self.outcomes = dict(outcomes or {})
        self.default = default or HttpError(status_code=404)
        self.requests: List[FetchRequest] = []
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def fetch_outcome(self, request: FetchRequest) -> FetchOutcome:
        with self._lock:
            self.requests.append(request)
        return self.outcomes.get(request.url, self.default)

    def fetch(self, request: FetchRequest, completion: OutcomeHandler) -> None:
        threading.Thread(target=lambda: completion(self.fetch_outcome(request))).start()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def executor():
    """A private worker pool so tests don't share the process-wide one."""
    pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="urlcache-test")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "caches"


@pytest.fixture
def make_cache(cache_root: Path, executor, fake_fetcher):
    """Factory for Cache instances rooted in the test's temporary directory."""
    def _make(name: str = "test", fetcher: Optional[NetworkFetcher] = None, **kwargs) -> Cache:
        return Cache(
            name,
            cache_root=cache_root,
            fetcher=fetcher or fake_fetcher,
            executor=kwargs.pop("executor", executor),
            **kwargs,
        )
    return _make


@pytest.fixture(autouse=True)
def reset_test_config():
    """Ensure configuration overrides never leak between tests."""
    clear_test_config()
    yield
    clear_test_config()
