import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from conftest import FakeFetcher
from urlcache.core.services.cache_service import Cache
from urlcache.domain.models.common import (
    EmptyBody,
    FetchRequest,
    HttpError,
    Success,
    Tier,
    TransportError,
)
from urlcache.infrastructure.cache.key_policy import derive_key, request_key
from urlcache.infrastructure.monitoring.logger_setup import NOTICE

URL = "https://ex.test/a.png"
PAYLOAD = b"0123456789"


class Recorder:
    """Completion handler that records each call and the thread it ran on."""

    def __init__(self):
        self.calls = []
        self.event = threading.Event()

    def __call__(self, data):
        self.calls.append((data, threading.get_ident()))
        self.event.set()

    @property
    def values(self):
        return [data for data, _ in self.calls]


def test_construction_creates_namespace_directory(make_cache, cache_root: Path):
    cache = make_cache("images")
    assert cache.path == cache_root / "urlcache.Cache" / "images"
    assert cache.path.is_dir()


def test_end_to_end_network_then_memory(make_cache, cache_root: Path):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache("images", fetcher=fetcher)

    first = Recorder()
    handle = cache.load_data(URL, first)
    assert handle.wait(timeout=5) == PAYLOAD

    assert first.values == [PAYLOAD]
    assert handle.source is Tier.NETWORK
    assert (cache_root / "urlcache.Cache" / "images" / derive_key(URL)).read_bytes() == PAYLOAD

    second = Recorder()
    handle = cache.load_data(URL, second)
    assert handle.wait(timeout=5) == PAYLOAD

    assert second.values == [PAYLOAD]
    assert handle.source is Tier.MEMORY
    assert fetcher.call_count == 1


def test_completion_runs_off_the_calling_thread(make_cache):
    cache = make_cache(fetcher=FakeFetcher({URL: Success(PAYLOAD)}))
    recorder = Recorder()

    cache.load_data(URL, recorder).wait(timeout=5)

    assert len(recorder.calls) == 1
    assert recorder.calls[0][1] != threading.get_ident()


def test_repeated_loads_never_refetch(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher)
    cache.load_data(URL, Recorder()).wait(timeout=5)

    for _ in range(10):
        assert cache.load_data(URL, Recorder()).wait(timeout=5) == PAYLOAD
    assert fetcher.call_count == 1


@pytest.mark.parametrize(
    "outcome",
    [HttpError(404), HttpError(500), EmptyBody(), TransportError("connection refused")]
)
def test_network_miss_completes_with_none_and_populates_nothing(make_cache, outcome):
    fetcher = FakeFetcher({URL: outcome})
    cache = make_cache(fetcher=fetcher)
    recorder = Recorder()

    handle = cache.load_data(URL, recorder)

    assert handle.wait(timeout=5) is None
    assert recorder.values == [None]
    assert handle.source is None
    key = derive_key(URL)
    assert key not in cache.memory
    assert not cache.disk.path_for(key).exists()


def test_miss_is_retried_on_next_load(make_cache):
    fetcher = FakeFetcher({URL: HttpError(503)})
    cache = make_cache(fetcher=fetcher)
    cache.load_data(URL, Recorder()).wait(timeout=5)

    fetcher.outcomes[URL] = Success(PAYLOAD)
    assert cache.load_data(URL, Recorder()).wait(timeout=5) == PAYLOAD
    assert fetcher.call_count == 2


def test_disk_hit_is_promoted_to_memory(make_cache):
    fetcher = FakeFetcher()
    cache = make_cache(fetcher=fetcher)
    key = derive_key(URL)
    cache.disk.set(key, PAYLOAD)
    assert key not in cache.memory

    recorder = Recorder()
    handle = cache.load_data(URL, recorder)

    assert handle.wait(timeout=5) == PAYLOAD
    assert recorder.values == [PAYLOAD]
    assert handle.source is Tier.DISK
    assert cache.memory.get(key) == PAYLOAD
    assert fetcher.call_count == 0


def test_disk_entries_survive_a_new_cache_instance(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    make_cache("images", fetcher=fetcher).load_data(URL, Recorder()).wait(timeout=5)

    restarted = make_cache("images", fetcher=fetcher)
    handle = restarted.load_data(URL, Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.source is Tier.DISK
    assert fetcher.call_count == 1


def test_namespaces_are_isolated(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    make_cache("images", fetcher=fetcher).load_data(URL, Recorder()).wait(timeout=5)

    handle = make_cache("thumbnails", fetcher=fetcher).load_data(URL, Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.source is Tier.NETWORK
    assert fetcher.call_count == 2


def test_hundred_parallel_loads_complete_exactly_once(cache_root: Path):
    urls = [f"https://ex.test/{i}.bin" for i in range(100)]
    fetcher = FakeFetcher({url: Success(url.encode()) for url in urls})
    counts = Counter()
    results = {}
    lock = threading.Lock()

    def completion_for(url):
        def completion(data):
            with lock:
                counts[url] += 1
                results[url] = data
        return completion

    with ThreadPoolExecutor(max_workers=32) as pool:
        cache = Cache("parallel", cache_root=cache_root, fetcher=fetcher, executor=pool)
        handles = [cache.load_data(url, completion_for(url)) for url in urls]
        for handle in handles:
            handle.wait(timeout=10)

    assert all(counts[url] == 1 for url in urls)
    assert results == {url: url.encode() for url in urls}
    assert len(cache.memory) == 100
    for url in urls:
        assert cache.memory.get(derive_key(url)) == url.encode()
        assert cache.disk.get(derive_key(url)) == url.encode()


def test_concurrent_loads_of_same_key_are_not_coalesced(cache_root: Path):
    gate = threading.Barrier(4)

    class GatedFetcher(FakeFetcher):
        def fetch_outcome(self, request):
            gate.wait(timeout=5)
            return super().fetch_outcome(request)

    fetcher = GatedFetcher({URL: Success(PAYLOAD)})
    with ThreadPoolExecutor(max_workers=4) as pool:
        cache = Cache("dups", cache_root=cache_root, fetcher=fetcher, executor=pool)
        handles = [cache.load_data(URL, Recorder()) for _ in range(4)]
        assert [h.wait(timeout=10) for h in handles] == [PAYLOAD] * 4

    assert fetcher.call_count == 4
    assert cache.disk.get(derive_key(URL)) == PAYLOAD


def test_failing_completion_does_not_block_population(make_cache, caplog):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher)

    def explode(data):
        raise RuntimeError("caller bug")

    handle = cache.load_data(URL, explode)

    assert handle.wait(timeout=5) == PAYLOAD
    assert cache.memory.get(derive_key(URL)) == PAYLOAD
    assert cache.disk.get(derive_key(URL)) == PAYLOAD
    assert "Completion handler for" in caplog.text


def test_unexpected_fetcher_exception_completes_with_none(make_cache):
    class BrokenFetcher(FakeFetcher):
        def fetch_outcome(self, request):
            raise ValueError("bug in fetcher")

    recorder = Recorder()
    handle = make_cache(fetcher=BrokenFetcher()).load_data(URL, recorder)

    assert handle.wait(timeout=5) is None
    assert recorder.values == [None]


def test_disabled_disk_tier_still_serves_from_memory(tmp_path: Path, executor):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = Cache("images", cache_root=blocker, fetcher=fetcher, executor=executor)
    assert not cache.disk.enabled

    assert cache.load_data(URL, Recorder()).wait(timeout=5) == PAYLOAD
    handle = cache.load_data(URL, Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.source is Tier.MEMORY
    assert fetcher.call_count == 1


def test_cancel_before_dispatch_skips_completion(cache_root: Path):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    release = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as pool:
        # Occupy the only worker so the load stays queued
        pool.submit(release.wait, 5)
        cache = Cache("cancel", cache_root=cache_root, fetcher=fetcher, executor=pool)
        recorder = Recorder()

        handle = cache.load_data(URL, recorder)
        handle.cancel()
        release.set()

        assert handle.wait(timeout=5) is None

    assert handle.cancelled
    assert handle.done()
    assert recorder.calls == []
    assert fetcher.call_count == 0
    assert derive_key(URL) not in cache.memory


def test_accepts_fetch_request(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher)
    request = FetchRequest(url=URL, headers={"Accept": "image/png"})

    assert cache.load_data(request, Recorder()).wait(timeout=5) == PAYLOAD
    assert fetcher.requests == [request]


def test_default_key_policy_collides_on_headers(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher)

    cache.load_data(FetchRequest(url=URL, headers={"Accept": "a"}), Recorder()).wait(timeout=5)
    handle = cache.load_data(FetchRequest(url=URL, headers={"Accept": "b"}), Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.source is Tier.MEMORY
    assert fetcher.call_count == 1


def test_request_key_policy_separates_headers(make_cache):
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher, key_policy=request_key)

    cache.load_data(FetchRequest(url=URL, headers={"Accept": "a"}), Recorder()).wait(timeout=5)
    handle = cache.load_data(FetchRequest(url=URL, headers={"Accept": "b"}), Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.source is Tier.NETWORK
    assert fetcher.call_count == 2


def test_memory_capacity_falls_back_to_disk(make_cache):
    urls = ["https://ex.test/1", "https://ex.test/2"]
    fetcher = FakeFetcher({url: Success(url.encode()) for url in urls})
    cache = make_cache(fetcher=fetcher, memory_max_items=1)
    for url in urls:
        cache.load_data(url, Recorder()).wait(timeout=5)

    handle = cache.load_data(urls[0], Recorder())

    assert handle.wait(timeout=5) == urls[0].encode()
    assert handle.source is Tier.DISK
    assert fetcher.call_count == 2


def test_load_data_sync(make_cache):
    cache = make_cache(fetcher=FakeFetcher({URL: Success(PAYLOAD)}))
    assert cache.load_data_sync(URL, timeout=5) == PAYLOAD
    assert cache.load_data_sync("https://ex.test/missing", timeout=5) is None


def test_injected_logger_receives_tier_messages(make_cache, caplog):
    log = logging.getLogger("tests.urlcache.injected")
    caplog.set_level(logging.DEBUG, logger="tests.urlcache.injected")
    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher, logger=log)

    cache.load_data(URL, Recorder()).wait(timeout=5)
    cache.load_data(URL, Recorder()).wait(timeout=5)
    cache.load_data("https://ex.test/missing", Recorder()).wait(timeout=5)

    messages = [(r.levelno, r.getMessage()) for r in caplog.records if r.name == "tests.urlcache.injected"]
    assert (logging.DEBUG, f"Network HIT for {URL}") in messages
    assert (logging.DEBUG, f"Memory HIT for {URL}") in messages
    assert (NOTICE, "Network MISS for https://ex.test/missing: 404") in messages


def test_results_identical_without_log_handlers(make_cache):
    silent = logging.getLogger("tests.urlcache.silent")
    silent.propagate = False
    silent.disabled = True
    try:
        cache = make_cache(fetcher=FakeFetcher({URL: Success(PAYLOAD)}), logger=silent)
        assert cache.load_data(URL, Recorder()).wait(timeout=5) == PAYLOAD
        assert cache.load_data(URL, Recorder()).wait(timeout=5) == PAYLOAD
    finally:
        silent.propagate = True
        silent.disabled = False


def test_key_policy_runs_on_worker_thread(make_cache):
    threads = []

    def recording_policy(request):
        threads.append(threading.get_ident())
        return derive_key(request.url)

    cache = make_cache(fetcher=FakeFetcher({URL: Success(PAYLOAD)}), key_policy=recording_policy)
    handle = cache.load_data(URL, Recorder())

    assert handle.wait(timeout=5) == PAYLOAD
    assert handle.key == derive_key(URL)
    assert len(threads) == 1
    assert threads[0] != threading.get_ident()


def test_failing_key_policy_completes_with_none(make_cache):
    def broken_policy(request):
        raise ValueError("unsupported request")

    fetcher = FakeFetcher({URL: Success(PAYLOAD)})
    cache = make_cache(fetcher=fetcher, key_policy=broken_policy)
    recorder = Recorder()

    handle = cache.load_data(URL, recorder)

    assert handle.wait(timeout=5) is None
    assert recorder.values == [None]
    assert handle.key is None
    assert fetcher.call_count == 0
