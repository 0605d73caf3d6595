"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), builds requests and
delegates the loading to the Cache service.
"""

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, Dict, List, Optional

from urlcache.core.services.cache_service import Cache
from urlcache.domain.interfaces.user_interface import UserInterface
from urlcache.domain.models.common import FetchRequest
from urlcache.infrastructure.cache.key_policy import KeyPolicy, url_key

logger = logging.getLogger(__name__)

CacheFactory = Callable[[str], Cache]


def parse_headers(raw_headers: Optional[List[str]]) -> Dict[str, str]:
    """Parses 'Name: value' strings into a header mapping.

    Raises:
        ValueError: If an entry has no ':' separator or an empty name.
    """
    headers: Dict[str, str] = {}
    for raw in raw_headers or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {raw!r}, expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


class CommandHandler:
    """Handles incoming commands and delegates to the cache."""

    def __init__(
        self,
        cache_factory: CacheFactory,
        ui: UserInterface,
        key_policy: KeyPolicy = url_key,
    ):
        """Initializes the CommandHandler.

        Args:
            cache_factory: Builds the Cache for a namespace name.
            ui: Output adapter.
            key_policy: Policy used by the 'key' command.
        """
        self.cache_factory = cache_factory
        self.ui = ui
        self.key_policy = key_policy
        self._caches: Dict[str, Cache] = {}

    def _cache(self, name: str) -> Optional[Cache]:
        """Returns the cache for `name`, or None after reporting why it could not be built."""
        if name not in self._caches:
            try:
                self._caches[name] = self.cache_factory(name)
            except ValueError as e:
                logger.error(f"Failed to create cache '{name}': {e}")
                self.ui.display_error(f"Cannot open cache '{name}': {e}")
                return None
        return self._caches[name]

    def handle_fetch(
        self,
        url: str,
        name: str,
        output: Optional[Path] = None,
        headers: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Handles the 'fetch' command.

        Returns:
            True if data was loaded (and written, when `output` is given).
        """
        logger.info(f"Handling 'fetch' for {url} in cache '{name}'")
        try:
            request = FetchRequest(url=url, headers=parse_headers(headers))
        except ValueError as e:
            self.ui.display_error(str(e))
            return False

        cache = self._cache(name)
        if cache is None:
            return False
        handle = cache.load_data(request, lambda data: None)
        try:
            data = handle.wait(timeout=timeout)
        except FutureTimeoutError:
            handle.cancel()
            self.ui.display_error(f"Timed out after {timeout}s waiting for {url}")
            return False

        if data is None:
            self.ui.display_error(f"No data for {url} (all cache levels missed)")
            return False

        if output is not None:
            try:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(data)
            except OSError as e:
                logger.error(f"Failed to write {output}: {e}", exc_info=True)
                self.ui.display_error(f"Failed to write {output}: {e}")
                return False

        self.ui.display_load_result(url, len(data), handle.source, key=handle.key, written_to=output)
        return True

    def handle_key(self, url: str) -> None:
        """Handles the 'key' command: prints the derived cache key."""
        self.ui.display_output(self.key_policy(FetchRequest.from_url(url)))

    def handle_where(self, name: str) -> bool:
        """Handles the 'where' command: shows the disk tier directory."""
        cache = self._cache(name)
        if cache is None:
            return False
        if not cache.disk.enabled:
            self.ui.display_warning(f"Disk tier for '{name}' is disabled; {cache.path} could not be created.")
        self.ui.display_output(str(cache.path))
        return True
