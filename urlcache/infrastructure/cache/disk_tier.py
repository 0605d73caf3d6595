"""File-based cache tier (L2).

Stores one file per key, named by the key, under a namespace directory.
Writes go to a temporary file in the same directory followed by
`os.replace`, so readers only ever see complete files.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from urlcache.domain.interfaces.cache import CacheTier
from urlcache.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


class DiskTier(CacheTier):
    """Persistent tier rooted at a per-cache directory.

    If the directory cannot be created the tier stays usable but disabled:
    every lookup misses and every write is dropped.
    """

    def __init__(self, root: Union[str, Path]):
        """Resolves and creates the root directory, including missing parents."""
        # Ensure root is a Path object for cross-platform compatibility
        self.root = Path(root)
        self._enabled = self._setup_root()

    def _setup_root(self) -> bool:
        """Creates the cache directory if it doesn't exist."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Can't create directory {self.root}: {e}")
            return False
        logger.info(f"Using disk cache directory {self.root}")
        return True

    @property
    def enabled(self) -> bool:
        return self._enabled

    def path_for(self, key: CacheKey) -> Path:
        """The deterministic file path for `key`."""
        return self.root / key

    def get(self, key: CacheKey) -> Optional[bytes]:
        if not self._enabled:
            return None
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Can't load {path}: {e}")
            return None

    def set(self, key: CacheKey, data: bytes) -> bool:
        """Atomically persists `data`; returns False if the write was dropped."""
        if not self._enabled:
            logger.debug(f"Disk tier disabled, dropping write for {key}")
            return False
        path = self.path_for(key)
        temp_path: Optional[str] = None
        try:
            # Unique temp name per writer; concurrent writers of one key must not share it
            fd, temp_path = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=TEMP_SUFFIX)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            # Use os.replace for atomic operation (works on Windows and Unix)
            os.replace(temp_path, path)
            temp_path = None
            logger.debug(f"Stored {len(data)} bytes in disk cache: {path}")
            return True
        except OSError as e:
            logger.error(f"Can't write to {path}: {e}")
            return False
        finally:
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning(f"Failed to remove temporary file {temp_path}: {e}")
