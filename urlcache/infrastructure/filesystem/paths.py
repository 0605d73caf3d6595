"""Platform cache directory resolution.

Supplies the root under which namespaced disk tiers are created.
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

# Library namespace below the platform cache root
CACHE_NAMESPACE = "urlcache.Cache"


def user_cache_dir() -> Path:
    """Returns the per-user cache directory for the current platform."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    if sys.platform.startswith("win"):
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data)
        return Path.home() / "AppData" / "Local"
    xdg_cache_home = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache_home:
        return Path(xdg_cache_home)
    return Path.home() / ".cache"


def namespace_dir(name: str, cache_root: Optional[Union[str, Path]] = None) -> Path:
    """The disk tier directory for the cache called `name`.

    Args:
        name: The cache instance name (e.g. "images").
        cache_root: Overrides the platform cache directory.
    """
    root = Path(cache_root) if cache_root is not None else user_cache_dir()
    return root / CACHE_NAMESPACE / name
