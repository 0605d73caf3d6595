"""Main entry point for the urlcache command line application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

import typer

# --- Core Layer ---
from urlcache.core.command_handler import CommandHandler
from urlcache.core.services.cache_service import Cache

# --- Infrastructure Layer ---
from urlcache.infrastructure.cli.display import ConsoleDisplay
from urlcache.infrastructure.config.settings import (
    get_cache_root,
    get_config,
    get_max_workers,
    get_memory_max_items,
    get_network_timeout,
    load_configuration,
)
from urlcache.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, parse_log_level, setup_logging
from urlcache.infrastructure.network.http_fetcher import HttpFetcher
from urlcache.infrastructure.services.worker_pool import get_shared_executor

logger = logging.getLogger(__name__)

DEFAULT_CACHE_NAME = "default"

# --- Dependency Injection Container (Manual) ---

def create_cache(name: str) -> Cache:
    """Builds a Cache for `name` from the loaded configuration."""
    return Cache(
        name,
        cache_root=get_cache_root(),
        memory_max_items=get_memory_max_items(),
        fetcher=HttpFetcher(timeout=get_network_timeout()),
        executor=get_shared_executor(max_workers=get_max_workers()),
    )


def create_dependencies(log_level: Optional[str] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First, then configure logging from it
    load_configuration()
    level = parse_log_level(log_level or get_config('logging.level', 'INFO'))
    setup_logging(
        log_level=level,
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )

    # 2. Instantiate Infrastructure Adapters
    dependencies['ui'] = ConsoleDisplay()

    # 3. Instantiate Command Handler
    dependencies['command_handler'] = CommandHandler(
        cache_factory=create_cache,
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


_dependencies: Dict[str, Any] = {}

# --- Typer App Definition ---
app = typer.Typer(
    name="urlcache",
    help="Fetch remote resources through a memory, disk and network cache.",
    add_completion=False,
)

NameOption = Annotated[
    str,
    typer.Option("--name", "-n", help="Cache namespace; selects the disk directory.")
]


def _handler() -> CommandHandler:
    return _dependencies['command_handler']


@app.command()
def fetch(
    url: Annotated[str, typer.Argument(help="URL of the resource to load.")],
    name: NameOption = DEFAULT_CACHE_NAME,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write the bytes to this file.")] = None,
    header: Annotated[Optional[List[str]], typer.Option("--header", "-H", help="Request header 'Name: value'. Repeatable.")] = None,
    timeout: Annotated[Optional[float], typer.Option(help="Seconds to wait for the load before giving up.")] = None,
):
    """Load a resource through the cache."""
    if not _handler().handle_fetch(url, name, output=output, headers=header, timeout=timeout):
        raise typer.Exit(code=1)


@app.command()
def key(
    url: Annotated[str, typer.Argument(help="URL to derive the cache key for.")],
):
    """Print the cache key for a URL."""
    _handler().handle_key(url)


@app.command()
def where(
    name: NameOption = DEFAULT_CACHE_NAME,
):
    """Print the disk directory of a cache namespace."""
    if not _handler().handle_where(name):
        raise typer.Exit(code=1)


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Override logging.level (DEBUG, INFO, NOTICE, ...).")] = None,
):
    """Configure the application before any command runs."""
    _dependencies.clear()
    _dependencies.update(create_dependencies(log_level=log_level))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
