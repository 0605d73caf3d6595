"""Main entry point when executing urlcache as a package.

This allows running the package using python -m urlcache.
"""

from urlcache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
