"""Interface for interacting with the user (output).

Defines the contract for displaying results, errors and warnings,
allowing different UI implementations.
"""

import abc
from typing import Any, Optional

from urlcache.domain.models.common import Tier


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_load_result(self, url: str, size: int, source: Optional[Tier], **kwargs: Any) -> None:
        """Summarizes a completed load.

        Args:
            url: The requested URL.
            size: Number of bytes loaded.
            source: The tier that served the bytes.
            **kwargs: Additional fields to show (e.g. key, destination).
        """
        pass
