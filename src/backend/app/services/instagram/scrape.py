from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ScrapeLaunchError(Exception):
    """Raised when a scraping job could not be handed to the upstream service."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ScrapeConfigurationError(ScrapeLaunchError):
    """Raised when the selected backend is missing credentials."""


class ScrapeLauncher(ABC):
    name: str = "unknown"

    @abstractmethod
    def launch(self, post_url: str, post_id: int | None = None) -> dict[str, Any]:
        """Start (or queue) a scrape of ``post_url`` and return the upstream response."""
