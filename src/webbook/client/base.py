"""Interfaces of the fetch layer used by the orchestrator."""

from abc import ABC, abstractmethod

from ..models import FetchResult, RequestDescriptor


class PageFetcher(ABC):
    """Plain HTTP fetch capability."""

    @abstractmethod
    async def fetch(self, request: RequestDescriptor) -> FetchResult:
        """Fetch ``request`` and return its body with the post-redirect URL.

        Raises:
            FetchError: On network failure, timeout or non-success status
        """


class RenderedPageFetcher(ABC):
    """Rendered (script-executing) page fetch capability."""

    @abstractmethod
    async def fetch_rendered(self, request: RequestDescriptor, execution_base_url: str) -> str:
        """Load ``request`` in a browser and return the rendered document.

        Raises:
            FetchError: On execution failure or timeout
        """
