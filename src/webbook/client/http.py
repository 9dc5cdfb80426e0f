"""Async HTTP fetcher for book source pages."""

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..models import FetchResult, RequestDescriptor, WebBookConfig
from ..utils.exceptions import FetchError
from .base import PageFetcher


logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


class HttpFetcher(PageFetcher):
    """Async HTTP client for plain (non-rendered) page fetches.

    Handles redirects, retries on transient network errors and maps every
    transport or status failure onto :class:`FetchError`.

    Example:
        async with HttpFetcher(config) as fetcher:
            result = await fetcher.fetch(request)
            print(result.effective_url)
    """

    def __init__(self, config: WebBookConfig, cookies: dict[str, str] | None = None):
        """Initialize the async HTTP client.

        Args:
            config: Engine configuration
            cookies: Optional session cookies sent with every request
        """
        self._config = config
        self._client = httpx.AsyncClient(
            cookies=cookies,
            timeout=config.timeout,
            follow_redirects=config.follow_redirects,
            verify=config.verify_ssl,
            headers={"User-Agent": config.user_agent},
        )

    async def __aenter__(self) -> "HttpFetcher":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        await self._client.aclose()

    @staticmethod
    def _request_kwargs(request: RequestDescriptor) -> dict[str, Any]:
        headers = dict(request.headers)
        kwargs: dict[str, Any] = {"headers": headers}
        if request.body is not None and request.method.upper() != "GET":
            if not any(k.lower() == "content-type" for k in headers):
                stripped = request.body.lstrip()
                headers["Content-Type"] = (
                    JSON_CONTENT_TYPE if stripped.startswith(("{", "[")) else FORM_CONTENT_TYPE
                )
            kwargs["content"] = request.body.encode(
                request.charset or "utf-8", errors="xmlcharrefreplace"
            )
        return kwargs

    async def _request(self, request: RequestDescriptor) -> httpx.Response:
        """Make one HTTP request.

        Raises:
            FetchError: On non-success status or unexpected transport errors
            httpx.NetworkError: On connection errors (retried by the caller)
            httpx.TimeoutException: On timeouts (retried by the caller)
        """
        try:
            response = await self._client.request(
                request.method.upper(), request.url, **self._request_kwargs(request)
            )
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP error {e.response.status_code}: {request.url}",
                url=request.url,
                status_code=e.response.status_code,
            ) from e
        except (httpx.NetworkError, httpx.TimeoutException):
            # These will be retried
            raise
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}", url=request.url) from e

    async def fetch(self, request: RequestDescriptor) -> FetchResult:
        """Fetch a page.

        Args:
            request: Absolute request descriptor

        Returns:
            Decoded body and the URL the response was served from

        Raises:
            FetchError: On network/HTTP errors once retries are exhausted
        """
        logger.debug("%s %s", request.method.upper(), request.url)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._config.max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
                reraise=True,
            ):
                with attempt:
                    response = await self._request(request)
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out fetching {request.url}", url=request.url) from e
        except httpx.NetworkError as e:
            raise FetchError(f"Network error fetching {request.url}: {e}", url=request.url) from e

        if request.charset:
            response.encoding = request.charset
        return FetchResult(body=response.text, effective_url=str(response.url))
