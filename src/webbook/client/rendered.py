"""Rendered page fetcher backed by a headless Playwright browser."""

import logging
import time

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Route, async_playwright

from ..models import RequestDescriptor, WebBookConfig
from ..utils.exceptions import FetchError
from .base import RenderedPageFetcher


logger = logging.getLogger(__name__)


class RenderedFetcher(RenderedPageFetcher):
    """Fetches pages whose content is generated client-side.

    Each call launches its own headless Chromium instance, so concurrent
    operations never share browser state.
    """

    def __init__(self, config: WebBookConfig):
        self._config = config

    async def fetch_rendered(self, request: RequestDescriptor, execution_base_url: str) -> str:
        """Load ``request`` in a browser and return the rendered HTML.

        Args:
            request: Absolute request descriptor
            execution_base_url: Source base URL, sent as Referer unless the
                request already carries one

        Raises:
            FetchError: If the page fails to load, times out or answers
                with a non-success status
        """
        start_time = time.perf_counter()
        headers = {k: v for k, v in request.headers.items() if k.lower() != "user-agent"}
        user_agent = next(
            (v for k, v in request.headers.items() if k.lower() == "user-agent"),
            self._config.user_agent,
        )
        if execution_base_url and not any(k.lower() == "referer" for k in headers):
            headers["Referer"] = execution_base_url

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True)
                try:
                    context = await browser.new_context(
                        user_agent=user_agent, extra_http_headers=headers
                    )
                    page = await context.new_page()

                    if request.method.upper() != "GET":

                        async def send_with_body(route: Route) -> None:
                            await route.continue_(
                                method=request.method.upper(), post_data=request.body
                            )

                        await page.route(request.url, send_with_body)

                    response = await page.goto(
                        request.url,
                        wait_until=self._config.render_wait_until,
                        timeout=self._config.render_timeout * 1000,
                    )
                    if response is not None and response.status >= 400:
                        raise FetchError(
                            f"HTTP error {response.status}: {request.url}",
                            url=request.url,
                            status_code=response.status,
                        )
                    content = await page.content()
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise FetchError(
                f"Rendered fetch failed for {request.url}: {e}", url=request.url
            ) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("Rendered %s in %.2fms", request.url, elapsed_ms)
        return content
