"""Shared pytest fixtures and configuration for webbook tests."""

import json

import pytest

from webbook.client import PageFetcher, RenderedPageFetcher
from webbook.models import BookSource, FetchResult, RequestDescriptor, WebBookConfig
from webbook.utils.exceptions import FetchError


BASE_URL = "https://books.example.com"


class FakeFetcher(PageFetcher):
    """In-memory fetcher serving canned pages by URL.

    ``pages`` maps a URL to its body, or to a ``(body, effective_url)`` pair
    to simulate a redirect. Unknown URLs fail with a 404 FetchError.
    """

    def __init__(self, pages: dict[str, str | tuple[str, str]] | None = None):
        self.pages = dict(pages or {})
        self.requests: list[RequestDescriptor] = []

    @property
    def urls(self) -> list[str]:
        return [request.url for request in self.requests]

    async def fetch(self, request: RequestDescriptor) -> FetchResult:
        self.requests.append(request)
        page = self.pages.get(request.url)
        if page is None:
            raise FetchError(f"HTTP error 404: {request.url}", url=request.url, status_code=404)
        if isinstance(page, tuple):
            body, effective_url = page
        else:
            body, effective_url = page, request.url
        return FetchResult(body=body, effective_url=effective_url)


class FakeRenderedFetcher(RenderedPageFetcher):
    """Rendered fetcher returning canned bodies and recording calls."""

    def __init__(self, pages: dict[str, str] | None = None):
        self.pages = dict(pages or {})
        self.calls: list[tuple[RequestDescriptor, str]] = []

    async def fetch_rendered(self, request: RequestDescriptor, execution_base_url: str) -> str:
        self.calls.append((request, execution_base_url))
        return self.pages.get(request.url, "")


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def source_data() -> dict:
    """Book source JSON as exported by reader apps (camelCase keys)."""
    return {
        "bookSourceUrl": BASE_URL,
        "bookSourceName": "Example Books",
        "bookSourceType": 0,
        "searchUrl": "/search?q={{key}}&page={{page}}",
        "exploreUrl": "Fantasy::/category/fantasy/{{page}}&&Sci-Fi::/category/scifi/{{page}}",
        "ruleSearch": {
            "bookList": "div.result",
            "name": "a.title@text",
            "author": "span.author@text",
            "kind": "span.tag@text",
            "lastChapter": "span.latest@text",
            "bookUrl": "a.title@href",
            "coverUrl": "img@src",
        },
        "ruleBookInfo": {
            "name": "h1@text",
            "author": "p.author@text",
            "intro": "div.intro@text",
            "tocUrl": "a.toc@href",
        },
        "ruleToc": {
            "chapterList": "ul.chapters li",
            "chapterName": "a@text",
            "chapterUrl": "a@href",
            "nextTocUrl": "a.next-toc@href",
        },
        "ruleContent": {
            "content": "div#content@html",
            "nextContentUrl": "a.next-page@href",
        },
    }


@pytest.fixture
def source(source_data) -> BookSource:
    """Sample CSS-rule book source."""
    return BookSource.model_validate(source_data)


@pytest.fixture
def source_file(tmp_path, source_data):
    """Source JSON written to disk, in exported list form."""
    path = tmp_path / "source.json"
    path.write_text(json.dumps([source_data]), encoding="utf-8")
    return path


@pytest.fixture
def config() -> WebBookConfig:
    """Test configuration."""
    return WebBookConfig(timeout=5, max_retries=2, max_concurrent_operations=4)


@pytest.fixture
def search_page_html() -> str:
    """Search result page with two valid entries and one without a URL."""
    return """
    <html><body>
      <div class="result">
        <a class="title" href="/book/1">Dune</a>
        <span class="author">Frank Herbert</span>
        <span class="tag">Sci-Fi</span><span class="tag">Classic</span>
        <span class="latest">Appendix IV</span>
        <img src="/covers/1.jpg">
      </div>
      <div class="result">
        <a class="title" href="https://other.example.com/book/2">Hyperion</a>
        <span class="author">Dan Simmons</span>
      </div>
      <div class="result">
        <span class="title">Broken entry</span>
      </div>
    </body></html>
    """


@pytest.fixture
def detail_page_html() -> str:
    """Book detail page linking to a separate table of contents."""
    return """
    <html><body>
      <h1>Dune</h1>
      <p class="author">Frank Herbert</p>
      <div class="intro">A desert planet.</div>
      <a class="toc" href="/book/1/toc">Contents</a>
    </body></html>
    """


def toc_page(chapters: list[tuple[str, str]], next_url: str | None = None) -> str:
    """Build a toc page with ``(title, href)`` chapters and an optional next link."""
    items = "".join(f'<li><a href="{href}">{title}</a></li>' for title, href in chapters)
    next_link = f'<a class="next-toc" href="{next_url}">Next</a>' if next_url else ""
    return f'<html><body><ul class="chapters">{items}</ul>{next_link}</body></html>'


def content_page(paragraphs: list[str], next_url: str | None = None) -> str:
    """Build a content page with an optional next-page link."""
    text = "".join(f"<p>{p}</p>" for p in paragraphs)
    next_link = f'<a class="next-page" href="{next_url}">Next</a>' if next_url else ""
    return f'<html><body><div id="content">{text}</div>{next_link}</body></html>'


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Empty in-memory fetcher; tests register pages on ``.pages``."""
    return FakeFetcher()


@pytest.fixture
def fake_rendered_fetcher() -> FakeRenderedFetcher:
    return FakeRenderedFetcher()


@pytest.fixture
def build_toc_page():
    return toc_page


@pytest.fixture
def build_content_page():
    return content_page


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on location."""
    for item in items:
        # Auto-mark integration tests
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        # Auto-mark unit tests
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
