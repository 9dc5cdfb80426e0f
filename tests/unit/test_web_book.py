"""Tests for the WebBook engine."""

import asyncio

import pytest

from webbook import WebBook
from webbook.client import PageFetcher
from webbook.models import Book, BookChapter, BookSource, FetchResult, WebBookConfig
from webbook.parser import SelectorRuleEvaluator
from webbook.tasks import CancellableTask
from webbook.utils.exceptions import (
    ChapterListEmptyError,
    FetchError,
    ResolveError,
    RuleError,
)


BASE = "https://books.example.com"
SEARCH_URL = f"{BASE}/search?q=dune&page=1"


class BrokenEvaluator(SelectorRuleEvaluator):
    """Evaluator failing with an unexpected error on every list rule."""

    def elements(self, rule, content):
        raise ValueError("selector engine crashed")


class BlockingFetcher(PageFetcher):
    """Fetcher that blocks until released."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch(self, request):
        self.started.set()
        await self.release.wait()
        return FetchResult(body="<html></html>", effective_url=request.url)


class SlowFetcher(PageFetcher):
    """Fetcher recording how many requests run at the same time."""

    def __init__(self, body):
        self.body = body
        self.active = 0
        self.peak = 0

    async def fetch(self, request):
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.01)
        self.active -= 1
        return FetchResult(body=self.body, effective_url=request.url)


@pytest.fixture
def engine(config, fake_fetcher, fake_rendered_fetcher):
    return WebBook(config, fetcher=fake_fetcher, rendered_fetcher=fake_rendered_fetcher)


class TestSearchAndExplore:
    """Test list operations."""

    @pytest.mark.asyncio
    async def test_search(self, engine, source, fake_fetcher, search_page_html):
        fake_fetcher.pages[SEARCH_URL] = search_page_html

        task = engine.search(source, "dune")
        assert isinstance(task, CancellableTask)
        results = await task

        assert [r.name for r in results] == ["Dune", "Hyperion"]
        assert fake_fetcher.urls == [SEARCH_URL]

    @pytest.mark.asyncio
    async def test_search_without_search_url(self, engine, base_url, fake_fetcher):
        results = await engine.search(BookSource(book_source_url=base_url), "dune")

        assert results == []
        assert fake_fetcher.requests == []

    @pytest.mark.asyncio
    async def test_explore(self, engine, source, fake_fetcher, search_page_html):
        kind = source.explore_kinds()[0]
        fake_fetcher.pages[f"{BASE}/category/fantasy/2"] = search_page_html

        results = await engine.explore(source, kind.url, page=2)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_relative_links_use_redirect_target(self, engine, source, fake_fetcher):
        body = '<div class="result"><a class="title" href="b/1">Dune</a></div>'
        fake_fetcher.pages[SEARCH_URL] = (body, "https://mirror.example.com/s/")

        results = await engine.search(source, "dune")

        assert results[0].book_url == "https://mirror.example.com/s/b/1"

    @pytest.mark.asyncio
    async def test_rendered_fetch(
        self, config, source_data, fake_fetcher, fake_rendered_fetcher, search_page_html
    ):
        source_data["webView"] = True
        source = BookSource.model_validate(source_data)
        fake_rendered_fetcher.pages[SEARCH_URL] = search_page_html

        async with WebBook(
            config, fetcher=fake_fetcher, rendered_fetcher=fake_rendered_fetcher
        ) as engine:
            results = await engine.search(source, "dune")

        assert len(results) == 2
        assert fake_fetcher.requests == []
        request, execution_base_url = fake_rendered_fetcher.calls[0]
        assert request.url == SEARCH_URL
        assert execution_base_url == BASE


class TestReadingFlow:
    """Test the search, info, toc and content chain."""

    @pytest.mark.asyncio
    async def test_full_flow(
        self,
        engine,
        source,
        fake_fetcher,
        search_page_html,
        detail_page_html,
        build_toc_page,
        build_content_page,
    ):
        fake_fetcher.pages.update(
            {
                SEARCH_URL: search_page_html,
                f"{BASE}/book/1": detail_page_html,
                f"{BASE}/book/1/toc": build_toc_page(
                    [("Chapter 1", "/c/1"), ("Chapter 2", "/c/2")], next_url="/book/1/toc?p=2"
                ),
                f"{BASE}/book/1/toc?p=2": build_toc_page([("Chapter 3", "/c/3")]),
                f"{BASE}/c/1": build_content_page(["Part one."], next_url="/c/1_2"),
                f"{BASE}/c/1_2": build_content_page(["Part two."], next_url="/c/2"),
            }
        )

        results = await engine.search(source, "dune")
        book = results[0].to_book()
        await engine.get_book_info(source, book)
        chapters = await engine.get_chapter_list(source, book)
        text = await engine.get_content(source, book, chapters[0], chapters[1].url)

        assert book.intro == "A desert planet."
        assert book.toc_url == f"{BASE}/book/1/toc"
        assert [c.title for c in chapters] == ["Chapter 1", "Chapter 2", "Chapter 3"]
        assert book.total_chapter_num == 3
        assert book.latest_chapter_title == "Chapter 3"
        assert text == "Part one.\nPart two."
        assert f"{BASE}/c/2" not in fake_fetcher.urls

    @pytest.mark.asyncio
    async def test_book_info_sets_origin(self, engine, source, fake_fetcher, detail_page_html):
        fake_fetcher.pages[f"{BASE}/book/1"] = detail_page_html
        book = Book(book_url=f"{BASE}/book/1")

        returned = await engine.get_book_info(source, book)

        assert returned is book
        assert book.origin == BASE
        assert book.origin_name == "Example Books"
        assert book.name == "Dune"

    @pytest.mark.asyncio
    async def test_cached_pages_are_reused(self, engine, source, fake_fetcher):
        page = (
            "<h1>Cached</h1>"
            '<ul class="chapters"><li><a href="/book/9">Whole book</a></li></ul>'
            '<div id="content">Everything on one page.</div>'
        )
        book = Book(book_url=f"{BASE}/book/9", info_html=page)

        await engine.get_book_info(source, book)
        chapters = await engine.get_chapter_list(source, book)
        text = await engine.get_content(source, book, chapters[0])

        assert book.name == "Cached"
        assert book.toc_url == book.book_url
        assert [c.url for c in chapters] == [book.book_url]
        assert text == "Everything on one page."
        assert fake_fetcher.requests == []

    @pytest.mark.asyncio
    async def test_content_without_rule_returns_url(self, engine, base_url, fake_fetcher):
        source = BookSource(book_source_url=base_url)
        book = Book(book_url=f"{BASE}/book/1")
        chapter = BookChapter(title="Audio", url=f"{BASE}/audio/1.mp3")

        assert await engine.get_content(source, book, chapter) == chapter.url
        assert fake_fetcher.requests == []


class TestErrors:
    """Test error propagation."""

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, engine, source):
        with pytest.raises(FetchError) as exc_info:
            await engine.search(source, "dune")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_rule_error_propagates(self, engine, source_data):
        source_data["searchUrl"] = "/search?q={{key"
        source = BookSource.model_validate(source_data)

        with pytest.raises(RuleError):
            await engine.search(source, "dune")

    @pytest.mark.asyncio
    async def test_unknown_charset_is_rule_error(self, engine, source, fake_fetcher):
        with pytest.raises(RuleError):
            await engine.explore(source, '/list,{"charset": "bogus"}')
        assert fake_fetcher.requests == []

    @pytest.mark.asyncio
    async def test_unexpected_error_tagged_with_stage(
        self, config, source, fake_fetcher, fake_rendered_fetcher, search_page_html
    ):
        fake_fetcher.pages[SEARCH_URL] = search_page_html
        engine = WebBook(
            config,
            fetcher=fake_fetcher,
            rendered_fetcher=fake_rendered_fetcher,
            evaluator=BrokenEvaluator(),
        )

        with pytest.raises(ResolveError) as exc_info:
            await engine.search(source, "dune")

        assert exc_info.value.stage == "search"
        assert "selector engine crashed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_chapter_list(self, engine, source, fake_fetcher):
        fake_fetcher.pages[f"{BASE}/book/1/toc"] = "<html></html>"
        book = Book(book_url=f"{BASE}/book/1", toc_url=f"{BASE}/book/1/toc")

        with pytest.raises(ChapterListEmptyError):
            await engine.get_chapter_list(source, book)


class TestCancellationAndConcurrency:
    """Test task handles and the shared operation pool."""

    @pytest.mark.asyncio
    async def test_cancel_in_flight_fetch(self, config, source, fake_rendered_fetcher):
        fetcher = BlockingFetcher()
        engine = WebBook(config, fetcher=fetcher, rendered_fetcher=fake_rendered_fetcher)

        task = engine.search(source, "dune")
        await fetcher.started.wait()
        assert task.cancel() is True

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()
        assert task.token.is_cancelled()

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, engine, source, fake_fetcher):
        task = engine.search(source, "dune")
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert fake_fetcher.requests == []

    @pytest.mark.asyncio
    async def test_operations_bounded_by_pool(
        self, source, fake_rendered_fetcher, search_page_html
    ):
        fetcher = SlowFetcher(search_page_html)
        engine = WebBook(
            WebBookConfig(max_concurrent_operations=1),
            fetcher=fetcher,
            rendered_fetcher=fake_rendered_fetcher,
        )

        results = await asyncio.gather(*(engine.search(source, "dune") for _ in range(3)))

        assert [len(r) for r in results] == [2, 2, 2]
        assert fetcher.peak == 1

    @pytest.mark.asyncio
    async def test_independent_operations_run_concurrently(
        self, config, source, fake_rendered_fetcher, search_page_html
    ):
        fetcher = SlowFetcher(search_page_html)
        engine = WebBook(config, fetcher=fetcher, rendered_fetcher=fake_rendered_fetcher)

        await asyncio.gather(*(engine.search(source, "dune") for _ in range(3)))

        assert fetcher.peak == 3
