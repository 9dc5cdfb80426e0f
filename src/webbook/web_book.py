"""Orchestration of book source operations.

:class:`WebBook` ties the pieces together for each operation: build the
request, fetch it (plain or rendered, or reuse HTML already held by the
book), then hand the document to the matching resolver.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from .client import HttpFetcher, PageFetcher, RenderedFetcher, RenderedPageFetcher, UrlResolver
from .models import (
    Book,
    BookChapter,
    BookSource,
    FetchResult,
    PageLoader,
    RequestDescriptor,
    SearchBook,
    WebBookConfig,
)
from .parser import (
    BookInfoResolver,
    BookListResolver,
    ChapterContentResolver,
    ChapterListResolver,
    RuleEvaluator,
    SelectorRuleEvaluator,
)
from .tasks import CancellableTask, CancellationToken
from .utils.exceptions import ResolveError, WebBookError
from .utils.urls import same_url


logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def resolve_stage(stage: str) -> Iterator[None]:
    """Tag unexpected resolver failures with the stage they happened in.

    Engine errors (rule, fetch, resolve) pass through unchanged.
    """
    try:
        yield
    except WebBookError:
        raise
    except Exception as e:
        raise ResolveError(str(e) or e.__class__.__name__, stage) from e


class WebBook:
    """Entry point for search, explore, book info, chapter list and content.

    Each operation returns a :class:`CancellableTask` and must be started
    from a running event loop. Operations share one HTTP client and a
    semaphore bounding how many of them fetch at the same time.

    Example:
        async with WebBook(config) as engine:
            results = await engine.search(source, "dune")
            book = results[0].to_book()
            await engine.get_book_info(source, book)
            chapters = await engine.get_chapter_list(source, book)
            text = await engine.get_content(source, book, chapters[0])
    """

    def __init__(
        self,
        config: WebBookConfig | None = None,
        *,
        fetcher: PageFetcher | None = None,
        rendered_fetcher: RenderedPageFetcher | None = None,
        evaluator: RuleEvaluator | None = None,
        url_resolver: UrlResolver | None = None,
    ):
        """Initialize the engine.

        Args:
            config: Engine configuration (defaults to environment settings)
            fetcher: Plain HTTP fetcher; an :class:`HttpFetcher` owned by the
                engine is created when omitted
            rendered_fetcher: Rendered page fetcher (defaults to Playwright)
            evaluator: Rule evaluator shared by all resolvers
            url_resolver: Request builder
        """
        self._config = config or WebBookConfig()
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or HttpFetcher(self._config)
        self._rendered_fetcher = rendered_fetcher or RenderedFetcher(self._config)
        self._urls = url_resolver or UrlResolver()
        self._pool = asyncio.Semaphore(self._config.max_concurrent_operations)

        evaluator = evaluator or SelectorRuleEvaluator()
        self._book_info = BookInfoResolver(evaluator)
        self._book_list = BookListResolver(evaluator, self._book_info)
        self._chapter_list = ChapterListResolver(evaluator)
        self._content = ChapterContentResolver(evaluator)

    async def __aenter__(self) -> "WebBook":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP fetcher if the engine created it."""
        if self._owns_fetcher and isinstance(self._fetcher, HttpFetcher):
            await self._fetcher.close()

    # Public operations

    def search(
        self, source: BookSource, key: str, page: int = 1
    ) -> CancellableTask[list[SearchBook]]:
        """Search ``source`` for ``key``.

        Yields an empty list when the source has no search URL.
        """
        return self._submit(f"search:{source.book_source_url}", self._search, source, key, page)

    def explore(
        self, source: BookSource, url: str, page: int = 1
    ) -> CancellableTask[list[SearchBook]]:
        """List the books of one explore page of ``source``."""
        return self._submit(f"explore:{source.book_source_url}", self._explore, source, url, page)

    def get_book_info(self, source: BookSource, book: Book) -> CancellableTask[Book]:
        """Fetch the detail page of ``book`` and merge it into the record."""
        return self._submit(f"info:{book.book_url}", self._get_book_info, source, book)

    def get_chapter_list(
        self, source: BookSource, book: Book
    ) -> CancellableTask[list[BookChapter]]:
        """Resolve the full, ordered chapter list of ``book``."""
        return self._submit(f"toc:{book.book_url}", self._get_chapter_list, source, book)

    def get_content(
        self,
        source: BookSource,
        book: Book,
        chapter: BookChapter,
        next_chapter_url: str | None = None,
    ) -> CancellableTask[str]:
        """Resolve the text of ``chapter``.

        Args:
            next_chapter_url: URL of the following chapter, which stops
                pagination if a next-page link points at it
        """
        return self._submit(
            f"content:{chapter.url}", self._get_content, source, book, chapter, next_chapter_url
        )

    # Operation bodies

    def _submit(
        self, name: str, operation: Callable[..., Awaitable[T]], *args: Any
    ) -> CancellableTask[T]:
        async def run(token: CancellationToken) -> T:
            async with self._pool:
                token.raise_if_cancelled()
                return await operation(*args, token)

        return CancellableTask(run, name=name)

    async def _search(
        self, source: BookSource, key: str, page: int, token: CancellationToken
    ) -> list[SearchBook]:
        if not source.search_url:
            logger.debug("Source %s has no search URL", source.book_source_url)
            return []
        request = self._urls.build(
            source.search_url,
            base_url=source.book_source_url,
            page=page,
            key=key,
            header_rule=source.header,
            source=source,
        )
        result = await self._load(source, request, token)
        with resolve_stage("search"):
            return self._book_list.resolve(
                result.body, source, request, result.effective_url, is_search=True
            )

    async def _explore(
        self, source: BookSource, url: str, page: int, token: CancellationToken
    ) -> list[SearchBook]:
        request = self._urls.build(
            url,
            base_url=source.book_source_url,
            page=page,
            header_rule=source.header,
            source=source,
        )
        result = await self._load(source, request, token)
        with resolve_stage("explore"):
            return self._book_list.resolve(
                result.body, source, request, result.effective_url, is_search=False
            )

    async def _get_book_info(
        self, source: BookSource, book: Book, token: CancellationToken
    ) -> Book:
        book.type = source.book_source_type
        if not book.origin:
            book.origin = source.book_source_url
            book.origin_name = source.book_source_name

        if book.info_html:
            logger.debug("Reusing cached detail page of %s", book.book_url)
            body, base_url = book.info_html, book.book_url
        else:
            request = self._urls.build(
                book.book_url,
                base_url=source.book_source_url,
                header_rule=source.header,
                source=source,
                book=book,
            )
            result = await self._load(source, request, token)
            body, base_url = result.body, result.effective_url

        with resolve_stage("info"):
            self._book_info.resolve(book, body, source, base_url)
        return book

    async def _get_chapter_list(
        self, source: BookSource, book: Book, token: CancellationToken
    ) -> list[BookChapter]:
        book.type = source.book_source_type
        if not book.toc_url:
            book.toc_url = book.book_url

        if book.toc_html and same_url(book.toc_url, book.book_url):
            logger.debug("Reusing cached toc page of %s", book.book_url)
            body, base_url = book.toc_html, book.toc_url
        else:
            request = self._urls.build(
                book.toc_url,
                base_url=book.book_url,
                header_rule=source.header,
                source=source,
                book=book,
            )
            result = await self._load(source, request, token)
            body, base_url = result.body, result.effective_url

        with resolve_stage("toc"):
            return await self._chapter_list.resolve(
                book, body, source, base_url, self._page_loader(source, book, token)
            )

    async def _get_content(
        self,
        source: BookSource,
        book: Book,
        chapter: BookChapter,
        next_chapter_url: str | None,
        token: CancellationToken,
    ) -> str:
        if not source.get_content_rule().content:
            return chapter.url

        if book.toc_html and same_url(chapter.url, book.book_url):
            logger.debug("Reusing cached page of %s as chapter content", book.book_url)
            body, base_url = book.toc_html, book.book_url
        else:
            request = self._urls.build(
                chapter.url,
                base_url=book.toc_url or book.book_url,
                header_rule=source.header,
                source=source,
                book=book,
            )
            result = await self._load(source, request, token)
            body, base_url = result.body, result.effective_url

        with resolve_stage("content"):
            return await self._content.resolve(
                book,
                chapter,
                body,
                source,
                base_url,
                next_chapter_url,
                self._page_loader(source, book, token),
            )

    # Fetching

    async def _load(
        self, source: BookSource, request: RequestDescriptor, token: CancellationToken
    ) -> FetchResult:
        """Fetch ``request`` with the strategy it asks for."""
        token.raise_if_cancelled()
        if request.use_rendered_fetch:
            logger.debug("Rendered fetch of %s", request.url)
            body = await self._rendered_fetcher.fetch_rendered(request, source.book_source_url)
            result = FetchResult(body=body, effective_url=request.url)
        else:
            result = await self._fetcher.fetch(request)
        token.raise_if_cancelled()
        return result

    def _page_loader(self, source: BookSource, book: Book, token: CancellationToken) -> PageLoader:
        async def load_page(url: str, base_url: str) -> FetchResult:
            request = self._urls.build(
                url, base_url=base_url, header_rule=source.header, source=source, book=book
            )
            return await self._load(source, request, token)

        return load_page
