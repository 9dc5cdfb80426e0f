"""Table of contents parsing, following paginated tocs."""

import logging
from collections import deque
from typing import Any

from ..models import Book, BookChapter, BookSource, PageLoader, TocRule
from ..utils.exceptions import ChapterListEmptyError, CycleDetected
from ..utils.urls import VisitedUrls, absolute_url, same_url
from .rules import RuleEvaluator, split_reverse


logger = logging.getLogger(__name__)

FALSY_FLAGS = {"", "0", "false", "no", "null", "none"}


class ChapterListResolver:
    """Parses a (possibly multi-page) table of contents into chapters.

    Pages are followed through the source's next-toc rule with an explicit
    queue. Revisiting a page ends the chain with the chapters collected so far.
    """

    def __init__(self, evaluator: RuleEvaluator):
        self.evaluator = evaluator

    async def resolve(
        self,
        book: Book,
        body: str,
        source: BookSource,
        base_url: str,
        load_page: PageLoader | None = None,
    ) -> list[BookChapter]:
        """Resolve the chapter list starting from the first toc page.

        Args:
            book: Book owning the chapters; its latest chapter and chapter
                count are updated
            body: First toc page document
            source: Source providing the toc rules
            base_url: Effective URL of the first page
            load_page: Fetches follow-up toc pages; without it only the
                first page is parsed

        Returns:
            Chapters in page order with contiguous indices starting at 0

        Raises:
            ChapterListEmptyError: If no chapter was found on any page
        """
        rule = source.get_toc_rule()
        list_rule, reverse = split_reverse(rule.chapter_list)

        visited = VisitedUrls()
        visited.mark(base_url)
        pending: deque[str] = deque()
        chapters: list[BookChapter] = []
        page_body, page_url = body, base_url

        while True:
            chapters.extend(self._parse_page(page_body, page_url, list_rule, rule))
            if load_page is None:
                break

            pending.extend(
                absolute_url(page_url, url)
                for url in self.evaluator.get_strings(rule.next_toc_url, page_body)
            )
            next_url = self._next_unvisited(pending, visited)
            if next_url is None:
                break

            result = await load_page(next_url, page_url)
            page_body, page_url = result.body, result.effective_url
            if not same_url(page_url, next_url):
                try:
                    visited.mark(page_url)
                except CycleDetected:
                    logger.debug("%s redirected to visited page %s", next_url, page_url)
                    break

        if reverse:
            chapters.reverse()
        for index, chapter in enumerate(chapters):
            chapter.index = index
            chapter.book_url = book.book_url

        if not chapters:
            raise ChapterListEmptyError(book.book_url)

        book.latest_chapter_title = chapters[-1].title
        book.total_chapter_num = len(chapters)
        logger.debug("Resolved %d chapters over %d toc page(s)", len(chapters), len(visited))
        return chapters

    @staticmethod
    def _next_unvisited(pending: deque[str], visited: VisitedUrls) -> str | None:
        while pending:
            url = pending.popleft()
            try:
                visited.mark(url)
            except CycleDetected:
                logger.debug("Toc page %s already visited, skipping", url)
                continue
            return url
        return None

    def _parse_page(
        self, body: str, page_url: str, list_rule: str | None, rule: TocRule
    ) -> list[BookChapter]:
        if not list_rule:
            return []
        chapters = []
        for item in self.evaluator.elements(list_rule, body):
            chapter = self._parse_item(item, page_url, rule)
            if chapter is not None:
                chapters.append(chapter)
        return chapters

    def _parse_item(self, item: Any, page_url: str, rule: TocRule) -> BookChapter | None:
        get = self.evaluator.get_string
        title = get(rule.chapter_name, item)
        if not title:
            return None
        is_volume = (get(rule.is_volume, item) or "").strip().lower() not in FALSY_FLAGS
        url = get(rule.chapter_url, item)
        if url:
            url = absolute_url(page_url, url)
        elif not is_volume:
            url = page_url
        return BookChapter(
            title=title,
            url=url or "",
            is_volume=is_volume,
            tag=get(rule.update_time, item),
        )
