"""Search and explore list page parsing."""

import logging
import re
from typing import Any

from ..models import Book, BookSource, RequestDescriptor, SearchBook, SearchRule
from ..utils.exceptions import RuleError
from ..utils.urls import absolute_url
from .book_info import BookInfoResolver
from .rules import RuleEvaluator, split_reverse


logger = logging.getLogger(__name__)


class BookListResolver:
    """Parses a list page into :class:`SearchBook` entries.

    Search and explore pages share the same parsing; they only differ in
    the rule group used. A missing rule group or an empty page yields an
    empty list, and entries without a name or URL are dropped.
    """

    def __init__(self, evaluator: RuleEvaluator, info_resolver: BookInfoResolver | None = None):
        self.evaluator = evaluator
        self.info_resolver = info_resolver or BookInfoResolver(evaluator)

    def resolve(
        self,
        body: str,
        source: BookSource,
        request: RequestDescriptor,
        base_url: str,
        is_search: bool,
    ) -> list[SearchBook]:
        """Extract the entries of one list page.

        Args:
            body: List page document
            source: Source providing the list rules
            request: Request the page was fetched with
            base_url: Effective URL of the page, used for relative links
            is_search: Use the search rules (True) or the explore rules

        Returns:
            Entries in page order (reversed when the list rule starts with ``-``)
        """
        if self._is_detail_page(source, base_url):
            logger.debug("%s matches the book URL pattern, parsing as detail page", base_url)
            return self._detail_page_entry(body, source, base_url)

        rule = source.get_search_rule() if is_search else source.get_explore_rule()
        list_rule, reverse = split_reverse(rule.book_list)
        if not list_rule:
            return []

        results = []
        for item in self.evaluator.elements(list_rule, body):
            entry = self._parse_item(item, rule, source, base_url)
            if entry is None:
                logger.debug("Dropping list entry without name or URL on %s", request.url)
                continue
            results.append(entry)

        if reverse:
            results.reverse()
        logger.debug("Page %d of %s yielded %d entries", request.page, request.url, len(results))
        return results

    @staticmethod
    def _is_detail_page(source: BookSource, base_url: str) -> bool:
        if not source.book_url_pattern:
            return False
        try:
            return re.match(source.book_url_pattern, base_url) is not None
        except re.error as e:
            raise RuleError(f"Invalid book URL pattern {source.book_url_pattern!r}: {e}") from e

    def _detail_page_entry(self, body: str, source: BookSource, base_url: str) -> list[SearchBook]:
        book = Book(
            book_url=base_url,
            origin=source.book_source_url,
            origin_name=source.book_source_name,
            type=source.book_source_type,
        )
        self.info_resolver.resolve(book, body, source, base_url)
        if not book.name:
            return []
        return [
            SearchBook(
                book_url=book.book_url,
                toc_url=book.toc_url,
                name=book.name,
                author=book.author,
                origin=book.origin,
                origin_name=book.origin_name,
                kind=book.kind,
                cover_url=book.cover_url,
                intro=book.intro,
                latest_chapter_title=book.latest_chapter_title,
                word_count=book.word_count,
                type=book.type,
                info_html=body,
                toc_html=book.toc_html,
            )
        ]

    def _parse_item(
        self, item: Any, rule: SearchRule, source: BookSource, base_url: str
    ) -> SearchBook | None:
        get = self.evaluator.get_string
        name = get(rule.name, item)
        book_url = get(rule.book_url, item)
        if not name or not book_url:
            return None

        cover_url = get(rule.cover_url, item)
        kinds = self.evaluator.get_strings(rule.kind, item)
        return SearchBook(
            book_url=absolute_url(base_url, book_url),
            name=name,
            author=get(rule.author, item) or "",
            origin=source.book_source_url,
            origin_name=source.book_source_name,
            kind=",".join(kinds) if kinds else None,
            cover_url=absolute_url(base_url, cover_url) if cover_url else None,
            intro=get(rule.intro, item),
            latest_chapter_title=get(rule.last_chapter, item),
            update_time=get(rule.update_time, item),
            word_count=get(rule.word_count, item),
            type=source.book_source_type,
        )
