"""Detail page parsing."""

import logging
from typing import Any

from ..models import Book, BookSource
from ..utils.urls import absolute_url
from .rules import RuleEvaluator


logger = logging.getLogger(__name__)


class BookInfoResolver:
    """Parses a book detail page onto an existing :class:`Book`.

    Every field rule is evaluated independently. An absent rule, or one that
    extracts nothing, leaves the current value in place so that a record can
    be enriched incrementally.
    """

    def __init__(self, evaluator: RuleEvaluator):
        self.evaluator = evaluator

    def resolve(self, book: Book, body: str, source: BookSource, base_url: str) -> None:
        """Merge the detail page ``body`` into ``book``.

        Args:
            book: Book to update in place
            body: Detail page document
            source: Source providing the info rules
            base_url: Effective URL of the page, used for relative links
        """
        rule = source.get_book_info_rule()
        document: Any = body
        if rule.init:
            found = self.evaluator.elements(rule.init, body)
            if found:
                document = found[0]

        get = self.evaluator.get_string
        self._assign(book, "name", get(rule.name, document))
        self._assign(book, "author", get(rule.author, document))
        kinds = self.evaluator.get_strings(rule.kind, document)
        self._assign(book, "kind", ",".join(kinds) if kinds else None)
        self._assign(book, "word_count", get(rule.word_count, document))
        self._assign(book, "latest_chapter_title", get(rule.last_chapter, document))
        self._assign(book, "intro", get(rule.intro, document))

        cover_url = get(rule.cover_url, document)
        if cover_url:
            book.cover_url = absolute_url(base_url, cover_url)

        toc_url = get(rule.toc_url, document)
        if toc_url:
            book.toc_url = absolute_url(base_url, toc_url)
        else:
            # The detail page doubles as the table of contents
            book.toc_url = book.book_url
            book.toc_html = body
        logger.debug("Resolved book info for %s (toc %s)", book.book_url, book.toc_url)

    @staticmethod
    def _assign(book: Book, field: str, value: str | None) -> None:
        if value:
            setattr(book, field, value)
