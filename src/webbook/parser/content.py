"""Chapter content parsing, following multi-page chapters."""

import asyncio
import logging
import re

from bs4 import BeautifulSoup

from ..models import Book, BookChapter, BookSource, ContentRule, PageLoader
from ..utils.exceptions import CycleDetected, RuleError
from ..utils.urls import VisitedUrls, absolute_url, same_url
from .rules import RuleEvaluator


logger = logging.getLogger(__name__)

# Joins the text of consecutive pages of one chapter
PAGE_SEPARATOR = "\n"

BLOCK_TAGS = [
    "p",
    "div",
    "li",
    "tr",
    "section",
    "article",
    "blockquote",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
]


def format_content(content: str) -> str:
    """Convert extracted content HTML to plain text.

    Block elements and ``<br>`` become line breaks, scripts and styles are
    dropped, every line is stripped and blank lines are removed.

    Args:
        content: HTML fragment or plain text

    Returns:
        Plain text, one paragraph per line
    """
    if "<" in content:
        soup = BeautifulSoup(content, "lxml")
        for tag in soup.find_all(["script", "style"]):
            tag.decompose()
        for br in soup.find_all("br"):
            br.replace_with("\n")
        for block in soup.find_all(BLOCK_TAGS):
            block.insert_before("\n")
            block.insert_after("\n")
        content = soup.get_text()
    lines = (line.strip() for line in content.splitlines())
    return "\n".join(line for line in lines if line)


def apply_replacements(text: str, rule: ContentRule) -> str:
    """Apply the rule's ordered regex replacements to ``text``.

    Raises:
        RuleError: If a replacement pattern is not a valid regex
    """
    for replace in rule.replace_regex:
        try:
            text = re.sub(replace.pattern, replace.replacement, text)
        except re.error as e:
            raise RuleError(f"Invalid replacement regex {replace.pattern!r}: {e}") from e
    return text.strip()


class ChapterContentResolver:
    """Extracts the text of a chapter, following its next-page links.

    Pagination ends when the next-page rule yields nothing, repeats a page
    already read, or points at the next chapter.
    """

    def __init__(self, evaluator: RuleEvaluator):
        self.evaluator = evaluator

    async def resolve(
        self,
        book: Book,
        chapter: BookChapter,
        body: str,
        source: BookSource,
        base_url: str,
        next_chapter_url: str | None = None,
        load_page: PageLoader | None = None,
    ) -> str:
        """Assemble the full text of ``chapter``.

        Args:
            book: Book the chapter belongs to
            chapter: Chapter being read
            body: First content page document
            source: Source providing the content rules
            base_url: Effective URL of the first page
            next_chapter_url: URL of the following chapter, never treated as
                a continuation page
            load_page: Fetches continuation pages

        Returns:
            Text of all pages joined by :data:`PAGE_SEPARATOR`, or the chapter
            URL itself when the source has no content rule
        """
        rule = source.get_content_rule()
        if not rule.content:
            return chapter.url

        visited = VisitedUrls()
        visited.mark(base_url)
        pages = [self._page_text(body, rule)]
        page_body, page_url = body, base_url

        while load_page is not None and rule.next_content_url:
            candidates = [
                absolute_url(page_url, url)
                for url in self.evaluator.get_strings(rule.next_content_url, page_body)
            ]
            candidates = [url for url in candidates if not same_url(url, next_chapter_url)]
            if not candidates:
                break

            if len(candidates) > 1:
                # The page lists every remaining page of the chapter
                fresh = [url for url in candidates if self._first_visit(visited, url)]
                results = await asyncio.gather(*(load_page(url, page_url) for url in fresh))
                pages.extend(
                    self._page_text(result.body, rule)
                    for url, result in zip(fresh, results)
                    if self._landed_on_new_page(visited, url, result.effective_url)
                )
                break

            next_url = candidates[0]
            if not self._first_visit(visited, next_url):
                break
            result = await load_page(next_url, page_url)
            if not self._landed_on_new_page(visited, next_url, result.effective_url):
                break
            page_body, page_url = result.body, result.effective_url
            pages.append(self._page_text(page_body, rule))

        logger.debug("Chapter %r of %s spans %d page(s)", chapter.title, book.name, len(pages))
        return PAGE_SEPARATOR.join(page for page in pages if page)

    @staticmethod
    def _first_visit(visited: VisitedUrls, url: str) -> bool:
        try:
            visited.mark(url)
        except CycleDetected:
            logger.debug("Content page %s already read, stopping", url)
            return False
        return True

    @classmethod
    def _landed_on_new_page(cls, visited: VisitedUrls, requested: str, effective: str) -> bool:
        if same_url(requested, effective):
            return True
        logger.debug("%s redirected to %s", requested, effective)
        return cls._first_visit(visited, effective)

    def _page_text(self, body: str, rule: ContentRule) -> str:
        raw = self.evaluator.get_string(rule.content, body) or ""
        return apply_replacements(format_content(raw), rule)
