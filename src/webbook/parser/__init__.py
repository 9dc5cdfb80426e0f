"""Rule evaluation and page resolvers for webbook."""

from .book_info import BookInfoResolver
from .book_list import BookListResolver
from .chapter_list import ChapterListResolver
from .content import PAGE_SEPARATOR, ChapterContentResolver, format_content
from .rules import HeaderBuilder, JsonHeaderBuilder, RuleEvaluator, SelectorRuleEvaluator


__all__ = [
    "PAGE_SEPARATOR",
    "BookInfoResolver",
    "BookListResolver",
    "ChapterContentResolver",
    "ChapterListResolver",
    "HeaderBuilder",
    "JsonHeaderBuilder",
    "RuleEvaluator",
    "SelectorRuleEvaluator",
    "format_content",
]
