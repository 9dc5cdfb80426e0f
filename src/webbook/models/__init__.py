"""Data models for webbook."""

from .book import Book, SearchBook
from .chapter import BookChapter
from .config import WebBookConfig
from .request import FetchResult, PageLoader, RequestDescriptor
from .source import (
    BookInfoRule,
    BookSource,
    ContentRule,
    ExploreKind,
    ReplaceRule,
    SearchRule,
    TocRule,
)


__all__ = [
    "Book",
    "BookChapter",
    "BookInfoRule",
    "BookSource",
    "ContentRule",
    "ExploreKind",
    "FetchResult",
    "PageLoader",
    "ReplaceRule",
    "RequestDescriptor",
    "SearchBook",
    "SearchRule",
    "TocRule",
    "WebBookConfig",
]
