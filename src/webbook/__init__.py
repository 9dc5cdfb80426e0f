"""Rule-driven content extraction for web book sources."""

__version__ = "1.0.0"

from .models import Book, BookChapter, BookSource, SearchBook, WebBookConfig  # noqa: E402
from .tasks import CancellableTask, CancellationToken  # noqa: E402
from .utils.exceptions import (  # noqa: E402
    ChapterListEmptyError,
    FetchError,
    ResolveError,
    RuleError,
    WebBookError,
)
from .web_book import WebBook  # noqa: E402


__all__ = [
    "Book",
    "BookChapter",
    "BookSource",
    "CancellableTask",
    "CancellationToken",
    "ChapterListEmptyError",
    "FetchError",
    "ResolveError",
    "RuleError",
    "SearchBook",
    "WebBook",
    "WebBookConfig",
    "WebBookError",
    "__version__",
]
