"""Custom exception hierarchy for webbook."""


class WebBookError(Exception):
    """Base exception for all webbook errors."""


class RuleError(WebBookError):
    """Raised when a source rule or URL template is malformed.

    Indicates a bug in the source configuration; never retried.
    """


class FetchError(WebBookError):
    """Raised when a page cannot be fetched (network, timeout, bad status)."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ResolveError(WebBookError):
    """Raised when extraction produced no usable result where one was required."""

    def __init__(self, message: str, stage: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class ChapterListEmptyError(ResolveError):
    """Raised when a table of contents resolves to zero chapters."""

    def __init__(self, book_url: str):
        super().__init__(f"No chapters found for book {book_url}", stage="toc")
        self.book_url = book_url


class CycleDetected(WebBookError):
    """Raised when a pagination chain revisits a page.

    Internal only: callers catch it and end the chain with what was collected.
    """

    def __init__(self, url: str):
        super().__init__(f"Page already visited: {url}")
        self.url = url
