"""Shared helpers for webbook."""

from .exceptions import (
    ChapterListEmptyError,
    CycleDetected,
    FetchError,
    ResolveError,
    RuleError,
    WebBookError,
)
from .urls import VisitedUrls, absolute_url, normalize_url, same_url, url_is_absolute


__all__ = [
    "ChapterListEmptyError",
    "CycleDetected",
    "FetchError",
    "ResolveError",
    "RuleError",
    "VisitedUrls",
    "WebBookError",
    "absolute_url",
    "normalize_url",
    "same_url",
    "url_is_absolute",
]
