"""Fetch layer: request building, plain and rendered page fetchers."""

from .base import PageFetcher, RenderedPageFetcher
from .http import HttpFetcher
from .rendered import RenderedFetcher
from .url import UrlResolver


__all__ = [
    "HttpFetcher",
    "PageFetcher",
    "RenderedFetcher",
    "RenderedPageFetcher",
    "UrlResolver",
]
