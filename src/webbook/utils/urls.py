"""URL helpers shared by the request builder and the resolvers."""

from urllib.parse import urljoin, urlparse, urlunparse

from .exceptions import CycleDetected


def url_is_absolute(url: str) -> bool:
    """Check if URL is absolute (has both a scheme and a network location)."""
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def absolute_url(base_url: str | None, url: str | None) -> str:
    """Resolve ``url`` against ``base_url``.

    Protocol-relative links (``//host/path``) take the scheme of the base.
    Absolute URLs are returned unchanged; an empty URL yields an empty string.

    Args:
        base_url: Effective base URL of the page the link was found on
        url: Link as extracted from the page

    Returns:
        Absolute URL, or the input unchanged when no base is available
    """
    if not url:
        return ""
    url = url.strip()
    if url_is_absolute(url) or not base_url:
        return url
    return urljoin(base_url, url)


def normalize_url(url: str) -> str:
    """Canonical form of ``url`` used to detect revisited pages.

    Drops the fragment, lowercases scheme and host and removes the
    trailing slash of non-root paths.
    """
    parsed = urlparse(url.strip())
    path = parsed.path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, "")
    )


def same_url(first: str | None, second: str | None) -> bool:
    """Compare two URLs by their normalized form."""
    if not first or not second:
        return False
    return normalize_url(first) == normalize_url(second)


class VisitedUrls:
    """Set of pages already fetched in one pagination chain."""

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and normalize_url(url) in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def mark(self, url: str) -> None:
        """Record ``url`` as visited.

        Raises:
            CycleDetected: If the page was visited before
        """
        key = normalize_url(url)
        if key in self._seen:
            raise CycleDetected(url)
        self._seen.add(key)
