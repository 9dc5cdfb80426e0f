"""Builds request descriptors from templated source URLs.

A rule URL is a jinja2 template, optionally followed by a JSON options
object::

    /search?q={{key}}&p={{page}},{"method": "POST", "charset": "gbk"}

Supported options are ``method``, ``body``, ``charset``, ``headers`` and
``webView``. A ``<a,b,c>`` group picks the entry for the requested page.
"""

import codecs
import json
import logging
import re
from typing import Any
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models import Book, BookSource, RequestDescriptor
from ..parser.rules import HeaderBuilder, JsonHeaderBuilder, render_template
from ..utils.exceptions import RuleError
from ..utils.urls import absolute_url, url_is_absolute


logger = logging.getLogger(__name__)

# Comma followed by a JSON object (but not by a {{ placeholder)
OPTIONS_SPLIT_PATTERN = re.compile(r"\s*,\s*(?=\{(?!\{))")
# Page list groups need at least one comma
PAGE_LIST_PATTERN = re.compile(r"<([^<>]*,[^<>]*)>")
JINJA_SPAN_PATTERN = re.compile(r"\{\{.*?\}\}|\{%.*?%\}|\{#.*?#\}", re.DOTALL)


class UrlOptions(BaseModel):
    """Options object that may follow a rule URL."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    method: str = "GET"
    body: str | None = None
    charset: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    web_view: bool = Field(default=False, alias="webView")

    @field_validator("charset")
    @classmethod
    def known_charset(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"unknown charset {v!r}") from e
        return v


def select_page(template: str, page: int) -> str:
    """Replace each ``<a,b,c>`` group with the entry for ``page``.

    Pages past the end of the list use the last entry. Groups inside jinja2
    expressions, statements or comments are left alone.
    """
    spans = [m.span() for m in JINJA_SPAN_PATTERN.finditer(template)]

    def in_jinja(position: int) -> bool:
        return any(start <= position < end for start, end in spans)

    def pick(match: re.Match[str]) -> str:
        if in_jinja(match.start()) or in_jinja(match.end() - 1):
            return match.group(0)
        entries = [e.strip() for e in match.group(1).split(",")]
        return entries[min(max(page, 1), len(entries)) - 1]

    return PAGE_LIST_PATTERN.sub(pick, template)


class UrlResolver:
    """Turns a source rule URL into an absolute :class:`RequestDescriptor`.

    Pure transformation, no network I/O.
    """

    def __init__(self, header_builder: HeaderBuilder | None = None):
        self.header_builder = header_builder or JsonHeaderBuilder()

    def build(
        self,
        rule_url: str | None,
        *,
        base_url: str,
        page: int | None = None,
        key: str | None = None,
        header_rule: str | None = None,
        source: BookSource | None = None,
        book: Book | None = None,
    ) -> RequestDescriptor:
        """Build a request descriptor.

        Args:
            rule_url: Templated URL, optionally followed by JSON options
            base_url: Base for resolving a relative result
            page: Page number (defaults to 1)
            key: Search keyword, URL-encoded with the request charset
            header_rule: Header-generation rule of the source
            source: Source, exposed to templates as ``source``
            book: Book, exposed to templates as ``book``

        Returns:
            Descriptor with an absolute URL

        Raises:
            RuleError: If the template or its options are malformed, or the
                result cannot be made absolute
        """
        if not rule_url or not rule_url.strip():
            raise RuleError("Empty URL rule")
        page = page or 1

        parts = OPTIONS_SPLIT_PATTERN.split(rule_url.strip(), maxsplit=1)
        url_template = select_page(parts[0], page)

        context: dict[str, Any] = {
            "page": page,
            "raw_key": key,
            "book": book,
            "source": source,
            "base_url": base_url,
        }
        options = self._parse_options(parts[1]) if len(parts) > 1 else UrlOptions()
        charset = options.charset
        context["key"] = self._encode_key(key, charset)

        url = render_template(url_template, context).strip()
        url = absolute_url(base_url, url)
        if not url_is_absolute(url):
            raise RuleError(f"Cannot resolve {rule_url!r} to an absolute URL (base {base_url!r})")

        body = None
        if options.body is not None:
            body = render_template(select_page(options.body, page), context)

        headers = self._build_headers(
            header_rule, {"source": source, "book": book, "base_url": base_url}
        )
        headers.update({k: render_template(v, context) for k, v in options.headers.items()})

        return RequestDescriptor(
            url=url,
            method=options.method.upper(),
            headers=headers,
            body=body,
            page=page,
            charset=charset,
            use_rendered_fetch=options.web_view or bool(source and source.web_view),
        )

    @staticmethod
    def _parse_options(raw: str) -> UrlOptions:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise RuleError(f"Malformed URL options {raw!r}: {e}") from e
        if not isinstance(data, dict):
            raise RuleError(f"URL options must be a JSON object: {raw!r}")
        try:
            return UrlOptions.model_validate(data)
        except ValidationError as e:
            raise RuleError(f"Invalid URL options {raw!r}: {e}") from e

    @staticmethod
    def _encode_key(key: str | None, charset: str | None) -> str | None:
        if key is None:
            return None
        # Characters missing from the charset become HTML numeric references
        return quote_plus(key, encoding=charset or "utf-8", errors="xmlcharrefreplace")

    def _build_headers(self, rule: str | None, context: dict[str, Any]) -> dict[str, str]:
        if not rule:
            return {}
        try:
            return dict(self.header_builder.build_headers(rule, context))
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Ignoring header rule that failed to evaluate: %s", e)
            return {}
