"""Rule evaluation for book source rules.

The resolvers only talk to the :class:`RuleEvaluator` and
:class:`HeaderBuilder` interfaces. The default implementations here cover a
small selector dialect:

- ``@css:`` prefix or no prefix: CSS selector, optionally followed by
  ``@text``, ``@html``, ``@ownText`` or ``@<attribute>``
- ``@xpath:`` prefix or a leading ``/``: XPath evaluated with lxml
- ``@json:`` prefix or a leading ``$``: dotted JSON path (``$.a.b[0]``,
  ``$.items[*].name``)
- ``rule##pattern##replacement``: regex replacement on every string result
- ``ruleA||ruleB``: first alternative with a non-empty result wins
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from bs4 import BeautifulSoup, Tag
from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from lxml import etree
from lxml import html as lxml_html
from soupsieve import SelectorSyntaxError

from ..utils.exceptions import RuleError


ALTERNATIVE_SEPARATOR = "||"
REPLACE_SEPARATOR = "##"
JSON_PATH_TOKEN = re.compile(r"\.([^.\[\]]+)|\[(\*|-?\d+)\]|\[['\"]([^'\"]+)['\"]\]")
# Extractor name ending a CSS rule, as in ``a@href``
EXTRACTOR_SUFFIX = re.compile(r"@([A-Za-z_][\w:.-]*)?\s*$")

TEMPLATE_ENV = SandboxedEnvironment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=ChainableUndefined,
)


def render_template(template: str, context: dict[str, Any]) -> str:
    """Render a jinja2 template string with the given context.

    Raises:
        RuleError: If the template is malformed
    """
    try:
        return TEMPLATE_ENV.from_string(template).render(**context)
    except TemplateError as e:
        raise RuleError(f"Malformed template {template!r}: {e}") from e


def split_reverse(rule: str | None) -> tuple[str | None, bool]:
    """Strip the order prefix of a list rule.

    A leading ``-`` asks for the matches in reverse order, a leading ``+``
    is the explicit (default) forward order.
    """
    if not rule:
        return rule, False
    if rule.startswith("-"):
        return rule[1:], True
    if rule.startswith("+"):
        return rule[1:], False
    return rule, False


class RuleEvaluator(ABC):
    """Evaluates source rules against documents or list-item sub-documents."""

    @abstractmethod
    def evaluate(self, rule: str | None, content: Any) -> str | list[str] | None:
        """Extract string value(s) selected by ``rule``.

        Returns None for an absent rule or when nothing matched.

        Raises:
            RuleError: If the rule is structurally malformed
        """

    @abstractmethod
    def elements(self, rule: str | None, content: Any) -> list[Any]:
        """Select the sub-documents matched by a list rule."""

    def get_string(self, rule: str | None, content: Any) -> str | None:
        """Evaluate ``rule`` to one stripped string (multiple values joined by newlines)."""
        value = self.evaluate(rule, content)
        if value is None:
            return None
        if isinstance(value, list):
            value = "\n".join(v for v in value if v)
        value = value.strip()
        return value or None

    def get_strings(self, rule: str | None, content: Any) -> list[str]:
        """Evaluate ``rule`` to a list of non-empty stripped strings."""
        value = self.evaluate(rule, content)
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [v.strip() for v in value if v and v.strip()]


class SelectorRuleEvaluator(RuleEvaluator):
    """Default evaluator backed by BeautifulSoup, lxml and plain JSON traversal."""

    def __init__(self) -> None:
        self._soup_cache: tuple[str, BeautifulSoup] | None = None
        self._tree_cache: tuple[str, Any] | None = None
        self._json_cache: tuple[str, Any] | None = None

    # Public API

    def evaluate(self, rule: str | None, content: Any) -> str | list[str] | None:
        if not rule or not rule.strip():
            return None
        for alternative in rule.split(ALTERNATIVE_SEPARATOR):
            value = self._evaluate_single(alternative.strip(), content)
            if value:
                return value
        return None

    def elements(self, rule: str | None, content: Any) -> list[Any]:
        if not rule or not rule.strip():
            return []
        for alternative in rule.split(ALTERNATIVE_SEPARATOR):
            expr = alternative.strip()
            if not expr:
                continue
            mode, expr = self._detect_mode(expr)
            if mode == "xpath":
                found = [e for e in self._xpath(expr, content) if isinstance(e, etree._Element)]
            elif mode == "json":
                found = self._json_path(expr, content)
            else:
                found = self._css_select(expr, content)
            if found:
                return found
        return []

    # Dispatch

    @staticmethod
    def _detect_mode(expr: str) -> tuple[str, str]:
        if expr.startswith("@xpath:"):
            return "xpath", expr[len("@xpath:") :]
        if expr.startswith("@json:"):
            return "json", expr[len("@json:") :]
        if expr.startswith("@css:"):
            return "css", expr[len("@css:") :]
        if expr.startswith("/"):
            return "xpath", expr
        if expr.startswith("$"):
            return "json", expr
        return "css", expr

    def _evaluate_single(self, rule: str, content: Any) -> str | list[str] | None:
        if not rule:
            return None
        expr, _, replace = rule.partition(REPLACE_SEPARATOR)
        mode, expr = self._detect_mode(expr.strip())

        if mode == "xpath":
            values = [self._xpath_text(item) for item in self._xpath(expr, content)]
        elif mode == "json":
            values = [self._json_text(node) for node in self._json_path(expr, content)]
        else:
            values = self._css_values(expr, content)

        values = [v for v in values if v is not None]
        if replace:
            pattern, _, replacement = replace.partition(REPLACE_SEPARATOR)
            values = [self._replace(pattern, replacement, v) for v in values]
        values = [v for v in values if v.strip()]

        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values

    @staticmethod
    def _replace(pattern: str, replacement: str, value: str) -> str:
        try:
            return re.sub(pattern, replacement, value)
        except re.error as e:
            raise RuleError(f"Invalid replacement regex {pattern!r}: {e}") from e

    # CSS

    def _soup(self, content: Any) -> Tag | None:
        if isinstance(content, Tag):
            return content
        if isinstance(content, etree._Element):
            content = etree.tostring(content, encoding="unicode", method="html")
        if not isinstance(content, str):
            return None
        if self._soup_cache is not None and self._soup_cache[0] is content:
            return self._soup_cache[1]
        soup = BeautifulSoup(content, "lxml")
        self._soup_cache = (content, soup)
        return soup

    def _css_select(self, selector: str, content: Any) -> list[Tag]:
        root = self._soup(content)
        if root is None:
            return []
        if not selector:
            return [root]
        try:
            return list(root.select(selector))
        except (SelectorSyntaxError, ValueError) as e:
            raise RuleError(f"Invalid CSS selector {selector!r}: {e}") from e

    def _css_values(self, expr: str, content: Any) -> list[str | None]:
        match = EXTRACTOR_SUFFIX.search(expr)
        if match:
            selector, extractor = expr[: match.start()], match.group(1) or "text"
        else:
            selector, extractor = expr, "text"
        selector = selector.strip()
        return [self._extract(tag, extractor) for tag in self._css_select(selector, content)]

    @staticmethod
    def _extract(tag: Tag, extractor: str) -> str | None:
        if extractor == "text":
            return tag.get_text(" ", strip=True)
        if extractor == "html":
            return tag.decode_contents()
        if extractor == "ownText":
            return "".join(t for t in tag.find_all(string=True, recursive=False)).strip()
        value = tag.get(extractor)
        if isinstance(value, list):
            return " ".join(value)
        return value

    # XPath

    def _tree(self, content: Any) -> Any:
        if isinstance(content, etree._Element):
            return content
        if isinstance(content, Tag):
            content = str(content)
        if not isinstance(content, str) or not content.strip():
            return None
        if self._tree_cache is not None and self._tree_cache[0] is content:
            return self._tree_cache[1]
        try:
            tree = lxml_html.fromstring(content)
        except etree.ParserError:
            return None
        self._tree_cache = (content, tree)
        return tree

    def _xpath(self, expr: str, content: Any) -> list[Any]:
        tree = self._tree(content)
        if tree is None:
            return []
        try:
            result = tree.xpath(expr)
        except etree.XPathError as e:
            raise RuleError(f"Invalid XPath {expr!r}: {e}") from e
        if isinstance(result, list):
            return result
        return [result]

    @staticmethod
    def _xpath_text(item: Any) -> str | None:
        if isinstance(item, etree._Element):
            return item.text_content().strip()
        if isinstance(item, bool):
            return str(item).lower()
        if isinstance(item, float) and item.is_integer():
            return str(int(item))
        return str(item)

    # JSON

    def _json(self, content: Any) -> Any:
        if isinstance(content, (dict, list)):
            return content
        if isinstance(content, Tag):
            content = content.get_text()
        if not isinstance(content, str):
            return None
        if self._json_cache is not None and self._json_cache[0] is content:
            return self._json_cache[1]
        try:
            data = json.loads(content)
        except ValueError:
            return None
        self._json_cache = (content, data)
        return data

    def _json_path(self, expr: str, content: Any) -> list[Any]:
        data = self._json(content)
        if data is None:
            return []
        path = expr.strip()
        if not path.startswith("$"):
            path = "$." + path
        path = path[1:]

        tokens = []
        position = 0
        while position < len(path):
            match = JSON_PATH_TOKEN.match(path, position)
            if match is None:
                raise RuleError(f"Invalid JSON path {expr!r} at position {position + 1}")
            tokens.append(match.groups())
            position = match.end()

        nodes = [data]
        for key, index, quoted_key in tokens:
            key = key or quoted_key
            next_nodes: list[Any] = []
            for node in nodes:
                if key == "*" or index == "*":
                    if isinstance(node, dict):
                        next_nodes.extend(node.values())
                    elif isinstance(node, list):
                        next_nodes.extend(node)
                elif key is not None:
                    if isinstance(node, dict) and key in node:
                        next_nodes.append(node[key])
                elif isinstance(node, list):
                    i = int(index)
                    if -len(node) <= i < len(node):
                        next_nodes.append(node[i])
            nodes = next_nodes
        return [node for node in nodes if node is not None]

    @staticmethod
    def _json_text(node: Any) -> str | None:
        if isinstance(node, (dict, list)):
            return json.dumps(node, ensure_ascii=False)
        if isinstance(node, bool):
            return str(node).lower()
        return str(node)


class HeaderBuilder(ABC):
    """Builds request headers from a source's header rule."""

    @abstractmethod
    def build_headers(self, rule: str | None, context: dict[str, Any]) -> dict[str, str]:
        """Return the headers produced by ``rule`` in ``context``."""


class JsonHeaderBuilder(HeaderBuilder):
    """Header rule given as a JSON object, rendered as a jinja2 template first."""

    def build_headers(self, rule: str | None, context: dict[str, Any]) -> dict[str, str]:
        if not rule or not rule.strip():
            return {}
        text = render_template(rule, context)
        try:
            data = json.loads(text)
        except ValueError as e:
            raise RuleError(f"Header rule is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise RuleError("Header rule must be a JSON object")
        return {str(k): str(v) for k, v in data.items()}
