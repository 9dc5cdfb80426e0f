"""Pydantic models for book source configuration.

A book source describes how to fetch and parse one book-providing site.
Field names accept both snake_case and the camelCase keys used by
exported source JSON files (``bookSourceUrl``, ``ruleSearch``...).
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


EXPLORE_SPLIT_PATTERN = re.compile(r"(?:&&|\n)+")


class RuleModel(BaseModel):
    """Base for immutable, alias-aware rule groups."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SearchRule(RuleModel):
    """Rules for search and explore list pages."""

    book_list: str | None = None
    name: str | None = None
    author: str | None = None
    intro: str | None = None
    kind: str | None = None
    last_chapter: str | None = None
    update_time: str | None = None
    book_url: str | None = None
    cover_url: str | None = None
    word_count: str | None = None


class BookInfoRule(RuleModel):
    """Rules for the book detail page."""

    init: str | None = None
    name: str | None = None
    author: str | None = None
    intro: str | None = None
    kind: str | None = None
    last_chapter: str | None = None
    update_time: str | None = None
    cover_url: str | None = None
    toc_url: str | None = None
    word_count: str | None = None


class TocRule(RuleModel):
    """Rules for the table of contents page."""

    chapter_list: str | None = None
    chapter_name: str | None = None
    chapter_url: str | None = None
    is_volume: str | None = None
    update_time: str | None = None
    next_toc_url: str | None = None


class ReplaceRule(RuleModel):
    """One regex replacement applied to extracted chapter text."""

    pattern: str
    replacement: str = ""


class ContentRule(RuleModel):
    """Rules for chapter content pages."""

    content: str | None = None
    next_content_url: str | None = None
    replace_regex: list[ReplaceRule] = Field(default_factory=list)

    @field_validator("replace_regex", mode="before")
    @classmethod
    def parse_compact_form(cls, v: Any) -> Any:
        """Accept ``##pattern##replacement[##pattern##replacement...]`` strings."""
        if v is None or v == "":
            return []
        if not isinstance(v, str):
            return v
        parts = v.split("##")
        if parts and parts[0] == "":
            parts = parts[1:]
        rules = []
        for i in range(0, len(parts), 2):
            if not parts[i]:
                continue
            replacement = parts[i + 1] if i + 1 < len(parts) else ""
            rules.append({"pattern": parts[i], "replacement": replacement})
        return rules


class ExploreKind(BaseModel):
    """One entry of a source's explore menu."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str | None = None


class BookSource(RuleModel):
    """Configuration of one book source."""

    book_source_url: str = Field(..., description="Base URL of the source site")
    book_source_name: str = ""
    book_source_group: str | None = None
    book_source_type: int = 0
    book_url_pattern: str | None = Field(
        default=None, description="Regex matching URLs that are book detail pages"
    )
    header: str | None = Field(default=None, description="Header-generation rule")
    web_view: bool = Field(default=False, description="Every request needs a rendered fetch")
    enabled: bool = True
    weight: int = 0

    search_url: str | None = None
    explore_url: str | None = None

    rule_search: SearchRule | None = None
    rule_explore: SearchRule | None = None
    rule_book_info: BookInfoRule | None = None
    rule_toc: TocRule | None = None
    rule_content: ContentRule | None = None

    def get_search_rule(self) -> SearchRule:
        return self.rule_search or SearchRule()

    def get_explore_rule(self) -> SearchRule:
        """Explore rules, falling back to the search rules when absent."""
        return self.rule_explore or self.get_search_rule()

    def get_book_info_rule(self) -> BookInfoRule:
        return self.rule_book_info or BookInfoRule()

    def get_toc_rule(self) -> TocRule:
        return self.rule_toc or TocRule()

    def get_content_rule(self) -> ContentRule:
        return self.rule_content or ContentRule()

    def explore_kinds(self) -> list[ExploreKind]:
        """Parse ``explore_url`` into its ``title::url`` entries.

        Entries are separated by newlines or ``&&``; an entry without ``::``
        is a title-only heading.
        """
        if not self.explore_url:
            return []
        kinds = []
        for entry in EXPLORE_SPLIT_PATTERN.split(self.explore_url):
            entry = entry.strip()
            if not entry:
                continue
            title, sep, url = entry.partition("::")
            kinds.append(ExploreKind(title=title.strip(), url=url.strip() if sep else None))
        return kinds
