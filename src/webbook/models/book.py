"""Pydantic models for book records."""

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    """A book as known to one source.

    Identified by ``book_url``. Unlike the configuration models this one is
    mutable: the info and toc resolvers enrich it in place.
    """

    model_config = ConfigDict(validate_assignment=True)

    book_url: str = Field(..., description="Canonical detail page URL")
    toc_url: str = Field(default="", description="Table of contents URL")
    origin: str = Field(default="", description="URL of the source the book came from")
    origin_name: str = ""

    name: str = ""
    author: str = ""
    kind: str | None = None
    cover_url: str | None = None
    intro: str | None = None
    latest_chapter_title: str | None = None
    word_count: str | None = None
    type: int = 0
    total_chapter_num: int = 0

    # Raw pages kept to avoid refetching a page that serves several stages
    info_html: str | None = Field(default=None, repr=False)
    toc_html: str | None = Field(default=None, repr=False)


class SearchBook(BaseModel):
    """Lightweight search or explore result."""

    model_config = ConfigDict(validate_assignment=True)

    book_url: str
    name: str
    author: str = ""
    origin: str = ""
    origin_name: str = ""
    kind: str | None = None
    cover_url: str | None = None
    intro: str | None = None
    latest_chapter_title: str | None = None
    update_time: str | None = None
    word_count: str | None = None
    type: int = 0
    toc_url: str = ""
    info_html: str | None = Field(default=None, repr=False)
    toc_html: str | None = Field(default=None, repr=False)

    def to_book(self) -> Book:
        """Promote this result to a full Book record."""
        return Book(
            book_url=self.book_url,
            toc_url=self.toc_url,
            origin=self.origin,
            origin_name=self.origin_name,
            name=self.name,
            author=self.author,
            kind=self.kind,
            cover_url=self.cover_url,
            intro=self.intro,
            latest_chapter_title=self.latest_chapter_title,
            word_count=self.word_count,
            type=self.type,
            info_html=self.info_html,
            toc_html=self.toc_html,
        )
