"""Pydantic model for chapter entries."""

from pydantic import BaseModel, ConfigDict, Field


class BookChapter(BaseModel):
    """Single entry of a book's table of contents."""

    model_config = ConfigDict(validate_assignment=True)

    index: int = Field(default=0, ge=0, description="Position in the resolved chapter list")
    title: str
    url: str = ""
    is_volume: bool = Field(default=False, description="Volume heading without content")
    tag: str | None = Field(default=None, description="Update time or other annotation")
    book_url: str = ""
