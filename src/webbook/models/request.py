"""Transient request/response values passed to the fetch layer."""

from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field


class RequestDescriptor(BaseModel):
    """Everything a fetcher needs to perform one request."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Absolute request URL")
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    page: int = 1
    charset: str | None = None
    use_rendered_fetch: bool = False


class FetchResult(BaseModel):
    """Body of a fetched page and the URL it was finally served from."""

    model_config = ConfigDict(frozen=True)

    body: str
    effective_url: str


# Fetches a follow-up page: (url, base_url) -> FetchResult
PageLoader = Callable[[str, str], Awaitable[FetchResult]]
