"""Argument schemas for the tools exposed to the assistant."""

from pydantic import BaseModel, Field

from elnino_chat.core.config import SEARCH_DEFAULT_COUNT, SEARCH_DEFAULT_OFFSET


class WebSearchArgs(BaseModel):
    """Arguments for web_search."""

    query: str = Field(..., min_length=1, description="Search query, URL-encoded where it has non-alphanumeric characters.")
    count: int = Field(SEARCH_DEFAULT_COUNT, ge=1, le=50, description="Number of results to return.")
    offset: int = Field(SEARCH_DEFAULT_OFFSET, ge=0, description="Number of results to skip.")


class GetUrlContentArgs(BaseModel):
    """Arguments for get_url_content."""

    url: str = Field(..., min_length=1, description="Absolute http(s) URL of the page to download.")


class NoArgs(BaseModel):
    """Tools that take no arguments."""
