"""Pydantic schemas for site content (blog, case studies, resources)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """Public content sections and their backing tables."""

    BLOG = "blog"
    CASE_STUDIES = "case-studies"
    WHITEPAPERS = "whitepapers"
    WEBINARS = "webinars"

    @property
    def table(self) -> str:
        return _TABLES[self]


_TABLES = {
    ContentType.BLOG: "blog_posts",
    ContentType.CASE_STUDIES: "case_studies",
    ContentType.WHITEPAPERS: "whitepapers",
    ContentType.WEBINARS: "webinars",
}


class ContentInput(BaseModel):
    """Admin create/update payload.

    Tables differ in their columns, so unknown fields are passed through to
    the store as-is. For blog posts ``content`` is Markdown and is stored as
    rendered HTML.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(None, max_length=300)
    slug: str | None = Field(None, max_length=300)
    content: str | None = None
    status: str | None = Field(None, max_length=50)
    tags: list[str] | None = None

    def values(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ContentListResponse(BaseModel):
    items: list[dict[str, Any]]
    total: int
