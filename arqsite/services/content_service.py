"""Site content: public listings and admin CRUD for every content type."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from arqsite.adapters.database.base import AbstractDataStore, Row
from arqsite.core.errors import NotFoundAppError, ValidationAppError
from arqsite.schemas.content import ContentInput, ContentType
from arqsite.utils.dates import utcnow
from arqsite.utils.markdown import html_to_markdown, markdown_to_html
from arqsite.utils.text_normalizer import slugify, truncate_words

logger = logging.getLogger(__name__)

PUBLIC_LIST_LIMIT = 100
ADMIN_LIST_LIMIT = 100
RECENT_POSTS_LIMIT = 6
FEATURED_CASE_STUDIES_LIMIT = 4
PUBLISHED = "published"

FEATURED_CASE_STUDY_COLUMNS = (
    "id,title,slug,client_name,industry,overview,solution_description,impact_summary,metrics,hero_image"
)
FEATURED_WHITEPAPER_COLUMNS = "id,title,slug,description,cover_image,file_url,category,topics,page_count"


class ContentService:
    """Reads and writes the content tables behind the public site."""

    def __init__(self, store: AbstractDataStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock

    async def list_published(self, content_type: ContentType, limit: int = PUBLIC_LIST_LIMIT) -> list[Row]:
        """Published items, most recently published first."""
        return await self.store.select(
            content_type.table,
            filters={"status": PUBLISHED},
            order_by="published_at",
            limit=limit,
        )

    async def featured_case_studies(self, limit: int = FEATURED_CASE_STUDIES_LIMIT) -> list[Row]:
        """Latest published case studies shaped for the home page cards.

        The card excerpt is the overview, falling back to the solution
        description; both summaries are cut at a word boundary.
        """
        rows = await self.store.select(
            ContentType.CASE_STUDIES.table,
            filters={"status": PUBLISHED},
            columns=FEATURED_CASE_STUDY_COLUMNS,
            order_by="published_at",
            limit=limit,
        )
        return [
            {
                "id": row.get("id"),
                "slug": row.get("slug"),
                "title": row.get("title"),
                "client_name": row.get("client_name"),
                "industry": row.get("industry"),
                "challenge_summary": truncate_words(row.get("overview") or row.get("solution_description"), 250),
                "results_summary": truncate_words(row.get("impact_summary"), 150),
                "key_metrics": row.get("metrics"),
                "image": row.get("hero_image"),
            }
            for row in rows
        ]

    async def featured_whitepaper(self, *, include_unpublished: bool = False) -> Row | None:
        """Newest published whitepaper.

        With ``include_unpublished`` the newest whitepaper of any status is
        used when nothing is published yet (non-production previews).
        """
        rows = await self._newest_whitepapers({"status": PUBLISHED})
        if not rows and include_unpublished:
            rows = await self._newest_whitepapers(None)
        return rows[0] if rows else None

    async def _newest_whitepapers(self, filters: dict[str, Any] | None) -> list[Row]:
        return await self.store.select(
            ContentType.WHITEPAPERS.table,
            filters=filters,
            columns=FEATURED_WHITEPAPER_COLUMNS,
            limit=1,
        )

    async def get_published(self, content_type: ContentType, slug: str) -> Row:
        row = await self.store.select_one(content_type.table, {"slug": slug, "status": PUBLISHED})
        if not row:
            raise NotFoundAppError(
                code="content_not_found",
                message="Content not found",
                details={"content_type": content_type.value},
            )
        return row

    async def list_all(self, content_type: ContentType, limit: int = ADMIN_LIST_LIMIT) -> list[Row]:
        return await self.store.select(content_type.table, limit=limit)

    async def get(self, content_type: ContentType, item_id: str) -> Row:
        """Fetch one item for editing; blog HTML is also returned as Markdown."""
        row = await self.store.select_one(content_type.table, {"id": item_id})
        if not row:
            raise NotFoundAppError(code="content_not_found", message="Content not found")
        if content_type is ContentType.BLOG and row.get("content"):
            row = {**row, "content_markdown": html_to_markdown(row["content"])}
        return row

    def _prepare(self, content_type: ContentType, values: dict[str, Any], existing: Row | None) -> dict[str, Any]:
        if "title" in values and not values["title"]:
            raise ValidationAppError(code="title_required", message="Title is required", details={"field": "title"})

        if values.get("title") and not values.get("slug") and (existing is None or not existing.get("slug")):
            values["slug"] = slugify(values["title"])

        if content_type is ContentType.BLOG and values.get("content"):
            values["content"] = markdown_to_html(values["content"])

        if values.get("status") == PUBLISHED and not (existing or {}).get("published_at"):
            values.setdefault("published_at", self.clock().isoformat())

        return values

    async def create(self, content_type: ContentType, data: ContentInput) -> Row:
        values = data.values()
        if not values.get("title"):
            raise ValidationAppError(code="title_required", message="Title is required", details={"field": "title"})
        values.setdefault("status", "draft")

        row = await self.store.insert(content_type.table, self._prepare(content_type, values, None))
        logger.info(
            "content.created",
            extra={"content_type": content_type.value, "status": values["status"]},
        )
        return row

    async def update(self, content_type: ContentType, item_id: str, data: ContentInput) -> Row:
        existing = await self.store.select_one(content_type.table, {"id": item_id})
        if not existing:
            raise NotFoundAppError(code="content_not_found", message="Content not found")

        values = self._prepare(content_type, data.values(), existing)
        values.pop("id", None)
        if not values:
            raise ValidationAppError(code="no_changes", message="No fields to update")
        values["updated_at"] = self.clock().isoformat()

        rows = await self.store.update(content_type.table, values, {"id": item_id})
        logger.info("content.updated", extra={"content_type": content_type.value, "fields": sorted(values)})
        return rows[0] if rows else {**existing, **values}

    async def delete(self, content_type: ContentType, item_id: str) -> None:
        removed = await self.store.delete(content_type.table, {"id": item_id})
        if not removed:
            raise NotFoundAppError(code="content_not_found", message="Content not found")
        logger.info("content.deleted", extra={"content_type": content_type.value})
