from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import APIRouter, Depends, Response, status

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.core.config import settings
from arqsite.core.dependencies import get_data_store, get_optional_data_store
from arqsite.core.errors import ExternalServiceAppError
from arqsite.core.rate_limit import rate_limit
from arqsite.schemas.content import ContentInput, ContentListResponse, ContentType
from arqsite.services.content_service import RECENT_POSTS_LIMIT, ContentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Content"])
admin_router = APIRouter(prefix="/api/admin/content", tags=["Admin Content"])

T = TypeVar("T")


def get_content_service(store: AbstractDataStore = Depends(get_data_store)) -> ContentService:
    return ContentService(store)


def get_public_content_service(
    store: AbstractDataStore | None = Depends(get_optional_data_store),
) -> ContentService | None:
    """Content service for listings, or None when no database is configured."""
    return ContentService(store) if store is not None else None


async def _read_or_default(
    service: ContentService | None,
    read: Callable[[ContentService], Awaitable[T]],
    default: T,
    *,
    view: str,
) -> T:
    """Run a public listing read; a missing or failing database yields ``default``."""
    if service is None:
        logger.warning("content.database_not_configured", extra={"view": view})
        return default
    try:
        return await read(service)
    except ExternalServiceAppError as exc:
        logger.warning("content.read_failed", extra={"view": view, "error_code": exc.code})
        return default


# Registered before the per-type routes so these paths are not taken as slugs
@router.get(
    "/api/blog/published",
    response_model=ContentListResponse,
    dependencies=[Depends(rate_limit("content", "api"))],
)
async def recent_blog_posts(
    service: ContentService | None = Depends(get_public_content_service),
) -> ContentListResponse:
    """Latest published posts for the home page."""
    items = await _read_or_default(
        service,
        lambda s: s.list_published(ContentType.BLOG, limit=RECENT_POSTS_LIMIT),
        [],
        view="blog_published",
    )
    return ContentListResponse(items=items, total=len(items))


@router.get(
    "/api/case-studies/featured",
    response_model=ContentListResponse,
    dependencies=[Depends(rate_limit("content", "api"))],
)
async def featured_case_studies(
    service: ContentService | None = Depends(get_public_content_service),
) -> ContentListResponse:
    items = await _read_or_default(
        service,
        lambda s: s.featured_case_studies(),
        [],
        view="case_studies_featured",
    )
    return ContentListResponse(items=items, total=len(items))


@router.get(
    "/api/whitepapers/featured",
    dependencies=[Depends(rate_limit("content", "api"))],
)
async def featured_whitepaper(
    service: ContentService | None = Depends(get_public_content_service),
) -> dict[str, Any]:
    """Newest published whitepaper, or ``{"item": null}``.

    Outside production the newest draft stands in when nothing is published.
    """
    item = await _read_or_default(
        service,
        lambda s: s.featured_whitepaper(include_unpublished=not settings.is_production),
        None,
        view="whitepapers_featured",
    )
    return {"item": item}


def _register_public_routes(content_type: ContentType) -> None:
    # Literal paths per type; a catch-all /api/{type}/{slug} would also match /api/admin/*
    base = f"/api/{content_type.value}"

    @router.get(
        f"{base}/list",
        response_model=ContentListResponse,
        name=f"list_{content_type.name.lower()}",
        dependencies=[Depends(rate_limit("content", "api"))],
    )
    async def list_published(
        service: ContentService | None = Depends(get_public_content_service),
    ) -> ContentListResponse:
        items = await _read_or_default(
            service,
            lambda s: s.list_published(content_type),
            [],
            view=f"{content_type.value}_list",
        )
        return ContentListResponse(items=items, total=len(items))

    @router.get(
        f"{base}/{{slug}}",
        name=f"get_{content_type.name.lower()}",
        dependencies=[Depends(rate_limit("content", "api"))],
    )
    async def get_published(slug: str, service: ContentService = Depends(get_content_service)) -> dict[str, Any]:
        return {"item": await service.get_published(content_type, slug)}


for _content_type in ContentType:
    _register_public_routes(_content_type)


@admin_router.get("/{content_type}", response_model=ContentListResponse)
async def admin_list(
    content_type: ContentType,
    service: ContentService = Depends(get_content_service),
) -> ContentListResponse:
    items = await service.list_all(content_type)
    return ContentListResponse(items=items, total=len(items))


@admin_router.get("/{content_type}/{item_id}")
async def admin_get(
    content_type: ContentType,
    item_id: str,
    service: ContentService = Depends(get_content_service),
) -> dict[str, Any]:
    """Fetch one item; blog posts include ``content_markdown`` for editing."""
    return {"item": await service.get(content_type, item_id)}


@admin_router.post("/{content_type}", status_code=status.HTTP_201_CREATED)
async def admin_create(
    content_type: ContentType,
    payload: ContentInput,
    service: ContentService = Depends(get_content_service),
) -> dict[str, Any]:
    return {"success": True, "item": await service.create(content_type, payload)}


@admin_router.put("/{content_type}/{item_id}")
async def admin_update(
    content_type: ContentType,
    item_id: str,
    payload: ContentInput,
    service: ContentService = Depends(get_content_service),
) -> dict[str, Any]:
    return {"success": True, "item": await service.update(content_type, item_id, payload)}


@admin_router.delete("/{content_type}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete(
    content_type: ContentType,
    item_id: str,
    service: ContentService = Depends(get_content_service),
) -> Response:
    await service.delete(content_type, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
