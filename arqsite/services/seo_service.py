"""SEO services: the heuristic content audit and cached keyword research."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from arqsite.adapters.database.base import AbstractDataStore, Row
from arqsite.adapters.seo.dataforseo_client import DataForSEOClient
from arqsite.core.errors import ConfigurationAppError, ExternalServiceAppError, NotFoundAppError
from arqsite.schemas.content import ContentType
from arqsite.schemas.seo import (
    ContentSEOScore,
    KeywordMetrics,
    KeywordResearch,
    KeywordResearchResponse,
    SEOAnalysisResponse,
    SEOIssue,
    SEOOverview,
)
from arqsite.utils.dates import parse_timestamp, utcnow
from arqsite.utils.text_normalizer import word_count

logger = logging.getLogger(__name__)

NEEDS_ATTENTION_BELOW = 70
EXCELLENT_FROM = 90
AUDIT_LIMIT_PER_TYPE = 100
RESEARCH_CACHE_TABLE = "seo_research_cache"

_INTERNAL_LINK = re.compile(r"href=[\"']/|href=[\"']https?://thearq\.ai", re.IGNORECASE)
_DATA_POINT = re.compile(r"\d+%|\d+x|\$\d+|\d+ (million|billion|thousand)", re.IGNORECASE)
_H2 = re.compile(r"<h2", re.IGNORECASE)


def analyze_seo(item: Mapping[str, Any]) -> tuple[int, list[SEOIssue]]:
    """Score one content item out of 100 and list what to fix.

    Args:
        item: Normalized fields: title, meta_title, description, meta_description,
            excerpt, overview, content, featured_image, cover_image, tags.

    Returns:
        (score, issues) with the score floored at 0.
    """
    issues: list[SEOIssue] = []
    score = 100

    def flag(kind: str, message: str, recommendation: str, penalty: int) -> None:
        nonlocal score
        issues.append(SEOIssue(type=kind, message=message, recommendation=recommendation))
        score -= penalty

    title = item.get("meta_title") or item.get("title") or ""
    description = (
        item.get("meta_description")
        or item.get("description")
        or item.get("excerpt")
        or item.get("overview")
        or ""
    )
    image = item.get("featured_image") or item.get("cover_image")
    body = item.get("content") or ""

    if not title:
        flag("error", "Missing title", "Add a descriptive title for better SEO and user experience.", 20)
    elif len(title) < 30:
        flag(
            "warning",
            f"Title too short ({len(title)} chars)",
            "Aim for 50-60 characters for optimal display in search results.",
            10,
        )
    elif len(title) > 60:
        flag(
            "warning",
            f"Title too long ({len(title)} chars)",
            "Keep title under 60 characters to avoid truncation in search results.",
            5,
        )

    if not description:
        flag(
            "error",
            "Missing meta description",
            "Add a compelling description (150-160 chars) to improve click-through rates.",
            20,
        )
    elif len(description) < 120:
        flag(
            "warning",
            f"Description too short ({len(description)} chars)",
            "Aim for 150-160 characters to maximize search snippet visibility.",
            10,
        )
    elif len(description) > 160:
        flag(
            "info",
            f"Description may be truncated ({len(description)} chars)",
            "Consider keeping under 160 characters for full display in search results.",
            3,
        )

    if not image:
        flag(
            "warning",
            "Missing featured image",
            "Add a featured image to improve social sharing and visual appeal.",
            10,
        )

    if body:
        words = word_count(body)
        if words < 300:
            flag(
                "warning",
                f"Content is thin ({words} words)",
                "Add more comprehensive content. Aim for 1000+ words for in-depth topics.",
                10,
            )
        if not _H2.search(body) and words > 300:
            flag(
                "info",
                "No subheadings detected",
                "Add H2 subheadings to improve content structure and readability.",
                5,
            )
        if not _INTERNAL_LINK.search(body) and words > 500:
            flag(
                "info",
                "No internal links detected",
                "Add internal links to related content to improve site navigation and SEO.",
                5,
            )

    if not item.get("tags"):
        flag(
            "info",
            "No tags/keywords defined",
            "Add relevant tags to help AI systems understand content topics.",
            3,
        )

    if body and not _DATA_POINT.search(body):
        flag(
            "info",
            "Consider adding specific data points",
            "Include specific metrics, percentages, or statistics to improve credibility for AI citations.",
            2,
        )

    return max(0, score), issues


# Per content type: audit label, image column, description column, URL pattern
_AUDIT_FIELDS: dict[ContentType, tuple[str, str, str, str]] = {
    ContentType.BLOG: ("blog", "featured_image", "excerpt", "/blog/{slug}"),
    ContentType.CASE_STUDIES: ("case-study", "featured_image", "overview", "/case-studies/{slug}"),
    ContentType.WHITEPAPERS: ("whitepaper", "cover_image", "description", "/resources/whitepapers/{id}"),
    ContentType.WEBINARS: ("webinar", "thumbnail", "description", "/webinars/{slug}"),
}

_OVERVIEW_KEYS = {
    "blog": "blog",
    "case-study": "case_study",
    "whitepaper": "whitepaper",
    "webinar": "webinar",
}


def score_row(content_type: ContentType, row: Row) -> ContentSEOScore:
    label, image_field, description_field, url_pattern = _AUDIT_FIELDS[content_type]

    if content_type is ContentType.BLOG:
        fields = dict(row)
    else:
        # Only blog posts carry body, tags and meta fields
        fields = {
            "title": row.get("title"),
            description_field: row.get(description_field),
            "featured_image": row.get(image_field),
        }

    score, issues = analyze_seo(fields)
    title = row.get("meta_title") if content_type is ContentType.BLOG else None
    title = title or row.get("title") or ""
    description = row.get("meta_description") if content_type is ContentType.BLOG else None
    description = description or row.get(description_field) or ""

    return ContentSEOScore(
        id=str(row.get("id")),
        type=label,
        title=row.get("title") or "",
        slug=row.get("slug"),
        url=url_pattern.format(slug=row.get("slug") or "", id=row.get("id")),
        score=score,
        issues=issues,
        has_meta_description=bool(description),
        has_featured_image=bool(row.get(image_field)),
        title_length=len(title),
        description_length=len(description),
        status=row.get("status"),
    )


def build_overview(results: list[ContentSEOScore]) -> SEOOverview:
    total = len(results)
    average = sum(r.score for r in results) / total if total else 0
    by_type = {key: 0 for key in _OVERVIEW_KEYS.values()}
    for result in results:
        by_type[_OVERVIEW_KEYS[result.type]] += 1

    return SEOOverview(
        total_content=total,
        average_score=round(average),
        needs_attention=sum(1 for r in results if r.score < NEEDS_ATTENTION_BELOW),
        excellent=sum(1 for r in results if r.score >= EXCELLENT_FROM),
        by_type=by_type,
    )


async def analyze_site(store: AbstractDataStore) -> SEOAnalysisResponse:
    """Audit the newest items of each content type; worst scores first."""
    results: list[ContentSEOScore] = []
    for content_type in _AUDIT_FIELDS:
        for row in await store.select(content_type.table, limit=AUDIT_LIMIT_PER_TYPE):
            results.append(score_row(content_type, row))

    results.sort(key=lambda r: r.score)
    logger.info("seo.analyzed", extra={"items": len(results)})
    return SEOAnalysisResponse(overview=build_overview(results), content=results)


def normalize_keyword(keyword: str) -> str:
    return keyword.lower().strip()


class KeywordResearchService:
    """Keyword research with a database-backed cache.

    A cached, unexpired row is served without any external call. The cache
    is skipped when there is no database.
    """

    def __init__(
        self,
        client: DataForSEOClient | None,
        store: AbstractDataStore | None,
        *,
        cache_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.client = client
        self.store = store
        self.cache_ttl = timedelta(days=cache_days)
        self.clock = clock

    async def research(self, keyword: str, force_refresh: bool = False) -> KeywordResearchResponse:
        if self.client is None:
            raise ConfigurationAppError(code="seo_not_configured", message="DataForSEO API not configured")

        normalized = normalize_keyword(keyword)

        if not force_refresh:
            cached = await self._read_cache(normalized)
            if cached is not None:
                logger.info("seo.research_cache_hit")
                return KeywordResearchResponse(data=cached, cached=True)

        result = await self.client.research(normalized)
        if result is None:
            raise NotFoundAppError(
                code="keyword_no_data",
                message="Failed to fetch keyword data. The keyword may have no search data.",
            )

        await self._write_cache(result)
        logger.info("seo.research_fetched", extra={"related": len(result.related_keywords)})
        return KeywordResearchResponse(data=result, cached=False)

    async def _read_cache(self, keyword: str) -> KeywordResearch | None:
        if self.store is None:
            return None
        try:
            row = await self.store.select_one(RESEARCH_CACHE_TABLE, {"keyword": keyword})
        except ExternalServiceAppError as exc:
            logger.warning("seo.research_cache_read_failed", extra={"error_code": exc.code})
            return None
        if not row or not row.get("expires_at"):
            return None

        if parse_timestamp(row["expires_at"]) <= self.clock():
            return None
        return research_from_row(row)

    async def _write_cache(self, result: KeywordResearch) -> None:
        if self.store is None:
            return
        try:
            await self.store.upsert(
                RESEARCH_CACHE_TABLE,
                research_to_row(result, self.clock() + self.cache_ttl),
                on_conflict="keyword",
            )
        except ExternalServiceAppError as exc:
            logger.warning("seo.research_cache_write_failed", extra={"error_code": exc.code})


def research_to_row(result: KeywordResearch, expires_at: datetime) -> Row:
    metrics = result.metrics
    return {
        "keyword": result.keyword,
        "search_volume": metrics.search_volume,
        "keyword_difficulty": metrics.keyword_difficulty,
        "cpc": metrics.cpc,
        "competition": metrics.competition,
        "competition_level": metrics.competition_level,
        "trend_percent": metrics.trend_percent,
        "trend_direction": metrics.trend_direction,
        "trend_data": metrics.trend,
        "related_keywords": [k.model_dump() for k in result.related_keywords],
        "questions": [q.model_dump() for q in result.questions],
        "competitor_headlines": [c.model_dump() for c in result.competitors],
        "suggestions": [s.model_dump() for s in result.suggestions],
        "fetched_at": result.fetched_at.isoformat(),
        "expires_at": expires_at.isoformat(),
    }


def research_from_row(row: Row) -> KeywordResearch:
    return KeywordResearch(
        keyword=row["keyword"],
        metrics=KeywordMetrics(
            keyword=row["keyword"],
            search_volume=row.get("search_volume") or 0,
            keyword_difficulty=row.get("keyword_difficulty"),
            cpc=row.get("cpc") or 0.0,
            competition=row.get("competition") or 0.0,
            competition_level=row.get("competition_level") or "MEDIUM",
            trend_percent=row.get("trend_percent") or 0,
            trend_direction=row.get("trend_direction") or "stable",
            trend=row.get("trend_data") or [],
        ),
        related_keywords=row.get("related_keywords") or [],
        questions=row.get("questions") or [],
        competitors=row.get("competitor_headlines") or [],
        suggestions=row.get("suggestions") or [],
        fetched_at=row.get("fetched_at") or row["expires_at"],
    )
