"""DataForSEO keyword research client.

Graceful degradation: each lookup (volume, related keywords, SERP) fails
independently and is logged; only missing search-volume data makes the whole
research result empty.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from arqsite.core.config import settings
from arqsite.schemas.seo import (
    CompetitorPage,
    KeywordMetrics,
    KeywordResearch,
    KeywordSuggestion,
    RelatedKeyword,
    SearchQuestion,
)

logger = logging.getLogger(__name__)

DATAFORSEO_OK = 20000
TREND_THRESHOLD_PERCENT = 10
_QUESTION_PREFIXES = ("how", "what", "why", "when", "can", "does", "is")


def compute_trend(monthly_volumes: list[int]) -> tuple[str, int]:
    """Compare the newest three months with the oldest three.

    Volumes are ordered newest first. A change beyond +/-10% is a trend.

    Returns:
        (direction, percent) where direction is "up", "down" or "stable".
    """
    if len(monthly_volumes) < 2:
        return "stable", 0

    recent = sum(monthly_volumes[:3]) / 3
    older = sum(monthly_volumes[-3:]) / 3
    if older <= 0:
        return "stable", 0

    percent = round((recent - older) / older * 100)
    if percent > TREND_THRESHOLD_PERCENT:
        return "up", percent
    if percent < -TREND_THRESHOLD_PERCENT:
        return "down", percent
    return "stable", percent


def suggest_easier_keywords(
    metrics: KeywordMetrics,
    related: list[RelatedKeyword],
    *,
    limit: int = 3,
) -> list[KeywordSuggestion]:
    """Pick related keywords with real volume and lower difficulty."""
    ceiling = metrics.keyword_difficulty if metrics.keyword_difficulty is not None else 50
    suggestions: list[KeywordSuggestion] = []
    for keyword in related:
        if keyword.search_volume <= 100:
            continue
        if keyword.keyword_difficulty is not None and keyword.keyword_difficulty >= ceiling:
            continue
        if keyword.keyword_difficulty is not None:
            reason = (
                f"Lower difficulty ({keyword.keyword_difficulty}) with "
                f"{keyword.search_volume} monthly searches"
            )
        else:
            reason = f"Good search volume ({keyword.search_volume}/mo) with lower competition"
        suggestions.append(
            KeywordSuggestion(
                keyword=keyword.keyword,
                reason=reason,
                search_volume=keyword.search_volume,
                keyword_difficulty=keyword.keyword_difficulty,
            )
        )
        if len(suggestions) >= limit:
            break
    return suggestions


def _first_result(payload: dict[str, Any]) -> list[dict[str, Any]]:
    tasks = payload.get("tasks") or []
    if not tasks:
        return []
    return tasks[0].get("result") or []


class DataForSEOClient:
    """Async wrapper around the DataForSEO v3 REST API (HTTP Basic auth)."""

    def __init__(
        self,
        *,
        login: str,
        password: str,
        api_url: str = "https://api.dataforseo.com/v3",
        location_code: int = 2840,
        language_code: str = "en",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = (login, password)
        self.api_url = api_url.rstrip("/")
        self.location_code = location_code
        self.language_code = language_code
        self._timeout = timeout_seconds
        self._transport = transport

    def __repr__(self) -> str:
        return f"<DataForSEOClient api_url={self.api_url}>"

    async def _post(self, endpoint: str, task: dict[str, Any]) -> dict[str, Any]:
        body = [{"location_code": self.location_code, "language_code": self.language_code, **task}]
        async with httpx.AsyncClient(
            timeout=self._timeout, auth=self._auth, transport=self._transport
        ) as client:
            response = await client.post(f"{self.api_url}{endpoint}", json=body)
            response.raise_for_status()
            payload = response.json()

        if payload.get("status_code") != DATAFORSEO_OK:
            logger.warning(
                "seo.api_status_error",
                extra={"endpoint": endpoint, "status_message": payload.get("status_message")},
            )
        return payload

    async def get_keyword_metrics(self, keyword: str) -> KeywordMetrics | None:
        try:
            payload = await self._post(
                "/keywords_data/google_ads/search_volume/live",
                {"keywords": [keyword], "include_adult_keywords": False},
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("seo.metrics_failed", extra={"error_type": type(exc).__name__})
            return None

        results = _first_result(payload)
        if not results or not results[0].get("keyword_info"):
            return None

        result = results[0]
        info = result["keyword_info"]
        trend = [m.get("search_volume") or 0 for m in info.get("monthly_searches") or []]
        direction, percent = compute_trend(trend)

        return KeywordMetrics(
            keyword=result.get("keyword", keyword),
            search_volume=info.get("search_volume") or 0,
            cpc=info.get("cpc") or 0.0,
            competition=info.get("competition") or 0.0,
            competition_level=info.get("competition_level") or "LOW",
            keyword_difficulty=(result.get("keyword_properties") or {}).get("keyword_difficulty"),
            trend=trend,
            trend_direction=direction,
            trend_percent=percent,
        )

    async def _keywords_for_keywords(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        payload = await self._post(
            "/keywords_data/google_ads/keywords_for_keywords/live",
            {
                "keywords": keywords,
                "include_adult_keywords": False,
                "sort_by": "search_volume",
                "limit": limit,
            },
        )
        return _first_result(payload)

    async def get_related_keywords(self, keyword: str, limit: int = 15) -> list[RelatedKeyword]:
        try:
            results = await self._keywords_for_keywords([keyword], limit)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("seo.related_failed", extra={"error_type": type(exc).__name__})
            return []

        related = [
            RelatedKeyword(
                keyword=r["keyword"],
                search_volume=(r.get("keyword_info") or {}).get("search_volume") or 0,
                cpc=(r.get("keyword_info") or {}).get("cpc") or 0.0,
                competition=(r.get("keyword_info") or {}).get("competition") or 0.0,
                keyword_difficulty=(r.get("keyword_properties") or {}).get("keyword_difficulty"),
            )
            for r in results
            if r.get("keyword") and r["keyword"] != keyword
        ]
        related.sort(key=lambda k: k.search_volume, reverse=True)
        return related[:limit]

    async def get_serp(self, keyword: str, depth: int = 10) -> list[dict[str, Any]]:
        """Return raw SERP items (organic results and "People also ask")."""
        try:
            payload = await self._post(
                "/serp/google/organic/live/regular",
                {"keyword": keyword, "depth": depth},
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("seo.serp_failed", extra={"error_type": type(exc).__name__})
            return []

        results = _first_result(payload)
        return (results[0].get("items") or []) if results else []

    @staticmethod
    def competitors_from_serp(items: list[dict[str, Any]], limit: int = 5) -> list[CompetitorPage]:
        pages = [
            CompetitorPage(
                title=item.get("title") or "",
                url=item.get("url") or "",
                domain=item.get("domain") or "",
                position=item.get("rank_absolute"),
                description=item.get("description"),
            )
            for item in items
            if item.get("type") == "organic"
        ]
        return pages[:limit]

    @staticmethod
    def questions_from_serp(items: list[dict[str, Any]]) -> list[SearchQuestion]:
        questions: list[SearchQuestion] = []
        for item in items:
            if item.get("type") != "people_also_ask":
                continue
            for entry in item.get("items") or []:
                if entry.get("title"):
                    questions.append(SearchQuestion(question=entry["title"]))
        return questions

    async def get_related_questions(self, keyword: str, serp_items: list[dict[str, Any]]) -> list[SearchQuestion]:
        """Questions from the SERP, topped up with question-shaped keyword ideas."""
        questions = self.questions_from_serp(serp_items)

        if len(questions) < 5:
            try:
                results = await self._keywords_for_keywords(
                    [f"{keyword} how", f"{keyword} what", f"{keyword} why"], 20
                )
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("seo.questions_failed", extra={"error_type": type(exc).__name__})
                results = []

            for r in results:
                text = r.get("keyword") or ""
                if "?" in text or text.lower().startswith(_QUESTION_PREFIXES):
                    questions.append(
                        SearchQuestion(
                            question=text,
                            search_volume=(r.get("keyword_info") or {}).get("search_volume"),
                        )
                    )

        return questions[:10]

    async def research(self, keyword: str) -> KeywordResearch | None:
        """Run every lookup for ``keyword`` concurrently and combine them.

        Returns:
            KeywordResearch, or None when the keyword has no search data.
        """
        metrics, related, serp_items = await asyncio.gather(
            self.get_keyword_metrics(keyword),
            self.get_related_keywords(keyword),
            self.get_serp(keyword),
        )
        if metrics is None:
            return None

        questions = await self.get_related_questions(keyword, serp_items)

        return KeywordResearch(
            keyword=keyword,
            metrics=metrics,
            related_keywords=related,
            questions=questions,
            competitors=self.competitors_from_serp(serp_items),
            suggestions=suggest_easier_keywords(metrics, related),
            fetched_at=datetime.now(timezone.utc),
        )


def create_keyword_client() -> DataForSEOClient | None:
    """Build the DataForSEO client, or None without credentials."""
    if not settings.seo.configured:
        return None
    return DataForSEOClient(
        login=settings.seo.login,
        password=settings.seo.password,
        api_url=settings.seo.api_url,
        location_code=settings.seo.location_code,
        language_code=settings.seo.language_code,
        timeout_seconds=settings.seo.timeout_seconds,
    )
