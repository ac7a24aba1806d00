"""Pydantic schemas for keyword research and the SEO content audit."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class KeywordResearchRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=200)
    force_refresh: bool = Field(False, alias="forceRefresh")

    model_config = ConfigDict(populate_by_name=True)


class KeywordMetrics(BaseModel):
    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0
    competition_level: str = "LOW"
    keyword_difficulty: int | None = None
    trend: list[int] = Field(default_factory=list)
    trend_direction: Literal["up", "down", "stable"] = "stable"
    trend_percent: int = 0


class RelatedKeyword(BaseModel):
    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0
    keyword_difficulty: int | None = None


class SearchQuestion(BaseModel):
    question: str
    search_volume: int | None = None


class CompetitorPage(BaseModel):
    title: str = ""
    url: str = ""
    domain: str = ""
    position: int | None = None
    description: str | None = None


class KeywordSuggestion(BaseModel):
    keyword: str
    reason: str
    search_volume: int = 0
    keyword_difficulty: int | None = None


class KeywordResearch(BaseModel):
    """Combined research for one normalized keyword."""

    keyword: str
    metrics: KeywordMetrics
    related_keywords: list[RelatedKeyword] = Field(default_factory=list)
    questions: list[SearchQuestion] = Field(default_factory=list)
    competitors: list[CompetitorPage] = Field(default_factory=list)
    suggestions: list[KeywordSuggestion] = Field(default_factory=list)
    fetched_at: datetime


class KeywordResearchResponse(BaseModel):
    data: KeywordResearch
    cached: bool


class SEOIssue(BaseModel):
    type: Literal["error", "warning", "info"]
    message: str
    recommendation: str


class ContentSEOScore(BaseModel):
    id: str
    type: str
    title: str
    slug: str | None = None
    url: str
    score: int
    issues: list[SEOIssue]
    has_meta_description: bool
    has_featured_image: bool
    title_length: int
    description_length: int
    status: str | None = None


class SEOOverview(BaseModel):
    total_content: int
    average_score: int
    needs_attention: int
    excellent: int
    by_type: dict[str, int]


class SEOAnalysisResponse(BaseModel):
    overview: SEOOverview
    content: list[ContentSEOScore]
