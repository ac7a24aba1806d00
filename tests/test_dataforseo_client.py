"""Tests for the DataForSEO client against a mocked HTTP transport."""

from __future__ import annotations

import json

import httpx
import pytest

from arqsite.adapters.seo.dataforseo_client import (
    DataForSEOClient,
    compute_trend,
    suggest_easier_keywords,
)
from arqsite.schemas.seo import KeywordMetrics, RelatedKeyword

KEYWORD = "ai governance"

VOLUME_RESPONSE = {
    "status_code": 20000,
    "tasks": [
        {
            "result": [
                {
                    "keyword": KEYWORD,
                    "keyword_info": {
                        "search_volume": 1900,
                        "cpc": 12.5,
                        "competition": 0.4,
                        "competition_level": "MEDIUM",
                        "monthly_searches": [
                            {"search_volume": 2400},
                            {"search_volume": 2200},
                            {"search_volume": 2000},
                            {"search_volume": 1500},
                            {"search_volume": 1400},
                            {"search_volume": 1300},
                        ],
                    },
                    "keyword_properties": {"keyword_difficulty": 45},
                }
            ]
        }
    ],
}

RELATED_RESPONSE = {
    "status_code": 20000,
    "tasks": [
        {
            "result": [
                {"keyword": KEYWORD, "keyword_info": {"search_volume": 1900}},
                {
                    "keyword": "ai governance framework",
                    "keyword_info": {"search_volume": 880, "cpc": 9.1, "competition": 0.3},
                    "keyword_properties": {"keyword_difficulty": 30},
                },
                {
                    "keyword": "ai governance tools",
                    "keyword_info": {"search_volume": 1300},
                    "keyword_properties": {"keyword_difficulty": 60},
                },
                {"keyword": "ai policy template", "keyword_info": {"search_volume": 90}},
            ]
        }
    ],
}

QUESTION_IDEAS_RESPONSE = {
    "status_code": 20000,
    "tasks": [
        {
            "result": [
                {"keyword": "how does ai governance work", "keyword_info": {"search_volume": 50}},
                {"keyword": "ai governance jobs", "keyword_info": {"search_volume": 700}},
            ]
        }
    ],
}

SERP_RESPONSE = {
    "status_code": 20000,
    "tasks": [
        {
            "result": [
                {
                    "items": [
                        {
                            "type": "organic",
                            "title": "What is AI governance?",
                            "url": "https://example.com/ai-governance",
                            "domain": "example.com",
                            "rank_absolute": 1,
                            "description": "An overview.",
                        },
                        {
                            "type": "people_also_ask",
                            "items": [{"title": "Why is AI governance important?"}],
                        },
                        {
                            "type": "organic",
                            "title": "AI governance frameworks compared",
                            "url": "https://example.org/frameworks",
                            "domain": "example.org",
                            "rank_absolute": 3,
                        },
                    ]
                }
            ]
        }
    ],
}


def _client(handler) -> DataForSEOClient:
    return DataForSEOClient(login="user@example.com", password="pw", transport=httpx.MockTransport(handler))


def _routing_handler(requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        body = json.loads(request.content)[0]
        if path.endswith("/search_volume/live"):
            return httpx.Response(200, json=VOLUME_RESPONSE)
        if path.endswith("/keywords_for_keywords/live"):
            if body["keywords"] == [KEYWORD]:
                return httpx.Response(200, json=RELATED_RESPONSE)
            return httpx.Response(200, json=QUESTION_IDEAS_RESPONSE)
        if path.endswith("/serp/google/organic/live/regular"):
            return httpx.Response(200, json=SERP_RESPONSE)
        return httpx.Response(404)

    return handler


class TestTrend:
    """Trend from monthly volumes (newest first)."""

    @pytest.mark.parametrize(
        "volumes,expected",
        [
            ([], ("stable", 0)),
            ([500], ("stable", 0)),
            ([100] * 12, ("stable", 0)),
            ([2400, 2200, 2000, 1500, 1400, 1300], ("up", 57)),
            ([50, 50, 50, 100, 100, 100], ("down", -50)),
            ([105, 105, 105, 100, 100, 100], ("stable", 5)),
            ([10, 10, 10, 0, 0, 0], ("stable", 0)),
        ],
    )
    def test_compute_trend(self, volumes, expected):
        assert compute_trend(volumes) == expected


class TestSuggestions:
    """Easier keyword suggestions."""

    def test_picks_lower_difficulty_with_volume(self):
        metrics = KeywordMetrics(keyword=KEYWORD, keyword_difficulty=45)
        related = [
            RelatedKeyword(keyword="hard", search_volume=5000, keyword_difficulty=70),
            RelatedKeyword(keyword="easier", search_volume=880, keyword_difficulty=30),
            RelatedKeyword(keyword="tiny", search_volume=90, keyword_difficulty=5),
            RelatedKeyword(keyword="unknown difficulty", search_volume=400),
        ]

        suggestions = suggest_easier_keywords(metrics, related)

        assert [s.keyword for s in suggestions] == ["easier", "unknown difficulty"]
        assert suggestions[0].reason == "Lower difficulty (30) with 880 monthly searches"
        assert suggestions[1].reason == "Good search volume (400/mo) with lower competition"

    def test_default_ceiling_and_limit(self):
        metrics = KeywordMetrics(keyword=KEYWORD)
        related = [
            RelatedKeyword(keyword=f"kw {i}", search_volume=1000, keyword_difficulty=40 + i) for i in range(6)
        ]

        suggestions = suggest_easier_keywords(metrics, related)

        assert [s.keyword for s in suggestions] == ["kw 0", "kw 1", "kw 2"]


class TestDataForSEOClient:
    """HTTP calls and response mapping."""

    @pytest.mark.asyncio
    async def test_research_combines_every_lookup(self):
        requests: list[httpx.Request] = []
        client = _client(_routing_handler(requests))

        research = await client.research(KEYWORD)

        assert research is not None
        assert research.metrics.search_volume == 1900
        assert research.metrics.keyword_difficulty == 45
        assert research.metrics.trend_direction == "up"
        assert research.metrics.trend_percent == 57
        assert [k.keyword for k in research.related_keywords] == [
            "ai governance tools",
            "ai governance framework",
            "ai policy template",
        ]
        assert [c.domain for c in research.competitors] == ["example.com", "example.org"]
        assert research.competitors[0].position == 1
        assert [q.question for q in research.questions] == [
            "Why is AI governance important?",
            "how does ai governance work",
        ]
        assert research.questions[1].search_volume == 50
        assert [s.keyword for s in research.suggestions] == ["ai governance framework"]
        # One SERP call serves both competitors and questions
        assert sum(1 for r in requests if r.url.path.endswith("/regular")) == 1

    @pytest.mark.asyncio
    async def test_requests_use_basic_auth_and_location(self):
        requests: list[httpx.Request] = []
        client = _client(_routing_handler(requests))

        await client.get_keyword_metrics(KEYWORD)

        [request] = requests
        assert request.url == "https://api.dataforseo.com/v3/keywords_data/google_ads/search_volume/live"
        assert request.headers["authorization"].startswith("Basic ")
        body = json.loads(request.content)
        assert body == [
            {
                "location_code": 2840,
                "language_code": "en",
                "keywords": [KEYWORD],
                "include_adult_keywords": False,
            }
        ]

    @pytest.mark.asyncio
    async def test_missing_volume_data_means_no_research(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/search_volume/live"):
                return httpx.Response(200, json={"status_code": 20000, "tasks": [{"result": [{"keyword": "zzqxv"}]}]})
            return httpx.Response(200, json={"status_code": 20000, "tasks": []})

        assert await _client(handler).research("zzqxv") is None

    @pytest.mark.asyncio
    async def test_http_errors_degrade_per_lookup(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/search_volume/live"):
                return httpx.Response(200, json=VOLUME_RESPONSE)
            return httpx.Response(500, json={"status_code": 50000})

        research = await _client(handler).research(KEYWORD)

        assert research is not None
        assert research.related_keywords == []
        assert research.competitors == []
        assert research.questions == []

    @pytest.mark.asyncio
    async def test_metrics_failure_returns_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        assert await _client(handler).get_keyword_metrics(KEYWORD) is None

    def test_questions_from_serp_reads_people_also_ask(self):
        items = [{"type": "people_also_ask", "items": [{"title": f"Q{i}?"} for i in range(12)]}]

        assert len(DataForSEOClient.questions_from_serp(items)) == 12

    @pytest.mark.asyncio
    async def test_related_questions_skip_top_up_when_serp_has_enough(self):
        requests: list[httpx.Request] = []
        client = _client(_routing_handler(requests))
        items = [{"type": "people_also_ask", "items": [{"title": f"Q{i}?"} for i in range(12)]}]

        questions = await client.get_related_questions(KEYWORD, items)

        assert len(questions) == 10
        assert requests == []
