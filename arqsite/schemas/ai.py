"""Pydantic schemas for AI content generation and the website chat."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

GenerationType = Literal[
    "title",
    "description",
    "excerpt",
    "outline",
    "content",
    "faq",
    "og_title",
    "og_description",
    "extract_keywords",
]


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: GenerationType
    topic: str | None = Field(None, max_length=500)
    focus_keyword: str | None = Field(None, alias="focusKeyword", max_length=200)
    tone: str = Field("authoritative-trustworthy", max_length=100)
    audience: list[str] = Field(default_factory=lambda: ["c-suite", "it-leaders"])
    length: Literal["short", "standard", "long"] = "standard"
    existing_content: str | None = Field(None, alias="existingContent")


class GenerateResponse(BaseModel):
    """Generated text; ``options`` holds alternatives for short-form types."""

    result: Any
    options: list[str] | None = None
    raw: str


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=2000)
    session_id: str | None = Field(None, alias="sessionId", max_length=100)
    history: list[ChatTurn] = Field(default_factory=list, max_length=20)
    user_name: str | None = Field(None, alias="userName", max_length=200)
    user_email: str | None = Field(None, alias="userEmail", max_length=320)
    user_company: str | None = Field(None, alias="userCompany", max_length=200)
    user_job_title: str | None = Field(None, alias="userJobTitle", max_length=200)
    current_page: str | None = Field(None, alias="currentPage", max_length=500)


class ChatResponse(BaseModel):
    response: str
    session_id: str
    extracted_info: dict[str, str] = Field(default_factory=dict)
    used_fallback: bool = False
