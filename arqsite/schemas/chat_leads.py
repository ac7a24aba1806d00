"""Pydantic schemas for leads scored from website chat conversations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

SignalType = Literal[
    "pricing_interest",
    "competitor_mention",
    "timeline_mention",
    "pain_point",
    "feature_interest",
    "demo_request",
    "compliance_mention",
    "integration_question",
]
IntentCategory = Literal["hot", "warm", "cold"]
Urgency = Literal["immediate", "high", "medium", "low"]
CompanySize = Literal["startup", "smb", "mid-market", "enterprise"]
QualificationStatus = Literal["new", "qualified", "nurture", "unqualified"]
PriorityTier = Literal["tier1", "tier2", "tier3"]


class BehavioralSignal(BaseModel):
    """One buying signal detected in a visitor message."""

    type: SignalType
    content: str = Field(..., max_length=200)
    confidence: float
    timestamp: str


class ChatVisitor(BaseModel):
    """What is known about the person behind a chat session."""

    name: str | None = None
    email: str | None = None
    company: str | None = None
    job_title: str | None = None


class ChatLeadScore(BaseModel):
    """Heuristic lead intelligence, stored in ``lead_intelligence``."""

    buy_intent_score: int = Field(0, ge=0, le=100)
    intent_category: IntentCategory = "cold"
    company_size: CompanySize | None = None
    urgency: Urgency = "low"
    qualification_status: QualificationStatus = "new"
    behavioral_signals: list[BehavioralSignal] = Field(default_factory=list)
    user_research: dict[str, Any] | None = None
    company_research: dict[str, Any] | None = None


class LeadStats(BaseModel):
    total: int = 0
    hot: int = 0
    warm: int = 0
    cold: int = 0
    qualified: int = 0
    enterprise: int = 0
    recent_leads: int = 0
