"""Rule-based buying-intent scoring for website chat visitors.

No model call is involved: every visitor message is matched against keyword
patterns, the detected signals are weighted into a 0-100 buy-intent score,
and the conversation text gives urgency, company size, industry and
compliance hints. The result drives the admin leads view and the priority
tier used for follow-up.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Iterable, Sequence

from arqsite.schemas.chat_leads import (
    BehavioralSignal,
    ChatLeadScore,
    ChatVisitor,
    CompanySize,
    IntentCategory,
    PriorityTier,
    QualificationStatus,
    Urgency,
)

SIGNAL_WEIGHTS = {
    "pricing_interest": 25,
    "competitor_mention": 20,
    "timeline_mention": 30,
    "pain_point": 15,
    "feature_interest": 10,
    "compliance_mention": 20,
    "demo_request": 40,
    "integration_question": 15,
}
DEFAULT_SIGNAL_WEIGHT = 5
MAX_STORED_SIGNALS = 50
SNIPPET_LENGTH = 200

# Longer patterns are more specific and earn a higher confidence
SPECIFIC_PATTERN_LENGTH = 18
SPECIFIC_CONFIDENCE = 0.9
GENERIC_CONFIDENCE = 0.7


def _patterns(*sources: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


SIGNAL_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "pricing_interest": _patterns(
        r"pric(e|ing)", r"cost", r"budget", r"how much", r"investment", r"\broi\b", r"subscription", r"license"
    ),
    "competitor_mention": _patterns(
        r"competitor",
        r"alternative",
        r"compare",
        r"\bvs\.",
        r"versus",
        r"switch from",
        r"current(ly)? (use|using)",
        r"looking at other",
    ),
    "timeline_mention": _patterns(
        r"timeline",
        r"how (long|soon)",
        r"implement(ation)?",
        r"deploy",
        r"go live",
        r"deadline",
        r"quarter",
        r"this (week|month|year)",
        r"next (week|month)",
    ),
    "pain_point": _patterns(
        r"challeng(e|ing)",
        r"problem",
        r"issue",
        r"struggle",
        r"difficult",
        r"pain point",
        r"frustrat",
        r"compliance (issue|problem|risk)",
        r"audit",
        r"regulat",
        r"need help",
        r"looking for",
    ),
    "feature_interest": _patterns(
        r"feature",
        r"capabilit",
        r"can (you|it|arqai)",
        r"does (it|arqai)",
        r"support for",
        r"how does",
        r"automat",
        r"workflow",
        r"bot",
    ),
    "demo_request": _patterns(
        r"demo",
        r"trial",
        r"\bpoc\b",
        r"proof of concept",
        r"pilot",
        r"see it in action",
        r"show me",
        r"meeting",
        r"schedule",
        r"call",
        r"talk",
        r"discuss",
        r"chat with",
        r"speak with",
        r"connect with",
        r"set up",
        r"book",
    ),
    "compliance_mention": _patterns(
        r"hipaa", r"gdpr", r"\bsox\b", r"finra", r"naic", r"compliance", r"regulat", r"audit", r"governance"
    ),
    "integration_question": _patterns(
        r"integrat",
        r"connect",
        r"\bapi\b",
        r"work with",
        r"compatible",
        r"snowflake",
        r"azure",
        r"\baws\b",
        r"slack",
        r"\berp\b",
        r"\bcrm\b",
        r"salesforce",
    ),
}

SENIORITY_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "executive": _patterns(
        r"\bceo\b",
        r"\bcto\b",
        r"\bcio\b",
        r"\bciso\b",
        r"\bcfo\b",
        r"chief",
        r"(?<!vice )president",
        r"founder",
        r"owner",
    ),
    "director": _patterns(r"director", r"\bvp\b", r"vice president", r"head of", r"\bsvp\b", r"\bevp\b"),
    "manager": _patterns(r"manager", r"lead", r"principal", r"senior", r"team lead"),
    "individual": _patterns(r"analyst", r"engineer", r"developer", r"specialist", r"associate"),
}

COMPANY_SIZE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "startup": _patterns(r"startup", r"early stage", r"seed", r"small team", r"just us", r"founder"),
    "smb": _patterns(r"small business", r"\bsmb\b", r"\b50 (employees|people)", r"growing"),
    "mid-market": _patterns(r"mid-?market", r"medium", r"few hundred", r"\b\d{2,3} (employees|people)"),
    "enterprise": _patterns(
        r"enterprise", r"fortune", r"global", r"multinational", r"\b\d{4,} (employees|people)", r"large"
    ),
}

IMMEDIATE_KEYWORDS = ("asap", "urgent", "immediately", "right away", "today", "this week")
HIGH_URGENCY_KEYWORDS = ("soon", "next week", "this month", "quickly")
MEDIUM_URGENCY_KEYWORDS = ("quarter", "next month", "planning")

COMPLIANCE_FRAMEWORKS = {
    "HIPAA": ("hipaa", "health", "patient", "phi", "protected health"),
    "GDPR": ("gdpr", "european", "eu data", "personal data", "data protection"),
    "SOX": ("sox", "sarbanes", "financial reporting", "public company"),
    "FINRA": ("finra", "broker", "dealer", "securities", "trading"),
    "NAIC": ("naic", "insurance", "state insurance"),
    "SOC 2": ("soc 2", "soc2", "type 2", "type ii"),
    "CCPA": ("ccpa", "california", "consumer privacy"),
    "EU AI Act": ("eu ai act", "ai regulation", "european ai"),
}

INDUSTRIES = {
    "Financial Services": ("bank", "financial", "fintech", "investment", "trading", "wealth"),
    "Insurance": ("insurance", "insurer", "claims", "underwriting", "policy"),
    "Healthcare": ("health", "hospital", "clinical", "patient", "medical", "pharma"),
    "Technology": ("tech", "software", "saas", "cloud", "platform"),
    "Manufacturing": ("manufacturing", "factory", "production", "supply chain"),
    "Retail": ("retail", "ecommerce", "consumer", "shopping"),
    "Government": ("government", "federal", "state", "public sector", "agency"),
}


def detect_signals(message: str, now: datetime) -> list[BehavioralSignal]:
    """Detect at most one signal of each type in a message."""
    signals = []
    for signal_type, patterns in SIGNAL_PATTERNS.items():
        for pattern in patterns:
            if pattern.search(message):
                specific = len(pattern.pattern) >= SPECIFIC_PATTERN_LENGTH
                signals.append(
                    BehavioralSignal(
                        type=signal_type,
                        content=message[:SNIPPET_LENGTH],
                        confidence=SPECIFIC_CONFIDENCE if specific else GENERIC_CONFIDENCE,
                        timestamp=now.isoformat(),
                    )
                )
                break
    return signals


def deduplicate_signals(signals: Iterable[BehavioralSignal]) -> list[BehavioralSignal]:
    """Collapse signals of the same type and snippet, keeping the most confident."""
    seen: dict[str, BehavioralSignal] = {}
    for signal in signals:
        key = f"{signal.type}:{signal.content[:50].lower().strip()}"
        if key not in seen or seen[key].confidence < signal.confidence:
            seen[key] = signal
    return list(seen.values())


def intent_score(signals: Sequence[BehavioralSignal]) -> int:
    """Weighted sum over distinct signal types with breadth bonuses, capped at 100."""
    score = 0.0
    counted: set[str] = set()
    for signal in signals:
        if signal.type in counted:
            continue
        counted.add(signal.type)
        score += SIGNAL_WEIGHTS.get(signal.type, DEFAULT_SIGNAL_WEIGHT) * signal.confidence

    if len(counted) >= 3:
        score += 10
    if len(counted) >= 5:
        score += 15

    # Half-up rounding
    return min(math.floor(score + 0.5), 100)


def intent_category(score: int) -> IntentCategory:
    if score >= 60:
        return "hot"
    if score >= 30:
        return "warm"
    return "cold"


def determine_urgency(signals: Sequence[BehavioralSignal], messages: Sequence[str]) -> Urgency:
    text = " ".join(messages).lower()
    types = {signal.type for signal in signals}

    if any(keyword in text for keyword in IMMEDIATE_KEYWORDS):
        return "immediate"
    if "demo_request" in types or any(keyword in text for keyword in HIGH_URGENCY_KEYWORDS):
        return "high"
    if "timeline_mention" in types or any(keyword in text for keyword in MEDIUM_URGENCY_KEYWORDS):
        return "medium"
    return "low"


def _first_match(patterns_by_label: dict[str, tuple[re.Pattern[str], ...]], text: str) -> str | None:
    for label, patterns in patterns_by_label.items():
        if any(pattern.search(text) for pattern in patterns):
            return label
    return None


def infer_company_size(messages: Sequence[str]) -> CompanySize | None:
    return _first_match(COMPANY_SIZE_PATTERNS, " ".join(messages))


def infer_role_seniority(job_title: str | None) -> str | None:
    """Seniority band for a job title; "unknown" when nothing matches."""
    if not job_title:
        return None
    return _first_match(SENIORITY_PATTERNS, job_title) or "unknown"


def qualification_status(
    score: int,
    *,
    has_email: bool,
    has_company: bool,
    company_size: CompanySize | None,
) -> QualificationStatus:
    if score >= 50 and has_email and company_size == "enterprise":
        return "qualified"
    if score >= 60 and has_email:
        return "qualified"
    if score >= 30 and (has_email or has_company):
        return "nurture"
    if score < 20 and not has_email and not has_company:
        return "unqualified"
    return "new"


def compliance_requirements(messages: Sequence[str]) -> list[str]:
    text = " ".join(messages).lower()
    return [name for name, keywords in COMPLIANCE_FRAMEWORKS.items() if any(k in text for k in keywords)]


def infer_industry(messages: Sequence[str]) -> str | None:
    text = " ".join(messages).lower()
    for industry, keywords in INDUSTRIES.items():
        if any(keyword in text for keyword in keywords):
            return industry
    return None


def score_conversation(
    messages: Sequence[str],
    visitor: ChatVisitor,
    now: datetime,
    existing_signals: Iterable[BehavioralSignal] = (),
) -> ChatLeadScore:
    """Score every visitor message of a conversation.

    Args:
        messages: The visitor's messages, oldest first.
        visitor: Contact details shared so far.
        now: Timestamp stamped on newly detected signals.
        existing_signals: Signals already stored for this visitor.
    """
    raw = list(existing_signals)
    for message in messages:
        raw.extend(detect_signals(message, now))
    signals = deduplicate_signals(raw)[-MAX_STORED_SIGNALS:]

    score = intent_score(signals)
    company_size = infer_company_size(messages)
    seniority = infer_role_seniority(visitor.job_title)
    industry = infer_industry(messages)
    frameworks = compliance_requirements(messages)

    company_research = None
    if industry or frameworks:
        company_research = {"industry": industry, "compliance_requirements": frameworks or None}

    return ChatLeadScore(
        buy_intent_score=score,
        intent_category=intent_category(score),
        company_size=company_size,
        urgency=determine_urgency(signals, messages),
        qualification_status=qualification_status(
            score,
            has_email=bool(visitor.email),
            has_company=bool(visitor.company),
            company_size=company_size,
        ),
        behavioral_signals=signals,
        user_research={"role_seniority": seniority} if seniority else None,
        company_research=company_research,
    )


def priority_tier(lead: ChatLeadScore) -> PriorityTier:
    """Follow-up tier: tier1 immediately, tier2 within a day, tier3 nurture."""
    score = lead.buy_intent_score
    if (
        score >= 70
        or (lead.company_size == "enterprise" and score >= 50)
        or lead.urgency == "immediate"
        or lead.qualification_status == "qualified"
    ):
        return "tier1"
    if (
        score >= 40
        or lead.company_size == "mid-market"
        or lead.urgency == "high"
        or lead.qualification_status == "nurture"
    ):
        return "tier2"
    return "tier3"
