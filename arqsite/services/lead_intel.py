"""AI lead intelligence for inbound contact submissions.

Enrichment is optional: every failure is logged and yields None so the
contact submission itself never fails because of the LLM.
"""

import logging

from pydantic import ValidationError

from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.schemas.leads import ContactRequest, LeadIntel

logger = logging.getLogger(__name__)


def build_lead_prompt(contact: ContactRequest) -> str:
    """Build the lead analysis prompt (JSON output with snake_case keys)."""
    return f"""
You are an expert B2B sales intelligence analyst. Analyze this inbound lead and provide actionable intelligence.

LEAD:
- Name: {contact.name}
- Email: {contact.email}
- Company: {contact.company or "Not provided"}
- Job Title: {contact.job_title or "Not provided"}
- Inquiry Type: {contact.inquiry_type}
- Message: {contact.message}

Respond with ONLY this JSON object:
{{
  "detected_intent": "demo|pricing|support|partnership|general|urgent",
  "intent_confidence": <number 0.0-1.0>,
  "urgency": "high|medium|low",
  "personalized_greeting": "Hi <first name>,",
  "personalized_message": "2-3 sentence confirmation based on their inquiry",
  "suggested_next_steps": ["step 1", "step 2", "step 3"],
  "company_intel": {{
    "likely_industry": "industry",
    "estimated_size": "startup|smb|mid-market|enterprise",
    "potential_use_cases": ["use case 1", "use case 2"]
  }},
  "contact_intel": {{
    "seniority": "c-level|vp|director|manager|individual|unknown",
    "department": "department",
    "decision_maker": true
  }},
  "research_suggestions": ["suggestion 1", "suggestion 2"],
  "summary": "One paragraph summary for the sales team"
}}
""".strip()


async def analyze_lead(llm: AbstractLLMClient | None, contact: ContactRequest) -> LeadIntel | None:
    """Return AI intel for ``contact``, or None when AI is off or fails."""
    if llm is None:
        return None

    try:
        raw = await llm.generate_json(
            build_lead_prompt(contact),
            schema=LeadIntel.model_json_schema(),
            max_tokens=1000,
        )
        intel = LeadIntel.model_validate(raw)
    except (RuntimeError, ValidationError) as exc:
        logger.warning("lead_intel.failed", extra={"error_type": type(exc).__name__})
        return None

    logger.info(
        "lead_intel.completed",
        extra={"intent": intel.detected_intent, "urgency": intel.urgency},
    )
    return intel
