"""AI content generation for the admin editor and the website chat assistant."""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any

from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.core.errors import ConfigurationAppError, LLMAppError, ValidationAppError
from arqsite.schemas.ai import ChatRequest, ChatResponse, GenerateRequest, GenerateResponse

logger = logging.getLogger(__name__)

CHAT_FALLBACK_REPLY = (
    "I apologize, but I'm having trouble connecting right now. Please try again in a "
    "moment, or feel free to email us at hello@thearq.ai for immediate assistance."
)

BRAND_SYSTEM_PROMPT = (
    "You are a senior B2B content strategist writing for ArqAI, an enterprise platform "
    "to build, run and govern an AI workforce. Write clearly for enterprise buyers, "
    "avoid hype, and never invent customer names or statistics."
)

CHAT_SYSTEM_PROMPT = (
    "You are the ArqAI website assistant. Answer questions about ArqAI's platform, "
    "solutions and partners concisely and helpfully. When a visitor shows buying "
    "interest, suggest booking a demo at https://thearq.ai/demo."
)

LENGTH_WORDS = {"short": "800-1200", "standard": "1500-2000", "long": "2500-3500"}


@dataclass(frozen=True)
class GenerationProfile:
    """Token budget, temperature and output handling for one generation type."""

    max_tokens: int
    temperature: float
    output: str = "text"
    needs_content: bool = False


GENERATION_PROFILES: dict[str, GenerationProfile] = {
    "title": GenerationProfile(500, 0.8, output="lines"),
    "description": GenerationProfile(500, 0.7, output="lines"),
    "excerpt": GenerationProfile(500, 0.7, output="sections", needs_content=True),
    "outline": GenerationProfile(2000, 0.6),
    "content": GenerationProfile(8000, 0.7),
    "faq": GenerationProfile(1500, 0.6, output="json"),
    "og_title": GenerationProfile(300, 0.8, output="lines"),
    "og_description": GenerationProfile(500, 0.7, output="lines"),
    "extract_keywords": GenerationProfile(500, 0.3, output="json", needs_content=True),
}

_NUMBERED_LINE = re.compile(r"^\d+\.")
_JSON_BLOCK = re.compile(r"\[[\s\S]*\]|\{[\s\S]*\}")


def build_generation_prompt(request: GenerateRequest) -> str:
    """Build the user prompt for a generation request."""
    topic = request.topic or "AI workforce governance"
    keyword = f' Focus keyword: "{request.focus_keyword}".' if request.focus_keyword else ""
    context = (
        f"Topic: {topic}.{keyword} Tone: {request.tone}. "
        f"Audience: {', '.join(request.audience)}."
    )

    prompts = {
        "title": "Write 5 SEO titles under 60 characters, one per line, no numbering.",
        "description": "Write 3 meta descriptions of 150-160 characters, one per line, no numbering.",
        "excerpt": "Write 3 alternative excerpts of 2-3 sentences for the content below, separated by lines containing only ---.",
        "outline": "Write a detailed article outline in Markdown with H2 and H3 headings.",
        "content": (
            f"Write a complete article of {LENGTH_WORDS[request.length]} words in Markdown "
            "with H2 sections, concrete data points and internal links to /platform or /solutions."
        ),
        "faq": 'Write 5 FAQs as a JSON array of {"question": ..., "answer": ...} objects. Output JSON only.',
        "og_title": "Write 3 social sharing titles under 70 characters, one per line, no numbering.",
        "og_description": "Write 3 social sharing descriptions under 200 characters, one per line, no numbering.",
        "extract_keywords": (
            'Extract SEO keywords from the content below as a JSON object {"primary": ..., '
            '"secondary": [...], "long_tail": [...]}. Output JSON only.'
        ),
    }

    prompt = f"{context}\n\n{prompts[request.type]}"
    if request.existing_content:
        prompt += f"\n\nCONTENT:\n{request.existing_content}"
    return prompt


def split_options(raw: str, output: str) -> list[str]:
    """Split a multi-option completion into usable alternatives."""
    if output == "sections":
        return [section.strip() for section in raw.split("---") if len(section.strip()) > 20]
    lines = (line.strip() for line in raw.split("\n"))
    return [
        line
        for line in lines
        if len(line) > 10 and not line.startswith("#") and not _NUMBERED_LINE.match(line)
    ]


def parse_structured(raw: str) -> Any:
    """Extract the first JSON array/object from a completion, else return raw text."""
    match = _JSON_BLOCK.search(raw)
    if not match:
        return raw
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return raw


class ContentGenerationService:
    """Generates SEO copy for the admin content editor."""

    def __init__(self, llm: AbstractLLMClient | None) -> None:
        self.llm = llm

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Generate text for ``request.type``.

        Raises:
            ConfigurationAppError: If no LLM is configured.
            ValidationAppError: If the type needs existing content and none was sent.
            LLMAppError: If the provider call fails.
        """
        if self.llm is None:
            raise ConfigurationAppError(code="llm_not_configured", message="AI generation is not configured")

        profile = GENERATION_PROFILES[request.type]
        if profile.needs_content and not request.existing_content:
            raise ValidationAppError(
                code="content_required",
                message=f"Content is required for {request.type} generation",
                details={"field": "existingContent"},
            )

        try:
            raw = await self.llm.generate_text(
                BRAND_SYSTEM_PROMPT,
                build_generation_prompt(request),
                max_tokens=profile.max_tokens,
                temperature=profile.temperature,
            )
        except RuntimeError as exc:
            logger.error("ai.generation_failed", extra={"generation_type": request.type})
            raise LLMAppError(code="llm_generation_failed", message="Generation failed") from exc

        logger.info("ai.generated", extra={"generation_type": request.type, "chars": len(raw)})

        if profile.output == "json":
            return GenerateResponse(result=parse_structured(raw), raw=raw)
        if profile.output in ("lines", "sections"):
            options = split_options(raw, profile.output)
            return GenerateResponse(
                result=options[0] if options else raw,
                options=options[:3],
                raw=raw,
            )
        return GenerateResponse(result=raw, raw=raw)


_EMAIL = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
_PHONE = re.compile(r"(?:\+?1[-.]?)?\(?[0-9]{3}\)?[-.]?[0-9]{3}[-.]?[0-9]{4}")
_NAME_PATTERNS = (
    re.compile(r"(?i:\bi'm|\bi am|\bmy name is|\bthis is|\bcall me)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"),
    re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s+here\b"),
)


def extract_lead_info(message: str) -> dict[str, str]:
    """Pull an email, phone number and name out of a chat message."""
    extracted: dict[str, str] = {}

    if email := _EMAIL.search(message):
        extracted["email"] = email.group(0)
    if phone := _PHONE.search(message):
        extracted["phone"] = phone.group(0)
    for pattern in _NAME_PATTERNS:
        if name := pattern.search(message):
            extracted["name"] = name.group(1)
            break

    return extracted


def _chat_prompt(request: ChatRequest) -> str:
    turns = [f"{turn.role.upper()}: {turn.content}" for turn in request.history]
    turns.append(f"USER: {request.message}")
    return "\n".join(turns) + "\nASSISTANT:"


class ChatService:
    """Website chat assistant with a fixed fallback reply."""

    def __init__(self, llm: AbstractLLMClient | None) -> None:
        self.llm = llm

    async def reply(self, request: ChatRequest) -> ChatResponse:
        session_id = request.session_id or str(uuid.uuid4())
        extracted = extract_lead_info(request.message)

        if self.llm is None:
            logger.warning("chat.fallback", extra={"reason": "llm_not_configured"})
            return ChatResponse(
                response=CHAT_FALLBACK_REPLY,
                session_id=session_id,
                extracted_info=extracted,
                used_fallback=True,
            )

        try:
            response = await self.llm.generate_text(
                CHAT_SYSTEM_PROMPT,
                _chat_prompt(request),
                max_tokens=1024,
                temperature=0.7,
            )
        except RuntimeError:
            logger.warning("chat.fallback", extra={"reason": "llm_failed"})
            return ChatResponse(
                response=CHAT_FALLBACK_REPLY,
                session_id=session_id,
                extracted_info=extracted,
                used_fallback=True,
            )

        logger.info("chat.replied", extra={"has_lead_info": bool(extracted)})
        return ChatResponse(response=response, session_id=session_id, extracted_info=extracted)
