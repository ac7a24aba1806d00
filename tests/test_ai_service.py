"""Tests for AI content generation, the chat assistant and lead intel."""

import pytest

from arqsite.core.dependencies import get_llm_client
from arqsite.core.errors import ConfigurationAppError, LLMAppError, ValidationAppError
from arqsite.schemas.ai import ChatRequest, GenerateRequest
from arqsite.schemas.leads import ContactRequest
from arqsite.services.ai_service import (
    CHAT_FALLBACK_REPLY,
    ChatService,
    ContentGenerationService,
    build_generation_prompt,
    extract_lead_info,
    parse_structured,
    split_options,
)
from arqsite.services.lead_intel import analyze_lead
from tests.fakes import FakeLLM

TITLES = """Here are some options:
1. Numbered titles are skipped
How Enterprises Govern AI Agents
The AI Workforce Governance Playbook
Short
Why Audit Trails Matter for AI Agents
Building Trust in Autonomous Agents"""


class TestParsing:
    """Turning completions into options and structured data."""

    def test_split_lines(self):
        options = split_options(TITLES, "lines")

        assert options == [
            "Here are some options:",
            "How Enterprises Govern AI Agents",
            "The AI Workforce Governance Playbook",
            "Why Audit Trails Matter for AI Agents",
            "Building Trust in Autonomous Agents",
        ]

    def test_split_lines_drops_headings(self):
        assert split_options("# Suggested titles\nA perfectly fine title", "lines") == ["A perfectly fine title"]

    def test_split_sections(self):
        raw = "First excerpt that is long enough.\n---\ntoo short\n---\nSecond excerpt that is long enough."

        assert split_options(raw, "sections") == [
            "First excerpt that is long enough.",
            "Second excerpt that is long enough.",
        ]

    def test_parse_json_inside_prose(self):
        raw = 'Sure! Here you go:\n[{"question": "What is ArqAI?", "answer": "A platform."}]\nEnjoy.'

        assert parse_structured(raw) == [{"question": "What is ArqAI?", "answer": "A platform."}]

    @pytest.mark.parametrize("raw", ["no json here", "{not: valid}"])
    def test_unparseable_json_returns_raw(self, raw):
        assert parse_structured(raw) == raw

    def test_prompt_includes_context(self):
        request = GenerateRequest(type="content", topic="Agent audits", focusKeyword="ai audit", length="short")

        prompt = build_generation_prompt(request)

        assert "Topic: Agent audits." in prompt
        assert 'Focus keyword: "ai audit"' in prompt
        assert "800-1200 words" in prompt
        assert "CONTENT:" not in prompt


class TestLeadExtraction:
    """Contact details volunteered in chat messages."""

    def test_email_and_phone(self):
        info = extract_lead_info("Reach me at jane.doe@acme.com or 555-123-4567")

        assert info == {"email": "jane.doe@acme.com", "phone": "555-123-4567"}

    @pytest.mark.parametrize(
        "message,name",
        [
            ("Hi, I'm Jane Doe and I need a demo", "Jane Doe"),
            ("my name is Omar", "Omar"),
            ("Bob here, what does it cost?", "Bob"),
        ],
    )
    def test_names(self, message, name):
        assert extract_lead_info(message)["name"] == name

    def test_nothing_to_extract(self):
        assert extract_lead_info("what does ArqAI do?") == {}


class TestContentGeneration:
    """Admin editor generation."""

    @pytest.mark.asyncio
    async def test_requires_llm(self):
        with pytest.raises(ConfigurationAppError) as exc:
            await ContentGenerationService(None).generate(GenerateRequest(type="title"))
        assert exc.value.code == "llm_not_configured"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("generation_type", ["excerpt", "extract_keywords"])
    async def test_content_required(self, generation_type):
        llm = FakeLLM(text="unused")

        with pytest.raises(ValidationAppError) as exc:
            await ContentGenerationService(llm).generate(GenerateRequest(type=generation_type))
        assert exc.value.code == "content_required"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_provider_failure(self):
        llm = FakeLLM(error=RuntimeError("timeout"))

        with pytest.raises(LLMAppError) as exc:
            await ContentGenerationService(llm).generate(GenerateRequest(type="outline"))
        assert exc.value.code == "llm_generation_failed"

    @pytest.mark.asyncio
    async def test_titles_return_three_options(self):
        llm = FakeLLM(text=TITLES)

        response = await ContentGenerationService(llm).generate(GenerateRequest(type="title"))

        assert response.result == "Here are some options:"
        assert len(response.options) == 3
        assert response.raw == TITLES
        assert llm.calls[0]["max_tokens"] == 500
        assert llm.calls[0]["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_faq_is_parsed(self):
        llm = FakeLLM(text='[{"question": "Q?", "answer": "A."}]')

        response = await ContentGenerationService(llm).generate(GenerateRequest(type="faq"))

        assert response.result == [{"question": "Q?", "answer": "A."}]
        assert response.options is None

    @pytest.mark.asyncio
    async def test_long_form_is_returned_verbatim(self):
        llm = FakeLLM(text="## Section\n\nBody")

        response = await ContentGenerationService(llm).generate(GenerateRequest(type="content"))

        assert response.result == "## Section\n\nBody"
        assert llm.calls[0]["max_tokens"] == 8000


class TestChatService:
    """Website assistant."""

    @pytest.mark.asyncio
    async def test_reply(self):
        llm = FakeLLM(text="ArqAI helps you govern agents.")
        request = ChatRequest(
            message="What is ArqAI?",
            sessionId="s-1",
            history=[{"role": "assistant", "content": "Hello!"}],
        )

        response = await ChatService(llm).reply(request)

        assert response.response == "ArqAI helps you govern agents."
        assert response.session_id == "s-1"
        assert response.used_fallback is False
        assert llm.calls[0]["user_prompt"] == "ASSISTANT: Hello!\nUSER: What is ArqAI?\nASSISTANT:"

    @pytest.mark.asyncio
    async def test_fallback_without_llm(self):
        response = await ChatService(None).reply(ChatRequest(message="I'm Jane Doe, jane@acme.com"))

        assert response.response == CHAT_FALLBACK_REPLY
        assert response.used_fallback is True
        assert response.session_id
        assert response.extracted_info == {"email": "jane@acme.com", "name": "Jane Doe"}

    @pytest.mark.asyncio
    async def test_fallback_on_provider_error(self):
        response = await ChatService(FakeLLM(error=RuntimeError("down"))).reply(ChatRequest(message="hello"))

        assert response.used_fallback is True
        assert response.response == CHAT_FALLBACK_REPLY


class TestLeadIntel:
    """Optional enrichment of contact submissions."""

    CONTACT = ContactRequest(name="Jane", email="jane@acme.com", message="Pricing please", inquiryType="pricing")

    @pytest.mark.asyncio
    async def test_without_llm(self):
        assert await analyze_lead(None, self.CONTACT) is None

    @pytest.mark.asyncio
    async def test_intel(self):
        llm = FakeLLM(json_payload={"detected_intent": "pricing", "urgency": "low", "intent_confidence": 0.7})

        intel = await analyze_lead(llm, self.CONTACT)

        assert intel.detected_intent == "pricing"
        assert intel.urgency == "low"
        assert "Inquiry Type: pricing" in llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_provider_error(self):
        assert await analyze_lead(FakeLLM(error=RuntimeError("down")), self.CONTACT) is None

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        llm = FakeLLM(json_payload={"intent_confidence": 7})

        assert await analyze_lead(llm, self.CONTACT) is None


class TestAIRoutes:
    """HTTP surface for chat and admin generation."""

    def test_chat_fallback(self, client):
        response = client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 200
        body = response.json()
        assert body["used_fallback"] is True
        assert body["session_id"]

    def test_chat_validation(self, client):
        assert client.post("/api/chat", json={"message": ""}).status_code == 400

    def test_chat_with_llm(self, app, client):
        app.dependency_overrides[get_llm_client] = lambda: FakeLLM(text="Hi there")

        response = client.post("/api/chat", json={"message": "hello", "sessionId": "abc"})

        assert response.json()["response"] == "Hi there"
        assert response.json()["session_id"] == "abc"

    def test_generate_requires_session(self, client):
        assert client.post("/api/admin/ai/generate", json={"type": "title"}).status_code == 401

    def test_generate_not_configured(self, admin_client):
        response = admin_client.post("/api/admin/ai/generate", json={"type": "title"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "llm_not_configured"

    def test_generate(self, app, admin_client):
        app.dependency_overrides[get_llm_client] = lambda: FakeLLM(text=TITLES)

        response = admin_client.post("/api/admin/ai/generate", json={"type": "og_title", "topic": "agents"})

        assert response.status_code == 200
        assert len(response.json()["options"]) == 3

    def test_generate_unknown_type(self, admin_client):
        assert admin_client.post("/api/admin/ai/generate", json={"type": "poem"}).status_code == 400
