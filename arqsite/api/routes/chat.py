from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.core.dependencies import get_llm_client, get_optional_data_store
from arqsite.core.rate_limit import rate_limit, resolve_client_ip
from arqsite.schemas.ai import ChatRequest, ChatResponse
from arqsite.schemas.chat_leads import ChatVisitor
from arqsite.services.ai_service import ChatService
from arqsite.services.chat_lead_service import ChatLeadService

router = APIRouter(prefix="/api", tags=["Chat"])


def chat_visitor(payload: ChatRequest, extracted: dict[str, str]) -> ChatVisitor:
    """Contact details from the widget form, else from the message text."""
    return ChatVisitor(
        name=payload.user_name or extracted.get("name"),
        email=payload.user_email or extracted.get("email"),
        company=payload.user_company,
        job_title=payload.user_job_title,
    )


@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(rate_limit("chat", "chat"))],
)
async def chat(
    payload: ChatRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    llm: AbstractLLMClient | None = Depends(get_llm_client),
    store: AbstractDataStore | None = Depends(get_optional_data_store),
) -> ChatResponse:
    """Website assistant reply; a fixed fallback when AI is unavailable.

    The visitor and their lead score are recorded after the response is sent.
    """
    reply = await ChatService(llm).reply(payload)

    leads = ChatLeadService(store)
    background_tasks.add_task(
        leads.record_message,
        reply.session_id,
        payload.message,
        chat_visitor(payload, reply.extracted_info),
        payload.history,
        reply.response,
        payload.current_page,
    )
    background_tasks.add_task(
        leads.record_session,
        reply.session_id,
        ip_address=resolve_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        current_page=payload.current_page,
    )
    return reply
