from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.adapters.seo import DataForSEOClient
from arqsite.core.config import settings
from arqsite.core.dependencies import (
    get_data_store,
    get_keyword_client,
    get_llm_client,
    get_optional_data_store,
)
from arqsite.core.rate_limit import rate_limit
from arqsite.core.security import AdminSession, get_admin_session
from arqsite.schemas.ai import GenerateRequest, GenerateResponse
from arqsite.schemas.leads import ContactStatusUpdate, PartnerEnquiryUpdate
from arqsite.schemas.seo import KeywordResearchRequest, KeywordResearchResponse, SEOAnalysisResponse
from arqsite.services.ai_service import ContentGenerationService
from arqsite.services.chat_lead_service import ChatLeadService
from arqsite.services.export_service import export_filename, export_leads
from arqsite.services.lead_service import LeadService
from arqsite.services.seo_service import KeywordResearchService, analyze_site

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_admin_lead_service(store: AbstractDataStore = Depends(get_data_store)) -> LeadService:
    return LeadService(store)


@router.get("/contacts")
async def list_contacts(service: LeadService = Depends(get_admin_lead_service)) -> dict[str, Any]:
    return {"contacts": await service.list_contacts()}


@router.patch("/contacts")
async def update_contact(
    payload: ContactStatusUpdate,
    service: LeadService = Depends(get_admin_lead_service),
) -> dict[str, Any]:
    return {"success": True, "contact": await service.update_contact_status(payload)}


@router.get("/subscribers")
async def list_subscribers(service: LeadService = Depends(get_admin_lead_service)) -> dict[str, Any]:
    return await service.list_subscribers()


@router.get("/partner-enquiries")
async def list_partner_enquiries(
    status: str | None = Query(None),
    partnership_type: str | None = Query(None),
    priority: str | None = Query(None),
    service: LeadService = Depends(get_admin_lead_service),
) -> dict[str, Any]:
    return await service.list_partner_enquiries(
        status=status, partnership_type=partnership_type, priority=priority
    )


@router.patch("/partner-enquiries")
async def update_partner_enquiry(
    payload: PartnerEnquiryUpdate,
    service: LeadService = Depends(get_admin_lead_service),
) -> dict[str, Any]:
    return {"success": True, "enquiry": await service.update_partner_enquiry(payload)}


@router.get("/resource-leads")
async def list_resource_leads(service: LeadService = Depends(get_admin_lead_service)) -> dict[str, Any]:
    return {"leads": await service.list_resource_leads()}


def get_chat_lead_service(store: AbstractDataStore = Depends(get_data_store)) -> ChatLeadService:
    return ChatLeadService(store)


@router.get("/leads")
async def list_chat_leads(
    intent_category: str | None = Query(None),
    company_size: str | None = Query(None),
    urgency: str | None = Query(None),
    qualification_status: str | None = Query(None),
    service: ChatLeadService = Depends(get_chat_lead_service),
) -> dict[str, Any]:
    """Chat leads with their scores, plus counts across all leads."""
    leads = await service.list_leads(
        intent_category=intent_category,
        company_size=company_size,
        urgency=urgency,
        qualification_status=qualification_status,
    )
    return {"leads": leads, "stats": await service.lead_stats()}


@router.get("/export", response_class=PlainTextResponse)
async def export_csv(
    export_type: str = Query(..., alias="type", description="contacts, resources, subscribers, partners or all"),
    store: AbstractDataStore = Depends(get_data_store),
    session: AdminSession = Depends(get_admin_session),
) -> PlainTextResponse:
    """Download leads as CSV."""
    body = await export_leads(store, export_type)
    logger.info("export.downloaded", extra={"export_type": export_type, "username": session.username})
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(export_type, date.today())}"'
        },
    )


@router.get("/seo/analyze", response_model=SEOAnalysisResponse)
async def seo_analyze(store: AbstractDataStore = Depends(get_data_store)) -> SEOAnalysisResponse:
    return await analyze_site(store)


@router.post("/seo/research", response_model=KeywordResearchResponse)
async def seo_research(
    payload: KeywordResearchRequest,
    client: DataForSEOClient | None = Depends(get_keyword_client),
    store: AbstractDataStore | None = Depends(get_optional_data_store),
) -> KeywordResearchResponse:
    """Keyword research, served from the 7-day cache unless ``forceRefresh``."""
    service = KeywordResearchService(client, store, cache_days=settings.seo.cache_days)
    return await service.research(payload.keyword, force_refresh=payload.force_refresh)


@router.post(
    "/ai/generate",
    response_model=GenerateResponse,
    dependencies=[Depends(rate_limit("ai_generate", "api"))],
)
async def ai_generate(
    payload: GenerateRequest,
    llm: AbstractLLMClient | None = Depends(get_llm_client),
) -> GenerateResponse:
    return await ContentGenerationService(llm).generate(payload)
