from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.adapters.email import EmailClient
from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.core.config import settings
from arqsite.core.dependencies import get_email_client, get_llm_client, get_optional_data_store
from arqsite.core.rate_limit import rate_limit
from arqsite.schemas.leads import (
    ContactRequest,
    NewsletterRequest,
    PartnerEnquiryRequest,
    ResourceAccessResponse,
    ResourceDownloadRequest,
    ResourceDownloadResponse,
    SubmissionResponse,
)
from arqsite.services.email_templates import (
    render_confirmation,
    render_partner_notification,
    render_team_notification,
)
from arqsite.services.lead_intel import analyze_lead
from arqsite.services.lead_service import LeadService

router = APIRouter(prefix="/api", tags=["Leads"])


def get_lead_service(
    store: AbstractDataStore | None = Depends(get_optional_data_store),
) -> LeadService:
    return LeadService(store)


@router.post(
    "/contact",
    response_model=SubmissionResponse,
    dependencies=[Depends(rate_limit("contact", "sensitive"))],
)
async def submit_contact(
    payload: ContactRequest,
    background_tasks: BackgroundTasks,
    service: LeadService = Depends(get_lead_service),
    llm: AbstractLLMClient | None = Depends(get_llm_client),
    email: EmailClient = Depends(get_email_client),
) -> SubmissionResponse:
    """Store a contact form submission and notify the team.

    AI intel, storage and emails are all best-effort; the visitor gets a
    success response as long as the form itself is valid.
    """
    intel = await analyze_lead(llm, payload)
    await service.submit_contact(payload, intel)

    team = render_team_notification(payload, intel)
    background_tasks.add_task(
        email.send, settings.email.team_address, team.subject, team.html, reply_to=payload.email
    )
    confirmation = render_confirmation(payload, intel)
    background_tasks.add_task(email.send, payload.email, confirmation.subject, confirmation.html)

    return SubmissionResponse(message="Thank you! We'll be in touch soon.")


@router.post(
    "/newsletter",
    response_model=SubmissionResponse,
    dependencies=[Depends(rate_limit("newsletter", "api"))],
)
async def subscribe_newsletter(
    payload: NewsletterRequest,
    service: LeadService = Depends(get_lead_service),
) -> SubmissionResponse:
    await service.subscribe_newsletter(payload)
    return SubmissionResponse(message="Successfully subscribed to newsletter")


@router.post(
    "/partner-enquiry",
    response_model=SubmissionResponse,
    dependencies=[Depends(rate_limit("partner_enquiry", "sensitive"))],
)
async def submit_partner_enquiry(
    payload: PartnerEnquiryRequest,
    background_tasks: BackgroundTasks,
    service: LeadService = Depends(get_lead_service),
    email: EmailClient = Depends(get_email_client),
) -> SubmissionResponse:
    priority = await service.submit_partner_enquiry(payload)

    notification = render_partner_notification(payload, priority)
    background_tasks.add_task(
        email.send,
        settings.email.team_address,
        notification.subject,
        notification.html,
        reply_to=payload.email,
    )
    return SubmissionResponse(message="Thank you for your interest in partnering with ArqAI.")


@router.post(
    "/resources/download",
    response_model=ResourceDownloadResponse,
    dependencies=[Depends(rate_limit("resource_download", "sensitive"))],
)
async def request_download(
    payload: ResourceDownloadRequest,
    service: LeadService = Depends(get_lead_service),
) -> ResourceDownloadResponse:
    """Capture a gated-resource lead and return a 24-hour download token."""
    return await service.issue_download_token(payload)


@router.get(
    "/resources/download",
    response_model=ResourceAccessResponse,
    dependencies=[Depends(rate_limit("resource_access", "api"))],
)
async def resolve_download(
    token: str | None = Query(None),
    service: LeadService = Depends(get_lead_service),
) -> ResourceAccessResponse:
    """Resolve a download token: 400 missing, 404 unknown, 410 expired."""
    return await service.resolve_download(token)
