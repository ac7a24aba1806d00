"""Lead capture and the admin lead back-office.

Public form writes are best-effort: without a database, or when a write fails,
the failure is logged and the visitor still gets a success response. Reads
for admins and download-token resolution need the database.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable

from arqsite.adapters.database.base import AbstractDataStore, Row
from arqsite.core.errors import (
    ConfigurationAppError,
    ExpiredAppError,
    ExternalServiceAppError,
    NotFoundAppError,
    ValidationAppError,
)
from arqsite.core.logging import email_domain
from arqsite.schemas.leads import (
    ContactRequest,
    ContactStatusUpdate,
    LeadIntel,
    NewsletterRequest,
    PartnerEnquiryRequest,
    PartnerEnquiryUpdate,
    ResourceAccessResponse,
    ResourceDownloadRequest,
    ResourceDownloadResponse,
)
from arqsite.utils.dates import parse_timestamp, utcnow
from arqsite.utils.text_normalizer import slugify

logger = logging.getLogger(__name__)

CONTACTS_TABLE = "contact_submissions"
SUBSCRIBERS_TABLE = "newsletter_subscriptions"
PARTNERS_TABLE = "partner_enquiries"
RESOURCE_LEADS_TABLE = "resource_leads"

ADMIN_LIST_LIMIT = 100
DOWNLOAD_TOKEN_TTL = timedelta(hours=24)

NEWSLETTER_SEGMENTS = {
    "footer": "general",
    "blog": "content_interested",
    "whitepaper": "resource_seeker",
    "demo": "high_intent",
    "popup": "engaged_visitor",
}

PARTNER_STATUSES = ("new", "contacted", "qualified", "negotiating", "closed-won", "closed-lost")
CONTACTED_STATUSES = ("contacted", "qualified", "negotiating")


def newsletter_segment(source: str) -> str:
    return NEWSLETTER_SEGMENTS.get(source, "general")


def partner_priority(enquiry: PartnerEnquiryRequest) -> str:
    """Strategic partnerships and enterprise companies are high priority."""
    if enquiry.partnership_type == "strategic" or enquiry.company_size == "enterprise":
        return "high"
    return "medium"


class LeadService:
    """Stores lead submissions and serves them to the admin back-office.

    Attributes:
        store: Data store, or None when the database is not configured.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: AbstractDataStore | None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    def _require_store(self) -> AbstractDataStore:
        if self.store is None:
            raise ConfigurationAppError(code="database_not_configured", message="Database not configured")
        return self.store

    async def _best_effort(self, event: str, operation) -> Any:
        """Run a public-form write, logging instead of raising on failure."""
        if self.store is None:
            logger.warning(f"{event}.not_stored", extra={"reason": "database_not_configured"})
            return None
        try:
            return await operation(self.store)
        except ExternalServiceAppError as exc:
            logger.error(f"{event}.store_failed", extra={"error_code": exc.code})
            return None

    # Public forms

    async def submit_contact(self, contact: ContactRequest, intel: LeadIntel | None = None) -> None:
        values: dict[str, Any] = {
            "name": contact.name,
            "email": contact.email,
            "company": contact.company,
            "job_title": contact.job_title,
            "message": contact.message,
            "inquiry_type": contact.inquiry_type,
            "status": "new",
        }
        if intel is not None:
            values.update(
                {
                    "ai_intent": intel.detected_intent,
                    "ai_urgency": intel.urgency,
                    "ai_summary": intel.summary,
                    "ai_intel": intel.model_dump(),
                }
            )

        await self._best_effort("contact", lambda store: store.insert(CONTACTS_TABLE, values))
        logger.info(
            "contact.submitted",
            extra={
                "inquiry_type": contact.inquiry_type,
                "has_intel": intel is not None,
                "email_domain": email_domain(contact.email),
            },
        )

    async def subscribe_newsletter(self, subscription: NewsletterRequest) -> str:
        """Create or refresh a subscription; returns the assigned segment."""
        segment = newsletter_segment(subscription.source)

        async def _write(store: AbstractDataStore) -> None:
            existing = await store.select_one(SUBSCRIBERS_TABLE, {"email": subscription.email})
            if existing:
                await store.update(
                    SUBSCRIBERS_TABLE,
                    {
                        "source": subscription.source,
                        "segment": segment,
                        "updated_at": self.clock().isoformat(),
                    },
                    {"email": subscription.email},
                )
            else:
                await store.insert(
                    SUBSCRIBERS_TABLE,
                    {
                        "email": subscription.email,
                        "source": subscription.source,
                        "segment": segment,
                        "status": "active",
                    },
                )

        await self._best_effort("newsletter", _write)
        logger.info("newsletter.subscribed", extra={"source": subscription.source, "segment": segment})
        return segment

    async def submit_partner_enquiry(self, enquiry: PartnerEnquiryRequest) -> str:
        """Store a partner enquiry; returns its priority."""
        priority = partner_priority(enquiry)
        values = {
            "name": enquiry.name,
            "email": enquiry.email,
            "company": enquiry.company,
            "phone": enquiry.phone,
            "job_title": enquiry.job_title,
            "partnership_type": enquiry.partnership_type,
            "company_size": enquiry.company_size,
            "message": enquiry.message,
            "website": enquiry.website,
            "status": "new",
            "priority": priority,
            "source": "website",
        }

        await self._best_effort("partner_enquiry", lambda store: store.insert(PARTNERS_TABLE, values))
        logger.info(
            "partner_enquiry.submitted",
            extra={
                "partnership_type": enquiry.partnership_type,
                "priority": priority,
                "email_domain": email_domain(enquiry.email),
            },
        )
        return priority

    async def issue_download_token(self, request: ResourceDownloadRequest) -> ResourceDownloadResponse:
        """Record the lead and hand out a random, one-day download token."""
        token = secrets.token_hex(32)
        expires_at = self.clock() + DOWNLOAD_TOKEN_TTL
        values = {
            "name": request.name,
            "email": request.email,
            "company": request.company,
            "job_title": request.job_title,
            "resource_id": request.resource_id,
            "resource_type": request.resource_type,
            "download_token": token,
            "token_expires_at": expires_at.isoformat(),
            "token_used": False,
        }

        await self._best_effort("resource_download", lambda store: store.insert(RESOURCE_LEADS_TABLE, values))
        logger.info(
            "resource_download.token_issued",
            extra={"resource_type": request.resource_type, "resource_id": request.resource_id},
        )
        return ResourceDownloadResponse(token=token, expires_at=expires_at)

    async def resolve_download(self, token: str | None) -> ResourceAccessResponse:
        """Resolve a download token to its resource.

        The token is marked used on its first successful resolution; it stays
        valid until it expires.

        Raises:
            ValidationAppError: Missing token or unknown resource type (400).
            NotFoundAppError: Unknown token or missing resource (404).
            ExpiredAppError: Token past its expiry (410).
        """
        if not token:
            raise ValidationAppError(code="download_token_required", message="Download token is required")

        store = self._require_store()
        lead = await store.select_one(RESOURCE_LEADS_TABLE, {"download_token": token})
        if not lead:
            raise NotFoundAppError(code="download_token_invalid", message="Invalid or expired download link")

        expires_at = parse_timestamp(lead["token_expires_at"])
        if expires_at < self.clock():
            raise ExpiredAppError(code="download_token_expired", message="Download link has expired")

        resource = await self._resource_for(store, lead, expires_at)

        if not lead.get("token_used"):
            await store.update(
                RESOURCE_LEADS_TABLE,
                {"token_used": True, "downloaded_at": self.clock().isoformat()},
                {"id": lead["id"]},
            )
            logger.info("resource_download.token_used", extra={"resource_type": lead["resource_type"]})

        return resource

    async def _resource_for(
        self, store: AbstractDataStore, lead: Row, expires_at: datetime
    ) -> ResourceAccessResponse:
        resource_type = lead.get("resource_type")
        if resource_type == "whitepaper":
            table, default_description = "whitepapers", "Download your resource"
        elif resource_type == "webinar":
            table, default_description = "webinars", "Watch the recording"
        else:
            raise ValidationAppError(code="unknown_resource_type", message="Unknown resource type")

        row = await store.select_one(table, {"id": lead["resource_id"]})
        if not row:
            logger.error(
                "resource_download.resource_missing",
                extra={"resource_type": resource_type, "resource_id": lead["resource_id"]},
            )
            raise NotFoundAppError(code="resource_not_found", message="Resource not found")

        title = row.get("title") or "resource"
        if resource_type == "whitepaper":
            return ResourceAccessResponse(
                title=title,
                description=row.get("description") or default_description,
                download_url=row.get("file_url"),
                file_name=f"{slugify(title)}.pdf",
                cover_image=row.get("cover_image"),
                expires_at=expires_at,
            )
        return ResourceAccessResponse(
            title=title,
            description=row.get("description") or default_description,
            download_url=row.get("recording_url"),
            file_name=f"{slugify(title)}-recording",
            expires_at=expires_at,
        )

    # Admin back-office

    async def list_contacts(self) -> list[Row]:
        return await self._require_store().select(CONTACTS_TABLE, limit=ADMIN_LIST_LIMIT)

    async def update_contact_status(self, update: ContactStatusUpdate) -> Row:
        rows = await self._require_store().update(
            CONTACTS_TABLE, {"status": update.status}, {"id": update.id}
        )
        if not rows:
            raise NotFoundAppError(code="contact_not_found", message="Contact not found")
        logger.info("contact.status_updated", extra={"status": update.status})
        return rows[0]

    async def list_subscribers(self) -> dict[str, Any]:
        store = self._require_store()
        subscriptions = await store.select(SUBSCRIBERS_TABLE, limit=ADMIN_LIST_LIMIT)
        total = await store.count(SUBSCRIBERS_TABLE)
        active = await store.count(SUBSCRIBERS_TABLE, filters={"status": "active"})
        return {"subscriptions": subscriptions, "stats": {"total": total, "active": active}}

    async def list_partner_enquiries(
        self,
        *,
        status: str | None = None,
        partnership_type: str | None = None,
        priority: str | None = None,
    ) -> dict[str, Any]:
        store = self._require_store()
        filters = {
            key: value
            for key, value in (
                ("status", status),
                ("partnership_type", partnership_type),
                ("priority", priority),
            )
            if value and value != "all"
        }
        enquiries = await store.select(PARTNERS_TABLE, filters=filters, limit=ADMIN_LIST_LIMIT)

        stats = {"total": len(enquiries)}
        for status_name in PARTNER_STATUSES:
            stats[status_name.replace("-", "_")] = sum(1 for row in enquiries if row.get("status") == status_name)
        stats["high_priority"] = sum(1 for row in enquiries if row.get("priority") == "high")

        return {"enquiries": enquiries, "stats": stats}

    async def update_partner_enquiry(self, update: PartnerEnquiryUpdate) -> Row:
        changes = update.changes()
        if not changes:
            raise ValidationAppError(code="no_changes", message="No fields to update")
        if update.status in CONTACTED_STATUSES:
            changes["last_contact_at"] = self.clock().isoformat()

        rows = await self._require_store().update(PARTNERS_TABLE, changes, {"id": update.id})
        if not rows:
            raise NotFoundAppError(code="partner_enquiry_not_found", message="Partner enquiry not found")
        logger.info("partner_enquiry.updated", extra={"fields": sorted(changes)})
        return rows[0]

    async def list_resource_leads(self) -> list[Row]:
        return await self._require_store().select(RESOURCE_LEADS_TABLE, limit=ADMIN_LIST_LIMIT)
