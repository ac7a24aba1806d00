"""Tests for lead capture and the admin lead back-office."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from arqsite.core.errors import (
    ConfigurationAppError,
    ExpiredAppError,
    NotFoundAppError,
    ValidationAppError,
)
from arqsite.schemas.leads import (
    ContactRequest,
    ContactStatusUpdate,
    LeadIntel,
    NewsletterRequest,
    PartnerEnquiryRequest,
    PartnerEnquiryUpdate,
    ResourceDownloadRequest,
)
from arqsite.services.lead_service import (
    CONTACTS_TABLE,
    PARTNERS_TABLE,
    RESOURCE_LEADS_TABLE,
    SUBSCRIBERS_TABLE,
    LeadService,
    newsletter_segment,
    partner_priority,
)
from tests.fakes import FakeDataStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return Mock(return_value=NOW)


@pytest.fixture
def store() -> FakeDataStore:
    return FakeDataStore(
        {
            "whitepapers": [
                {
                    "id": "wp-1",
                    "title": "The AI Workforce Playbook",
                    "description": "How to govern agents",
                    "file_url": "https://cdn.example.com/playbook.pdf",
                    "cover_image": "/img/playbook.png",
                }
            ],
            "webinars": [
                {"id": "wb-1", "title": "Agents in Production", "recording_url": "https://video.example.com/1"}
            ],
        }
    )


@pytest.fixture
def service(store, clock) -> LeadService:
    return LeadService(store, clock=clock)


def _download_request(**overrides) -> ResourceDownloadRequest:
    data = {
        "name": "Jane Doe",
        "email": "jane@acme.com",
        "resource_id": "wp-1",
        "resource_type": "whitepaper",
    }
    data.update(overrides)
    return ResourceDownloadRequest(**data)


class TestHelpers:
    @pytest.mark.parametrize(
        "source,segment",
        [
            ("footer", "general"),
            ("blog", "content_interested"),
            ("whitepaper", "resource_seeker"),
            ("demo", "high_intent"),
            ("popup", "engaged_visitor"),
            ("somewhere-else", "general"),
        ],
    )
    def test_newsletter_segment(self, source, segment):
        assert newsletter_segment(source) == segment

    @pytest.mark.parametrize(
        "partnership_type,company_size,priority",
        [
            ("strategic", None, "high"),
            ("reseller", "enterprise", "high"),
            ("reseller", "smb", "medium"),
            ("general", None, "medium"),
        ],
    )
    def test_partner_priority(self, partnership_type, company_size, priority):
        enquiry = PartnerEnquiryRequest(
            name="Sam", email="sam@partner.io", partnershipType=partnership_type, companySize=company_size
        )

        assert partner_priority(enquiry) == priority


class TestPublicForms:
    """Best-effort writes for the public site."""

    @pytest.mark.asyncio
    async def test_contact_is_stored_with_intel(self, service, store):
        contact = ContactRequest(name="Jane", email="Jane@Acme.com", message="Need a demo", inquiryType="demo")
        intel = LeadIntel(detected_intent="demo", urgency="high", summary="Hot lead")

        await service.submit_contact(contact, intel)

        [row] = store.rows(CONTACTS_TABLE)
        assert row["email"] == "jane@acme.com"
        assert row["status"] == "new"
        assert row["inquiry_type"] == "demo"
        assert row["ai_intent"] == "demo"
        assert row["ai_urgency"] == "high"
        assert row["ai_intel"]["summary"] == "Hot lead"

    @pytest.mark.asyncio
    async def test_contact_without_database_still_succeeds(self):
        contact = ContactRequest(name="Jane", email="jane@acme.com", message="Hello")

        await LeadService(None).submit_contact(contact)

    @pytest.mark.asyncio
    async def test_contact_store_failure_is_swallowed(self, service, store):
        store.fail = True
        contact = ContactRequest(name="Jane", email="jane@acme.com", message="Hello")

        await service.submit_contact(contact)

        assert ("insert", CONTACTS_TABLE) in store.calls

    @pytest.mark.asyncio
    async def test_newsletter_insert_then_update(self, service, store, clock):
        segment = await service.subscribe_newsletter(NewsletterRequest(email="reader@example.com"))
        clock.return_value = NOW + timedelta(days=1)
        await service.subscribe_newsletter(NewsletterRequest(email="READER@example.com", source="demo"))

        assert segment == "general"
        [row] = store.rows(SUBSCRIBERS_TABLE)
        assert row["status"] == "active"
        assert row["source"] == "demo"
        assert row["segment"] == "high_intent"
        assert row["updated_at"] == (NOW + timedelta(days=1)).isoformat()

    @pytest.mark.asyncio
    async def test_partner_enquiry(self, service, store):
        enquiry = PartnerEnquiryRequest(
            name="Sam Lee", email="sam@partner.io", company="Partner Co", partnershipType="strategic"
        )

        priority = await service.submit_partner_enquiry(enquiry)

        assert priority == "high"
        [row] = store.rows(PARTNERS_TABLE)
        assert row["priority"] == "high"
        assert row["status"] == "new"
        assert row["source"] == "website"


class TestDownloadTokens:
    """Gated resource tokens."""

    @pytest.mark.asyncio
    async def test_issue_token(self, service, store):
        response = await service.issue_download_token(_download_request())

        assert len(response.token) == 64
        int(response.token, 16)
        assert response.expires_at == NOW + timedelta(hours=24)
        [row] = store.rows(RESOURCE_LEADS_TABLE)
        assert row["download_token"] == response.token
        assert row["token_used"] is False

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, service):
        first = await service.issue_download_token(_download_request())
        second = await service.issue_download_token(_download_request())

        assert first.token != second.token

    @pytest.mark.asyncio
    async def test_resolve_whitepaper_marks_token_used(self, service, store):
        issued = await service.issue_download_token(_download_request())

        resource = await service.resolve_download(issued.token)

        assert resource.title == "The AI Workforce Playbook"
        assert resource.download_url == "https://cdn.example.com/playbook.pdf"
        assert resource.file_name == "the-ai-workforce-playbook.pdf"
        assert resource.cover_image == "/img/playbook.png"
        [row] = store.rows(RESOURCE_LEADS_TABLE)
        assert row["token_used"] is True
        assert row["downloaded_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_token_can_be_reused_until_expiry(self, service, store, clock):
        issued = await service.issue_download_token(_download_request())
        await service.resolve_download(issued.token)
        clock.return_value = NOW + timedelta(hours=2)

        resource = await service.resolve_download(issued.token)

        assert resource.title == "The AI Workforce Playbook"
        assert store.rows(RESOURCE_LEADS_TABLE)[0]["downloaded_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_resolve_webinar(self, service):
        issued = await service.issue_download_token(_download_request(resource_id="wb-1", resource_type="webinar"))

        resource = await service.resolve_download(issued.token)

        assert resource.download_url == "https://video.example.com/1"
        assert resource.file_name == "agents-in-production-recording"
        assert resource.description == "Watch the recording"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, service, token):
        with pytest.raises(ValidationAppError) as exc:
            await service.resolve_download(token)
        assert exc.value.message == "Download token is required"

    @pytest.mark.asyncio
    async def test_unknown_token(self, service):
        with pytest.raises(NotFoundAppError) as exc:
            await service.resolve_download("f" * 64)
        assert exc.value.message == "Invalid or expired download link"

    @pytest.mark.asyncio
    async def test_expired_token(self, service, clock):
        issued = await service.issue_download_token(_download_request())
        clock.return_value = NOW + timedelta(hours=24, seconds=1)

        with pytest.raises(ExpiredAppError) as exc:
            await service.resolve_download(issued.token)
        assert exc.value.message == "Download link has expired"

    @pytest.mark.asyncio
    async def test_missing_resource(self, service):
        issued = await service.issue_download_token(_download_request(resource_id="gone"))

        with pytest.raises(NotFoundAppError) as exc:
            await service.resolve_download(issued.token)
        assert exc.value.code == "resource_not_found"

    @pytest.mark.asyncio
    async def test_unknown_resource_type_in_row(self, service, store):
        store.rows(RESOURCE_LEADS_TABLE).append(
            {
                "id": "r1",
                "download_token": "abc",
                "token_expires_at": (NOW + timedelta(hours=1)).isoformat(),
                "resource_type": "podcast",
                "resource_id": "p1",
            }
        )

        with pytest.raises(ValidationAppError):
            await service.resolve_download("abc")

    @pytest.mark.asyncio
    async def test_resolution_needs_database(self):
        with pytest.raises(ConfigurationAppError) as exc:
            await LeadService(None).resolve_download("abc")
        assert exc.value.code == "database_not_configured"


class TestAdmin:
    """Admin listings and updates."""

    @pytest.mark.asyncio
    async def test_list_contacts_newest_first(self, service, store):
        store.rows(CONTACTS_TABLE).extend(
            [
                {"id": "1", "name": "Old", "created_at": "2026-01-01T00:00:00+00:00"},
                {"id": "2", "name": "New", "created_at": "2026-02-01T00:00:00+00:00"},
            ]
        )

        rows = await service.list_contacts()

        assert [row["name"] for row in rows] == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_update_contact_status(self, service, store):
        store.rows(CONTACTS_TABLE).append({"id": "c1", "status": "new"})

        row = await service.update_contact_status(ContactStatusUpdate(id="c1", status="contacted"))

        assert row["status"] == "contacted"

    @pytest.mark.asyncio
    async def test_update_unknown_contact(self, service):
        with pytest.raises(NotFoundAppError):
            await service.update_contact_status(ContactStatusUpdate(id="nope", status="contacted"))

    @pytest.mark.asyncio
    async def test_subscriber_stats(self, service, store):
        store.rows(SUBSCRIBERS_TABLE).extend(
            [
                {"id": "1", "email": "a@x.io", "status": "active"},
                {"id": "2", "email": "b@x.io", "status": "unsubscribed"},
                {"id": "3", "email": "c@x.io", "status": "active"},
            ]
        )

        result = await service.list_subscribers()

        assert len(result["subscriptions"]) == 3
        assert result["stats"] == {"total": 3, "active": 2}

    @pytest.mark.asyncio
    async def test_partner_filters_and_stats(self, service, store):
        store.rows(PARTNERS_TABLE).extend(
            [
                {"id": "1", "status": "new", "priority": "high", "partnership_type": "reseller"},
                {"id": "2", "status": "closed-won", "priority": "medium", "partnership_type": "reseller"},
                {"id": "3", "status": "new", "priority": "medium", "partnership_type": "technology"},
            ]
        )

        everything = await service.list_partner_enquiries(status="all", partnership_type="", priority=None)
        resellers = await service.list_partner_enquiries(partnership_type="reseller")

        assert everything["stats"]["total"] == 3
        assert everything["stats"]["new"] == 2
        assert everything["stats"]["closed_won"] == 1
        assert everything["stats"]["high_priority"] == 1
        assert resellers["stats"]["total"] == 2
        assert {row["id"] for row in resellers["enquiries"]} == {"1", "2"}

    @pytest.mark.asyncio
    async def test_partner_update_records_contact_time(self, service, store):
        store.rows(PARTNERS_TABLE).append({"id": "p1", "status": "new"})

        row = await service.update_partner_enquiry(
            PartnerEnquiryUpdate(id="p1", status="qualified", assigned_to="alex")
        )

        assert row["status"] == "qualified"
        assert row["assigned_to"] == "alex"
        assert row["last_contact_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_partner_update_without_contact_status(self, service, store):
        store.rows(PARTNERS_TABLE).append({"id": "p1", "status": "new"})

        row = await service.update_partner_enquiry(PartnerEnquiryUpdate(id="p1", notes="Call next week"))

        assert "last_contact_at" not in row

    @pytest.mark.asyncio
    async def test_partner_update_needs_changes(self, service):
        with pytest.raises(ValidationAppError) as exc:
            await service.update_partner_enquiry(PartnerEnquiryUpdate(id="p1"))
        assert exc.value.code == "no_changes"

    @pytest.mark.asyncio
    async def test_admin_reads_need_database(self):
        with pytest.raises(ConfigurationAppError):
            await LeadService(None).list_contacts()
