"""Integration tests for the public lead forms and the admin lead endpoints."""

from datetime import timedelta

import pytest

from arqsite.core.dependencies import get_llm_client, get_optional_data_store
from arqsite.utils.dates import utcnow
from tests.fakes import FakeLLM

CONTACT = {
    "name": "Jane Doe",
    "email": "Jane@Acme.com",
    "company": "Acme",
    "jobTitle": "CTO",
    "message": "We would like a demo for 200 agents.",
    "inquiryType": "demo",
}

INTEL = {
    "detected_intent": "demo",
    "intent_confidence": 0.9,
    "urgency": "high",
    "personalized_greeting": "Hi Jane,",
    "personalized_message": "Thanks for reaching out about a demo.",
    "suggested_next_steps": ["Book a call"],
    "summary": "CTO at Acme wants a demo.",
}


class TestContactForm:
    """POST /api/contact."""

    def test_submission_is_stored_and_emailed(self, client, store, email_client):
        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Thank you! We'll be in touch soon."}

        [row] = store.rows("contact_submissions")
        assert row["email"] == "jane@acme.com"
        assert row["job_title"] == "CTO"
        assert row["status"] == "new"
        assert "ai_intent" not in row

        team, confirmation = email_client.sent
        assert team["to"] == "hello@thearq.ai"
        assert team["reply_to"] == "jane@acme.com"
        assert "New Lead: Jane Doe @ Acme - Demo Request" in team["subject"]
        assert confirmation["to"] == "jane@acme.com"
        assert confirmation["subject"] == "Thanks for connecting with ArqAI, Jane!"

    def test_ai_intel_enriches_row_and_emails(self, app, client, store, email_client):
        llm = FakeLLM(json_payload=INTEL)
        app.dependency_overrides[get_llm_client] = lambda: llm

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        [row] = store.rows("contact_submissions")
        assert row["ai_intent"] == "demo"
        assert row["ai_urgency"] == "high"
        assert row["ai_summary"] == "CTO at Acme wants a demo."
        team, confirmation = email_client.sent
        assert "[HIGH PRIORITY]" in team["subject"]
        assert confirmation["subject"] == "Your ArqAI Demo Request, Jane"
        assert "Thanks for reaching out about a demo." in confirmation["html"]

    def test_llm_failure_does_not_fail_submission(self, app, client, store):
        app.dependency_overrides[get_llm_client] = lambda: FakeLLM(error=RuntimeError("provider down"))

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        assert "ai_intent" not in store.rows("contact_submissions")[0]

    def test_invalid_intel_is_ignored(self, app, client, store):
        app.dependency_overrides[get_llm_client] = lambda: FakeLLM(json_payload={"urgency": "extreme"})

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        assert "ai_intent" not in store.rows("contact_submissions")[0]

    def test_without_database(self, app, client, email_client):
        app.dependency_overrides[get_optional_data_store] = lambda: None

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        assert len(email_client.sent) == 2

    def test_database_failure(self, client, store, email_client):
        store.fail = True

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 200
        assert len(email_client.sent) == 2

    @pytest.mark.parametrize(
        "override",
        [
            {"email": "not-an-email"},
            {"name": ""},
            {"message": "   "},
            {"inquiryType": "spam"},
        ],
    )
    def test_invalid_submission(self, client, store, email_client, override):
        response = client.post("/api/contact", json={**CONTACT, **override})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"
        assert store.rows("contact_submissions") == []
        assert email_client.sent == []

    def test_markup_is_stripped(self, client, store):
        payload = {**CONTACT, "name": "<b>Jane</b> Doe", "message": "Hi <script>alert(1)</script>there"}

        client.post("/api/contact", json=payload)

        [row] = store.rows("contact_submissions")
        assert row["name"] == "Jane Doe"
        assert "<" not in row["message"]

    def test_rate_limited_after_ten_submissions(self, client):
        for _ in range(10):
            assert client.post("/api/contact", json=CONTACT).status_code == 200

        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 429
        assert "retry-after" in response.headers


class TestNewsletter:
    """POST /api/newsletter."""

    def test_subscribe(self, client, store):
        response = client.post("/api/newsletter", json={"email": "reader@example.com", "source": "blog"})

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully subscribed to newsletter"
        [row] = store.rows("newsletter_subscriptions")
        assert row["segment"] == "content_interested"
        assert row["status"] == "active"

    def test_resubscribe_updates_existing_row(self, client, store):
        client.post("/api/newsletter", json={"email": "reader@example.com"})
        client.post("/api/newsletter", json={"email": "Reader@Example.com", "source": "demo"})

        [row] = store.rows("newsletter_subscriptions")
        assert row["segment"] == "high_intent"

    def test_invalid_email(self, client):
        assert client.post("/api/newsletter", json={"email": "nope"}).status_code == 400


class TestPartnerEnquiry:
    """POST /api/partner-enquiry."""

    def test_enterprise_enquiry_is_high_priority(self, client, store, email_client):
        response = client.post(
            "/api/partner-enquiry",
            json={
                "name": "Sam Lee",
                "email": "sam@partner.io",
                "company": "Partner Co",
                "partnershipType": "reseller",
                "companySize": "enterprise",
            },
        )

        assert response.status_code == 200
        [row] = store.rows("partner_enquiries")
        assert row["priority"] == "high"
        assert row["partnership_type"] == "reseller"
        [notification] = email_client.sent
        assert notification["to"] == "hello@thearq.ai"
        assert notification["reply_to"] == "sam@partner.io"
        assert "New Partner Enquiry: Sam Lee (Partner Co) - Reseller Partner" in notification["subject"]

    def test_general_enquiry_is_medium_priority(self, client, store):
        client.post("/api/partner-enquiry", json={"name": "Sam", "email": "sam@partner.io"})

        assert store.rows("partner_enquiries")[0]["priority"] == "medium"


class TestResourceDownload:
    """Gated resource tokens over HTTP."""

    @pytest.fixture(autouse=True)
    def whitepaper(self, store):
        store.rows("whitepapers").append(
            {"id": "wp-1", "title": "AI Workforce Playbook", "file_url": "https://cdn.example.com/p.pdf"}
        )

    def _request_token(self, client, resource_id="wp-1") -> str:
        response = client.post(
            "/api/resources/download",
            json={
                "name": "Jane",
                "email": "jane@acme.com",
                "resource_id": resource_id,
                "resource_type": "whitepaper",
            },
        )
        assert response.status_code == 200
        return response.json()["token"]

    def test_token_round_trip(self, client, store):
        token = self._request_token(client)

        response = client.get("/api/resources/download", params={"token": token})

        assert len(token) == 64
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "AI Workforce Playbook"
        assert body["download_url"] == "https://cdn.example.com/p.pdf"
        assert body["file_name"] == "ai-workforce-playbook.pdf"
        assert store.rows("resource_leads")[0]["token_used"] is True

    def test_missing_token(self, client):
        response = client.get("/api/resources/download")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "download_token_required"

    def test_unknown_token(self, client):
        response = client.get("/api/resources/download", params={"token": "0" * 64})

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Invalid or expired download link"

    def test_expired_token(self, client, store):
        token = self._request_token(client)
        store.rows("resource_leads")[0]["token_expires_at"] = (utcnow() - timedelta(minutes=1)).isoformat()

        response = client.get("/api/resources/download", params={"token": token})

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "download_token_expired"

    def test_resource_removed(self, client):
        token = self._request_token(client, resource_id="deleted")

        response = client.get("/api/resources/download", params={"token": token})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "resource_not_found"

    def test_resolution_without_database(self, app, client):
        app.dependency_overrides[get_optional_data_store] = lambda: None

        response = client.get("/api/resources/download", params={"token": "abc"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "database_not_configured"

    def test_unknown_resource_type(self, client):
        response = client.post(
            "/api/resources/download",
            json={"name": "Jane", "email": "jane@acme.com", "resource_id": "x", "resource_type": "podcast"},
        )

        assert response.status_code == 400


class TestAdminLeads:
    """Admin back-office endpoints."""

    def test_contacts_require_session(self, client):
        assert client.get("/api/admin/contacts").status_code == 401

    def test_list_and_update_contact(self, admin_client, store):
        store.rows("contact_submissions").append({"id": "c1", "name": "Jane", "status": "new"})

        listed = admin_client.get("/api/admin/contacts")
        updated = admin_client.patch("/api/admin/contacts", json={"id": "c1", "status": "contacted"})

        assert listed.json()["contacts"][0]["id"] == "c1"
        assert updated.status_code == 200
        assert updated.json()["contact"]["status"] == "contacted"

    def test_update_missing_contact(self, admin_client):
        response = admin_client.patch("/api/admin/contacts", json={"id": "nope", "status": "contacted"})

        assert response.status_code == 404

    def test_subscribers(self, admin_client, store):
        store.rows("newsletter_subscriptions").extend(
            [{"id": "1", "status": "active"}, {"id": "2", "status": "unsubscribed"}]
        )

        body = admin_client.get("/api/admin/subscribers").json()

        assert body["stats"] == {"total": 2, "active": 1}

    def test_partner_enquiries(self, admin_client, store):
        store.rows("partner_enquiries").extend(
            [
                {"id": "1", "status": "new", "priority": "high", "partnership_type": "strategic"},
                {"id": "2", "status": "closed-won", "priority": "medium", "partnership_type": "reseller"},
            ]
        )

        everything = admin_client.get("/api/admin/partner-enquiries", params={"status": "all"}).json()
        high = admin_client.get("/api/admin/partner-enquiries", params={"priority": "high"}).json()

        assert everything["stats"]["total"] == 2
        assert everything["stats"]["closed_won"] == 1
        assert [row["id"] for row in high["enquiries"]] == ["1"]

    def test_update_partner_enquiry(self, admin_client, store):
        store.rows("partner_enquiries").append({"id": "p1", "status": "new"})

        response = admin_client.patch(
            "/api/admin/partner-enquiries", json={"id": "p1", "status": "contacted", "notes": "Left a message"}
        )

        assert response.status_code == 200
        enquiry = response.json()["enquiry"]
        assert enquiry["notes"] == "Left a message"
        assert enquiry["last_contact_at"]

    def test_update_partner_enquiry_without_changes(self, admin_client):
        response = admin_client.patch("/api/admin/partner-enquiries", json={"id": "p1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "no_changes"

    def test_resource_leads(self, admin_client, store):
        store.rows("resource_leads").append({"id": "r1", "resource_type": "whitepaper"})

        assert admin_client.get("/api/admin/resource-leads").json()["leads"][0]["id"] == "r1"

    def test_admin_reads_need_database(self, app, admin_client):
        app.dependency_overrides[get_optional_data_store] = lambda: None

        response = admin_client.get("/api/admin/contacts")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "database_not_configured"
