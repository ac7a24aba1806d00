"""HTML email templates for lead notifications and confirmations.

All user-supplied values are HTML-escaped before interpolation.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from arqsite.core.config import settings
from arqsite.schemas.leads import ContactRequest, LeadIntel, PartnerEnquiryRequest

INQUIRY_LABELS = {
    "general": "General Inquiry",
    "demo": "Demo Request",
    "partnership": "Partnership",
    "pricing": "Pricing",
    "support": "Support",
    "urgent": "Urgent",
}

PARTNERSHIP_LABELS = {
    "technology": "Technology Alliance",
    "reseller": "Reseller Partner",
    "integration": "Integration Partner",
    "strategic": "Strategic Alliance",
    "general": "General Partnership",
}

_URGENCY = {
    "high": ("\U0001F525", "HIGH PRIORITY"),
    "medium": ("\U0001F4EC", "MEDIUM"),
    "low": ("\U0001F4CB", "LOW"),
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


@dataclass(frozen=True)
class IntentTemplate:
    subject: str
    heading: str
    message: str
    cta_text: str
    cta_url: str


def first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else name


def intent_template(intent: str, name: str) -> IntentTemplate:
    """Confirmation copy for a detected intent; unknown intents use ``general``."""
    first = first_name(name)
    templates = {
        "demo": IntentTemplate(
            subject=f"Your ArqAI Demo Request, {first}",
            heading="Your Demo is Being Prepared",
            message=(
                "We're excited to show you ArqAI in action! A solutions specialist will "
                "reach out within 24 hours to schedule your personalized demo and discuss "
                "your specific AI governance needs."
            ),
            cta_text="View Our Platform",
            cta_url="https://thearq.ai/platform",
        ),
        "pricing": IntentTemplate(
            subject=f"ArqAI Pricing Information for {first}",
            heading="Custom Pricing Coming Your Way",
            message=(
                "Thank you for your interest in ArqAI pricing. Our team is preparing a "
                "custom quote tailored to your organization's needs. Expect to hear from "
                "us within 24 hours."
            ),
            cta_text="Explore Solutions",
            cta_url="https://thearq.ai/solutions",
        ),
        "support": IntentTemplate(
            subject="ArqAI Support Request Received",
            heading="We're On It",
            message=(
                "Our technical team has received your support request and is reviewing "
                "it now. We'll get back to you as quickly as possible with a resolution."
            ),
            cta_text="View Resources",
            cta_url="https://thearq.ai/resources",
        ),
        "partnership": IntentTemplate(
            subject=f"Partnership Inquiry from {first}",
            heading="Let's Explore Partnership",
            message=(
                "Thank you for your interest in partnering with ArqAI. Our partnerships "
                "team will review your inquiry and reach out within 48 hours to discuss "
                "collaboration opportunities."
            ),
            cta_text="Learn About Partners",
            cta_url="https://thearq.ai/partners",
        ),
        "urgent": IntentTemplate(
            subject=f"Urgent: ArqAI Response to {first}",
            heading="We've Prioritized Your Request",
            message=(
                "We understand the urgency of your inquiry. Our team has been notified "
                "and will respond as quickly as possible - typically within a few hours "
                "during business hours."
            ),
            cta_text="Contact Us Directly",
            cta_url="mailto:hello@thearq.ai",
        ),
        "general": IntentTemplate(
            subject=f"Thanks for Reaching Out, {first}!",
            heading="Message Received",
            message=(
                "Thank you for your interest in ArqAI. Our team will review your inquiry "
                "and reach out within 24 hours to discuss how we can help you build, run, "
                "and govern your AI workforce."
            ),
            cta_text="Explore ArqAI",
            cta_url="https://thearq.ai/platform",
        ),
    }
    return templates.get(intent, templates["general"])


def _layout(heading: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: sans-serif; color: #1a1a1a;\">"
        f"<h2 style=\"color: #0432a5;\">{heading}</h2>"
        f"{body}"
        "</body></html>"
    )


def _rows(fields: list[tuple[str, str | None]]) -> str:
    rows = "".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(value)}</td></tr>"
        for label, value in fields
        if value
    )
    return f"<table cellpadding=\"6\">{rows}</table>"


def _list(items: list[str]) -> str:
    if not items:
        return ""
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"


def render_team_notification(contact: ContactRequest, intel: LeadIntel | None) -> RenderedEmail:
    """Team alert for a new contact submission, enriched with AI intel when present."""
    intent = intel.detected_intent if intel else contact.inquiry_type
    urgency = intel.urgency if intel else "medium"
    emoji, badge = _URGENCY.get(urgency, _URGENCY["medium"])
    label = INQUIRY_LABELS.get(intent, intent)

    subject = (
        f"{emoji} [{badge}] New Lead: {contact.name} @ "
        f"{contact.company or 'Unknown'} - {label}"
    )

    body = _rows(
        [
            ("Name", contact.name),
            ("Email", contact.email),
            ("Company", contact.company),
            ("Job Title", contact.job_title),
            ("Inquiry Type", INQUIRY_LABELS.get(contact.inquiry_type, contact.inquiry_type)),
        ]
    )
    body += f"<h3>Message</h3><p>{escape(contact.message)}</p>"

    if intel:
        body += "<h3>AI Lead Intelligence</h3>"
        body += _rows(
            [
                ("Detected Intent", f"{intel.detected_intent} ({round(intel.intent_confidence * 100)}%)"),
                ("Urgency", intel.urgency),
                ("Industry", intel.company_intel.likely_industry),
                ("Company Size", intel.company_intel.estimated_size),
                ("Seniority", intel.contact_intel.seniority),
                ("Decision Maker", "Yes" if intel.contact_intel.decision_maker else "No"),
            ]
        )
        if intel.summary:
            body += f"<p>{escape(intel.summary)}</p>"
        body += _list(intel.suggested_next_steps)
        body += _list(intel.research_suggestions)

    body += f"<p><a href=\"{escape(settings.app.site_url)}/admin\">View in Dashboard</a></p>"
    return RenderedEmail(subject=subject, html=_layout("New Contact Submission", body))


def render_confirmation(contact: ContactRequest, intel: LeadIntel | None) -> RenderedEmail:
    """Personalised confirmation to the person who submitted the form."""
    template = intent_template(intel.detected_intent if intel else "general", contact.name)
    subject = (
        template.subject if intel else f"Thanks for connecting with ArqAI, {first_name(contact.name)}!"
    )

    greeting = (intel.personalized_greeting if intel else "") or f"Hi {first_name(contact.name)},"
    message = (intel.personalized_message if intel else "") or template.message

    body = (
        f"<p>{escape(greeting)}</p>"
        f"<p>{escape(message)}</p>"
        f"<p><a href=\"{escape(template.cta_url)}\">{escape(template.cta_text)}</a></p>"
        "<p>The ArqAI Team</p>"
    )
    return RenderedEmail(subject=subject, html=_layout(escape(template.heading), body))


def render_partner_notification(enquiry: PartnerEnquiryRequest, priority: str) -> RenderedEmail:
    label = PARTNERSHIP_LABELS.get(enquiry.partnership_type, enquiry.partnership_type)
    emoji = "\U0001F91D\U0001F525" if priority == "high" else "\U0001F91D"
    company = f" ({enquiry.company})" if enquiry.company else ""
    subject = f"{emoji} New Partner Enquiry: {enquiry.name}{company} - {label}"

    body = _rows(
        [
            ("Name", enquiry.name),
            ("Email", enquiry.email),
            ("Company", enquiry.company),
            ("Phone", enquiry.phone),
            ("Job Title", enquiry.job_title),
            ("Partnership Type", label),
            ("Company Size", enquiry.company_size),
            ("Website", enquiry.website),
            ("Priority", priority),
        ]
    )
    if enquiry.message:
        body += f"<h3>Message</h3><p>{escape(enquiry.message)}</p>"
    body += f"<p><a href=\"{escape(settings.app.site_url)}/admin/partners\">View in Dashboard</a></p>"
    return RenderedEmail(subject=subject, html=_layout("New Partner Enquiry", body))
