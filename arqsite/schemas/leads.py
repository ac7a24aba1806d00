"""Pydantic schemas for lead-capture forms and their admin views."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from arqsite.utils.text_normalizer import strip_markup

InquiryType = Literal["general", "demo", "partnership", "pricing", "support"]
Intent = Literal["demo", "pricing", "support", "partnership", "general", "urgent"]


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return strip_markup(value) or None
    return value


class _FormModel(BaseModel):
    """Base for public forms: markup stripped from text, emails lower-cased."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _strip_markup(cls, data: Any) -> Any:
        # Blank fields count as absent so defaults and required checks apply
        if not isinstance(data, dict):
            return data
        cleaned = {key: _clean(value) for key, value in data.items()}
        return {key: value for key, value in cleaned.items() if value is not None}

    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class ContactRequest(_FormModel):
    """Contact form submission."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=5000)
    company: str | None = Field(None, max_length=200)
    job_title: str | None = Field(None, alias="jobTitle", max_length=200)
    inquiry_type: InquiryType = Field("general", alias="inquiryType")


class NewsletterRequest(_FormModel):
    """Newsletter sign-up."""

    email: EmailStr
    source: str = Field("footer", max_length=50)


class PartnerEnquiryRequest(_FormModel):
    """Partner programme enquiry."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    company: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=50)
    job_title: str | None = Field(None, alias="jobTitle", max_length=200)
    partnership_type: str = Field("general", alias="partnershipType", max_length=50)
    company_size: str | None = Field(None, alias="companySize", max_length=50)
    message: str | None = Field(None, max_length=5000)
    website: str | None = Field(None, max_length=300)


class ResourceDownloadRequest(_FormModel):
    """Gated resource request; answered with a one-day download token."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    resource_id: str = Field(..., min_length=1)
    resource_type: Literal["whitepaper", "webinar"]
    company: str | None = Field(None, max_length=200)
    job_title: str | None = Field(None, max_length=200)


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str | None = None


class ResourceDownloadResponse(BaseModel):
    success: bool = True
    token: str
    expires_at: datetime


class ResourceAccessResponse(BaseModel):
    """Resolved resource behind a valid download token."""

    title: str
    description: str
    download_url: str | None = None
    file_name: str
    cover_image: str | None = None
    expires_at: datetime


class CompanyIntel(BaseModel):
    likely_industry: str = ""
    estimated_size: str = ""
    potential_use_cases: list[str] = Field(default_factory=list)


class ContactIntel(BaseModel):
    seniority: str = "unknown"
    department: str = ""
    decision_maker: bool = False


class LeadIntel(BaseModel):
    """AI assessment of an inbound contact; optional enrichment only."""

    detected_intent: Intent = "general"
    intent_confidence: float = Field(0.0, ge=0.0, le=1.0)
    urgency: Literal["high", "medium", "low"] = "medium"
    personalized_greeting: str = ""
    personalized_message: str = ""
    suggested_next_steps: list[str] = Field(default_factory=list)
    company_intel: CompanyIntel = Field(default_factory=CompanyIntel)
    contact_intel: ContactIntel = Field(default_factory=ContactIntel)
    research_suggestions: list[str] = Field(default_factory=list)
    summary: str = ""


class ContactStatusUpdate(BaseModel):
    id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1, max_length=50)


class PartnerEnquiryUpdate(BaseModel):
    id: str = Field(..., min_length=1)
    status: str | None = Field(None, max_length=50)
    priority: Literal["high", "medium", "low"] | None = None
    assigned_to: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=5000)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)
