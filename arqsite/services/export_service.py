"""CSV export of captured leads for the admin back-office."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from arqsite.adapters.database.base import AbstractDataStore, Row
from arqsite.core.errors import ValidationAppError
from arqsite.services.lead_service import (
    CONTACTS_TABLE,
    PARTNERS_TABLE,
    RESOURCE_LEADS_TABLE,
    SUBSCRIBERS_TABLE,
)
from arqsite.utils.dates import parse_timestamp

logger = logging.getLogger(__name__)

NO_DATA = "No data available"


def format_date(value: Any) -> str:
    """Human-readable timestamp, e.g. "Mar 4, 2026, 02:30 PM"."""
    if not value:
        return ""
    try:
        parsed = parse_timestamp(value)
    except ValueError:
        return str(value)
    return f"{parsed:%b} {parsed.day}, {parsed:%Y, %I:%M %p}"


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


@dataclass(frozen=True)
class ExportSection:
    title: str
    table: str
    columns: tuple[tuple[str, str, Callable[[Any], str] | None], ...]


def _col(header: str, field: str, fmt: Callable[[Any], str] | None = None):
    return header, field, fmt


EXPORT_SECTIONS: dict[str, ExportSection] = {
    "contacts": ExportSection(
        "CONTACT SUBMISSIONS",
        CONTACTS_TABLE,
        (
            _col("Name", "name"),
            _col("Email", "email"),
            _col("Company", "company"),
            _col("Job Title", "job_title"),
            _col("Inquiry Type", "inquiry_type"),
            _col("Message", "message"),
            _col("Status", "status"),
            _col("Date", "created_at", format_date),
        ),
    ),
    "resources": ExportSection(
        "RESOURCE DOWNLOADS",
        RESOURCE_LEADS_TABLE,
        (
            _col("Name", "name"),
            _col("Email", "email"),
            _col("Company", "company"),
            _col("Job Title", "job_title"),
            _col("Resource Type", "resource_type"),
            _col("Resource ID", "resource_id"),
            _col("Downloaded", "token_used", _yes_no),
            _col("Download Date", "downloaded_at", format_date),
            _col("Request Date", "created_at", format_date),
        ),
    ),
    "subscribers": ExportSection(
        "NEWSLETTER SUBSCRIBERS",
        SUBSCRIBERS_TABLE,
        (
            _col("Email", "email"),
            _col("Source", "source"),
            _col("Segment", "segment"),
            _col("Status", "status"),
            _col("Subscribed Date", "created_at", format_date),
        ),
    ),
    "partners": ExportSection(
        "PARTNER ENQUIRIES",
        PARTNERS_TABLE,
        (
            _col("Name", "name"),
            _col("Email", "email"),
            _col("Company", "company"),
            _col("Phone", "phone"),
            _col("Job Title", "job_title"),
            _col("Partnership Type", "partnership_type"),
            _col("Company Size", "company_size"),
            _col("Status", "status"),
            _col("Priority", "priority"),
            _col("Message", "message"),
            _col("Website", "website"),
            _col("Assigned To", "assigned_to"),
            _col("Last Contact", "last_contact_at", format_date),
            _col("Date", "created_at", format_date),
        ),
    ),
}

EXPORT_TYPES = (*EXPORT_SECTIONS, "all")


def render_section(section: ExportSection, rows: list[Row], *, with_title: bool = False) -> str:
    """Render one section as CSV; empty string when there are no rows."""
    if not rows:
        return ""

    buffer = io.StringIO()
    if with_title:
        buffer.write(f"=== {section.title} ===\n")

    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header for header, _, _ in section.columns])
    for row in rows:
        writer.writerow(
            [
                fmt(row.get(field)) if fmt else ("" if row.get(field) is None else row.get(field))
                for _, field, fmt in section.columns
            ]
        )
    return buffer.getvalue()


def export_filename(export_type: str, today: date) -> str:
    name = "all-leads" if export_type == "all" else export_type
    return f"{name}-{today.isoformat()}.csv"


async def export_leads(store: AbstractDataStore, export_type: str) -> str:
    """Build the CSV body for ``export_type``.

    Raises:
        ValidationAppError: If the type is not one of EXPORT_TYPES.
    """
    if export_type not in EXPORT_TYPES:
        raise ValidationAppError(
            code="invalid_export_type",
            message="Invalid export type",
            details={"allowed": list(EXPORT_TYPES)},
        )

    names = list(EXPORT_SECTIONS) if export_type == "all" else [export_type]
    parts: list[str] = []
    for name in names:
        section = EXPORT_SECTIONS[name]
        rows = await store.select(section.table)
        rendered = render_section(section, rows, with_title=export_type == "all")
        if rendered:
            parts.append(rendered)

    logger.info("export.generated", extra={"export_type": export_type, "sections": len(parts)})
    return "\n\n".join(parts) if parts else NO_DATA
