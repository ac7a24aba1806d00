"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- Admin session cookie security scheme, applied only to protected paths

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from arqsite.core.config import settings
from arqsite.core.session_middleware import is_protected_path

_TAGS = [
    {"name": "Leads", "description": "Public lead-capture forms and gated downloads."},
    {"name": "Content", "description": "Published blog posts, case studies, whitepapers and webinars."},
    {"name": "Chat", "description": "Website assistant."},
    {"name": "Admin Auth", "description": "Admin login, logout and session."},
    {"name": "Admin", "description": "Lead back-office, CSV export, SEO and AI tools."},
    {"name": "Admin Content", "description": "Content management."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects a cookie security scheme for the admin session cookie
    - Marks only protected admin operations as requiring it
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminSession",
            {
                "type": "apiKey",
                "in": "cookie",
                "name": settings.auth.cookie_name,
                "description": "Session cookie set by POST /api/admin/login.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not is_protected_path(path):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = [{"AdminSession": []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
