from __future__ import annotations

from arqsite.api.routes.admin import router as admin_router
from arqsite.api.routes.admin_auth import router as admin_auth_router
from arqsite.api.routes.chat import router as chat_router
from arqsite.api.routes.content import admin_router as admin_content_router
from arqsite.api.routes.content import router as content_router
from arqsite.api.routes.health import router as health_router
from arqsite.api.routes.leads import router as leads_router

__all__ = [
    "admin_auth_router",
    "admin_content_router",
    "admin_router",
    "chat_router",
    "content_router",
    "health_router",
    "leads_router",
]
