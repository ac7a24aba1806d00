"""FastAPI dependencies for external collaborators.

Collaborators are created lazily once per application and kept on
``app.state``. Tests replace them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from arqsite.adapters.database import AbstractDataStore, create_data_store
from arqsite.adapters.email import EmailClient, create_email_client
from arqsite.adapters.llm import AbstractLLMClient, create_llm_client
from arqsite.adapters.seo import DataForSEOClient, create_keyword_client
from arqsite.core.errors import ConfigurationAppError


def _state_singleton(request: Request, name: str, factory):
    state = request.app.state
    if not hasattr(state, name):
        setattr(state, name, factory())
    return getattr(state, name)


def get_optional_data_store(request: Request) -> AbstractDataStore | None:
    """Data store for public forms, which still succeed without one."""
    return _state_singleton(request, "data_store", create_data_store)


def get_data_store(
    store: AbstractDataStore | None = Depends(get_optional_data_store),
) -> AbstractDataStore:
    """Data store for endpoints that cannot work without the database.

    Raises:
        ConfigurationAppError: If Supabase credentials are missing.
    """
    if store is None:
        raise ConfigurationAppError(
            code="database_not_configured",
            message="Database not configured",
        )
    return store


def get_email_client(request: Request) -> EmailClient:
    return _state_singleton(request, "email_client", create_email_client)


def get_llm_client(request: Request) -> AbstractLLMClient | None:
    return _state_singleton(request, "llm_client", create_llm_client)


def get_keyword_client(request: Request) -> DataForSEOClient | None:
    return _state_singleton(request, "keyword_client", create_keyword_client)
