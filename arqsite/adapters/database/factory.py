"""Factory for the configured data store."""

import logging

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.adapters.database.supabase_rest import SupabaseRestStore
from arqsite.core.config import settings

logger = logging.getLogger(__name__)


def create_data_store() -> AbstractDataStore | None:
    """Build the Supabase store, or return None when it is not configured.

    Returns:
        AbstractDataStore | None: Store instance, None without credentials.
    """
    if not settings.database.configured:
        logger.warning("database.not_configured")
        return None

    return SupabaseRestStore(
        url=settings.database.url,
        service_role_key=settings.database.service_role_key,
        timeout_seconds=settings.database.timeout_seconds,
    )
