"""Relational data store adapters (Supabase PostgREST)."""

from arqsite.adapters.database.base import AbstractDataStore
from arqsite.adapters.database.factory import create_data_store
from arqsite.adapters.database.supabase_rest import SupabaseRestStore

__all__ = [
    "AbstractDataStore",
    "SupabaseRestStore",
    "create_data_store",
]
