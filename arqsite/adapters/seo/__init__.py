"""Keyword research adapters (DataForSEO)."""

from arqsite.adapters.seo.dataforseo_client import DataForSEOClient, create_keyword_client

__all__ = [
    "DataForSEOClient",
    "create_keyword_client",
]
