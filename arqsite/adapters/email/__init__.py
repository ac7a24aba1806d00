"""Transactional email delivery (Resend HTTP API)."""

from arqsite.adapters.email.resend_client import EmailClient, create_email_client

__all__ = [
    "EmailClient",
    "create_email_client",
]
