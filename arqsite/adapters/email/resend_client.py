"""Resend email client.

Graceful degradation: without ``EMAIL_API_KEY`` every send returns False with
a logged warning. Delivery failures are logged and never raised, since no
request should fail because a notification could not be sent.
"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from arqsite.core.config import settings

logger = logging.getLogger(__name__)


class EmailClient:
    """Thin async wrapper around the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None,
        api_url: str = "https://api.resend.com/emails",
        from_address: str = "ArqAI <no-reply@thearq.ai>",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.api_url = api_url
        self.from_address = from_address
        self._timeout = timeout_seconds
        self._transport = transport

    def __repr__(self) -> str:
        return f"<EmailClient enabled={self.enabled}>"

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def send(
        self,
        to: str | Sequence[str],
        subject: str,
        html: str,
        *,
        reply_to: str | None = None,
    ) -> bool:
        """Send one email.

        Returns:
            True when the provider accepted the message, False otherwise.
        """
        if not self.enabled:
            logger.warning("email.not_configured", extra={"subject": subject})
            return False

        recipients = [to] if isinstance(to, str) else list(to)
        payload: dict[str, object] = {
            "from": self.from_address,
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "email.send_failed",
                    extra={"subject": subject, "http_status": exc.response.status_code},
                )
                return False
            except httpx.HTTPError as exc:
                logger.error(
                    "email.send_failed",
                    extra={"subject": subject, "error_type": type(exc).__name__},
                )
                return False

        logger.info("email.sent", extra={"subject": subject, "recipients": len(recipients)})
        return True


def create_email_client() -> EmailClient:
    """Build the email client from settings."""
    return EmailClient(
        api_key=settings.email.api_key,
        api_url=settings.email.api_url,
        from_address=settings.email.from_address,
        timeout_seconds=settings.email.timeout_seconds,
    )
