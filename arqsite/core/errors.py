"""Domain errors shared by services, adapters and the HTTP layer.

Services raise these; ``arqsite.core.exception_handlers`` maps each class to
a status code and renders the common JSON error envelope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Optional structured context attached to an error.

    4xx responses include it for the client; 5xx keep it in the logs only.
    """

    field: str
    fields: list[str]
    table: str
    content_type: str
    allowed: list[str]
    http_status: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base class for expected failures.

    Attributes:
        code: Stable snake_case code clients can branch on.
        message: Human-readable message safe to show to the client.
        details: Optional ``ErrorDetails``.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Invalid input that passed schema validation (400)."""


class AuthenticationAppError(AppError):
    """Bad credentials or session (401); messages stay generic."""


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""


class ExpiredAppError(AppError):
    """Raised when a time-limited resource (e.g. download link) has expired."""


class ConfigurationAppError(AppError):
    """Raised when required configuration (secrets, credentials) is missing."""


class ExternalServiceAppError(AppError):
    """Raised when a required downstream collaborator (database, APIs) fails."""


class LLMAppError(AppError):
    """AI provider call failed where a result was required (500)."""
