"""Admin credentials and signed session tokens.

Uses:
  - bcrypt (direct) for password hashes; the stored hash carries its own salt
  - PyJWT for HS256 session tokens

A session token is valid only if its signature verifies, ``exp`` has not
passed and ``type`` is ``admin_session``. Tokens are not stored server-side,
so logout only clears the client's cookie.

Generate a hash for ``AUTH_ADMIN_CREDENTIALS`` with::

    python -m arqsite.core.security
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping

import bcrypt
import jwt
from fastapi import Request

from arqsite.core.config import AuthSettings, settings
from arqsite.core.errors import AuthenticationAppError, ConfigurationAppError

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "admin_session"
BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72

_KNOWN_INSECURE_SECRETS = frozenset({
    "dev-only-secret-change-in-production",
    "CHANGE_ME_IN_PRODUCTION",
    "changeme",
    "secret",
    "development",
    "test",
})


# ── Password hashing ──────────────────────────────────────────────────────────

def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of *plain* suitable for the credential store."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if *plain* matches *hashed*; malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        logger.error("admin_auth.malformed_password_hash")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Compared against when the username is unknown so both paths cost one bcrypt check
    return hash_password(secrets.token_urlsafe(16))


class CredentialStore:
    """Small username -> bcrypt hash mapping for admin accounts."""

    def __init__(self, credentials: Mapping[str, str] | None = None) -> None:
        self._credentials = dict(credentials or {})

    @classmethod
    def from_config(cls, raw: str | None) -> CredentialStore:
        """Parse ``"user:hash,user2:hash"`` as found in ``AUTH_ADMIN_CREDENTIALS``.

        Raises:
            ConfigurationAppError: If an entry is not a ``username:hash`` pair.
        """
        credentials: dict[str, str] = {}
        for item in (raw or "").split(","):
            item = item.strip()
            if not item:
                continue
            username, sep, password_hash = item.partition(":")
            if not sep or not username.strip() or not password_hash.strip():
                raise ConfigurationAppError(
                    code="admin_credentials_invalid",
                    message="AUTH_ADMIN_CREDENTIALS entries must be 'username:bcrypt_hash'",
                )
            credentials[username.strip()] = password_hash.strip()
        return cls(credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def __contains__(self, username: object) -> bool:
        return username in self._credentials

    def lookup(self, username: str) -> str | None:
        """Return the stored hash for ``username``.

        Every entry is compared with ``hmac.compare_digest`` so the time taken
        does not depend on which username (if any) matched.
        """
        found: str | None = None
        candidate = username.encode("utf-8")
        for known, password_hash in self._credentials.items():
            if hmac.compare_digest(known.encode("utf-8"), candidate):
                found = password_hash
        return found


# ── Session tokens ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AdminSession:
    """Verified claims of an admin session token."""

    username: str
    type: str
    iat: int
    exp: int
    jti: str

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> AdminSession:
        return cls(
            username=str(claims["username"]),
            type=str(claims["type"]),
            iat=int(claims["iat"]),
            exp=int(claims["exp"]),
            jti=str(claims.get("jti", "")),
        )


class InvalidSessionError(AuthenticationAppError):
    """Raised by :meth:`AdminSessionAuthority.decode_session`.

    ``code`` is ``invalid_token`` or ``wrong_type`` so logs can tell the two
    apart; callers must still answer both with the same response.
    """


def resolve_jwt_secret(auth: AuthSettings, *, is_production: bool) -> str:
    """Return the signing secret, failing closed in production.

    Outside production a missing secret is replaced by a random per-process
    value, which invalidates sessions on every restart.

    Raises:
        ConfigurationAppError: In production, if the secret is unset or a
            known placeholder.
    """

    secret = auth.jwt_secret
    insecure = not secret or secret in _KNOWN_INSECURE_SECRETS

    if is_production and insecure:
        logger.critical(
            "admin_auth.jwt_secret_invalid",
            extra={"reason": "missing" if not secret else "known_insecure"},
        )
        raise ConfigurationAppError(
            code="jwt_secret_not_configured",
            message="AUTH_JWT_SECRET must be set to a strong random value in production",
        )

    if not secret:
        logger.critical(
            "admin_auth.jwt_secret_missing",
            extra={"fallback": "ephemeral_random_secret"},
        )
        return secrets.token_urlsafe(48)

    if insecure:
        logger.warning("admin_auth.jwt_secret_insecure")

    return secret


class AdminSessionAuthority:
    """Verifies admin credentials and issues/verifies session tokens."""

    def __init__(
        self,
        *,
        secret_key: str,
        credentials: CredentialStore,
        ttl_hours: int = 24,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must be a non-empty string")
        # Name-mangled to keep the key out of accidental dumps
        self.__secret_key = secret_key
        self._credentials = credentials
        self.ttl_seconds = ttl_hours * 3600
        self.algorithm = algorithm
        self._clock = clock

        if not len(credentials):
            logger.warning("admin_auth.no_credentials_configured")

    def __repr__(self) -> str:
        return f"<AdminSessionAuthority algorithm={self.algorithm}>"

    @classmethod
    def from_settings(cls, auth: AuthSettings | None = None) -> AdminSessionAuthority:
        auth = auth or settings.auth
        return cls(
            secret_key=resolve_jwt_secret(auth, is_production=settings.is_production),
            credentials=CredentialStore.from_config(auth.admin_credentials),
            ttl_hours=auth.session_ttl_hours,
            algorithm=auth.jwt_algorithm,
        )

    def verify_credentials(self, username: str, password: str) -> bool:
        """Check a username/password pair against the credential store.

        Unknown usernames are checked against a dummy hash, so a wrong
        password and an unknown user take the same path and the same answer.
        """
        stored = self._credentials.lookup(username)
        matched = verify_password(password, stored if stored is not None else _dummy_hash())
        return stored is not None and matched

    def create_session(self, username: str) -> str:
        """Issue a signed session token for ``username``."""
        issued_at = int(self._clock())
        payload = {
            "username": username,
            "type": SESSION_TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self.__secret_key, algorithm=self.algorithm)

    def decode_session(self, token: str) -> AdminSession:
        """Verify ``token`` and return its claims.

        Raises:
            InvalidSessionError: ``invalid_token`` for malformed, tampered or
                expired tokens; ``wrong_type`` for a valid token of another kind.
        """
        try:
            claims = jwt.decode(
                token,
                self.__secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "username", "type"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidSessionError(code="invalid_token", message="Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidSessionError(code="invalid_token", message="Invalid token") from exc

        if claims.get("type") != SESSION_TOKEN_TYPE:
            raise InvalidSessionError(code="wrong_type", message="Invalid token type")

        try:
            return AdminSession.from_claims(claims)
        except (TypeError, ValueError) as exc:
            raise InvalidSessionError(code="invalid_token", message="Invalid claims") from exc

    def verify_session(self, token: str) -> AdminSession | None:
        """Return the session claims, or None for any invalid token."""
        try:
            return self.decode_session(token)
        except InvalidSessionError:
            return None


def get_session_authority(request: Request) -> AdminSessionAuthority:
    """Return the authority owned by the running application."""

    authority = getattr(request.app.state, "session_authority", None)
    if authority is None:
        authority = AdminSessionAuthority.from_settings()
        request.app.state.session_authority = authority
    return authority


def get_admin_session(request: Request) -> AdminSession:
    """Return the session attached by the admin gateway middleware."""

    session = getattr(request.state, "admin_session", None)
    if session is None:
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")
    return session


if __name__ == "__main__":
    import getpass

    print(hash_password(getpass.getpass("Admin password: ")))
