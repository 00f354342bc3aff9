"""JWT bearer token issuance and verification. Stateless: nothing is stored server-side."""

import logging
import secrets
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from app.core.config import get_settings

logger = logging.getLogger(__name__)

ROLE_CLAIM = "role"
SCOPE_CLAIM = "scope"
NAME_CLAIM = "name"

REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub", ROLE_CLAIM]


def issue_token(
    username: str | None,
    role: str | None,
    scopes: Iterable[str | None] | None = None,
) -> str | None:
    """
    Create a signed access token carrying sub/name, role and one scope entry per scope.

    Returns None when username or role is empty: a token without identity or role is never issued.
    Blank scope names are skipped. Expiry, issuer and audience come from current settings.
    """
    if not username or not username.strip() or not role or not role.strip():
        logger.warning(
            "Refusing to issue token: username present=%s, role present=%s",
            bool(username and username.strip()),
            bool(role and role.strip()),
        )
        return None

    settings = get_settings()
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": username,
        NAME_CLAIM: username,
        ROLE_CLAIM: role,
        SCOPE_CLAIM: [s for s in (scopes or []) if s and s.strip()],
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT (signature, exp/nbf, issuer, audience); return payload.
    Raises jwt.PyJWTError on invalid or expired token.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        options={"require": REQUIRED_CLAIMS},
    )


@dataclass(frozen=True)
class Principal:
    """Caller identity as asserted by a verified token."""

    username: str
    role: str
    scopes: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        """Build from decoded claims. Raises ValueError when sub or role is missing."""
        username = claims.get("sub")
        role = claims.get(ROLE_CLAIM)
        if not isinstance(username, str) or not username:
            raise ValueError("token has no subject")
        if not isinstance(role, str) or not role:
            raise ValueError("token has no role")
        raw_scopes = claims.get(SCOPE_CLAIM) or []
        if isinstance(raw_scopes, str):
            raw_scopes = [raw_scopes]
        scopes = frozenset(s for s in raw_scopes if isinstance(s, str) and s)
        return cls(username=username, role=role, scopes=scopes)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
