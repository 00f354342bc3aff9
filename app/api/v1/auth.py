"""Login/registration routes and auth dependencies (get_current_principal, require_policy)."""

from collections.abc import Callable
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import AuthenticationFailedError, PermissionDeniedError
from app.core.tokens import Principal, decode_token
from app.schemas.auth import CredentialsRequest, RegisterResponse, TokenResponse
from app.services.auth import authenticate, register_user
from app.services.policies import Policy, is_authorized

router = APIRouter()
security = HTTPBearer(auto_error=False)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: CredentialsRequest,
    db: Annotated[Session, Depends(get_db)],
) -> RegisterResponse:
    """Create an account with the default role. 400 on blank fields or taken username."""
    user = register_user(db, body.username, body.password)
    return RegisterResponse(id=user.id, username=user.username)


@router.post("/login", response_model=TokenResponse)
def login(
    body: CredentialsRequest,
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with username and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    token = authenticate(db, body.username, body.password)
    return TokenResponse(
        token=token,
        token_type="bearer",
        expires_in=get_settings().JWT_EXPIRE_MINUTES * 60,
    )


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """
    Dependency: require a valid Bearer JWT and return the caller's claims.
    Raises 401 if missing, malformed, expired or signed with another key. No DB lookup.
    """
    if credentials is None:
        raise AuthenticationFailedError("Not authenticated")
    try:
        payload = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise AuthenticationFailedError("Invalid or expired token")
    try:
        return Principal.from_claims(payload)
    except ValueError:
        raise AuthenticationFailedError("Invalid token payload")


def require_policy(policy: Policy) -> Callable[[Principal], Principal]:
    """Dependency factory: authenticated caller must satisfy the named policy, else 403."""

    def dependency(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if not is_authorized(policy, principal):
            raise PermissionDeniedError(f"Policy {policy.value} not satisfied")
        return principal

    return dependency
