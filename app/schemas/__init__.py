"""Pydantic request/response schemas."""

from app.schemas.auth import CredentialsRequest, RegisterResponse, TokenResponse
from app.schemas.health import HealthResponse
from app.schemas.users import (
    RoleItem,
    ScopeChangeResponse,
    ScopeItem,
    UserCreateRequest,
    UserDetail,
    UserSummary,
    UserUpdateRequest,
)

__all__ = [
    "CredentialsRequest",
    "HealthResponse",
    "RegisterResponse",
    "RoleItem",
    "ScopeChangeResponse",
    "ScopeItem",
    "TokenResponse",
    "UserCreateRequest",
    "UserDetail",
    "UserSummary",
    "UserUpdateRequest",
]
