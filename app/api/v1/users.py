"""User management endpoints, each guarded by a named authorization policy."""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.api.v1.auth import require_policy
from app.core.database import get_db
from app.core.tokens import Principal
from app.models import User
from app.schemas.users import (
    ScopeChangeResponse,
    UserCreateRequest,
    UserDetail,
    UserSummary,
    UserUpdateRequest,
)
from app.services import users as user_service
from app.services.policies import Policy

router = APIRouter()

ScopeIds = Annotated[list[int], Body(description="Scope identifiers")]


def _summary(user: User, include_scope_ids: bool) -> UserSummary:
    return UserSummary(
        id=user.id,
        username=user.username,
        role_id=user.role_id,
        scope_ids=user.scope_ids if include_scope_ids else None,
    )


@router.get("", response_model=list[UserSummary], response_model_exclude_none=True)
def list_users(
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_READ))],
    db: Annotated[Session, Depends(get_db)],
    include_scope_ids: Annotated[bool, Query()] = False,
) -> list[UserSummary]:
    """List all users; scope ids are included only when include_scope_ids=true."""
    return [_summary(u, include_scope_ids) for u in user_service.list_users(db)]


@router.get("/{user_id}", response_model=UserDetail)
def get_user(
    user_id: int,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_READ))],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetail:
    """Detailed user record with role and scopes, or 404."""
    return UserDetail.model_validate(user_service.get_user(db, user_id))


@router.post("", response_model=UserSummary, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreateRequest,
    request: Request,
    response: Response,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_CREATE))],
    db: Annotated[Session, Depends(get_db)],
) -> UserSummary:
    """Create a user with an explicit role. 400 on validation errors, 409 on duplicate username."""
    user = user_service.create_user(db, body.username, body.password, body.role_id)
    response.headers["Location"] = str(request.url_for("get_user", user_id=user.id))
    return _summary(user, include_scope_ids=True)


@router.patch("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_WRITE))],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Partial update: only fields present in the body are changed."""
    user_service.update_user(db, user_id, body.model_dump(exclude_unset=True))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_DELETE))],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/scopes", response_model=ScopeChangeResponse)
def add_scopes(
    user_id: int,
    scope_ids: ScopeIds,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_WRITE))],
    db: Annotated[Session, Depends(get_db)],
) -> ScopeChangeResponse:
    """Grant scopes. 400 naming unknown ids; no-op (changed=false) when already held."""
    result = user_service.add_scopes(db, user_id, scope_ids)
    return ScopeChangeResponse(**asdict(result))


@router.delete("/{user_id}/scopes", status_code=status.HTTP_204_NO_CONTENT)
def remove_scopes(
    user_id: int,
    scope_ids: ScopeIds,
    _principal: Annotated[Principal, Depends(require_policy(Policy.USER_WRITE))],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Revoke scopes; ids not currently granted are skipped."""
    user_service.remove_scopes(db, user_id, scope_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
