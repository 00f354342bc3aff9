"""Read-only discovery of roles and scopes (fallback policy: any authenticated caller)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_principal
from app.core.database import get_db
from app.core.tokens import Principal
from app.schemas.users import RoleItem, ScopeItem
from app.services import users as user_service

router = APIRouter()


@router.get("/roles", response_model=list[RoleItem])
def list_roles(
    _principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> list[RoleItem]:
    return [RoleItem.model_validate(r) for r in user_service.list_roles(db)]


@router.get("/scopes", response_model=list[ScopeItem])
def list_scopes(
    _principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> list[ScopeItem]:
    return [ScopeItem.model_validate(s) for s in user_service.list_scopes(db)]
