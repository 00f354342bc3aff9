"""Request/response schemas for user, role and scope management."""

from pydantic import BaseModel, ConfigDict, Field


class RoleItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class ScopeItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class UserSummary(BaseModel):
    """User entry for list responses (no password). scope_ids only when requested."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role_id: int
    scope_ids: list[int] | None = None


class UserDetail(BaseModel):
    """Full user record with resolved role and scopes."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: RoleItem
    scopes: list[ScopeItem] = Field(default_factory=list)


class UserCreateRequest(BaseModel):
    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=1024)
    role_id: int | None = Field(default=None, description="Defaults to the User role")


class UserUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=1024)
    role_id: int | None = None


class ScopeChangeResponse(BaseModel):
    user_id: int
    changed: bool
    message: str
    scope_ids: list[int]
