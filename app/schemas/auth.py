"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Username and password for login and self-registration. Blank values are rejected by the service."""

    username: str = Field(default="", max_length=255, description="Username (exact match)")
    password: str = Field(default="", max_length=1024, description="Password")


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")


class RegisterResponse(BaseModel):
    """Identifier of the newly registered account."""

    id: int
    username: str
