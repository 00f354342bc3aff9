"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.user import Role, Scope, User, UserScope

__all__ = ["Base", "Role", "Scope", "User", "UserScope"]
