"""ORM models for accounts: users, roles, scopes and the user/scope grant table."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base

ROLE_USER = "User"
ROLE_ADMINISTRATOR = "Administrator"

# Seeded ids; users.role_id defaults to the "User" role.
DEFAULT_ROLE_ID = 1
ADMINISTRATOR_ROLE_ID = 2

SCOPE_USER_READ = "user.read"
SCOPE_USER_WRITE = "user.write"
SCOPE_USER_CREATE = "user.create"
SCOPE_USER_DELETE = "user.delete"

DEFAULT_ROLES = {DEFAULT_ROLE_ID: ROLE_USER, ADMINISTRATOR_ROLE_ID: ROLE_ADMINISTRATOR}
DEFAULT_SCOPES = {
    1: SCOPE_USER_READ,
    2: SCOPE_USER_WRITE,
    3: SCOPE_USER_CREATE,
    4: SCOPE_USER_DELETE,
}


class Role(Base):
    """Coarse-grained category; seeded, never deleted by normal flows."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)

    users = relationship("User", back_populates="role")


class Scope(Base):
    """Named fine-grained permission granted to users through users_scopes."""

    __tablename__ = "scopes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)


class UserScope(Base):
    """Grant row: existence means the user holds the scope."""

    __tablename__ = "users_scopes"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    scope_id = Column(
        Integer, ForeignKey("scopes.id", ondelete="CASCADE"), primary_key=True
    )

    user = relationship("User", back_populates="scope_links")
    scope = relationship("Scope")


class User(Base):
    """
    Account for JWT authentication. Exactly one role, zero or more scopes.

    password_hash holds the encoded PBKDF2 hash (see app.core.security), never plain text.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role_id = Column(
        Integer,
        ForeignKey("roles.id"),
        nullable=False,
        default=DEFAULT_ROLE_ID,
        server_default=str(DEFAULT_ROLE_ID),
    )

    role = relationship("Role", back_populates="users", lazy="joined")
    scope_links = relationship(
        "UserScope",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    scopes = relationship(
        "Scope",
        secondary="users_scopes",
        viewonly=True,
        lazy="selectin",
        order_by="Scope.id",
    )

    @property
    def scope_ids(self) -> list[int]:
        return [s.id for s in self.scopes]

    @property
    def scope_names(self) -> list[str]:
        return [s.name for s in self.scopes]
