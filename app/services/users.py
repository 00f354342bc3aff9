"""User management: CRUD on accounts and user/scope grant reconciliation."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import retry_on_transient_errors
from app.core.errors import ConflictError, InvalidInputError, InvariantViolationError, NotFoundError
from app.core.logging import log_debug_with_object
from app.core.security import USERNAME_MAX_LEN, get_password_hasher
from app.models.user import ROLE_USER, Role, Scope, User, UserScope

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("username", "password", "role_id")


@dataclass(frozen=True)
class ScopeChangeResult:
    """Outcome of a grant/revoke call. changed is False for no-op requests."""

    user_id: int
    changed: bool
    message: str
    scope_ids: list[int] = field(default_factory=list)


def _user_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "role_id": user.role_id,
        "scope_ids": user.scope_ids,
    }


def _get_user_or_404(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        logger.warning("No user with id: %s found.", user_id)
        raise NotFoundError(f"No user with id: {user_id} found.")
    return user


def _username_error(username: Any) -> str | None:
    if not isinstance(username, str) or not username.strip():
        return "Username cannot be empty."
    if len(username) > USERNAME_MAX_LEN:
        return f"Username must be at most {USERNAME_MAX_LEN} characters."
    return None


def _password_error(password: Any) -> str | None:
    if not isinstance(password, str) or not password.strip():
        return "Password cannot be empty."
    return None


def _username_taken(session: Session, username: str, exclude_id: int | None = None) -> bool:
    query = session.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _commit_or_conflict(session: Session, message: str) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Unique constraint violated: %s", e.orig)
        raise ConflictError(message) from e


def _require_scope_ids(scope_ids: Iterable[int] | None) -> list[int]:
    """Deduplicate preserving order; reject empty requests."""
    requested = list(dict.fromkeys(scope_ids or []))
    if not requested:
        logger.warning("The request doesn't contain any scopes")
        raise InvalidInputError("No scopes provided", details={"scope_ids": "No scopes provided"})
    return requested


@retry_on_transient_errors
def list_users(session: Session) -> list[User]:
    users = session.query(User).order_by(User.id).all()
    logger.debug("Successfully retrieved %s users.", len(users))
    return users


@retry_on_transient_errors
def get_user(session: Session, user_id: int) -> User:
    user = _get_user_or_404(session, user_id)
    log_debug_with_object(logger, "Database user: %s", _user_summary(user))
    return user


@retry_on_transient_errors
def create_user(
    session: Session,
    username: str,
    password: str,
    role_id: int | None = None,
) -> User:
    """
    Create a user with an explicit (or default) role.

    Raises InvalidInputError with a per-field map for blank username/password or an unknown
    role_id, ConflictError when the username is taken.
    """
    errors: dict[str, str] = {}
    if (msg := _username_error(username)) is not None:
        errors["username"] = msg
    if (msg := _password_error(password)) is not None:
        errors["password"] = msg

    role: Role | None
    if role_id is not None:
        role = session.get(Role, role_id)
        if role is None:
            errors["role_id"] = "role_id does not exist."
    else:
        role = session.query(Role).filter(Role.name == ROLE_USER).first()
        if role is None and not errors:
            logger.error("Default role %r is missing; reference data not seeded", ROLE_USER)
            raise InvariantViolationError("Internal server error while processing your request.")

    if errors:
        logger.warning("User creation rejected: %s", errors)
        raise InvalidInputError("Invalid user data.", details=errors)

    if _username_taken(session, username):
        logger.warning("Username: %s already exists.", username)
        raise ConflictError("Username already exists.")

    user = User(
        username=username,
        password_hash=get_password_hasher().hash_password(password),
        role=role,
    )
    session.add(user)
    _commit_or_conflict(session, "Username already exists.")
    session.refresh(user)
    logger.info("Successfully created user with id: %s", user.id)
    return user


@retry_on_transient_errors
def update_user(session: Session, user_id: int, changes: dict[str, Any]) -> User:
    """
    Apply a partial update. Only keys present in changes are touched.

    username must stay non-empty and unique, password is re-hashed, role_id must reference an
    existing role. Raises NotFoundError, InvalidInputError or ConflictError.
    """
    user = _get_user_or_404(session, user_id)

    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    errors: dict[str, str] = {name: f"{name} cannot be updated." for name in unknown}
    if "username" in changes and (msg := _username_error(changes["username"])) is not None:
        errors["username"] = msg
    if "password" in changes and (msg := _password_error(changes["password"])) is not None:
        errors["password"] = msg
    role: Role | None = None
    if "role_id" in changes:
        role = session.get(Role, changes["role_id"]) if changes["role_id"] is not None else None
        if role is None:
            errors["role_id"] = "role_id does not exist."
    if errors:
        logger.warning("Validation failed for update of user %s: %s", user_id, errors)
        raise InvalidInputError("Invalid user data.", details=errors)

    new_username = changes.get("username")
    if new_username is not None and new_username != user.username:
        if _username_taken(session, new_username, exclude_id=user.id):
            logger.warning("Username: %s already exists.", new_username)
            raise ConflictError("Username already exists.")
        user.username = new_username
    if "password" in changes:
        user.password_hash = get_password_hasher().hash_password(changes["password"])
    if role is not None:
        user.role = role

    _commit_or_conflict(session, "Username already exists.")
    logger.info("Successfully updated user with id: %s", user_id)
    return user


@retry_on_transient_errors
def delete_user(session: Session, user_id: int) -> None:
    user = _get_user_or_404(session, user_id)
    session.delete(user)
    session.commit()
    logger.info("User with id: %s deleted successfully.", user_id)


@retry_on_transient_errors
def add_scopes(session: Session, user_id: int, scope_ids: Iterable[int]) -> ScopeChangeResult:
    """
    Grant scopes to a user, inserting only the ids the user does not hold yet.

    Fails as a whole (no partial grant) when any id is unknown, naming the invalid ids.
    Returns changed=False when the requested set is already a subset of the held set.
    """
    requested = _require_scope_ids(scope_ids)
    user = _get_user_or_404(session, user_id)

    known = {
        row.id for row in session.query(Scope.id).filter(Scope.id.in_(requested)).all()
    }
    invalid = [sid for sid in requested if sid not in known]
    if invalid:
        joined = ", ".join(str(sid) for sid in invalid)
        logger.warning("The request contained following invalid scopes: %s", joined)
        raise InvalidInputError(
            f"The request contained following invalid scopes: {joined}",
            details={"invalid_scope_ids": invalid},
        )

    held = {link.scope_id for link in user.scope_links}
    missing = [sid for sid in requested if sid not in held]
    if not missing:
        logger.info("User with id %s is already assigned to the requested scopes.", user_id)
        return ScopeChangeResult(
            user_id=user_id,
            changed=False,
            message="User already has the requested scopes.",
            scope_ids=sorted(held),
        )

    for sid in missing:
        user.scope_links.append(UserScope(scope_id=sid))
    _commit_or_conflict(session, "Scopes were modified concurrently. Please retry.")
    logger.info("Scopes %s successfully added to user with id: %s.", missing, user_id)
    return ScopeChangeResult(
        user_id=user_id,
        changed=True,
        message="Scopes added.",
        scope_ids=sorted(held | set(missing)),
    )


@retry_on_transient_errors
def remove_scopes(session: Session, user_id: int, scope_ids: Iterable[int]) -> ScopeChangeResult:
    """
    Revoke scopes from a user. Ids the user does not hold are skipped; one commit for the batch.
    """
    requested = _require_scope_ids(scope_ids)
    user = _get_user_or_404(session, user_id)

    if not user.scope_links:
        logger.info("User %s doesn't have any scopes assigned.", user_id)
        return ScopeChangeResult(
            user_id=user_id, changed=False, message="User has no scopes assigned."
        )

    links = {link.scope_id: link for link in user.scope_links}
    removed: list[int] = []
    for sid in requested:
        link = links.get(sid)
        if link is None:
            logger.debug(
                "Skipping the removal of ScopeId: %s from User with Id: %s since it doesn't exist.",
                sid,
                user_id,
            )
            continue
        logger.debug("Removing ScopeId: %s from User with Id: %s.", sid, user_id)
        user.scope_links.remove(link)
        removed.append(sid)

    remaining = sorted(set(links) - set(removed))
    if not removed:
        return ScopeChangeResult(
            user_id=user_id,
            changed=False,
            message="None of the requested scopes were assigned.",
            scope_ids=remaining,
        )
    session.commit()
    logger.info("Scopes %s successfully removed from user with id: %s.", removed, user_id)
    return ScopeChangeResult(
        user_id=user_id, changed=True, message="Scopes removed.", scope_ids=remaining
    )


@retry_on_transient_errors
def list_roles(session: Session) -> list[Role]:
    return session.query(Role).order_by(Role.id).all()


@retry_on_transient_errors
def list_scopes(session: Session) -> list[Scope]:
    return session.query(Scope).order_by(Scope.id).all()
