"""Named authorization policies evaluated against a caller's verified token claims."""

import enum
from collections.abc import Callable

from app.core.tokens import Principal
from app.models.user import (
    ROLE_ADMINISTRATOR,
    SCOPE_USER_CREATE,
    SCOPE_USER_DELETE,
    SCOPE_USER_READ,
    SCOPE_USER_WRITE,
)


class Policy(str, enum.Enum):
    USER_READ = "UserRead"
    USER_WRITE = "UserWrite"
    USER_CREATE = "UserCreate"
    USER_DELETE = "UserDelete"


def _is_admin(principal: Principal) -> bool:
    return principal.role == ROLE_ADMINISTRATOR


def _admin_or_any_scope(*scopes: str) -> Callable[[Principal], bool]:
    # Administrator overrides every scope requirement.
    def predicate(principal: Principal) -> bool:
        return _is_admin(principal) or any(principal.has_scope(s) for s in scopes)

    return predicate


POLICIES: dict[Policy, Callable[[Principal], bool]] = {
    Policy.USER_READ: _admin_or_any_scope(
        SCOPE_USER_READ, SCOPE_USER_WRITE, SCOPE_USER_CREATE, SCOPE_USER_DELETE
    ),
    Policy.USER_WRITE: _admin_or_any_scope(SCOPE_USER_WRITE),
    Policy.USER_CREATE: _admin_or_any_scope(SCOPE_USER_CREATE),
    Policy.USER_DELETE: _admin_or_any_scope(SCOPE_USER_DELETE),
}


def is_authorized(policy: Policy | None, principal: Principal | None) -> bool:
    """
    Evaluate policy for principal. None policy is the fallback: any authenticated caller passes.

    Pure and synchronous; no store lookup.
    """
    if principal is None:
        return False
    if policy is None:
        return True
    return POLICIES[policy](principal)
