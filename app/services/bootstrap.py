"""Start-up reconciliation: reference roles/scopes and the configured administrator account."""

import enum
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.security import PasswordVerificationResult, get_password_hasher
from app.models.user import (
    DEFAULT_ROLES,
    DEFAULT_SCOPES,
    ROLE_ADMINISTRATOR,
    Role,
    Scope,
    User,
)

logger = logging.getLogger(__name__)


class BootstrapOutcome(str, enum.Enum):
    SKIPPED = "skipped"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class AdminCredentials:
    """Mutable holder so the plaintext password can be dropped once it has been used."""

    username: str | None
    password: str | None

    def clear(self) -> None:
        self.password = None


def seed_reference_data(session: Session) -> int:
    """
    Insert any missing default roles and scopes (matched by name). Idempotent.

    Returns the number of rows inserted.
    """
    inserted = 0
    existing_roles = {name for (name,) in session.query(Role.name).all()}
    for role_id, name in DEFAULT_ROLES.items():
        if name not in existing_roles:
            session.add(Role(id=role_id, name=name))
            inserted += 1
    existing_scopes = {name for (name,) in session.query(Scope.name).all()}
    for scope_id, name in DEFAULT_SCOPES.items():
        if name not in existing_scopes:
            session.add(Scope(id=scope_id, name=name))
            inserted += 1
    if inserted:
        session.commit()
        logger.info("Seeded %s missing reference rows (roles/scopes)", inserted)
    return inserted


def ensure_admin_user(session: Session, credentials: AdminCredentials) -> BootstrapOutcome:
    """
    Create or reconcile the administrator account from configured credentials.

    Skips when no username or an empty password is configured. The hash is only rewritten when
    the stored one does not verify cleanly against the configured password, so repeated
    start-ups with unchanged config perform no writes. The password is cleared on every exit
    path. Persistence errors propagate (start-up aborts).
    """
    try:
        if not credentials.username or not credentials.username.strip():
            logger.warning("No admin user defined; skipping admin bootstrap.")
            return BootstrapOutcome.SKIPPED
        if not credentials.password or not credentials.password.strip():
            logger.warning("Admin password is not allowed to be empty; skipping admin bootstrap.")
            return BootstrapOutcome.SKIPPED

        outcome = BootstrapOutcome.UNCHANGED
        user = session.query(User).filter(User.username == credentials.username).first()
        if user is None:
            role = session.query(Role).filter(Role.name == ROLE_ADMINISTRATOR).first()
            if role is None:
                raise RuntimeError(f"Role {ROLE_ADMINISTRATOR!r} is missing; cannot create admin user")
            user = User(username=credentials.username, role=role)
            session.add(user)
            outcome = BootstrapOutcome.CREATED

        hasher = get_password_hasher()
        if (
            not user.password_hash
            or hasher.verify_password(user.password_hash, credentials.password)
            is not PasswordVerificationResult.SUCCESS
        ):
            user.password_hash = hasher.hash_password(credentials.password)
            if outcome is BootstrapOutcome.UNCHANGED:
                outcome = BootstrapOutcome.UPDATED

        if outcome is BootstrapOutcome.UNCHANGED:
            logger.info("Admin user already exists.")
            return outcome

        try:
            session.commit()
        except Exception:
            session.rollback()
            logger.exception(
                "An error occurred while trying to create/update the admin user %s.",
                credentials.username,
            )
            raise
        logger.info("Admin user %s has been %s.", credentials.username, outcome.value)
        return outcome
    finally:
        credentials.clear()
