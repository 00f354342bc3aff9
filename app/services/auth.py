"""Login and self-registration: credential lookup, password verification, token issuance."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import retry_on_transient_errors
from app.core.errors import (
    AuthenticationFailedError,
    ConflictError,
    InvalidInputError,
    InvariantViolationError,
)
from app.core.security import (
    USERNAME_MAX_LEN,
    PasswordVerificationResult,
    get_password_hasher,
)
from app.core.tokens import issue_token
from app.models.user import ROLE_USER, Role, User

logger = logging.getLogger(__name__)

# Same message for unknown user and wrong password.
AUTHENTICATION_FAILED_MESSAGE = "Authentication failed. Please check your credentials."
EMPTY_CREDENTIALS_MESSAGE = "Username and/or password can not be empty"
USERNAME_EXISTS_MESSAGE = "Registration failed. Username already exists."


def _require_credentials(username: str | None, password: str | None) -> None:
    """Raise InvalidInputError naming each blank field. Runs before any store access."""
    errors: dict[str, str] = {}
    if not username or not username.strip():
        errors["username"] = "Username cannot be empty."
    elif len(username) > USERNAME_MAX_LEN:
        errors["username"] = f"Username must be at most {USERNAME_MAX_LEN} characters."
    if not password or not password.strip():
        errors["password"] = "Password cannot be empty."
    if errors:
        raise InvalidInputError(EMPTY_CREDENTIALS_MESSAGE, details=errors)


def find_user_by_username(session: Session, username: str) -> User | None:
    """Exact, case-sensitive match; the unique index on users.username uses the same rule."""
    return session.query(User).filter(User.username == username).first()


@retry_on_transient_errors
def authenticate(session: Session, username: str, password: str) -> str:
    """
    Verify credentials and return a signed bearer token.

    Raises InvalidInputError for blank fields, AuthenticationFailedError (generic message) for
    unknown users and wrong passwords, InvariantViolationError if a token cannot be built for
    an authenticated user (e.g. no role).
    """
    _require_credentials(username, password)
    logger.info("Token requested for user: %s", username)

    hasher = get_password_hasher()
    user = find_user_by_username(session, username)
    if user is None:
        # Burn comparable CPU so response time does not reveal whether the user exists.
        hasher.hash_password(password)
        logger.warning("Login failed: user %s does not exist", username)
        raise AuthenticationFailedError(AUTHENTICATION_FAILED_MESSAGE)

    result = hasher.verify_password(user.password_hash, password)
    if result is PasswordVerificationResult.FAILED:
        logger.warning("Login failed: wrong password for user %s", username)
        raise AuthenticationFailedError(AUTHENTICATION_FAILED_MESSAGE)

    if result is PasswordVerificationResult.SUCCESS_REHASH_NEEDED:
        if get_settings().REHASH_ON_LOGIN:
            user.password_hash = hasher.hash_password(password)
            session.commit()
            logger.info("User %s authenticated; password hash upgraded", username)
        else:
            logger.info(
                "User %s authenticated, but the stored hash uses deprecated parameters "
                "and should be rehashed",
                username,
            )
    else:
        logger.info("User %s authenticated successfully", username)

    role_name = user.role.name if user.role is not None else None
    token = issue_token(user.username, role_name, user.scope_names)
    if not token:
        logger.error(
            "Token generation failed for authenticated user %s (id=%s, role_id=%s)",
            user.username,
            user.id,
            user.role_id,
        )
        raise InvariantViolationError("Token generation failed. Please try again later.")
    return token


@retry_on_transient_errors
def register_user(session: Session, username: str, password: str) -> User:
    """
    Create a user with the default role.

    Raises InvalidInputError for blank fields or a taken username, ConflictError when a concurrent
    insert wins the unique index race.
    """
    _require_credentials(username, password)
    logger.info("Registration requested for user: %s", username)

    if find_user_by_username(session, username) is not None:
        logger.warning("Registration rejected: user %s already exists", username)
        raise InvalidInputError(USERNAME_EXISTS_MESSAGE, details={"username": USERNAME_EXISTS_MESSAGE})

    role = session.query(Role).filter(Role.name == ROLE_USER).first()
    if role is None:
        logger.error("Default role %r is missing; reference data not seeded", ROLE_USER)
        raise InvariantViolationError("Failed to save user, please try again later on")

    user = User(
        username=username,
        password_hash=get_password_hasher().hash_password(password),
        role=role,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Registration for %s lost a unique-index race: %s", username, e.orig)
        raise ConflictError(USERNAME_EXISTS_MESSAGE) from e
    session.refresh(user)
    logger.info("User %s created successfully (id=%s)", user.username, user.id)
    return user
