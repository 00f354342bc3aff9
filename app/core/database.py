"""Credential store connection, session management and transient-failure retry."""

import functools
import logging
from collections.abc import Callable, Generator
from functools import lru_cache
from typing import Any, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import get_settings
from app.core.errors import DependencyUnavailableError

logger = logging.getLogger(__name__)

# Connectivity failures worth retrying. IntegrityError and friends are not here.
TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

T = TypeVar("T")


@lru_cache
def get_engine() -> Engine:
    """Create the engine once, from the settings in effect at first use."""
    settings = get_settings()
    connect_args: dict[str, Any] = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=settings.DEBUG,
        connect_args=connect_args,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.warning("Database connectivity check failed", exc_info=True)
        return False


def _rollback_before_retry(session: Session) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        session.rollback()
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Transient database error (attempt %s), retrying in %.2fs: %s",
            retry_state.attempt_number,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
            type(exc).__name__ if exc else "unknown",
        )

    return before_sleep


def retry_on_transient_errors(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a store-touching function, retrying connectivity failures with exponential backoff.

    The wrapped function must take the Session as its first argument; the session is
    rolled back between attempts. Business errors propagate on the first attempt.
    Raises DependencyUnavailableError once DB_RETRY_ATTEMPTS are exhausted.
    """

    @functools.wraps(func)
    def wrapper(session: Session, *args: Any, **kwargs: Any) -> T:
        settings = get_settings()
        retrying = Retrying(
            retry=retry_if_exception_type(TRANSIENT_DB_ERRORS),
            stop=stop_after_attempt(settings.DB_RETRY_ATTEMPTS),
            wait=wait_exponential(multiplier=0.5, max=settings.DB_RETRY_MAX_DELAY_SEC),
            before_sleep=_rollback_before_retry(session),
            reraise=True,
        )
        try:
            return retrying(func, session, *args, **kwargs)
        except TRANSIENT_DB_ERRORS as e:
            session.rollback()
            logger.error(
                "Database unavailable after %s attempts in %s",
                settings.DB_RETRY_ATTEMPTS,
                func.__name__,
                exc_info=True,
            )
            raise DependencyUnavailableError(
                "The service is temporarily unavailable. Please try again later."
            ) from e

    return wrapper
