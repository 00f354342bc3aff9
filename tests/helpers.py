"""Shared fixtures: isolated in-memory SQLite store seeded with default roles and scopes."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import get_password_hasher
from app.models import Base, Role, User, UserScope
from app.services.bootstrap import seed_reference_data


def make_session_factory(seed: bool = True) -> sessionmaker[Session]:
    """
    One in-memory database per call. StaticPool keeps a single connection so every session
    (including TestClient worker threads) sees the same schema. seed=False leaves the
    roles and scopes tables empty.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    if seed:
        with factory() as session:
            seed_reference_data(session)
    return factory


def add_user(
    session: Session,
    username: str,
    password: str,
    role_name: str = "User",
    scope_ids: list[int] | None = None,
    user_id: int | None = None,
) -> User:
    """Insert a user directly (bypassing services) and return it."""
    role = session.query(Role).filter(Role.name == role_name).one()
    user = User(
        id=user_id,
        username=username,
        password_hash=get_password_hasher().hash_password(password),
        role=role,
    )
    for sid in scope_ids or []:
        user.scope_links.append(UserScope(scope_id=sid))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
