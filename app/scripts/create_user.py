"""
Create a user out of band (e.g. a service account). Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [role] [--scope NAME ...]
Example:
  python -m app.scripts.create_user ops-bot your-secure-password User --scope user.read
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

from app.core.database import get_session_factory
from app.core.errors import ServiceError
from app.core.logging import configure_logging
from app.models import Role, Scope
from app.services.users import add_scopes, create_user

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Create a user without going through the API.")
    parser.add_argument("username", help="Username (1-255 chars, case-sensitive)")
    parser.add_argument("password", help="Password (non-empty)")
    parser.add_argument("role", nargs="?", default="User", help="Role name (default: User)")
    parser.add_argument(
        "--scope",
        action="append",
        default=[],
        dest="scopes",
        help="Scope name to grant; repeatable",
    )
    args = parser.parse_args(argv)
    configure_logging()

    db = get_session_factory()()
    try:
        role = db.query(Role).filter(Role.name == args.role).first()
        if role is None:
            print(f"Role '{args.role}' does not exist.", file=sys.stderr)
            return 1
        scopes = db.query(Scope).filter(Scope.name.in_(args.scopes)).all() if args.scopes else []
        unknown = sorted(set(args.scopes) - {s.name for s in scopes})
        if unknown:
            print(f"Unknown scopes: {', '.join(unknown)}", file=sys.stderr)
            return 1

        user = create_user(db, args.username, args.password, role.id)
        if scopes:
            add_scopes(db, user.id, [s.id for s in scopes])
        print(f"Created user '{user.username}' (id={user.id}) with role '{role.name}'.")
        return 0
    except ServiceError as e:
        print(f"{e.message} {e.details or ''}".strip(), file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
