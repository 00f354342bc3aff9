"""Create roles, scopes, users and users_scopes; seed default roles and scopes.

Revision ID: 20250301000000
Revises:
Create Date: 2025-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20250301000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    roles = op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_roles")),
    )
    op.create_index(op.f("ix_roles_name"), "roles", ["name"], unique=True)

    scopes = op.create_table(
        "scopes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_scopes")),
    )
    op.create_index(op.f("ix_scopes_name"), "scopes", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(
            ["role_id"], ["roles.id"], name=op.f("fk_users_role_id_roles")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "users_scopes",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("scope_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_users_scopes_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["scope_id"],
            ["scopes.id"],
            name=op.f("fk_users_scopes_scope_id_scopes"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("user_id", "scope_id", name=op.f("pk_users_scopes")),
    )

    op.bulk_insert(
        roles,
        [
            {"id": 1, "name": "User"},
            {"id": 2, "name": "Administrator"},
        ],
    )
    op.bulk_insert(
        scopes,
        [
            {"id": 1, "name": "user.read"},
            {"id": 2, "name": "user.write"},
            {"id": 3, "name": "user.create"},
            {"id": 4, "name": "user.delete"},
        ],
    )
    if op.get_bind().dialect.name == "postgresql":
        # Explicit ids above do not advance the serial sequences.
        op.execute("SELECT setval(pg_get_serial_sequence('roles', 'id'), (SELECT MAX(id) FROM roles))")
        op.execute("SELECT setval(pg_get_serial_sequence('scopes', 'id'), (SELECT MAX(id) FROM scopes))")


def downgrade() -> None:
    op.drop_table("users_scopes")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_table("users")
    op.drop_index(op.f("ix_scopes_name"), table_name="scopes")
    op.drop_table("scopes")
    op.drop_index(op.f("ix_roles_name"), table_name="roles")
    op.drop_table("roles")
