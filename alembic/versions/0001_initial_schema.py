"""Initial schema: users, organizations, memberships, invites and scheduling resources.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")
    )


def _org_fk() -> sa.Column:
    return sa.Column(
        "organization_id",
        _uuid(),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # -----------------------------------------------------------------------
    # 1. Identity and tenancy
    # -----------------------------------------------------------------------

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
        sa.Column("stripe_customer_id", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_stripe_customer_id", "users", ["stripe_customer_id"], unique=True)
    # Email lookups are case-insensitive
    op.execute("CREATE UNIQUE INDEX ix_users_email_lower ON users (lower(email))")

    op.create_table(
        "organizations",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("owner_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("plan", sa.Text(), nullable=False, server_default="starter"),
        sa.Column("subscription_status", sa.Text(), nullable=False, server_default="trialing"),
        sa.Column("stripe_subscription_id", sa.Text(), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_organizations_owner_id", "organizations", ["owner_id"])
    op.create_index(
        "ix_organizations_stripe_subscription_id", "organizations", ["stripe_subscription_id"]
    )

    op.create_table(
        "organization_memberships",
        sa.Column("id", _uuid(), primary_key=True),
        _org_fk(),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
        sa.Column("invited_by", _uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "organization_id", name="uq_membership_user_org"),
    )
    op.create_index(
        "ix_organization_memberships_organization_id",
        "organization_memberships",
        ["organization_id"],
    )
    op.create_index(
        "ix_organization_memberships_user_id", "organization_memberships", ["user_id"]
    )

    op.create_table(
        "team_invites",
        sa.Column("id", _uuid(), primary_key=True),
        _org_fk(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
        sa.Column("invited_by", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )
    op.create_index("ix_team_invites_token", "team_invites", ["token"], unique=True)
    op.create_index("ix_team_invites_organization_id", "team_invites", ["organization_id"])
    op.create_index("ix_team_invites_email", "team_invites", ["email"])
    op.create_index("ix_team_invites_expires_at", "team_invites", ["expires_at"])

    # -----------------------------------------------------------------------
    # 2. Scheduling resources
    # -----------------------------------------------------------------------

    op.create_table(
        "depots",
        sa.Column("id", _uuid(), primary_key=True),
        _org_fk(),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_depots_organization_id", "depots", ["organization_id"])

    for table in ("crews", "employees", "vehicles"):
        extra: list[sa.Column]
        if table == "crews":
            extra = [
                sa.Column("shift", sa.Text(), nullable=False, server_default="day"),
                sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
            ]
        elif table == "employees":
            extra = [
                sa.Column("status", sa.Text(), nullable=False, server_default="active"),
                sa.Column("job_role", sa.Text(), nullable=False, server_default="operative"),
                sa.Column("email", sa.Text(), nullable=True),
                sa.Column("home_postcode", sa.Text(), nullable=True),
                sa.Column("starts_from_home", sa.Boolean(), nullable=False, server_default=sa.false()),
            ]
        else:
            extra = [
                sa.Column("vehicle_type", sa.Text(), nullable=False),
                sa.Column("status", sa.Text(), nullable=False, server_default="active"),
                sa.Column("category", sa.Text(), nullable=True),
                sa.Column("color", sa.Text(), nullable=True),
            ]

        op.create_table(
            table,
            sa.Column("id", _uuid(), primary_key=True),
            _org_fk(),
            sa.Column(
                "depot_id",
                _uuid(),
                sa.ForeignKey("depots.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            *extra,
            _created_at(),
        )
        op.create_index(f"ix_{table}_organization_id", table, ["organization_id"])
        op.create_index(f"ix_{table}_depot_id", table, ["depot_id"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in ("vehicles", "employees", "crews", "depots"):
        op.drop_table(table)

    op.drop_table("team_invites")
    op.drop_table("organization_memberships")
    op.drop_table("organizations")
    op.execute("DROP INDEX IF EXISTS ix_users_email_lower")
    op.drop_table("users")
