"""Initial schema — all tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order (FK dependency order):
  users → refresh_tokens → groups → memberships → join_requests → tasks

Status columns are VARCHAR + CHECK rather than a PostgreSQL ENUM type, so the
models map identically onto the SQLite test database.

ON DELETE policies:
  refresh_tokens.user_id    → CASCADE   (token owned by user)
  groups.creator_user_id    → RESTRICT  (creator cannot be removed)
  memberships.*             → RESTRICT  (cannot delete user/group with members)
  join_requests.*           → CASCADE   (requests go with their user/group)
  tasks.*                   → CASCADE   (tasks go with their user/group)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None

_STATUS_CHECK = "status IN ('pending', 'accepted', 'rejected')"


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    # Handles are stored lowercase; uniqueness is therefore case-insensitive.

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(20), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.CheckConstraint(
            "LENGTH(username) BETWEEN 3 AND 20",
            name="ck_users_username_length",
        ),
    )

    # ── refresh_tokens ─────────────────────────────────────────────────────

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_hash"),
    )

    # ── groups ─────────────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(30), nullable=False),
        sa.Column(
            "creator_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_creator"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.UniqueConstraint("name", name="uq_groups_name"),
        sa.CheckConstraint(
            "LENGTH(name) BETWEEN 3 AND 30",
            name="ck_groups_name_length",
        ),
    )

    # ── memberships ────────────────────────────────────────────────────────
    # UNIQUE(group_id, user_id): at most one entry per user in a member list.

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.String(16),
            nullable=False,
            server_default="accepted",
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_memberships_group_user"),
        sa.CheckConstraint(_STATUS_CHECK, name="ck_memberships_status"),
    )

    # ── join_requests ──────────────────────────────────────────────────────
    # UNIQUE(group_id, user_id) regardless of status; withdraw deletes the row.

    op.create_table(
        "join_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_join_requests_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_join_requests_user"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.String(16),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_join_requests"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_join_requests_group_user"),
        sa.CheckConstraint(_STATUS_CHECK, name="ck_join_requests_status"),
    )

    # ── tasks ──────────────────────────────────────────────────────────────

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_tasks_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_tasks_group"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_tasks_title_nonempty",
        ),
        sa.CheckConstraint(
            "(completed AND completed_at IS NOT NULL) "
            "OR (NOT completed AND completed_at IS NULL)",
            name="ck_tasks_completed_at_matches_flag",
        ),
    )

    # ── Indexes ────────────────────────────────────────────────────────────

    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])
    op.create_index("ix_groups_creator_user_id", "groups", ["creator_user_id"])
    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])

    # Pending-request inboxes: "my requests" and "requests to my group".
    op.create_index("ix_join_requests_user_status", "join_requests", ["user_id", "status"])
    op.create_index("ix_join_requests_group_status", "join_requests", ["group_id", "status"])

    # Race computation scans every task of a group, grouped by owner.
    op.create_index("ix_tasks_group_user", "tasks", ["group_id", "user_id"])


def downgrade() -> None:
    """Local development reset only. Prefer a corrective migration in production."""

    op.drop_index("ix_tasks_group_user",           table_name="tasks")
    op.drop_index("ix_join_requests_group_status", table_name="join_requests")
    op.drop_index("ix_join_requests_user_status",  table_name="join_requests")
    op.drop_index("ix_memberships_user_id",        table_name="memberships")
    op.drop_index("ix_memberships_group_id",       table_name="memberships")
    op.drop_index("ix_groups_creator_user_id",     table_name="groups")
    op.drop_index("ix_refresh_tokens_user_id",     table_name="refresh_tokens")

    op.drop_table("tasks")
    op.drop_table("join_requests")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
