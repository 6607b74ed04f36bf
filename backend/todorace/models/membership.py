"""
models/membership.py — Membership association table (a group's member list).

No business logic. No imports from services or routes.

Only user_id is stored; the member's display handle is resolved through the
User relationship at read time, so a member row can never carry a stale
handle.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.todorace.extensions import db
from backend.todorace.models.timestamps import utcnow


class MembershipStatus(str, enum.Enum):
    """Shared by Membership.status and JoinRequest.status."""
    PENDING  = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'pending'), not names ('PENDING')."""
    return [member.value for member in enum_cls]


def status_column_type() -> Enum:
    """
    VARCHAR + CHECK rather than a native PostgreSQL type, so the same models
    run unchanged on the SQLite test database. A fresh instance per column.
    """
    return Enum(
        MembershipStatus,
        name="membership_status",
        native_enum=False,
        create_constraint=True,
        length=16,
        values_callable=_enum_values,
        validate_strings=True,
    )


class Membership(db.Model):
    __tablename__ = "memberships"

    __table_args__ = (
        # At most one entry per user in a group's member list.
        UniqueConstraint("group_id", "user_id", name="uq_memberships_group_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[MembershipStatus] = mapped_column(
        status_column_type(),
        nullable=False,
        default=MembershipStatus.ACCEPTED,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="memberships",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="memberships",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Membership id={self.id} "
            f"group_id={self.group_id} "
            f"user_id={self.user_id} "
            f"status={self.status.value}>"
        )
