"""
models/group.py — Group table definition.

No business logic. No imports from services or routes.

FK policy: creator_user_id ON DELETE RESTRICT — the creator is fixed at
creation and never transferred, so the user cannot be removed while the
group exists.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.todorace.extensions import db
from backend.todorace.models.timestamps import utcnow


class Group(db.Model):
    # 'groups' is a reserved word in some SQL dialects but is valid in
    # PostgreSQL as a quoted identifier; SQLAlchemy handles quoting.
    __tablename__ = "groups"

    __table_args__ = (
        # Also enforced by CreateGroupSchema; the schema is the primary gate.
        CheckConstraint(
            "LENGTH(name) BETWEEN 3 AND 30",
            name="ck_groups_name_length",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Unique across all groups, stored trimmed.
    name: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
    )

    creator_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    creator: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[creator_user_id],
    )

    # Member order is insertion order: creator first, then join order.
    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        order_by="Membership.id",
    )

    join_requests: Mapped[list["JoinRequest"]] = relationship(  # noqa: F821
        "JoinRequest",
        back_populates="group",
    )

    tasks: Mapped[list["Task"]] = relationship(  # noqa: F821
        "Task",
        back_populates="group",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r}>"
