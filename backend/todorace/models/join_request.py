"""
models/join_request.py — JoinRequest table definition.

No business logic. No imports from services or routes.

UNIQUE(group_id, user_id) holds regardless of status: once a request has
been accepted or rejected it stays as an audit row and blocks a new request
for the same pair. Withdrawal deletes the row, which frees the pair again.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.todorace.extensions import db
from backend.todorace.models.membership import MembershipStatus, status_column_type
from backend.todorace.models.timestamps import utcnow


class JoinRequest(db.Model):
    __tablename__ = "join_requests"

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_join_requests_group_user"),
        Index("ix_join_requests_user_status", "user_id", "status"),
        Index("ix_join_requests_group_status", "group_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[MembershipStatus] = mapped_column(
        status_column_type(),
        nullable=False,
        default=MembershipStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # NULL while pending; set once on accept/reject.
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="join_requests",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="join_requests",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<JoinRequest id={self.id} "
            f"group_id={self.group_id} "
            f"user_id={self.user_id} "
            f"status={self.status.value}>"
        )
