"""
models/task.py — Task table definition.

A task belongs to exactly one user within exactly one group.
completed_at is set on completion and cleared (NULL) on un-completion.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.todorace.extensions import db
from backend.todorace.models.timestamps import utcnow


class Task(db.Model):
    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_tasks_title_nonempty",
        ),
        # completed_at is present exactly when the task is completed.
        CheckConstraint(
            "(completed AND completed_at IS NOT NULL) "
            "OR (NOT completed AND completed_at IS NULL)",
            name="ck_tasks_completed_at_matches_flag",
        ),
        Index("ix_tasks_group_user", "group_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default="",
    )

    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="tasks",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="tasks",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Task id={self.id} title={self.title!r} completed={self.completed}>"
