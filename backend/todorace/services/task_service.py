"""
services/task_service.py — Personal task CRUD within a group.

Rules:
  - Only accepted members may create tasks in a group or list its tasks.
  - Only the owner may toggle or delete a task (FORBIDDEN, 403).
  - Toggling sets completed_at on completion and clears it on un-completion;
    the previous completion time is not preserved.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.todorace.errors import (
    AuthorizationError,
    ErrorCode,
    InputValidationError,
    NotFoundError,
)
from backend.todorace.models.task import Task
from backend.todorace.models.timestamps import utcnow
from backend.todorace.services.group_service import get_group_or_404, require_accepted_member


def _serialize_task(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "completed": task.completed,
        "user_id": task.user_id,
        "group_id": task.group_id,
        "created_at": task.created_at.isoformat(),
        "completed_at": task.completed_at.isoformat() if task.completed_at else None,
    }


def _get_owned_task(task_id: int, caller_id: int, session: Session) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError(
            ErrorCode.TASK_NOT_FOUND,
            f"Task {task_id} does not exist.",
        )
    if task.user_id != caller_id:
        raise AuthorizationError(
            ErrorCode.FORBIDDEN,
            "Only the owner of a task may change it.",
        )
    return task


def create_task(
        group_id: int,
        user_id: int,
        title: str,
        session: Session,
        description: str | None = None,
) -> dict:
    """
    Creates a task owned by user_id in group_id.

    Raises:
      InputValidationError(INVALID_FIELD) — title blank after trimming
      NotFoundError(GROUP_NOT_FOUND)
      AuthorizationError(NOT_A_MEMBER)
    """
    title = title.strip()
    if not title:
        raise InputValidationError(
            ErrorCode.INVALID_FIELD,
            "Task title is required.",
            field="title",
        )

    get_group_or_404(group_id, session)
    require_accepted_member(group_id, user_id, session)

    task = Task(
        title=title,
        description=(description or "").strip(),
        completed=False,
        user_id=user_id,
        group_id=group_id,
    )
    session.add(task)
    session.flush()
    return _serialize_task(task)


def list_user_tasks(group_id: int, user_id: int, session: Session) -> list[dict]:
    """The caller's own tasks in a group, newest first."""
    get_group_or_404(group_id, session)
    require_accepted_member(group_id, user_id, session)

    tasks = session.execute(
        select(Task)
        .where(Task.group_id == group_id, Task.user_id == user_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    ).scalars().all()
    return [_serialize_task(t) for t in tasks]


def list_group_tasks(group_id: int, caller_id: int, session: Session) -> list[dict]:
    """Every task in a group, newest first. Caller must be an accepted member."""
    get_group_or_404(group_id, session)
    require_accepted_member(group_id, caller_id, session)

    tasks = session.execute(
        select(Task)
        .where(Task.group_id == group_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    ).scalars().all()
    return [_serialize_task(t) for t in tasks]


def toggle_task(task_id: int, caller_id: int, session: Session) -> dict:
    """Flips completion. Raises TASK_NOT_FOUND (404) or FORBIDDEN (403)."""
    task = _get_owned_task(task_id, caller_id, session)
    task.completed = not task.completed
    task.completed_at = utcnow() if task.completed else None
    session.flush()
    return _serialize_task(task)


def delete_task(task_id: int, caller_id: int, session: Session) -> None:
    """Deletes a task outright. Raises TASK_NOT_FOUND (404) or FORBIDDEN (403)."""
    task = _get_owned_task(task_id, caller_id, session)
    session.delete(task)
    session.flush()
