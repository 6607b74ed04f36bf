"""
services/race_service.py — Race progress computation.

This file is the single place where race progress is computed. The track
display, the API and the tests all go through compute_race_progress().

Boundary policy: a member's total is floored at 1, so a member with no
tasks reports 0/1 and 0.0% (never 100%, never null).

Layer rules:
  - No Flask imports.
  - compute_race_progress() is pure: lists in, list of dicts out.
  - get_race_progress() loads rows with the session and delegates.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from backend.todorace.models.membership import Membership, MembershipStatus
from backend.todorace.models.task import Task
from backend.todorace.services.group_service import get_group_or_404, require_accepted_member


def compute_race_progress(
        members: Iterable[Membership],
        tasks: Iterable[Task],
) -> list[dict]:
    """
    Projects a group's members and tasks to per-member progress.

    Args:
        members: the group's member rows in member order (creator first,
                 then join order). Rows whose status is not accepted are
                 skipped. Each row needs user_id, status and user.username.
        tasks:   every task in the group. Tasks of non-members are ignored.

    Returns one dict per accepted member, in member order:
        {user_id, username, completed_tasks, total_tasks, progress_percentage}
    """
    totals: Counter[int] = Counter()
    completed: Counter[int] = Counter()
    for task in tasks:
        totals[task.user_id] += 1
        if task.completed:
            completed[task.user_id] += 1

    progress = []
    for member in members:
        if member.status != MembershipStatus.ACCEPTED:
            continue

        done = completed[member.user_id]
        total = max(totals[member.user_id], 1)
        progress.append({
            "user_id": member.user_id,
            "username": member.user.username,
            "completed_tasks": done,
            "total_tasks": total,
            "progress_percentage": round(100 * done / total, 2),
        })
    return progress


def get_race_progress(group_id: int, caller_id: int, session: Session) -> list[dict]:
    """
    Returns race progress for a group. Caller must be an accepted member.

    Raises:
      NotFoundError(GROUP_NOT_FOUND)
      AuthorizationError(NOT_A_MEMBER)
    """
    get_group_or_404(group_id, session)
    require_accepted_member(group_id, caller_id, session)

    members = session.execute(
        select(Membership)
        .options(joinedload(Membership.user))
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at.asc(), Membership.id.asc())
    ).scalars().all()

    tasks = session.execute(
        select(Task).where(Task.group_id == group_id)
    ).scalars().all()

    return compute_race_progress(members, tasks)
