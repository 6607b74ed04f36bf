"""
services/group_service.py — Group business logic and membership lookups.

Invariants enforced here:
  - Group names are unique (DUPLICATE_GROUP_NAME, 409).
  - The creator is appended as the first, accepted member in the same flush
    that creates the group, so no group is ever visible without its creator.

Authorization rules:
  - Any authenticated user may view or search groups (needed to request to join).
  - Group-scoped data (race, tasks) requires an accepted membership — see
    require_accepted_member(), shared with race_service and task_service.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from backend.todorace.errors import AuthorizationError, ConflictError, ErrorCode, NotFoundError
from backend.todorace.models.group import Group
from backend.todorace.models.membership import Membership, MembershipStatus

logger = logging.getLogger(__name__)


# ── Shared helpers ─────────────────────────────────────────────────────────

def get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise NotFoundError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
        )
    return group


def find_membership(group_id: int, user_id: int, session: Session) -> Membership | None:
    return session.execute(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()


def require_accepted_member(group_id: int, user_id: int, session: Session) -> Membership:
    """
    Raises NOT_A_MEMBER (403) unless user_id is an accepted member of group_id.
    Non-members receive 403, not 404.
    """
    membership = find_membership(group_id, user_id, session)
    if membership is None or membership.status != MembershipStatus.ACCEPTED:
        raise AuthorizationError(
            ErrorCode.NOT_A_MEMBER,
            f"You are not a member of group {group_id}.",
        )
    return membership


def _serialize_member(membership: Membership) -> dict:
    return {
        "user_id": membership.user_id,
        "username": membership.user.username,
        "status": membership.status.value,
        "joined_at": membership.joined_at.isoformat(),
    }


def _build_group_dict(group: Group, members: list[Membership]) -> dict:
    """Serialises a Group with its member list to a plain dict."""
    return {
        "id": group.id,
        "name": group.name,
        "creator_user_id": group.creator_user_id,
        "created_at": group.created_at.isoformat(),
        "members": [_serialize_member(m) for m in members],
    }


def _load_members(group_id: int, session: Session) -> list[Membership]:
    """Member rows in member order: creator first, then join order."""
    stmt = (
        select(Membership)
        .options(joinedload(Membership.user))
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at.asc(), Membership.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


# ── Public service functions ───────────────────────────────────────────────

def create_group(name: str, creator_id: int, session: Session) -> dict:
    """
    Creates a new group. The creator becomes the first, accepted member.

    Args:
        name:       Group name (schema-validated: trimmed, 3–30 chars).
        creator_id: The authenticated user creating the group.

    Raises:
      ConflictError(DUPLICATE_GROUP_NAME) — name already taken

    Returns: dict with group details and initial member list.
    """
    name = name.strip()
    existing = session.execute(
        select(Group.id).where(Group.name == name)
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictError(
            ErrorCode.DUPLICATE_GROUP_NAME,
            f"The group name '{name}' is already taken.",
            field="name",
        )

    group = Group(name=name, creator_user_id=creator_id)
    session.add(group)
    try:
        session.flush()  # populate group.id before creating membership
    except IntegrityError as exc:
        # Lost a race with a concurrent create of the same name.
        raise ConflictError(
            ErrorCode.DUPLICATE_GROUP_NAME,
            f"The group name '{name}' is already taken.",
            field="name",
        ) from exc

    membership = Membership(
        group_id=group.id,
        user_id=creator_id,
        status=MembershipStatus.ACCEPTED,
    )
    session.add(membership)
    session.flush()

    logger.info("User %s created group %s (%r)", creator_id, group.id, name)
    return _build_group_dict(group, _load_members(group.id, session))


def list_groups(user_id: int, session: Session) -> list[dict]:
    """
    Returns all groups the user is an accepted member of, oldest first.

    Lightweight dicts (no member list); the full list is in get_group().
    """
    stmt = (
        select(Group)
        .join(Membership, Group.id == Membership.group_id)
        .where(
            Membership.user_id == user_id,
            Membership.status == MembershipStatus.ACCEPTED,
        )
        .order_by(Group.created_at.asc(), Group.id.asc())
    )
    groups = session.execute(stmt).scalars().all()

    return [
        {
            "id": g.id,
            "name": g.name,
            "creator_user_id": g.creator_user_id,
            "created_at": g.created_at.isoformat(),
        }
        for g in groups
    ]


def search_groups(query: str, session: Session, limit: int = 20) -> list[dict]:
    """Case-insensitive substring search on group names, alphabetical."""
    escaped = (
        query.strip()
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    stmt = (
        select(Group)
        .where(Group.name.ilike(f"%{escaped}%", escape="\\"))
        .order_by(Group.name.asc())
        .limit(limit)
    )
    groups = session.execute(stmt).scalars().all()
    return [_build_group_dict(g, _load_members(g.id, session)) for g in groups]


def get_group(group_id: int, session: Session) -> dict:
    """Returns full group details including the ordered member list."""
    group = get_group_or_404(group_id, session)
    return _build_group_dict(group, _load_members(group_id, session))
