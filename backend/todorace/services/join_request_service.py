"""
services/join_request_service.py — Join request lifecycle.

Drives the membership state machine (services/membership.py) against
storage:

  submit_join_request    unaffiliated → pending    creates JoinRequest,
                                                   notifies the group creator
  resolve_join_request   pending → accepted        appends Membership
                         pending → rejected        status update only
  withdraw_join_request  pending → (deleted)       deletes the row

Concurrency:
  accept/reject/withdraw are conditional statements
  (WHERE id = :id AND status = 'pending'). When two callers race on the
  same request, exactly one statement matches a row; the other sees
  rowcount 0 and gets REQUEST_NOT_PENDING. A duplicate submit that slips
  past the pre-check is stopped by UNIQUE(group_id, user_id).

Ordering on accept: the status update and the member append are flushed in
the same transaction, which the route commits before responding. If the
user is already a member, the append is skipped but the status still moves.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
  - The notifier is passed in by the route; this module never imports
    extensions.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.todorace.errors import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
)
from backend.todorace.models.group import Group
from backend.todorace.models.join_request import JoinRequest
from backend.todorace.models.membership import Membership, MembershipStatus
from backend.todorace.models.timestamps import utcnow
from backend.todorace.models.user import User
from backend.todorace.services.group_service import find_membership, get_group_or_404
from backend.todorace.services.membership import (
    JoinEvent,
    MembershipState,
    check_can_request_join,
    next_state,
    parse_decision,
)
from backend.todorace.services.notification_service import NEW_JOIN_REQUEST

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_request_or_404(request_id: int, session: Session) -> JoinRequest:
    join_request = session.get(JoinRequest, request_id)
    if join_request is None:
        raise NotFoundError(
            ErrorCode.JOIN_REQUEST_NOT_FOUND,
            f"Join request {request_id} does not exist.",
        )
    return join_request


def _serialize_request(join_request: JoinRequest) -> dict:
    """Handles and group names are resolved through relationships at read time."""
    return {
        "id": join_request.id,
        "group_id": join_request.group_id,
        "group_name": join_request.group.name,
        "user_id": join_request.user_id,
        "username": join_request.user.username,
        "status": join_request.status.value,
        "created_at": join_request.created_at.isoformat(),
        "resolved_at": (
            join_request.resolved_at.isoformat() if join_request.resolved_at else None
        ),
    }


def _notify_creator(notifier, group: Group, join_request: JoinRequest, user: User) -> None:
    """Fire-and-forget: a delivery failure must never fail the submit."""
    if notifier is None:
        return
    payload = {
        "request_id": join_request.id,
        "group_id": group.id,
        "group_name": group.name,
        "user_id": user.id,
        "username": user.username,
    }
    try:
        notifier.publish(group.creator_user_id, NEW_JOIN_REQUEST, payload)
    except Exception:
        logger.warning(
            "Could not deliver %s for request %s to user %s",
            NEW_JOIN_REQUEST,
            join_request.id,
            group.creator_user_id,
            exc_info=True,
        )


def _state_of(join_request: JoinRequest) -> MembershipState:
    return MembershipState(join_request.status.value)


# ── Public service functions ───────────────────────────────────────────────

def submit_join_request(
        group_id: int,
        user_id: int,
        session: Session,
        notifier=None,
) -> dict:
    """
    Creates a pending join request and notifies the group creator.

    Raises:
      NotFoundError(USER_NOT_FOUND | GROUP_NOT_FOUND)
      ConflictError(ALREADY_MEMBER)      — user is already an accepted member
      ConflictError(JOIN_REQUEST_EXISTS) — a request for this pair exists in
                                           any state

    Returns: the serialised JoinRequest (status "pending").
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
        )
    group = get_group_or_404(group_id, session)

    membership = find_membership(group_id, user_id, session)
    existing = session.execute(
        select(JoinRequest).where(
            JoinRequest.group_id == group_id,
            JoinRequest.user_id == user_id,
        )
    ).scalar_one_or_none()

    check_can_request_join(
        existing.status if existing is not None else None,
        membership.status if membership is not None else None,
    )

    join_request = JoinRequest(
        group_id=group_id,
        user_id=user_id,
        status=MembershipStatus.PENDING,
    )
    session.add(join_request)
    try:
        session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            ErrorCode.JOIN_REQUEST_EXISTS,
            "A join request for this group already exists.",
        ) from exc

    logger.info("User %s requested to join group %s (request %s)", user_id, group_id, join_request.id)
    _notify_creator(notifier, group, join_request, user)
    return _serialize_request(join_request)


def resolve_join_request(
        request_id: int,
        decision: str,
        caller_id: int,
        session: Session,
) -> dict:
    """
    Accepts or rejects a pending join request. Only the group creator may.

    Raises:
      InputValidationError(INVALID_DECISION) — decision not accept/reject
      NotFoundError(JOIN_REQUEST_NOT_FOUND)
      AuthorizationError(FORBIDDEN)          — caller is not the group creator
      InvalidStateError(REQUEST_NOT_PENDING) — request already resolved

    Returns: the serialised JoinRequest with its new status.
    """
    event = parse_decision(decision)
    join_request = _get_request_or_404(request_id, session)
    group = get_group_or_404(join_request.group_id, session)

    if caller_id != group.creator_user_id:
        raise AuthorizationError(
            ErrorCode.FORBIDDEN,
            "Only the group creator may accept or reject join requests.",
        )

    target = next_state(_state_of(join_request), event)
    new_status = MembershipStatus(target.value)

    result = session.execute(
        update(JoinRequest)
        .where(
            JoinRequest.id == request_id,
            JoinRequest.status == MembershipStatus.PENDING,
        )
        .values(status=new_status, resolved_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Resolved or withdrawn by a concurrent call after we loaded it.
        raise InvalidStateError(
            ErrorCode.REQUEST_NOT_PENDING,
            f"Join request {request_id} is no longer pending.",
        )

    if event == JoinEvent.ACCEPT:
        membership = find_membership(group.id, join_request.user_id, session)
        if membership is None:
            session.add(Membership(
                group_id=group.id,
                user_id=join_request.user_id,
                status=MembershipStatus.ACCEPTED,
            ))
        elif membership.status != MembershipStatus.ACCEPTED:
            membership.status = MembershipStatus.ACCEPTED

    session.flush()
    session.refresh(join_request)

    logger.info(
        "Join request %s %s by user %s",
        request_id,
        new_status.value,
        caller_id,
    )
    return _serialize_request(join_request)


def withdraw_join_request(request_id: int, caller_id: int, session: Session) -> None:
    """
    Deletes the caller's own pending request. Distinct from reject: no
    record survives.

    Raises:
      NotFoundError(JOIN_REQUEST_NOT_FOUND)
      AuthorizationError(FORBIDDEN)          — request belongs to someone else
      InvalidStateError(REQUEST_NOT_PENDING) — request already resolved
    """
    join_request = _get_request_or_404(request_id, session)

    if join_request.user_id != caller_id:
        raise AuthorizationError(
            ErrorCode.FORBIDDEN,
            "You may only withdraw your own join requests.",
        )

    next_state(_state_of(join_request), JoinEvent.WITHDRAW)

    result = session.execute(
        delete(JoinRequest)
        .where(
            JoinRequest.id == request_id,
            JoinRequest.status == MembershipStatus.PENDING,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError(
            ErrorCode.REQUEST_NOT_PENDING,
            f"Join request {request_id} is no longer pending.",
        )
    session.expunge(join_request)
    logger.info("Join request %s withdrawn by user %s", request_id, caller_id)


def get_join_request(request_id: int, caller_id: int, session: Session) -> dict:
    """Visible to the requester and to the group creator only."""
    join_request = _get_request_or_404(request_id, session)
    group = get_group_or_404(join_request.group_id, session)
    if caller_id not in (join_request.user_id, group.creator_user_id):
        raise AuthorizationError(
            ErrorCode.FORBIDDEN,
            "You may not view this join request.",
        )
    return _serialize_request(join_request)


def list_user_requests(user_id: int, session: Session, pending_only: bool = True) -> list[dict]:
    """The user's own requests, newest first."""
    stmt = select(JoinRequest).where(JoinRequest.user_id == user_id)
    if pending_only:
        stmt = stmt.where(JoinRequest.status == MembershipStatus.PENDING)
    stmt = stmt.order_by(JoinRequest.created_at.desc(), JoinRequest.id.desc())
    return [_serialize_request(r) for r in session.execute(stmt).scalars().all()]


def list_group_requests(
        group_id: int,
        caller_id: int,
        session: Session,
        pending_only: bool = True,
) -> list[dict]:
    """Requests to join a group, newest first. Group creator only."""
    group = get_group_or_404(group_id, session)
    if caller_id != group.creator_user_id:
        raise AuthorizationError(
            ErrorCode.FORBIDDEN,
            "Only the group creator may list its join requests.",
        )

    stmt = select(JoinRequest).where(JoinRequest.group_id == group_id)
    if pending_only:
        stmt = stmt.where(JoinRequest.status == MembershipStatus.PENDING)
    stmt = stmt.order_by(JoinRequest.created_at.desc(), JoinRequest.id.desc())
    return [_serialize_request(r) for r in session.execute(stmt).scalars().all()]
