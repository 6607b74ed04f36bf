"""
services/membership.py — Membership state machine for a (user, group) pair.

States:
  unaffiliated — no JoinRequest and no Membership exist
  pending      — a JoinRequest with status=pending exists
  accepted     — the user is an accepted member (creator, or request accepted)
  rejected     — the user's JoinRequest was rejected

Transitions (the whole table; anything else is InvalidStateError):

  unaffiliated --request-join--> pending
  pending      --accept-------> accepted
  pending      --reject-------> rejected
  pending      --withdraw-----> unaffiliated   (request row deleted)

Pure functions only. Side effects (rows written, notifications sent) belong
to join_request_service, which consults next_state() before touching storage.
"""

from __future__ import annotations

import enum

from backend.todorace.errors import (
    ConflictError,
    ErrorCode,
    InputValidationError,
    InvalidStateError,
)
from backend.todorace.models.membership import MembershipStatus


class MembershipState(str, enum.Enum):
    UNAFFILIATED = "unaffiliated"
    PENDING      = "pending"
    ACCEPTED     = "accepted"
    REJECTED     = "rejected"


class JoinEvent(str, enum.Enum):
    REQUEST_JOIN = "request-join"
    ACCEPT       = "accept"
    REJECT       = "reject"
    WITHDRAW     = "withdraw"


TRANSITIONS: dict[tuple[MembershipState, JoinEvent], MembershipState] = {
    (MembershipState.UNAFFILIATED, JoinEvent.REQUEST_JOIN): MembershipState.PENDING,
    (MembershipState.PENDING,      JoinEvent.ACCEPT):       MembershipState.ACCEPTED,
    (MembershipState.PENDING,      JoinEvent.REJECT):       MembershipState.REJECTED,
    (MembershipState.PENDING,      JoinEvent.WITHDRAW):     MembershipState.UNAFFILIATED,
}

# Decision strings accepted by resolve_join_request().
DECISIONS: dict[str, JoinEvent] = {
    "accept": JoinEvent.ACCEPT,
    "reject": JoinEvent.REJECT,
}


def next_state(state: MembershipState, event: JoinEvent) -> MembershipState:
    """
    Returns the state reached by applying event to state.

    Raises:
      InvalidStateError(REQUEST_NOT_PENDING) — accept/reject/withdraw on a
        request that is no longer pending
      InvalidStateError(INVALID_TRANSITION) — any other illegal pair
    """
    target = TRANSITIONS.get((state, event))
    if target is not None:
        return target

    if event in (JoinEvent.ACCEPT, JoinEvent.REJECT, JoinEvent.WITHDRAW):
        raise InvalidStateError(
            ErrorCode.REQUEST_NOT_PENDING,
            f"Cannot {event.value} a join request that is {state.value}.",
        )
    raise InvalidStateError(
        ErrorCode.INVALID_TRANSITION,
        f"Cannot {event.value} from state {state.value}.",
    )


def resolve_state(
        request_status: MembershipStatus | None,
        membership_status: MembershipStatus | None,
) -> MembershipState:
    """
    Derives the state of a (user, group) pair from what storage holds.

    An accepted Membership wins over any request record, because the
    creator is accepted without ever having made a request.
    """
    if membership_status == MembershipStatus.ACCEPTED:
        return MembershipState.ACCEPTED
    if request_status is None:
        return MembershipState.UNAFFILIATED
    return MembershipState(request_status.value)


def check_can_request_join(
        request_status: MembershipStatus | None,
        membership_status: MembershipStatus | None,
) -> None:
    """
    Guard for the request-join event.

    Raises:
      ConflictError(ALREADY_MEMBER)      — user is an accepted member
      ConflictError(JOIN_REQUEST_EXISTS) — a request exists in any state
    """
    state = resolve_state(request_status, membership_status)
    if state == MembershipState.ACCEPTED:
        raise ConflictError(
            ErrorCode.ALREADY_MEMBER,
            "User is already a member of this group.",
        )
    if state != MembershipState.UNAFFILIATED:
        raise ConflictError(
            ErrorCode.JOIN_REQUEST_EXISTS,
            f"A join request for this group already exists ({state.value}).",
        )
    next_state(state, JoinEvent.REQUEST_JOIN)


def parse_decision(decision: str) -> JoinEvent:
    event = DECISIONS.get(decision)
    if event is None:
        raise InputValidationError(
            ErrorCode.INVALID_DECISION,
            "decision must be 'accept' or 'reject'.",
            field="decision",
        )
    return event
