"""
routes/join_requests.py — Join request route handlers.

Endpoints (url_prefix=/api/v1/join-requests):
  POST   /join-requests              → 201  submit (notifies group creator)
  GET    /join-requests/mine         → 200  caller's requests
  GET    /join-requests/:id          → 200  requester or group creator
  POST   /join-requests/:id/accept   → 200  group creator only
  POST   /join-requests/:id/reject   → 200  group creator only
  DELETE /join-requests/:id          → 200  withdraw (requester only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.todorace.extensions import db, notifier
from backend.todorace.middleware.auth_middleware import require_auth
from backend.todorace.schemas.join_request_schema import (
    RequestListQuerySchema,
    SubmitJoinRequestSchema,
)
from backend.todorace.services import join_request_service

join_requests_bp = Blueprint("join_requests", __name__)


@join_requests_bp.route("/", methods=["POST"])
@require_auth
def submit_join_request():
    """POST /join-requests — Ask to join a group as the authenticated user."""
    data = SubmitJoinRequestSchema().load(request.get_json(force=True) or {})
    result = join_request_service.submit_join_request(
        group_id=data["group_id"],
        user_id=g.user_id,
        session=db.session,
        notifier=notifier,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@join_requests_bp.route("/mine", methods=["GET"])
@require_auth
def list_my_requests():
    """GET /join-requests/mine?status=pending|all"""
    params = RequestListQuerySchema().load(request.args)
    result = join_request_service.list_user_requests(
        user_id=g.user_id,
        session=db.session,
        pending_only=params["status"] == "pending",
    )
    return jsonify({"data": result, "warnings": []}), 200


@join_requests_bp.route("/<int:request_id>", methods=["GET"])
@require_auth
def get_join_request(request_id: int):
    result = join_request_service.get_join_request(
        request_id=request_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@join_requests_bp.route("/<int:request_id>/<any(accept, reject):decision>", methods=["POST"])
@require_auth
def resolve_join_request(request_id: int, decision: str):
    """POST /join-requests/:id/accept | /reject — Group creator only."""
    result = join_request_service.resolve_join_request(
        request_id=request_id,
        decision=decision,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@join_requests_bp.route("/<int:request_id>", methods=["DELETE"])
@require_auth
def withdraw_join_request(request_id: int):
    """DELETE /join-requests/:id — Withdraw the caller's own pending request."""
    join_request_service.withdraw_join_request(
        request_id=request_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"withdrawn": True, "request_id": request_id},
        "warnings": [],
    }), 200
