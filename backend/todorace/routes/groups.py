"""
routes/groups.py — Group route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                      → 201  create group (caller is creator)
  GET    /groups                      → 200  caller's groups (accepted)
  GET    /groups/search?q=            → 200  search by name
  GET    /groups/:id                  → 200  group + ordered member list
  GET    /groups/:id/race             → 200  race progress (members only)
  GET    /groups/:id/join-requests    → 200  requests to join (creator only)
  GET    /groups/:id/tasks            → 200  all tasks (members only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.todorace.extensions import db
from backend.todorace.middleware.auth_middleware import require_auth
from backend.todorace.schemas.group_schema import CreateGroupSchema, SearchGroupsSchema
from backend.todorace.schemas.join_request_schema import RequestListQuerySchema
from backend.todorace.services import group_service, join_request_service, race_service, task_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a new group. Caller becomes creator and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        name=data["name"],
        creator_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
@require_auth
def list_groups():
    """GET /groups — List all groups the caller is an accepted member of."""
    result = group_service.list_groups(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/search", methods=["GET"])
@require_auth
def search_groups():
    """GET /groups/search?q= — Case-insensitive name search."""
    params = SearchGroupsSchema().load(request.args)
    result = group_service.search_groups(
        query=params["q"],
        session=db.session,
        limit=params["limit"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    """GET /groups/:id — Group details with member list."""
    result = group_service.get_group(group_id=group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/race", methods=["GET"])
@require_auth
def get_race(group_id: int):
    """GET /groups/:id/race — Per-member progress for the race track."""
    result = race_service.get_race_progress(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/join-requests", methods=["GET"])
@require_auth
def list_join_requests(group_id: int):
    """GET /groups/:id/join-requests?status=pending|all — Creator only."""
    params = RequestListQuerySchema().load(request.args)
    result = join_request_service.list_group_requests(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
        pending_only=params["status"] == "pending",
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/tasks", methods=["GET"])
@require_auth
def list_group_tasks(group_id: int):
    """GET /groups/:id/tasks — Every task in the group, newest first."""
    result = task_service.list_group_tasks(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
