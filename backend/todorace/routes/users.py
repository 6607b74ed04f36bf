"""
routes/users.py — User lookup handlers.

Endpoints (url_prefix=/api/v1/users):
  GET /users/by-username/:username  → 200  (case-insensitive)
  GET /users/:id                    → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from backend.todorace.extensions import db
from backend.todorace.middleware.auth_middleware import require_auth
from backend.todorace.services import auth_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/by-username/<string:username>", methods=["GET"])
@require_auth
def get_user_by_username(username: str):
    result = auth_service.get_user_by_username(username, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def get_user(user_id: int):
    result = auth_service.get_current_user(user_id=user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200
