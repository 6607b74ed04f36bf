"""
routes/tasks.py — Task route handlers.

Endpoints (url_prefix=/api/v1/tasks):
  POST   /tasks                 → 201  create (accepted members only)
  GET    /tasks/mine?group_id=  → 200  caller's tasks in a group
  PATCH  /tasks/:id/toggle      → 200  owner only
  DELETE /tasks/:id             → 200  owner only
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.todorace.extensions import db
from backend.todorace.middleware.auth_middleware import require_auth
from backend.todorace.schemas.task_schema import CreateTaskSchema, TaskListQuerySchema
from backend.todorace.services import task_service

tasks_bp = Blueprint("tasks", __name__)


@tasks_bp.route("/", methods=["POST"])
@require_auth
def create_task():
    data = CreateTaskSchema().load(request.get_json(force=True) or {})
    result = task_service.create_task(
        group_id=data["group_id"],
        user_id=g.user_id,
        title=data["title"],
        description=data["description"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@tasks_bp.route("/mine", methods=["GET"])
@require_auth
def list_my_tasks():
    params = TaskListQuerySchema().load(request.args)
    result = task_service.list_user_tasks(
        group_id=params["group_id"],
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@tasks_bp.route("/<int:task_id>/toggle", methods=["PATCH"])
@require_auth
def toggle_task(task_id: int):
    result = task_service.toggle_task(task_id=task_id, caller_id=g.user_id, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@require_auth
def delete_task(task_id: int):
    task_service.delete_task(task_id=task_id, caller_id=g.user_id, session=db.session)
    db.session.commit()
    return jsonify({"data": {"deleted": True, "task_id": task_id}, "warnings": []}), 200
