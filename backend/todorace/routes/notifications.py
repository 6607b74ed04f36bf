"""
routes/notifications.py — Notification channel handlers.

A channel handle is opened at session start (register/login). These
endpoints let a client reopen one after a disconnect, poll it, and close it.

Endpoints (url_prefix=/api/v1/notifications):
  POST   /notifications/channels       → 201  open a new channel handle
  GET    /notifications/channels/:id   → 200  drain queued events (owner only)
  DELETE /notifications/channels/:id   → 200  close channel (owner only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from backend.todorace.extensions import notifier
from backend.todorace.middleware.auth_middleware import require_auth

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.route("/channels", methods=["POST"])
@require_auth
def open_channel():
    handle = notifier.open_channel(g.user_id)
    return jsonify({"data": handle.to_dict(), "warnings": []}), 201


@notifications_bp.route("/channels/<string:channel_id>", methods=["GET"])
@require_auth
def drain_channel(channel_id: str):
    events = notifier.drain(channel_id, owner_id=g.user_id)
    return jsonify({"data": {"channel_id": channel_id, "events": events}, "warnings": []}), 200


@notifications_bp.route("/channels/<string:channel_id>", methods=["DELETE"])
@require_auth
def close_channel(channel_id: str):
    notifier.close_channel(channel_id, owner_id=g.user_id)
    return jsonify({"data": {"closed": True, "channel_id": channel_id}, "warnings": []}), 200
