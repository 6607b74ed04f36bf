"""
middleware/auth_middleware.py — JWT authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature and expiry
  3. Attaches user_id (int) to flask.g for the duration of the request
  4. Raises the matching 401 AppError if any step fails

This middleware authenticates only. Whether the caller may act on a group,
task or join request is decided in the service layer (403). Services receive
user_id as a plain int argument, never via flask.g.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.todorace.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @tasks_bp.route("/<int:task_id>/toggle", methods=["PATCH"])
        @require_auth
        def toggle_task(task_id: int):
            caller = g.user_id  # always an int when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _unauthenticated(code: str, message: str) -> AppError:
    logger.debug("Rejected %s %s: %s", request.method, request.path, code)
    return AppError(code, message, 401)


def authenticate_request() -> int:
    """
    Performs the full JWT authentication sequence and returns the user id.

    Separated from the decorator so tests can call it inside a
    test_request_context without wrapping a real view function.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise _unauthenticated(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
        )

    try:
        payload = jwt.decode(
            parts[1],
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise _unauthenticated(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /auth/refresh to obtain a new one.",
        )
    except jwt.InvalidTokenError:
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
        )

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is missing or not a valid user ID.",
        )
