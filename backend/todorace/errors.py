"""
errors.py — AppError hierarchy and error code registry.

Every error returned by the TodoRace API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Taxonomy (one subclass per failure family, HTTP status fixed per class):
  InputValidationError  400 — malformed input the schema could not catch
  AuthorizationError    403 — actor is known but not permitted
  NotFoundError         404 — referenced user/group/task/request is absent
  ConflictError         409 — uniqueness or already-a-member violations
  InvalidStateError     422 — action is illegal for the current lifecycle state

None of these are retried inside the service layer. Each one is scoped to the
single request that raised it.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class _TypedAppError(AppError):
    """AppError whose HTTP status is fixed by its class."""

    http_status_for_class: int = 500

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, self.http_status_for_class, field=field)


class InputValidationError(_TypedAppError):
    http_status_for_class = 400


class AuthorizationError(_TypedAppError):
    http_status_for_class = 403


class NotFoundError(_TypedAppError):
    http_status_for_class = 404


class ConflictError(_TypedAppError):
    http_status_for_class = 409


class InvalidStateError(_TypedAppError):
    http_status_for_class = 422


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_DECISION           = "INVALID_DECISION"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"
    DUPLICATE_GROUP_NAME       = "DUPLICATE_GROUP_NAME"
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    JOIN_REQUEST_EXISTS        = "JOIN_REQUEST_EXISTS"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    TASK_NOT_FOUND             = "TASK_NOT_FOUND"
    JOIN_REQUEST_NOT_FOUND     = "JOIN_REQUEST_NOT_FOUND"
    CHANNEL_NOT_FOUND          = "CHANNEL_NOT_FOUND"

    # ── Lifecycle Violations (422) ─────────────────────────────────────────
    REQUEST_NOT_PENDING        = "REQUEST_NOT_PENDING"
    INVALID_TRANSITION         = "INVALID_TRANSITION"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    # These must NEVER be swapped.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403
    NOT_A_MEMBER               = "NOT_A_MEMBER"           # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
