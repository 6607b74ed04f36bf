"""
schemas/join_request_schema.py — Marshmallow schemas for join request endpoints.

Existence, membership and state checks live in
services/join_request_service.py; this file only shapes input.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class SubmitJoinRequestSchema(Schema):
    """POST /join-requests"""

    group_id = fields.Int(
        required=True,
        strict=True,  # reject floats like 1.0 — integers only
        validate=validate.Range(min=1, error="group_id must be a positive integer."),
    )


class RequestListQuerySchema(Schema):
    """?status=pending (default) | all"""

    status = fields.Str(
        load_default="pending",
        validate=validate.OneOf(["pending", "all"]),
    )
