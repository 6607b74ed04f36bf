"""
schemas/task_schema.py — Marshmallow schemas for task endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_non_empty_after_trim(value: str) -> None:
    """validate.Length(min=1) alone lets whitespace-only titles through."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateTaskSchema(Schema):
    """POST /tasks"""

    group_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="group_id must be a positive integer."),
    )
    title = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=200, error="Task title must be between 1 and 200 characters."),
            _validate_non_empty_after_trim,
        ],
    )
    description = fields.Str(
        load_default="",
        allow_none=True,
        validate=validate.Length(max=2000),
    )


class TaskListQuerySchema(Schema):
    """GET /tasks/mine?group_id=..."""

    group_id = fields.Int(
        required=True,
        validate=validate.Range(min=1, error="group_id must be a positive integer."),
    )
