"""
schemas/group_schema.py — Marshmallow schemas for group endpoints.

Validation responsibility:
  - This file: field types, string lengths (measured after trimming).
  - services/group_service.py: DUPLICATE_GROUP_NAME, GROUP_NOT_FOUND,
    membership checks (all need a DB lookup).

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, pre_load, validate


class CreateGroupSchema(Schema):
    """
    POST /groups

    name — 3 to 30 characters after trimming. The DB carries the same
    CHECK; the schema is the primary gate.
    """

    name = fields.Str(
        required=True,
        validate=validate.Length(
            min=3,
            max=30,
            error="Group name must be between 3 and 30 characters.",
        ),
    )

    @pre_load
    def strip_name(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            data = {**data, "name": data["name"].strip()}
        return data


class SearchGroupsSchema(Schema):
    """GET /groups/search?q=...&limit=..."""

    q = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=30, error="Search query must be 1 to 30 characters."),
    )
    limit = fields.Int(
        load_default=20,
        validate=validate.Range(min=1, max=100),
    )
