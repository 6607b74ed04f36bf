"""
tests/unit/test_validation_schemas.py — Unit tests for all marshmallow schemas.

What this file proves:
  - Every schema accepts valid input without raising
  - Every schema rejects invalid input with a ValidationError on the right field
  - Field-level rules (type, length, pattern, choice) are enforced by schemas
  - Cross-entity rules (uniqueness, membership) are NOT tested here — they
    belong in services

Schemas inherit from marshmallow.Schema directly (not ma.Schema), which is
why they can be instantiated here without a Flask application context.
"""

from __future__ import annotations

import pytest
from marshmallow import ValidationError

from backend.todorace.schemas.auth_schema import (
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
    RegisterSchema,
)
from backend.todorace.schemas.group_schema import CreateGroupSchema, SearchGroupsSchema
from backend.todorace.schemas.join_request_schema import (
    RequestListQuerySchema,
    SubmitJoinRequestSchema,
)
from backend.todorace.schemas.task_schema import CreateTaskSchema, TaskListQuerySchema


# ═══════════════════════════════════════════════════════════════════════════
# RegisterSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestRegisterSchema:

    def _load(self, data: dict):
        return RegisterSchema().load(data)

    def test_valid_payload(self):
        result = self._load({"username": "alice_99", "password": "Secure12"})
        assert result["username"] == "alice_99"

    def test_username_is_trimmed(self):
        result = self._load({"username": "  alice  ", "password": "Secure12"})
        assert result["username"] == "alice"

    def test_username_too_short_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "ab", "password": "Secure12"})
        assert "username" in exc.value.messages

    def test_username_too_long_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "a" * 21, "password": "Secure12"})
        assert "username" in exc.value.messages

    def test_whitespace_padding_does_not_count_toward_length(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "  ab  ", "password": "Secure12"})
        assert "username" in exc.value.messages

    def test_username_invalid_chars_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "alice!", "password": "Secure12"})
        assert "username" in exc.value.messages

    def test_password_too_short_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "alice", "password": "Ab1"})
        assert "password" in exc.value.messages

    def test_password_without_digit_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "alice", "password": "Password"})
        assert "password" in exc.value.messages

    def test_password_without_letter_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"username": "alice", "password": "12345678"})
        assert "password" in exc.value.messages

    def test_missing_fields_raise(self):
        with pytest.raises(ValidationError) as exc:
            self._load({})
        assert set(exc.value.messages) == {"username", "password"}


class TestAuthSessionSchemas:

    def test_login_requires_both_fields(self):
        with pytest.raises(ValidationError) as exc:
            LoginSchema().load({"username": "alice"})
        assert "password" in exc.value.messages

    def test_refresh_requires_token(self):
        with pytest.raises(ValidationError) as exc:
            RefreshTokenSchema().load({})
        assert "refresh_token" in exc.value.messages

    def test_logout_channel_is_optional(self):
        result = LogoutSchema().load({"refresh_token": "abc"})
        assert result["channel_id"] is None

    def test_logout_accepts_channel(self):
        result = LogoutSchema().load({"refresh_token": "abc", "channel_id": "xyz"})
        assert result["channel_id"] == "xyz"


# ═══════════════════════════════════════════════════════════════════════════
# Group schemas
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateGroupSchema:

    def test_valid_name_is_trimmed(self):
        assert CreateGroupSchema().load({"name": "  Runners "})["name"] == "Runners"

    @pytest.mark.parametrize("name", ["ab", "   ab   ", "x" * 31])
    def test_name_length_is_three_to_thirty(self, name):
        with pytest.raises(ValidationError) as exc:
            CreateGroupSchema().load({"name": name})
        assert "name" in exc.value.messages

    def test_boundaries_are_inclusive(self):
        CreateGroupSchema().load({"name": "abc"})
        CreateGroupSchema().load({"name": "x" * 30})


class TestSearchGroupsSchema:

    def test_limit_defaults_to_twenty(self):
        assert SearchGroupsSchema().load({"q": "run"}) == {"q": "run", "limit": 20}

    def test_query_required(self):
        with pytest.raises(ValidationError) as exc:
            SearchGroupsSchema().load({})
        assert "q" in exc.value.messages

    def test_limit_out_of_range(self):
        with pytest.raises(ValidationError) as exc:
            SearchGroupsSchema().load({"q": "run", "limit": "0"})
        assert "limit" in exc.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# Join request schemas
# ═══════════════════════════════════════════════════════════════════════════

class TestJoinRequestSchemas:

    def test_submit_valid(self):
        assert SubmitJoinRequestSchema().load({"group_id": 3}) == {"group_id": 3}

    @pytest.mark.parametrize("group_id", [0, -1, "3", 1.5])
    def test_submit_rejects_non_positive_or_non_int(self, group_id):
        with pytest.raises(ValidationError) as exc:
            SubmitJoinRequestSchema().load({"group_id": group_id})
        assert "group_id" in exc.value.messages

    def test_status_defaults_to_pending(self):
        assert RequestListQuerySchema().load({}) == {"status": "pending"}

    def test_status_rejects_unknown_choice(self):
        with pytest.raises(ValidationError):
            RequestListQuerySchema().load({"status": "accepted"})


# ═══════════════════════════════════════════════════════════════════════════
# Task schemas
# ═══════════════════════════════════════════════════════════════════════════

class TestTaskSchemas:

    def test_create_valid_defaults_description(self):
        result = CreateTaskSchema().load({"group_id": 1, "title": "Run 5k"})
        assert result == {"group_id": 1, "title": "Run 5k", "description": ""}

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError) as exc:
            CreateTaskSchema().load({"group_id": 1, "title": "   "})
        assert "title" in exc.value.messages

    def test_title_too_long_rejected(self):
        with pytest.raises(ValidationError) as exc:
            CreateTaskSchema().load({"group_id": 1, "title": "x" * 201})
        assert "title" in exc.value.messages

    def test_description_may_be_null(self):
        result = CreateTaskSchema().load({"group_id": 1, "title": "Run", "description": None})
        assert result["description"] is None

    def test_list_query_parses_group_id_from_string(self):
        assert TaskListQuerySchema().load({"group_id": "4"}) == {"group_id": 4}
