"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the testing config: in-memory SQLite by default, or
    TEST_DATABASE_URL when a real PostgreSQL database is supplied.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order and every
    notification channel is dropped, so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)        → dict with user, tokens and channel
  - login(client, ...)           → dict with user, tokens and channel
  - auth_headers(token)          → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)      → group dict
  - request_join(client, ...)    → HTTP response
  - make_task(client, ...)       → task dict

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from backend.todorace import create_app
from backend.todorace.extensions import db as _db
from backend.todorace.extensions import notifier as _notifier


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test
    session, creates every table, and drops them at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Delete order respects FK RESTRICT constraints:
      tasks, join_requests and memberships go before groups; groups before
      users; refresh_tokens before users.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        from sqlalchemy import text
        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM tasks"))
            conn.execute(text("DELETE FROM join_requests"))
            conn.execute(text("DELETE FROM memberships"))
            conn.execute(text("DELETE FROM refresh_tokens"))
            conn.execute(text("DELETE FROM \"groups\""))
            conn.execute(text("DELETE FROM users"))
            conn.commit()

    _notifier.reset()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(client, username: str = "alice", password: str = "Password1") -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "access_token", "refresh_token", "channel": {...}}
    """
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username: str, password: str = "Password1") -> dict:
    """Logs in a user and returns the response data dict (same shape as register)."""
    resp = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Runners") -> dict:
    """
    Creates a group and returns the group data dict.
    The caller (token owner) becomes the creator and first member.
    """
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def request_join(client, token: str, group_id: int):
    """Submits a join request as the token owner. Returns the HTTP response."""
    return client.post(
        "/api/v1/join-requests/",
        json={"group_id": group_id},
        headers=auth_headers(token),
    )


def resolve(client, token: str, request_id: int, decision: str):
    """Accepts or rejects a join request. Returns the HTTP response."""
    return client.post(
        f"/api/v1/join-requests/{request_id}/{decision}",
        headers=auth_headers(token),
    )


def join_group(client, creator_token: str, member_token: str, group_id: int) -> dict:
    """Full request-then-accept flow. Returns the accepted request dict."""
    resp = request_join(client, member_token, group_id)
    assert resp.status_code == 201, f"request_join failed: {resp.get_json()}"
    request_id = resp.get_json()["data"]["id"]
    resp = resolve(client, creator_token, request_id, "accept")
    assert resp.status_code == 200, f"accept failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_task(
    client,
    token: str,
    group_id: int,
    title: str = "Run 5k",
    description: str | None = None,
) -> dict:
    """Creates a task and returns the task data dict."""
    payload: dict = {"group_id": group_id, "title": title}
    if description is not None:
        payload["description"] = description
    resp = client.post("/api/v1/tasks/", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, f"make_task failed: {resp.get_json()}"
    return resp.get_json()["data"]
