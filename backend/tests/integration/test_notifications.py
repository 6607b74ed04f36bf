"""
tests/integration/test_notifications.py — Notification channels over HTTP.

A join request publishes one new_join_request event to every open channel of
the group creator. Delivery failures never fail the request.
"""

from __future__ import annotations

from unittest.mock import patch

from backend.tests.integration.conftest import (
    auth_headers,
    make_group,
    register,
    request_join,
)


def _drain(client, token: str, channel_id: str):
    return client.get(f"/api/v1/notifications/channels/{channel_id}", headers=auth_headers(token))


def test_creator_receives_new_join_request_event(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"], "Runners")

    request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

    resp = _drain(client, alice["access_token"], alice["channel"]["channel_id"])
    assert resp.status_code == 200
    events = resp.get_json()["data"]["events"]
    assert len(events) == 1
    assert events[0]["event"] == "new_join_request"
    assert events[0]["payload"] == {
        "request_id": request_id,
        "group_id": group["id"],
        "group_name": "Runners",
        "user_id": bob["user"]["id"],
        "username": "bob",
    }

    again = _drain(client, alice["access_token"], alice["channel"]["channel_id"])
    assert again.get_json()["data"]["events"] == []


def test_requester_receives_nothing(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"])
    request_join(client, bob["access_token"], group["id"])

    resp = _drain(client, bob["access_token"], bob["channel"]["channel_id"])
    assert resp.get_json()["data"]["events"] == []


def test_offline_creator_does_not_block_request(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"])
    client.delete(
        f"/api/v1/notifications/channels/{alice['channel']['channel_id']}",
        headers=auth_headers(alice["access_token"]),
    )

    assert request_join(client, bob["access_token"], group["id"]).status_code == 201


def test_publish_failure_does_not_fail_request(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"])

    with patch(
        "backend.todorace.services.notification_service.NotificationHub.publish",
        side_effect=RuntimeError("boom"),
    ):
        resp = request_join(client, bob["access_token"], group["id"])

    assert resp.status_code == 201


def test_reconnect_opens_a_fresh_channel(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    group = make_group(client, alice["access_token"])

    resp = client.post("/api/v1/notifications/channels", headers=auth_headers(alice["access_token"]))
    assert resp.status_code == 201
    fresh = resp.get_json()["data"]
    assert fresh["channel_id"] != alice["channel"]["channel_id"]
    assert fresh["reconnect"]["attempts"] == 5

    request_join(client, bob["access_token"], group["id"])

    events = _drain(client, alice["access_token"], fresh["channel_id"]).get_json()["data"]["events"]
    assert [e["event"] for e in events] == ["new_join_request"]


def test_closed_channel_returns_404(client):
    alice = register(client, "alice")
    channel_id = alice["channel"]["channel_id"]
    headers = auth_headers(alice["access_token"])

    resp = client.delete(f"/api/v1/notifications/channels/{channel_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"closed": True, "channel_id": channel_id}

    resp = _drain(client, alice["access_token"], channel_id)
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "CHANNEL_NOT_FOUND"


def test_cannot_drain_someone_elses_channel(client):
    alice = register(client, "alice")
    bob = register(client, "bob")

    resp = _drain(client, bob["access_token"], alice["channel"]["channel_id"])

    assert resp.status_code == 403
