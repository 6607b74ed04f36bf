"""
tests/integration/test_join_requests.py — Join request lifecycle over HTTP.

Lifecycle covered:
  submit   unaffiliated → pending    (creator notified)
  accept   pending → accepted        (member appended exactly once)
  reject   pending → rejected
  withdraw pending → deleted         (pair may request again)

Error cases:
  ALREADY_MEMBER         409
  JOIN_REQUEST_EXISTS    409
  GROUP_NOT_FOUND        404
  JOIN_REQUEST_NOT_FOUND 404
  FORBIDDEN              403 — non-creator resolves, non-owner withdraws
  REQUEST_NOT_PENDING    422 — resolve or withdraw after resolution
"""

from __future__ import annotations

from backend.tests.integration.conftest import (
    auth_headers,
    make_group,
    make_task,
    register,
    request_join,
    resolve,
)


def _members(client, token: str, group_id: int) -> list[dict]:
    resp = client.get(f"/api/v1/groups/{group_id}", headers=auth_headers(token))
    assert resp.status_code == 200
    return resp.get_json()["data"]["members"]


class TestSubmit:

    def test_submit_creates_pending_request(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")

        resp = request_join(client, bob["access_token"], group["id"])

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["status"] == "pending"
        assert data["group_id"] == group["id"]
        assert data["group_name"] == "Runners"
        assert data["user_id"] == bob["user"]["id"]
        assert data["username"] == "bob"
        assert data["resolved_at"] is None

    def test_creator_cannot_request_own_group(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], "Runners")

        resp = request_join(client, alice["access_token"], group["id"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_MEMBER"

    def test_second_pending_request_is_conflict(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_join(client, bob["access_token"], group["id"])

        resp = request_join(client, bob["access_token"], group["id"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "JOIN_REQUEST_EXISTS"

    def test_rejected_user_cannot_request_again(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]
        resolve(client, alice["access_token"], request_id, "reject")

        resp = request_join(client, bob["access_token"], group["id"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "JOIN_REQUEST_EXISTS"

    def test_unknown_group_returns_404(self, client):
        bob = register(client, "bob")
        resp = request_join(client, bob["access_token"], 999999)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"

    def test_non_integer_group_id_returns_400(self, client):
        bob = register(client, "bob")
        resp = client.post(
            "/api/v1/join-requests/",
            json={"group_id": "1"},
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "group_id"


class TestResolve:

    def test_accept_twice_appends_member_once(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

        first = resolve(client, alice["access_token"], request_id, "accept")
        assert first.status_code == 200
        assert first.get_json()["data"]["status"] == "accepted"
        assert first.get_json()["data"]["resolved_at"] is not None

        second = resolve(client, alice["access_token"], request_id, "accept")
        assert second.status_code == 422
        assert second.get_json()["error"]["code"] == "REQUEST_NOT_PENDING"

        members = _members(client, alice["access_token"], group["id"])
        assert [m["username"] for m in members] == ["alice", "bob"]

    def test_reject_does_not_add_member(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

        resp = resolve(client, alice["access_token"], request_id, "reject")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "rejected"
        assert [m["username"] for m in _members(client, alice["access_token"], group["id"])] == ["alice"]

    def test_accept_after_reject_is_not_pending(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]
        resolve(client, alice["access_token"], request_id, "reject")

        resp = resolve(client, alice["access_token"], request_id, "accept")

        assert resp.status_code == 422

    def test_only_creator_may_resolve(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        carol = register(client, "carol")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

        for token in (bob["access_token"], carol["access_token"]):
            resp = resolve(client, token, request_id, "accept")
            assert resp.status_code == 403
            assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_request_returns_404(self, client):
        alice = register(client, "alice")
        resp = resolve(client, alice["access_token"], 999999, "accept")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "JOIN_REQUEST_NOT_FOUND"

    def test_unknown_decision_route_is_404(self, client):
        alice = register(client, "alice")
        resp = resolve(client, alice["access_token"], 1, "maybe")
        assert resp.status_code == 404


class TestWithdraw:

    def test_withdraw_deletes_request_and_allows_new_one(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

        resp = client.delete(
            f"/api/v1/join-requests/{request_id}",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"withdrawn": True, "request_id": request_id}

        resp = client.get(
            f"/api/v1/join-requests/{request_id}",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 404

        assert request_join(client, bob["access_token"], group["id"]).status_code == 201

    def test_withdraw_accepted_request_is_not_pending(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]
        resolve(client, alice["access_token"], request_id, "accept")

        resp = client.delete(
            f"/api/v1/join-requests/{request_id}",
            headers=auth_headers(bob["access_token"]),
        )

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "REQUEST_NOT_PENDING"

    def test_withdraw_someone_elses_request_is_forbidden(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_id = request_join(client, bob["access_token"], group["id"]).get_json()["data"]["id"]

        resp = client.delete(
            f"/api/v1/join-requests/{request_id}",
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"


class TestListing:

    def test_mine_lists_pending_by_default(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        runners = make_group(client, alice["access_token"], "Runners")
        readers = make_group(client, alice["access_token"], "Readers")
        first = request_join(client, bob["access_token"], runners["id"]).get_json()["data"]["id"]
        request_join(client, bob["access_token"], readers["id"])
        resolve(client, alice["access_token"], first, "reject")

        headers = auth_headers(bob["access_token"])
        pending = client.get("/api/v1/join-requests/mine", headers=headers).get_json()["data"]
        everything = client.get("/api/v1/join-requests/mine?status=all", headers=headers).get_json()["data"]

        assert [r["group_name"] for r in pending] == ["Readers"]
        assert {r["group_name"] for r in everything} == {"Runners", "Readers"}

    def test_group_requests_visible_to_creator_only(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], "Runners")
        request_join(client, bob["access_token"], group["id"])

        url = f"/api/v1/groups/{group['id']}/join-requests"
        resp = client.get(url, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 200
        assert [r["username"] for r in resp.get_json()["data"]] == ["bob"]

        assert client.get(url, headers=auth_headers(bob["access_token"])).status_code == 403


class TestRunnersScenario:

    def test_end_to_end_race(self, client):
        u1 = register(client, "u1_runner")
        u2 = register(client, "u2_runner")
        group = make_group(client, u1["access_token"], "Runners")

        request_id = request_join(client, u2["access_token"], group["id"]).get_json()["data"]["id"]
        assert resolve(client, u1["access_token"], request_id, "accept").status_code == 200

        members = _members(client, u1["access_token"], group["id"])
        assert [(m["username"], m["status"]) for m in members] == [
            ("u1_runner", "accepted"),
            ("u2_runner", "accepted"),
        ]

        task_ids = [make_task(client, u1["access_token"], group["id"], f"Task {n}")["id"] for n in range(4)]
        for task_id in task_ids[:2]:
            resp = client.patch(
                f"/api/v1/tasks/{task_id}/toggle",
                headers=auth_headers(u1["access_token"]),
            )
            assert resp.status_code == 200

        resp = client.get(f"/api/v1/groups/{group['id']}/race", headers=auth_headers(u2["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == [
            {
                "user_id": u1["user"]["id"],
                "username": "u1_runner",
                "completed_tasks": 2,
                "total_tasks": 4,
                "progress_percentage": 50.0,
            },
            {
                "user_id": u2["user"]["id"],
                "username": "u2_runner",
                "completed_tasks": 0,
                "total_tasks": 1,
                "progress_percentage": 0.0,
            },
        ]
