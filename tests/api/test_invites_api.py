"""
Tests for the inviter-facing invite routes.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from single_invites.api.auth_utils import create_access_token

BASE = "/api/singles/invites"


def _create(client, headers, email="bull@example.com", role="single_male", **extra):
    return client.post(
        BASE, json={"invitee_email": email, "role": role, **extra}, headers=headers
    )


class TestAuth:
    def test_requires_token(self, client):
        response = client.get(BASE)
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_rejects_garbage_token(self, client):
        response = client.get(BASE, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_rejects_unknown_account(self, client):
        token = create_access_token({"sub": str(uuid4())})
        response = client.get(BASE, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Account not found"

    def test_accepts_cookie(self, client, inviter):
        token = create_access_token({"sub": str(inviter.id)})
        client.cookies.set("access_token", f"Bearer {token}")
        assert client.get(BASE).status_code == 200


class TestCreate:
    def test_created(self, client, inviter, auth_for, email):
        response = _create(client, auth_for(inviter), email=" Bull@Example.com ", ttl_hours=48)

        assert response.status_code == 201
        body = response.json()
        assert body["invite"]["invitee_email"] == "bull@example.com"
        assert body["invite"]["status"] == "pending"
        assert body["invite"]["role_label"] == "Bull Invite"
        assert "token=" in body["link"]
        assert email.emails_to("bull@example.com")

    def test_records_request_origin(self, client, ctx, inviter, auth_for):
        headers = {**auth_for(inviter), "User-Agent": "pytest-agent"}
        response = _create(client, headers)

        invite = ctx.invite_repo.get_by_id(UUID(response.json()["invite"]["id"]))
        assert invite.created_user_agent == "pytest-agent"
        assert invite.created_ip == "testclient"

    def test_invalid_input(self, client, inviter, auth_for):
        response = _create(client, auth_for(inviter), email="not-an-email", role="wizard")

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_email"
        assert [e["code"] for e in detail["errors"]] == ["invalid_email", "invalid_role"]

    def test_single_cannot_invite(self, client, moderator, auth_for):
        response = _create(client, auth_for(moderator))
        assert response.status_code == 403

    def test_cap_conflict(self, client, inviter, auth_for):
        for n in range(3):
            assert _create(client, auth_for(inviter), email=f"s{n}@example.com").status_code == 201

        response = _create(client, auth_for(inviter), email="s3@example.com")

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "invite_limit_reached"
        assert detail["errors"][0]["active_count"] == 3


class TestListAndRevoke:
    def test_lists_own_invites(self, client, ctx, inviter, make_couple, auth_for):
        other = ctx.account_repo.save(make_couple(username="other", email="other@example.com"))
        _create(client, auth_for(inviter), email="a@example.com")
        _create(client, auth_for(other), email="b@example.com")

        response = client.get(BASE, headers=auth_for(inviter))

        assert response.status_code == 200
        assert [i["invitee_email"] for i in response.json()] == ["a@example.com"]

    def test_revoke(self, client, inviter, auth_for):
        invite_id = _create(client, auth_for(inviter)).json()["invite"]["id"]

        response = client.delete(f"{BASE}/{invite_id}", headers=auth_for(inviter))

        assert response.status_code == 204
        listed = client.get(BASE, headers=auth_for(inviter)).json()
        assert listed[0]["status"] == "revoked"
        assert listed[0]["consumed_at"] is not None

    def test_revoke_is_idempotent(self, client, inviter, auth_for):
        invite_id = _create(client, auth_for(inviter)).json()["invite"]["id"]
        client.delete(f"{BASE}/{invite_id}", headers=auth_for(inviter))

        response = client.delete(f"{BASE}/{invite_id}", headers=auth_for(inviter))

        assert response.status_code == 204

    def test_revoke_someone_elses_invite(self, client, ctx, inviter, make_couple, auth_for):
        other = ctx.account_repo.save(make_couple(username="other", email="other@example.com"))
        invite_id = _create(client, auth_for(inviter)).json()["invite"]["id"]

        response = client.delete(f"{BASE}/{invite_id}", headers=auth_for(other))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "not_inviter"

    def test_revoke_missing(self, client, inviter, auth_for):
        response = client.delete(f"{BASE}/{uuid4()}", headers=auth_for(inviter))
        assert response.status_code == 404
