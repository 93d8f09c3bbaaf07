"""
Tests for the public onboarding routes.

The invitee carries the combined token in every request body.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

import pytest

BASE = "/api/singles/onboarding"


@pytest.fixture
def invite(ctx, inviter):
    created, errors = ctx.registry.create_invite(inviter.id, "bull@example.com", "single_male")
    assert errors == []
    return created


@pytest.fixture
def approved(ctx, client, invite, moderator, valid_profile, valid_media):
    client.post(f"{BASE}/profile", json={"token": invite.token, "profile": valid_profile})
    client.post(f"{BASE}/media", json={"token": invite.token, "media": valid_media})
    decision, errors = ctx.workflow.decide(invite.invite.id, moderator.id, "approve")
    assert errors == []
    return decision.activation


class TestValidate:
    def test_valid(self, client, invite):
        response = client.post(f"{BASE}/validate", json={"token": invite.token})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "valid"
        assert body["invite_id"] == str(invite.invite.id)
        assert body["requested_role"] == "single_male"
        assert body["invitee_email"] == "bull@example.com"

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_invalid_reveals_nothing(self, client, token):
        response = client.post(f"{BASE}/validate", json={"token": token})

        assert response.status_code == 200
        assert response.json()["status"] == "invalid"
        assert response.json()["invite_id"] is None

    def test_expired(self, client, clock, invite):
        clock.set(invite.invite.expires_at)
        response = client.post(f"{BASE}/validate", json={"token": invite.token})
        assert response.json()["status"] == "expired"


class TestProfileAndMedia:
    def test_profile_then_media(self, client, ctx, invite, valid_profile, valid_media):
        response = client.post(
            f"{BASE}/profile", json={"token": invite.token, "profile": valid_profile}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "awaiting_uploads"
        assert response.json()["submitted_profile"]["nickname"] == "Ace"

        response = client.post(f"{BASE}/media", json={"token": invite.token, "media": valid_media})
        assert response.status_code == 200
        assert response.json()["status"] == "under_review"
        assert ctx.invite_repo.get_by_id(invite.invite.id).status == "awaiting_verification"

    def test_profile_validation(self, client, invite):
        response = client.post(
            f"{BASE}/profile", json={"token": invite.token, "profile": {"nickname": "Ace"}}
        )

        assert response.status_code == 400
        codes = [e["code"] for e in response.json()["detail"]["errors"]]
        assert "consent_required" in codes
        assert "city_required" in codes

    def test_media_before_profile(self, client, invite, valid_media):
        response = client.post(f"{BASE}/media", json={"token": invite.token, "media": valid_media})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_status"

    def test_bad_token(self, client, valid_profile):
        response = client.post(f"{BASE}/profile", json={"token": "x", "profile": valid_profile})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "token_invalid"

    def test_expired_token_is_gone(self, client, clock, invite, valid_profile):
        clock.advance(timedelta(days=8))
        response = client.post(
            f"{BASE}/profile", json={"token": invite.token, "profile": valid_profile}
        )

        assert response.status_code == 410
        assert response.json()["detail"]["code"] == "token_expired"


class TestDecline:
    def test_decline(self, client, ctx, invite):
        response = client.post(f"{BASE}/decline", json={"token": invite.token, "reason": "busy"})

        assert response.status_code == 200
        assert response.json() == {"status": "declined"}
        assert ctx.invite_repo.get_by_id(invite.invite.id).status == "declined"

    def test_decline_twice(self, client, invite):
        client.post(f"{BASE}/decline", json={"token": invite.token})
        response = client.post(f"{BASE}/decline", json={"token": invite.token})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "token_invalid"


class TestActivation:
    def test_validate_activation(self, client, approved):
        response = client.post(f"{BASE}/activate/validate", json={"token": approved.token})

        assert response.status_code == 200
        assert response.json()["status"] == "valid"
        assert response.json()["invite_id"] == str(approved.invite_id)

    def test_invite_token_is_not_an_activation_token(self, client, invite, approved):
        response = client.post(f"{BASE}/activate/validate", json={"token": invite.token})
        assert response.json()["status"] == "invalid"

    def test_activate(self, client, ctx, approved):
        response = client.post(
            f"{BASE}/activate", json={"token": approved.token, "password": "Str0ngP@ss1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is True
        assert body["invite_status"] == "awaiting_couple"
        account = ctx.account_repo.get_by_id(UUID(body["account_id"]))
        assert account.email == "bull@example.com"

    def test_weak_password(self, client, approved):
        response = client.post(f"{BASE}/activate", json={"token": approved.token, "password": "x"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "weak_password"
        again = client.post(f"{BASE}/activate/validate", json={"token": approved.token})
        assert again.json()["status"] == "valid"

    def test_activate_twice(self, client, approved):
        payload = {"token": approved.token, "password": "Str0ngP@ss1"}
        assert client.post(f"{BASE}/activate", json=payload).status_code == 200

        response = client.post(f"{BASE}/activate", json=payload)

        assert response.status_code == 410
        assert response.json()["detail"]["code"] == "token_consumed"
