"""
End-to-end invite lifecycle against SQLite.

Drives the services the way the HTTP layer does: the inviting couple
creates an invite, the invitee submits a profile and media, a moderator
approves, and the invitee sets a password through the activation link.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from single_invites.app_shell.cli import main
from single_invites.domain.entities import Account

PROJECT = Path(__file__).resolve().parents[2]


@pytest.fixture
def couple(sqlite_ctx, make_couple):
    return sqlite_ctx.account_repo.save(make_couple())


@pytest.fixture
def mod(sqlite_ctx, clock):
    return sqlite_ctx.account_repo.save(
        Account(
            kind="single",
            username="mod_jo",
            email="moderator@example.com",
            roles=["moderator"],
            created_at=clock.now_utc(),
            updated_at=clock.now_utc(),
        )
    )


def _statuses(ctx, invite_id) -> list[tuple[str, str]]:
    return [
        (e.metadata["from"], e.metadata["to"])
        for e in ctx.registry.history(invite_id)
        if e.event_type == "invite.status_changed"
    ]


def test_full_lifecycle(sqlite_ctx, couple, mod, clock, email, valid_profile, valid_media):
    ctx = sqlite_ctx
    created, errors = ctx.registry.create_invite(couple.id, "Bull@Example.com", "single_male")
    assert errors == []
    assert created.invite.invitee_email == "bull@example.com"
    assert created.invite.expires_at == clock.now_utc() + timedelta(hours=168)
    assert email.emails_to("bull@example.com")

    token = created.token
    assert ctx.registry.verify_invite_token(token)[0] == "valid"

    status, session, errors = ctx.workflow.submit_profile(token, valid_profile)
    assert (status, errors) == ("valid", [])
    assert session.status == "awaiting_uploads"
    assert ctx.invite_repo.get_by_id(created.invite.id).status == "awaiting_verification"

    status, session, errors = ctx.workflow.submit_media(token, valid_media)
    assert errors == []
    assert session.status == "under_review"

    queue = ctx.registry.list_for_moderation()
    assert [item.invite.id for item in queue] == [created.invite.id]
    assert queue[0].session.submitted_media.selfies[0].id == "selfie-1"

    clock.advance(timedelta(hours=2))
    decision, errors = ctx.workflow.decide(created.invite.id, mod.id, "approve", "looks good")
    assert errors == []
    assert decision.invite.status == "awaiting_activation"
    assert decision.session.moderation_notes == "looks good"
    activation_token = decision.activation.token

    assert ctx.issuer.verify(activation_token).status == "valid"
    _, _, errors = ctx.workflow.submit_profile(token, valid_profile)
    assert [e.code for e in errors] == ["invalid_status"]

    check, completed, errors = ctx.issuer.complete(activation_token, "Str0ngP@ss1")
    assert (check.status, errors) == ("valid", [])
    assert completed.created
    assert completed.invite.status == "awaiting_couple"

    account = ctx.account_repo.get_by_id(completed.account_id)
    assert account.kind == "single"
    assert account.email == "bull@example.com"
    assert account.email_verified
    assert account.invite_source_account_id == couple.id
    assert ctx.issuer.hasher.verify_password("Str0ngP@ss1", account.password_hash)

    profile = ctx.profile_repo.get(account.id)
    assert profile.nickname == "Ace"
    assert profile.city == "Athens"
    assert profile.inviter_account_id == couple.id

    assert ctx.invite_repo.get_by_id(created.invite.id).linked_account_id == account.id
    assert ctx.registry.verify_invite_token(token)[0] == "consumed"
    assert ctx.issuer.verify(activation_token).status == "consumed"
    assert email.emails_to("admin@dateastrum.com")

    assert _statuses(ctx, created.invite.id) == [
        ("pending", "awaiting_verification"),
        ("awaiting_verification", "awaiting_activation"),
        ("awaiting_activation", "awaiting_couple"),
    ]
    history = [e.event_type for e in ctx.registry.history(created.invite.id)]
    assert history[0] == "invite.created"
    assert history[-1] == "invite.status_changed"


def test_couple_confirmation_completes(sqlite_ctx, couple, mod, valid_profile, valid_media):
    ctx = sqlite_ctx
    created, _ = ctx.registry.create_invite(couple.id, "bull@example.com", "single_male")
    ctx.workflow.submit_profile(created.token, valid_profile)
    ctx.workflow.submit_media(created.token, valid_media)
    decision, _ = ctx.workflow.decide(created.invite.id, mod.id, "approve")
    ctx.issuer.complete(decision.activation.token, "Str0ngP@ss1")

    done, errors = ctx.registry.transition_status(created.invite.id, "completed", couple.id)
    assert errors == []
    assert done.status == "completed"
    assert done.consumed_at is not None


def test_rejection_closes_invite(sqlite_ctx, couple, mod, valid_profile, valid_media):
    ctx = sqlite_ctx
    created, _ = ctx.registry.create_invite(couple.id, "bull@example.com", "single_male")
    ctx.workflow.submit_profile(created.token, valid_profile)
    ctx.workflow.submit_media(created.token, valid_media)

    decision, errors = ctx.workflow.decide(created.invite.id, mod.id, "reject", "blurry id")
    assert errors == []
    assert decision.invite.status == "revoked"
    assert decision.session.rejection_reason == "blurry id"
    assert ctx.registry.verify_invite_token(created.token)[0] == "invalid"
    assert ctx.activation_repo.list_for_invite(created.invite.id) == []


def test_decline_frees_a_slot(sqlite_ctx, couple):
    ctx = sqlite_ctx
    tokens = []
    for n in range(3):
        created, errors = ctx.registry.create_invite(couple.id, f"s{n}@example.com", "single_male")
        assert errors == []
        tokens.append(created.token)

    _, errors = ctx.registry.create_invite(couple.id, "s3@example.com", "single_male")
    assert [e.code for e in errors] == ["invite_limit_reached"]

    status, declined, errors = ctx.registry.decline(tokens[0], "not for me")
    assert (status, errors) == ("valid", [])
    assert declined.status == "declined"

    created, errors = ctx.registry.create_invite(couple.id, "s3@example.com", "single_male")
    assert errors == []


def test_cli_expiry_sweep(sqlite_ctx, couple, clock, tmp_path, capsys):
    ctx = sqlite_ctx
    created, _ = ctx.registry.create_invite(couple.id, "bull@example.com", "single_male", 1)

    clock.advance(timedelta(hours=2))
    assert ctx.registry.verify_invite_token(created.token)[0] == "expired"

    # The CLI runs on the system clock, which is already past the fixed test time
    main(
        [
            "--db",
            str(tmp_path / "singles.db"),
            "--rules",
            str(PROJECT / "rules.yaml"),
            "--migrations",
            str(PROJECT / "migrations"),
            "expire-invites",
        ]
    )

    assert "Expired 1 invites." in capsys.readouterr().out
    assert ctx.invite_repo.get_by_id(created.invite.id).status == "expired"
