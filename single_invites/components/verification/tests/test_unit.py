"""
Verification component unit tests.

Tests for profile/media intake and moderator decisions.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from single_invites.adapters.dev_email import DevEmailAdapter
from single_invites.adapters.mailer import InviteMailer
from single_invites.adapters.memory import InMemoryStore
from single_invites.components.accounts import AccountLinker
from single_invites.components.activation import ActivationIssuer
from single_invites.components.events import EventLog
from single_invites.components.tokens import TokenCodec
from single_invites.components.verification import (
    DecideInput,
    ResendActivationInput,
    SubmitMediaInput,
    SubmitProfileInput,
    VerificationWorkflow,
    run,
    run_decide,
    run_resend_activation,
    run_submit_media,
    run_submit_profile,
)
from single_invites.domain.entities import Account, Invite, InviteStatus, TokenStatus
from single_invites.domain.policy import PolicyEngine
from single_invites.domain.transitions import ACTIVE_STATUSES
from single_invites.rules.loader import load_rules

RULES_PATH = Path(__file__).resolve().parents[4] / "rules.yaml"

PROFILE = {
    "nickname": "Ace",
    "contact_email": "bull@example.com",
    "country": "GR",
    "city": "Athens",
    "consent_acknowledged": True,
}

MEDIA = {
    "identity_documents": [{"id": "doc-1", "url": "https://cdn.example.com/doc-1.jpg"}],
    "selfies": [
        {"id": "selfie-1", "url": "https://cdn.example.com/s1.jpg"},
        {"id": "selfie-2", "url": "https://cdn.example.com/s2.jpg"},
    ],
}


class MockTimePort:
    """Mock time port for deterministic testing."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


class MockHasher:
    def hash_password(self, password: str) -> str:
        return f"hashed_{password}"


class StubTokenVerifier:
    """Maps opaque test tokens to invites; unknown tokens are invalid."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.tokens: dict[str, tuple[TokenStatus, UUID]] = {}

    def verify_invite_token(self, combined_token: str) -> tuple[TokenStatus, Invite | None]:
        if combined_token not in self.tokens:
            return "invalid", None
        status, invite_id = self.tokens[combined_token]
        if status != "valid":
            return status, None
        return status, self.store.invites.get_by_id(invite_id)


@pytest.fixture
def rules():
    return load_rules(RULES_PATH)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def email() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def verifier(store) -> StubTokenVerifier:
    return StubTokenVerifier(store)


@pytest.fixture
def workflow(store, time_port, rules, email, verifier) -> VerificationWorkflow:
    events = EventLog(store.events, time_port)
    policy = PolicyEngine(rules)
    linker = AccountLinker(store.accounts, store.profiles, store.invites, store.sessions, time_port)
    issuer = ActivationIssuer(
        store.activation_tokens,
        store.invites,
        store.accounts,
        events,
        linker,
        MockHasher(),
        policy,
        time_port,
        rules,
        TokenCodec(),
        InviteMailer(email, rules.email),
    )
    return VerificationWorkflow(
        store.invites,
        store.sessions,
        store.activation_tokens,
        store.accounts,
        events,
        issuer,
        verifier,
        policy,
        time_port,
        rules,
    )


@pytest.fixture
def moderator(store) -> Account:
    return store.accounts.save(
        Account(kind="single", username="mod", email="mod@example.com", roles=["moderator"])
    )


@pytest.fixture
def make_invite(store, time_port, verifier):
    """Seed an invite in the given status and register `tok-<n>` for it."""
    inviter = store.accounts.save(
        Account(
            kind="couple",
            username="alexandsam",
            email="couple@example.com",
            partner1_nickname="Alex",
        )
    )

    def _make(status: InviteStatus = "pending", token: str = "tok") -> Invite:
        now = time_port.now_utc()
        invite = Invite(
            inviter_account_id=inviter.id,
            invitee_email="bull@example.com",
            requested_role="single_male",
            status=status,
            token_hash="h",
            token_salt="00",
            expires_at=now + timedelta(days=7),
            created_at=now,
            updated_at=now,
        )
        store.invites.create_with_cap(invite, ACTIVE_STATUSES + (status,), 10)
        verifier.tokens[token] = ("valid", invite.id)
        return invite

    return _make


def _types(store, invite_id):
    return [e.event_type for e in store.events.list_for_invite(invite_id)]


class TestSubmitProfile:
    def test_first_submission(self, workflow, store, make_invite):
        invite = make_invite()

        status, session, errors = workflow.submit_profile("tok", PROFILE)

        assert (status, errors) == ("valid", [])
        assert session.status == "awaiting_uploads"
        assert session.submitted_profile.nickname == "Ace"
        assert store.invites.get_by_id(invite.id).status == "awaiting_verification"
        assert _types(store, invite.id) == ["invite.status_changed", "verification.profile_saved"]
        saved = store.events.list_for_invite(invite.id)[-1]
        assert saved.metadata["fields"] == ["nickname", "contact_email", "country", "city"]

    def test_resubmission_replaces_profile(self, workflow, store, make_invite):
        invite = make_invite()
        _, first, _ = workflow.submit_profile("tok", PROFILE)
        _, second, _ = workflow.submit_profile("tok", {**PROFILE, "city": "Patras"})

        assert second.id == first.id
        assert second.submitted_profile.city == "Patras"
        assert _types(store, invite.id).count("invite.status_changed") == 1

    def test_resubmission_after_media_stays_under_review(self, workflow, make_invite):
        make_invite()
        workflow.submit_profile("tok", PROFILE)
        workflow.submit_media("tok", MEDIA)
        _, session, _ = workflow.submit_profile("tok", PROFILE)
        assert session.status == "under_review"

    def test_validation(self, workflow, store, make_invite):
        invite = make_invite()
        status, session, errors = workflow.submit_profile(
            "tok", {"nickname": "  ", "contact_email": "nope"}
        )
        assert status == "valid"
        assert session is None
        assert [e.code for e in errors] == [
            "consent_required",
            "nickname_required",
            "invalid_contact_email",
            "country_required",
            "city_required",
        ]
        assert store.sessions.get_by_invite(invite.id) is None
        assert store.invites.get_by_id(invite.id).status == "pending"

    def test_token_outcome_passthrough(self, workflow, verifier, make_invite):
        invite = make_invite()
        verifier.tokens["old"] = ("expired", invite.id)
        assert workflow.submit_profile("old", PROFILE) == ("expired", None, [])
        assert workflow.submit_profile("unknown", PROFILE) == ("invalid", None, [])

    def test_closed_after_moderation(self, workflow, make_invite):
        make_invite("awaiting_activation")
        _, session, errors = workflow.submit_profile("tok", PROFILE)
        assert session is None
        assert errors[0].code == "invalid_status"
        assert errors[0].context["current_status"] == "awaiting_activation"


class TestSubmitMedia:
    def test_media_queues_review(self, workflow, store, make_invite):
        invite = make_invite()
        workflow.submit_profile("tok", PROFILE)

        status, session, errors = workflow.submit_media("tok", MEDIA)

        assert (status, errors) == ("valid", [])
        assert session.status == "under_review"
        assert len(session.submitted_media.selfies) == 2
        saved = store.events.list_for_invite(invite.id)[-1]
        assert saved.event_type == "verification.media_saved"
        assert saved.metadata["identity_documents"] == 1
        assert saved.metadata["selfies"] == 2
        assert saved.metadata["has_video"] is False

    def test_requires_profile_first(self, workflow, make_invite):
        make_invite()
        _, session, errors = workflow.submit_media("tok", MEDIA)
        assert session is None
        assert errors[0].code == "invalid_status"

    def test_empty_media(self, workflow, make_invite):
        make_invite()
        workflow.submit_profile("tok", PROFILE)
        _, session, errors = workflow.submit_media("tok", {"selfies": []})
        assert session is None
        assert errors[0].code == "media_required"
        assert errors[0].field == "media"


class TestDecide:
    def _ready(self, workflow, make_invite) -> Invite:
        invite = make_invite()
        workflow.submit_profile("tok", PROFILE)
        workflow.submit_media("tok", MEDIA)
        return invite

    def test_approve(self, workflow, store, email, moderator, make_invite, time_port):
        invite = self._ready(workflow, make_invite)

        result, errors = workflow.decide(invite.id, moderator.id, "approve", " looks good ")

        assert errors == []
        assert result.decision == "approve"
        assert result.invite.status == "awaiting_activation"
        assert result.session.status == "approved"
        assert result.session.moderation_notes == "looks good"
        assert result.session.decision_actor_id == moderator.id
        assert result.activation.link.startswith(
            "https://dateastrum.com/join/singles/activate?token="
        )
        assert result.activation.expires_at == time_port.now_utc() + timedelta(hours=168)
        assert result.email_sent is True
        assert "approved" in email.emails_to("bull@example.com")[0].subject
        assert _types(store, invite.id)[-3:] == [
            "invite.activation_token_created",
            "verification.decided",
            "invite.status_changed",
        ]

    def test_reject(self, workflow, store, moderator, make_invite, time_port):
        invite = self._ready(workflow, make_invite)

        result, errors = workflow.decide(invite.id, moderator.id, "reject", "blurry documents")

        assert errors == []
        assert result.invite.status == "revoked"
        assert result.invite.consumed_at == time_port.now_utc()
        assert result.session.status == "rejected"
        assert result.session.rejection_reason == "blurry documents"
        assert result.activation is None
        changed = store.events.list_for_invite(invite.id)[-1]
        assert changed.metadata["to"] == "revoked"
        assert changed.metadata["reason"] == "blurry documents"

    def test_moderators_only(self, workflow, store, make_invite):
        invite = self._ready(workflow, make_invite)
        member = store.accounts.save(Account(kind="couple", username="m", email="m@example.com"))

        result, errors = workflow.decide(invite.id, member.id, "approve")

        assert result is None
        assert errors[0].kind == "forbidden"
        assert store.invites.get_by_id(invite.id).status == "awaiting_verification"

    def test_unknown_decision(self, workflow, moderator, make_invite):
        invite = self._ready(workflow, make_invite)
        _, errors = workflow.decide(invite.id, moderator.id, "maybe")
        assert errors[0].code == "invalid_decision"

    def test_missing_invite(self, workflow, moderator):
        _, errors = workflow.decide(uuid4(), moderator.id, "approve")
        assert errors[0].kind == "not_found"

    def test_missing_session(self, workflow, moderator, make_invite):
        invite = make_invite("awaiting_verification")
        _, errors = workflow.decide(invite.id, moderator.id, "approve")
        assert errors[0].code == "session_not_found"

    @pytest.mark.parametrize("status", ["revoked", "declined", "pending", "awaiting_activation"])
    def test_transition_guard(self, workflow, store, moderator, make_invite, status):
        invite = make_invite(status)

        result, errors = workflow.decide(invite.id, moderator.id, "approve")

        assert result is None
        assert errors[0].kind == "conflict"
        assert errors[0].context["current_status"] == status
        assert store.invites.get_by_id(invite.id).status == status
        assert store.activation_tokens.list_for_invite(invite.id) == []

    def test_second_decision_conflicts(self, workflow, moderator, make_invite):
        invite = self._ready(workflow, make_invite)
        workflow.decide(invite.id, moderator.id, "approve")
        _, errors = workflow.decide(invite.id, moderator.id, "reject")
        assert errors[0].code == "invalid_status"


class TestResendActivation:
    def test_resend_replaces_token(self, workflow, store, moderator, make_invite):
        invite = make_invite()
        workflow.submit_profile("tok", PROFILE)
        workflow.submit_media("tok", MEDIA)
        first, _ = workflow.decide(invite.id, moderator.id, "approve")

        activation, email_sent, errors = workflow.resend_activation(invite.id, moderator.id)

        assert errors == []
        assert email_sent is True
        assert activation.token != first.activation.token
        assert workflow.issuer.verify(first.activation.token).status == "consumed"
        assert workflow.issuer.verify(activation.token).status == "valid"

    def test_moderators_only(self, workflow, store, make_invite):
        invite = make_invite("awaiting_activation")
        _, _, errors = workflow.resend_activation(invite.id, uuid4())
        assert errors[0].code == "not_moderator"

    def test_only_while_awaiting_activation(self, workflow, moderator, make_invite):
        invite = make_invite("awaiting_verification")
        _, _, errors = workflow.resend_activation(invite.id, moderator.id)
        assert errors[0].code == "invalid_status"


class TestEntryPoints:
    def test_full_flow(self, workflow, moderator, make_invite):
        invite = make_invite()
        profile = run_submit_profile(
            SubmitProfileInput(token="tok", profile=PROFILE), workflow=workflow
        )
        assert profile.success
        media = run_submit_media(SubmitMediaInput(token="tok", media=MEDIA), workflow=workflow)
        assert media.session.status == "under_review"

        decided = run_decide(
            DecideInput(invite_id=invite.id, actor_id=moderator.id, decision="approve"),
            workflow=workflow,
        )
        assert decided.success
        resent = run_resend_activation(
            ResendActivationInput(invite_id=invite.id, actor_id=moderator.id), workflow=workflow
        )
        assert resent.success

    def test_failed_submission(self, workflow, make_invite):
        make_invite()
        output = run(SubmitProfileInput(token="tok", profile={}), workflow=workflow)
        assert not output.success
        assert output.token_status == "valid"

    def test_run_unknown_input(self, workflow):
        with pytest.raises(ValueError, match="Unknown input type"):
            run(None, workflow=workflow)  # type: ignore[arg-type]
