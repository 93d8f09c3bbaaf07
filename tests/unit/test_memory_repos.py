"""
Tests for the in-memory repositories' conditional writes.
"""

import threading
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from single_invites.adapters.memory import InMemoryStore
from single_invites.domain.entities import Account, ActivationToken, Invite
from single_invites.domain.errors import UsernameTakenError
from single_invites.domain.transitions import ACTIVE_STATUSES

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def _invite(inviter_id, **overrides) -> Invite:
    values = {
        "inviter_account_id": inviter_id,
        "invitee_email": "bull@example.com",
        "requested_role": "single_male",
        "token_hash": "h",
        "token_salt": "00",
        "expires_at": NOW + timedelta(days=7),
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Invite(**values)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


class TestInviteRepo:
    def test_cap_blocks_fourth(self, store):
        inviter = uuid4()
        for _ in range(3):
            assert store.invites.create_with_cap(_invite(inviter), ACTIVE_STATUSES, 3)
        assert not store.invites.create_with_cap(_invite(inviter), ACTIVE_STATUSES, 3)
        assert store.invites.count_for_inviter(inviter, ACTIVE_STATUSES) == 3

    def test_terminal_invites_do_not_count(self, store):
        inviter = uuid4()
        store.invites.create_with_cap(_invite(inviter, status="revoked"), ACTIVE_STATUSES, 1)
        assert store.invites.create_with_cap(_invite(inviter), ACTIVE_STATUSES, 1)

    def test_concurrent_creates_respect_cap(self, store):
        inviter = uuid4()
        results: list[bool] = []

        def create():
            results.append(store.invites.create_with_cap(_invite(inviter), ACTIVE_STATUSES, 3))

        threads = [threading.Thread(target=create) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 3
        assert store.invites.count_for_inviter(inviter, ACTIVE_STATUSES) == 3

    def test_transition_is_compare_and_set(self, store):
        invite = _invite(uuid4())
        store.invites.create_with_cap(invite, ACTIVE_STATUSES, 3)

        later = NOW + timedelta(minutes=1)
        moved = store.invites.transition(
            invite.id, ["pending"], "revoked", later, stamp_consumed=True
        )
        assert moved is not None
        assert moved.status == "revoked"
        assert moved.consumed_at == later

        assert store.invites.transition(invite.id, ["pending"], "declined", later) is None
        assert store.invites.get_by_id(invite.id).status == "revoked"

    def test_returned_rows_are_copies(self, store):
        invite = _invite(uuid4())
        store.invites.create_with_cap(invite, ACTIVE_STATUSES, 3)
        fetched = store.invites.get_by_id(invite.id)
        fetched.status = "completed"
        assert store.invites.get_by_id(invite.id).status == "pending"

    def test_list_lapsed(self, store):
        inviter = uuid4()
        lapsed = _invite(inviter, expires_at=NOW)
        fresh = _invite(inviter, expires_at=NOW + timedelta(seconds=1))
        for row in (lapsed, fresh):
            store.invites.create_with_cap(row, ACTIVE_STATUSES, 3)
        assert [i.id for i in store.invites.list_lapsed(NOW, ["pending"])] == [lapsed.id]


class TestActivationTokenRepo:
    def _token(self, invite_id, **overrides) -> ActivationToken:
        values = {
            "invite_id": invite_id,
            "token_hash": "h",
            "token_salt": "00",
            "expires_at": NOW + timedelta(days=7),
            "created_at": NOW,
        }
        values.update(overrides)
        return ActivationToken(**values)

    def test_replace_outstanding_retires_previous(self, store):
        invite_id = uuid4()
        first = store.activation_tokens.replace_outstanding(self._token(invite_id), NOW)
        second = store.activation_tokens.replace_outstanding(self._token(invite_id), NOW)

        rows = store.activation_tokens.list_for_invite(invite_id)
        assert [r.id for r in rows] == [second.id, first.id]
        assert rows[0].consumed_at is None
        assert rows[1].consumed_at == NOW

    def test_claim_has_one_winner(self, store):
        token = store.activation_tokens.replace_outstanding(self._token(uuid4()), NOW)
        assert store.activation_tokens.claim(token.id, NOW) is not None
        assert store.activation_tokens.claim(token.id, NOW) is None

    def test_release_restores_claim(self, store):
        token = store.activation_tokens.replace_outstanding(self._token(uuid4()), NOW)
        store.activation_tokens.claim(token.id, NOW)
        store.activation_tokens.release(token.id, NOW)
        assert store.activation_tokens.claim(token.id, NOW) is not None

    def test_release_ignores_other_consumers(self, store):
        token = store.activation_tokens.replace_outstanding(self._token(uuid4()), NOW)
        store.activation_tokens.claim(token.id, NOW)
        store.activation_tokens.release(token.id, NOW + timedelta(seconds=5))
        assert store.activation_tokens.claim(token.id, NOW) is None


class TestAccountRepo:
    def test_username_uniqueness(self, store):
        store.accounts.save(Account(kind="single", username="single_a", email="a@example.com"))
        with pytest.raises(UsernameTakenError):
            store.accounts.save(Account(kind="single", username="single_a", email="b@example.com"))

    def test_email_lookup_is_normalized(self, store):
        store.accounts.save(Account(kind="single", username="u", email="Bull@Example.com"))
        assert len(store.accounts.get_by_email(" bull@example.COM ")) == 1

    def test_attach_single_keeps_first_invite_source(self, store):
        original = uuid4()
        account = store.accounts.save(
            Account(kind="single", username="u", email="u@e.com", invite_source_account_id=original)
        )
        attached = store.accounts.attach_single(account.id, "hash", uuid4(), NOW)
        assert attached.password_hash == "hash"
        assert attached.email_verified is True
        assert attached.invite_source_account_id == original

    def test_attach_single_refuses_couples(self, store):
        couple = store.accounts.save(Account(kind="couple", username="c", email="c@e.com"))
        assert store.accounts.attach_single(couple.id, "hash", uuid4(), NOW) is None


class TestProfileRepo:
    def test_upsert_fields_merges(self, store):
        account_id = uuid4()
        inviter = uuid4()
        store.profiles.upsert_fields(
            account_id, inviter, {"nickname": "Ace", "city": "Athens"}, NOW
        )
        profile = store.profiles.upsert_fields(account_id, uuid4(), {"city": "Patras"}, NOW)

        assert profile.nickname == "Ace"
        assert profile.city == "Patras"
        assert profile.inviter_account_id == inviter
