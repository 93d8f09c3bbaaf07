"""
In-memory storage adapters.

Implements every repository port from core/ports/db.py with the same
conditional-write semantics as the SQLite adapters. Each repo guards its
state with a lock, so compare-and-set operations have exactly one winner
across threads. Rows are copied on the way in and out.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from single_invites.domain.entities import (
    Account,
    ActivationToken,
    Invite,
    InviteEvent,
    InviteStatus,
    SingleProfile,
    VerificationSession,
)
from single_invites.domain.errors import UsernameTakenError
from single_invites.domain.sanitize import normalize_email


class InMemoryInviteRepo:
    def __init__(self) -> None:
        self._rows: dict[UUID, Invite] = {}
        self._lock = threading.Lock()

    def get_by_id(self, invite_id: UUID) -> Invite | None:
        with self._lock:
            row = self._rows.get(invite_id)
            return row.model_copy() if row else None

    def create_with_cap(
        self, invite: Invite, counted_statuses: Sequence[InviteStatus], limit: int
    ) -> bool:
        with self._lock:
            if self._count(invite.inviter_account_id, counted_statuses) >= limit:
                return False
            self._rows[invite.id] = invite.model_copy()
            return True

    def _count(self, inviter_id: UUID, statuses: Sequence[InviteStatus]) -> int:
        return sum(
            1
            for row in self._rows.values()
            if row.inviter_account_id == inviter_id and row.status in statuses
        )

    def count_for_inviter(self, inviter_id: UUID, statuses: Sequence[InviteStatus]) -> int:
        with self._lock:
            return self._count(inviter_id, statuses)

    def _newest_first(self, rows: Iterable[Invite]) -> list[Invite]:
        return [r.model_copy() for r in sorted(rows, key=lambda r: r.created_at, reverse=True)]

    def list_for_inviter(self, inviter_id: UUID) -> list[Invite]:
        with self._lock:
            return self._newest_first(
                r for r in self._rows.values() if r.inviter_account_id == inviter_id
            )

    def list_by_status(self, statuses: Sequence[InviteStatus]) -> list[Invite]:
        with self._lock:
            return self._newest_first(r for r in self._rows.values() if r.status in statuses)

    def list_lapsed(self, now: datetime, statuses: Sequence[InviteStatus]) -> list[Invite]:
        with self._lock:
            return self._newest_first(
                r for r in self._rows.values() if r.status in statuses and r.expires_at <= now
            )

    def transition(
        self,
        invite_id: UUID,
        from_statuses: Sequence[InviteStatus],
        to_status: InviteStatus,
        now: datetime,
        *,
        stamp_consumed: bool = False,
    ) -> Invite | None:
        with self._lock:
            row = self._rows.get(invite_id)
            if row is None or row.status not in from_statuses:
                return None
            updates: dict[str, Any] = {"status": to_status, "updated_at": now}
            if stamp_consumed and row.consumed_at is None:
                updates["consumed_at"] = now
            updated = row.model_copy(update=updates)
            self._rows[invite_id] = updated
            return updated.model_copy()

    def set_linked_account(self, invite_id: UUID, account_id: UUID, now: datetime) -> None:
        with self._lock:
            row = self._rows.get(invite_id)
            if row is not None:
                self._rows[invite_id] = row.model_copy(
                    update={"linked_account_id": account_id, "updated_at": now}
                )


class InMemorySessionRepo:
    def __init__(self) -> None:
        self._rows: dict[UUID, VerificationSession] = {}  # keyed by invite_id
        self._lock = threading.Lock()

    def get_by_invite(self, invite_id: UUID) -> VerificationSession | None:
        with self._lock:
            row = self._rows.get(invite_id)
            return row.model_copy(deep=True) if row else None

    def upsert(self, session: VerificationSession) -> VerificationSession:
        with self._lock:
            existing = self._rows.get(session.invite_id)
            if existing is not None:
                # Row identity and creation time belong to the first insert
                session = session.model_copy(
                    update={"id": existing.id, "created_at": existing.created_at}
                )
            self._rows[session.invite_id] = session.model_copy(deep=True)
            return session.model_copy(deep=True)

    def get_for_invites(self, invite_ids: Iterable[UUID]) -> dict[UUID, VerificationSession]:
        with self._lock:
            return {
                invite_id: self._rows[invite_id].model_copy(deep=True)
                for invite_id in invite_ids
                if invite_id in self._rows
            }


class InMemoryActivationTokenRepo:
    def __init__(self) -> None:
        self._rows: list[ActivationToken] = []
        self._lock = threading.Lock()

    def _invalidate(self, invite_id: UUID, now: datetime) -> int:
        count = 0
        for index, row in enumerate(self._rows):
            if row.invite_id == invite_id and row.consumed_at is None:
                self._rows[index] = row.model_copy(update={"consumed_at": now})
                count += 1
        return count

    def replace_outstanding(self, token: ActivationToken, now: datetime) -> ActivationToken:
        with self._lock:
            self._invalidate(token.invite_id, now)
            self._rows.append(token.model_copy())
            return token.model_copy()

    def invalidate_outstanding(self, invite_id: UUID, now: datetime) -> int:
        with self._lock:
            return self._invalidate(invite_id, now)

    def list_for_invite(self, invite_id: UUID) -> list[ActivationToken]:
        with self._lock:
            rows = [r.model_copy() for r in self._rows if r.invite_id == invite_id]
        return list(reversed(rows))

    def claim(self, token_id: UUID, now: datetime) -> ActivationToken | None:
        with self._lock:
            for index, row in enumerate(self._rows):
                if row.id == token_id:
                    if row.consumed_at is not None:
                        return None
                    claimed = row.model_copy(update={"consumed_at": now})
                    self._rows[index] = claimed
                    return claimed.model_copy()
            return None

    def release(self, token_id: UUID, claimed_at: datetime) -> None:
        with self._lock:
            for index, row in enumerate(self._rows):
                if row.id == token_id and row.consumed_at == claimed_at:
                    self._rows[index] = row.model_copy(update={"consumed_at": None})


class InMemoryEventRepo:
    def __init__(self) -> None:
        self._rows: list[InviteEvent] = []
        self._lock = threading.Lock()

    def append(self, event: InviteEvent) -> InviteEvent:
        with self._lock:
            self._rows.append(event.model_copy(deep=True))
        return event

    def list_for_invite(self, invite_id: UUID) -> list[InviteEvent]:
        with self._lock:
            rows = [r.model_copy(deep=True) for r in self._rows if r.invite_id == invite_id]
        # sorted() is stable, so append order breaks ties
        return sorted(rows, key=lambda r: r.occurred_at)


class InMemoryAccountRepo:
    def __init__(self) -> None:
        self._rows: dict[UUID, Account] = {}
        self._lock = threading.Lock()

    def get_by_id(self, account_id: UUID) -> Account | None:
        with self._lock:
            row = self._rows.get(account_id)
            return row.model_copy(deep=True) if row else None

    def get_by_email(self, email: str) -> list[Account]:
        target = normalize_email(email)
        with self._lock:
            return [
                r.model_copy(deep=True)
                for r in self._rows.values()
                if normalize_email(r.email) == target
            ]

    def username_exists(self, username: str) -> bool:
        with self._lock:
            return any(r.username == username for r in self._rows.values())

    def save(self, account: Account) -> Account:
        with self._lock:
            clash = any(
                r.username == account.username and r.id != account.id
                for r in self._rows.values()
            )
            if clash:
                raise UsernameTakenError(account.username)
            self._rows[account.id] = account.model_copy(deep=True)
            return account

    def attach_single(
        self, account_id: UUID, password_hash: str, inviter_id: UUID, now: datetime
    ) -> Account | None:
        with self._lock:
            row = self._rows.get(account_id)
            if row is None or row.kind != "single":
                return None
            updated = row.model_copy(
                update={
                    "password_hash": password_hash,
                    "email_verified": True,
                    "invite_source_account_id": row.invite_source_account_id or inviter_id,
                    "updated_at": now,
                }
            )
            self._rows[account_id] = updated
            return updated.model_copy(deep=True)


class InMemoryProfileRepo:
    def __init__(self) -> None:
        self._rows: dict[UUID, SingleProfile] = {}
        self._lock = threading.Lock()

    def get(self, account_id: UUID) -> SingleProfile | None:
        with self._lock:
            row = self._rows.get(account_id)
            return row.model_copy(deep=True) if row else None

    def upsert_fields(
        self,
        account_id: UUID,
        inviter_id: UUID | None,
        fields: Mapping[str, Any],
        now: datetime,
    ) -> SingleProfile:
        with self._lock:
            row = self._rows.get(account_id) or SingleProfile(
                account_id=account_id, created_at=now, updated_at=now
            )
            updates: dict[str, Any] = {**fields, "updated_at": now}
            if row.inviter_account_id is None and inviter_id is not None:
                updates["inviter_account_id"] = inviter_id
            updated = row.model_copy(update=updates)
            self._rows[account_id] = updated
            return updated.model_copy(deep=True)


@dataclass
class InMemoryStore:
    """All repositories for one in-memory data set."""

    invites: InMemoryInviteRepo = field(default_factory=InMemoryInviteRepo)
    sessions: InMemorySessionRepo = field(default_factory=InMemorySessionRepo)
    activation_tokens: InMemoryActivationTokenRepo = field(
        default_factory=InMemoryActivationTokenRepo
    )
    events: InMemoryEventRepo = field(default_factory=InMemoryEventRepo)
    accounts: InMemoryAccountRepo = field(default_factory=InMemoryAccountRepo)
    profiles: InMemoryProfileRepo = field(default_factory=InMemoryProfileRepo)
