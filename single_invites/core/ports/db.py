"""
Storage interfaces for the invite lifecycle.

Every write that guards a state change is a single conditional operation
(compare-and-set) so that concurrent callers get exactly one winner.
Adapters: SQLite (adapters/sqlite/repos.py) and in-memory (adapters/memory.py).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol
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


class InviteRepoPort(Protocol):
    """Invite aggregate storage."""

    def get_by_id(self, invite_id: UUID) -> Invite | None:
        ...

    def create_with_cap(
        self, invite: Invite, counted_statuses: Sequence[InviteStatus], limit: int
    ) -> bool:
        """
        Insert the invite only if the inviter has fewer than `limit` invites in
        `counted_statuses`. Count and insert are one atomic operation.
        Returns False when the cap blocked the insert.
        """
        ...

    def count_for_inviter(self, inviter_id: UUID, statuses: Sequence[InviteStatus]) -> int:
        ...

    def list_for_inviter(self, inviter_id: UUID) -> list[Invite]:
        """Newest first."""
        ...

    def list_by_status(self, statuses: Sequence[InviteStatus]) -> list[Invite]:
        """Newest first."""
        ...

    def list_lapsed(self, now: datetime, statuses: Sequence[InviteStatus]) -> list[Invite]:
        """Invites in `statuses` whose expires_at <= now."""
        ...

    def transition(
        self,
        invite_id: UUID,
        from_statuses: Sequence[InviteStatus],
        to_status: InviteStatus,
        now: datetime,
        *,
        stamp_consumed: bool = False,
    ) -> Invite | None:
        """
        Move the invite to `to_status` only if its current status is one of
        `from_statuses`. Returns the updated row, or None if the guard failed.
        With stamp_consumed, consumed_at is set if it is not already.
        """
        ...

    def set_linked_account(self, invite_id: UUID, account_id: UUID, now: datetime) -> None:
        ...


class VerificationSessionRepoPort(Protocol):
    """One session per invite (upsert semantics keyed by invite_id)."""

    def get_by_invite(self, invite_id: UUID) -> VerificationSession | None:
        ...

    def upsert(self, session: VerificationSession) -> VerificationSession:
        ...

    def get_for_invites(self, invite_ids: Iterable[UUID]) -> dict[UUID, VerificationSession]:
        ...


class ActivationTokenRepoPort(Protocol):
    """Second-stage credentials; rows are retained, never deleted."""

    def replace_outstanding(self, token: ActivationToken, now: datetime) -> ActivationToken:
        """Mark every unconsumed token of the invite consumed, then insert `token`."""
        ...

    def invalidate_outstanding(self, invite_id: UUID, now: datetime) -> int:
        ...

    def list_for_invite(self, invite_id: UUID) -> list[ActivationToken]:
        """Newest first."""
        ...

    def claim(self, token_id: UUID, now: datetime) -> ActivationToken | None:
        """Set consumed_at if still NULL. None means another caller won."""
        ...

    def release(self, token_id: UUID, claimed_at: datetime) -> None:
        """Undo a claim made at `claimed_at`."""
        ...


class InviteEventRepoPort(Protocol):
    """Append-only event ledger."""

    def append(self, event: InviteEvent) -> InviteEvent:
        ...

    def list_for_invite(self, invite_id: UUID) -> list[InviteEvent]:
        """Oldest first (append order breaks timestamp ties)."""
        ...


class AccountRepoPort(Protocol):
    def get_by_id(self, account_id: UUID) -> Account | None:
        ...

    def get_by_email(self, email: str) -> list[Account]:
        """All accounts whose trimmed, lower-cased email equals `email`."""
        ...

    def username_exists(self, username: str) -> bool:
        ...

    def save(self, account: Account) -> Account:
        ...

    def attach_single(
        self, account_id: UUID, password_hash: str, inviter_id: UUID, now: datetime
    ) -> Account | None:
        """
        Reuse an existing single account: overwrite the password hash, mark the
        email verified, and record the inviter only if no invite source is set.
        """
        ...


class ProfileRepoPort(Protocol):
    def get(self, account_id: UUID) -> SingleProfile | None:
        ...

    def upsert_fields(
        self,
        account_id: UUID,
        inviter_id: UUID | None,
        fields: Mapping[str, Any],
        now: datetime,
    ) -> SingleProfile:
        """Write only the given fields; untouched columns keep their values."""
        ...
