"""
EventLog - append-only audit ledger for invite actions.

Events are inserted, never updated or deleted. Ordering by occurred_at
(then append order) reconstructs the invite's history. A None actor means
the action was system-initiated.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from single_invites.domain.entities import InviteEvent, InviteStatus

from .models import EventType
from .ports import InviteEventRepoPort, TimePort


class EventLog:
    def __init__(self, repo: InviteEventRepoPort, clock: TimePort):
        self.repo = repo
        self.clock = clock

    def append(
        self,
        invite_id: UUID,
        event_type: EventType,
        actor_account_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> InviteEvent:
        event = InviteEvent(
            invite_id=invite_id,
            event_type=event_type,
            actor_account_id=actor_account_id,
            metadata=dict(metadata or {}),
            occurred_at=self.clock.now_utc(),
        )
        return self.repo.append(event)

    def status_changed(
        self,
        invite_id: UUID,
        from_status: InviteStatus,
        to_status: InviteStatus,
        actor_account_id: UUID | None = None,
        **metadata: Any,
    ) -> InviteEvent:
        return self.append(
            invite_id,
            "invite.status_changed",
            actor_account_id,
            {"from": from_status, "to": to_status, **metadata},
        )

    def history(self, invite_id: UUID) -> list[InviteEvent]:
        return self.repo.list_for_invite(invite_id)
