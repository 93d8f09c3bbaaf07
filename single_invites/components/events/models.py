"""
Events component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

from single_invites.domain.entities import InviteEvent

EventType = Literal[
    "invite.created",
    "invite.revoked",
    "invite.declined",
    "invite.expired",
    "invite.status_changed",
    "verification.profile_saved",
    "verification.media_saved",
    "verification.decided",
    "invite.activation_token_created",
    "invite.user_linked",
    "invite.activation_completed",
]


# --- Input Models ---


@dataclass(frozen=True)
class AppendEventInput:
    invite_id: UUID
    event_type: EventType
    actor_account_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HistoryInput:
    invite_id: UUID


# --- Output Models ---


@dataclass(frozen=True)
class EventOutput:
    event: InviteEvent


@dataclass(frozen=True)
class HistoryOutput:
    events: tuple[InviteEvent, ...]
