"""
Invite component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from single_invites.domain.entities import (
    Invite,
    InviteStatus,
    TokenStatus,
    VerificationSession,
)
from single_invites.domain.errors import InviteError


@dataclass(frozen=True)
class CreatedInvite:
    """A newly minted invite. `token` and `link` are shown to the inviter once."""

    invite: Invite
    token: str
    link: str
    role_label: str
    email_sent: bool = False


@dataclass(frozen=True)
class ModerationItem:
    invite: Invite
    session: VerificationSession | None
    role_label: str


# --- Input Models ---


@dataclass(frozen=True)
class CreateInviteInput:
    inviter_id: UUID
    invitee_email: str
    role: str
    ttl_hours: int | None = None
    created_ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class ListInvitesInput:
    inviter_id: UUID


@dataclass(frozen=True)
class ListForModerationInput:
    statuses: tuple[InviteStatus, ...] | None = None


@dataclass(frozen=True)
class RevokeInviteInput:
    invite_id: UUID
    actor_id: UUID


@dataclass(frozen=True)
class VerifyInviteTokenInput:
    token: str


@dataclass(frozen=True)
class DeclineInviteInput:
    token: str
    reason: str | None = None


@dataclass(frozen=True)
class ExpireLapsedInput:
    now: datetime | None = None


@dataclass(frozen=True)
class TransitionStatusInput:
    invite_id: UUID
    new_status: InviteStatus
    actor_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


# --- Output Models ---


@dataclass(frozen=True)
class CreateInviteOutput:
    created: CreatedInvite | None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class InviteListOutput:
    invites: tuple[Invite, ...]


@dataclass(frozen=True)
class ModerationListOutput:
    items: tuple[ModerationItem, ...]


@dataclass(frozen=True)
class InviteChangeOutput:
    """Result of revoke/transition; `changed` is False for a no-op on a terminal invite."""

    invite: Invite | None
    changed: bool = False
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TokenCheckOutput:
    status: TokenStatus
    invite: Invite | None = None


@dataclass(frozen=True)
class DeclineOutput:
    token_status: TokenStatus
    invite: Invite | None = None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ExpireOutput:
    expired_count: int
