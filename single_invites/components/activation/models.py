"""
Activation component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from single_invites.domain.entities import ActivationToken, Invite, TokenStatus
from single_invites.domain.errors import InviteError


@dataclass(frozen=True)
class IssuedActivation:
    """A freshly minted activation token; `token` is only ever handed to the invitee."""

    token_id: UUID
    invite_id: UUID
    token: str
    link: str
    expires_at: datetime


@dataclass(frozen=True)
class ActivationCheck:
    """Classification of an activation token. `invite` is set only when valid."""

    status: TokenStatus
    invite: Invite | None = None
    token: ActivationToken | None = None

    @property
    def valid(self) -> bool:
        return self.status == "valid"


@dataclass(frozen=True)
class CompletedActivation:
    account_id: UUID
    invite: Invite
    created: bool
    profile_fields: tuple[str, ...] = ()
    admin_notified: bool = False


# --- Input Models ---


@dataclass(frozen=True)
class IssueActivationInput:
    invite_id: UUID
    actor_id: UUID | None = None


@dataclass(frozen=True)
class VerifyActivationInput:
    token: str


@dataclass(frozen=True)
class CompleteActivationInput:
    token: str
    password: str


# --- Output Models ---


@dataclass(frozen=True)
class IssueActivationOutput:
    activation: IssuedActivation | None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class VerifyActivationOutput:
    status: TokenStatus
    invite: Invite | None = None


@dataclass(frozen=True)
class CompleteActivationOutput:
    status: TokenStatus
    completed: CompletedActivation | None = None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True
