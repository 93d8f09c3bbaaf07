"""
Accounts component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from single_invites.domain.entities import Account, Invite, SingleProfile
from single_invites.domain.errors import InviteError

# --- Input Models ---


@dataclass(frozen=True)
class LinkAccountInput:
    """Materialize (or reuse) the invitee's account for an approved invite."""

    invite: Invite
    password_hash: str


@dataclass(frozen=True)
class HydrateProfileInput:
    """Copy the invitee's submitted profile onto their account."""

    invite_id: UUID
    account_id: UUID


# --- Output Models ---


@dataclass(frozen=True)
class LinkAccountOutput:
    account: Account | None
    created: bool = False
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class HydrateProfileOutput:
    profile: SingleProfile | None
    applied_fields: tuple[str, ...] = ()
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True
