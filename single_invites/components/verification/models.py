"""
Verification component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from single_invites.components.activation import IssuedActivation
from single_invites.domain.entities import Decision, Invite, TokenStatus, VerificationSession
from single_invites.domain.errors import InviteError


@dataclass(frozen=True)
class DecisionResult:
    invite: Invite
    session: VerificationSession
    decision: Decision
    activation: IssuedActivation | None = None
    email_sent: bool = False


# --- Input Models ---


@dataclass(frozen=True)
class SubmitProfileInput:
    token: str
    profile: dict[str, Any]


@dataclass(frozen=True)
class SubmitMediaInput:
    token: str
    media: dict[str, Any]


@dataclass(frozen=True)
class DecideInput:
    invite_id: UUID
    actor_id: UUID
    decision: str
    reason: str | None = None


@dataclass(frozen=True)
class ResendActivationInput:
    invite_id: UUID
    actor_id: UUID


# --- Output Models ---


@dataclass(frozen=True)
class SubmissionOutput:
    """Result of a profile or media submission; `token_status` explains a None session."""

    token_status: TokenStatus
    session: VerificationSession | None = None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DecisionOutput:
    result: DecisionResult | None
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ResendActivationOutput:
    activation: IssuedActivation | None
    email_sent: bool = False
    errors: list[InviteError] = field(default_factory=list)
    success: bool = True
