"""
Verification component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from single_invites.core.ports.db import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteRepoPort,
    VerificationSessionRepoPort,
)
from single_invites.core.ports.time import TimePort
from single_invites.domain.entities import Invite, TokenStatus


class InviteTokenVerifierPort(Protocol):
    """Resolves an invite's combined token (InviteRegistry implements this)."""

    def verify_invite_token(self, combined_token: str) -> tuple[TokenStatus, Invite | None]:
        ...


__all__ = [
    "AccountRepoPort",
    "ActivationTokenRepoPort",
    "InviteRepoPort",
    "InviteTokenVerifierPort",
    "TimePort",
    "VerificationSessionRepoPort",
]
