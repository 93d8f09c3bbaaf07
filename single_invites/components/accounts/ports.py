"""
Accounts component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from single_invites.core.ports.db import (
    AccountRepoPort,
    InviteRepoPort,
    ProfileRepoPort,
    VerificationSessionRepoPort,
)
from single_invites.core.ports.time import TimePort


class UsernameSuffixPort(Protocol):
    """Source of the short numeric suffix used when a username is taken."""

    def __call__(self) -> str:
        ...


__all__ = [
    "AccountRepoPort",
    "InviteRepoPort",
    "ProfileRepoPort",
    "TimePort",
    "UsernameSuffixPort",
    "VerificationSessionRepoPort",
]
