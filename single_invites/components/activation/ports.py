"""
Activation component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from single_invites.core.ports.db import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteRepoPort,
)
from single_invites.core.ports.email import InviteMailerPort
from single_invites.core.ports.time import TimePort


class PasswordHasherPort(Protocol):
    def hash_password(self, password: str) -> str:
        ...


__all__ = [
    "AccountRepoPort",
    "ActivationTokenRepoPort",
    "InviteMailerPort",
    "InviteRepoPort",
    "PasswordHasherPort",
    "TimePort",
]
