"""
Invite component port definitions.
"""

from single_invites.core.ports.db import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteRepoPort,
    VerificationSessionRepoPort,
)
from single_invites.core.ports.email import InviteMailerPort
from single_invites.core.ports.time import TimePort

__all__ = [
    "AccountRepoPort",
    "ActivationTokenRepoPort",
    "InviteMailerPort",
    "InviteRepoPort",
    "TimePort",
    "VerificationSessionRepoPort",
]
