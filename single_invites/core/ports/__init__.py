# single-invites: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from single_invites.core.ports.db import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteEventRepoPort,
    InviteRepoPort,
    ProfileRepoPort,
    VerificationSessionRepoPort,
)
from single_invites.core.ports.email import (
    EmailPort,
    EmailResult,
    EmailStatus,
    InviteMailerPort,
)
from single_invites.core.ports.time import TimePort

__all__ = [
    # Storage
    "AccountRepoPort",
    "ActivationTokenRepoPort",
    "InviteEventRepoPort",
    "InviteRepoPort",
    "ProfileRepoPort",
    "VerificationSessionRepoPort",
    # Email
    "EmailPort",
    "EmailResult",
    "EmailStatus",
    "InviteMailerPort",
    # Time
    "TimePort",
]
