"""
Events component port definitions.
"""

from single_invites.core.ports.db import InviteEventRepoPort
from single_invites.core.ports.time import TimePort

__all__ = ["InviteEventRepoPort", "TimePort"]
