"""
Accounts component - invitee account linking and profile hydration.
"""

from ._impl import AccountLinker, username_base
from .component import run, run_hydrate, run_link
from .models import HydrateProfileInput, HydrateProfileOutput, LinkAccountInput, LinkAccountOutput
from .ports import UsernameSuffixPort

__all__ = [
    # Entry points
    "run",
    "run_hydrate",
    "run_link",
    # Input models
    "HydrateProfileInput",
    "LinkAccountInput",
    # Output models
    "HydrateProfileOutput",
    "LinkAccountOutput",
    # Ports
    "UsernameSuffixPort",
    # _impl re-exports
    "AccountLinker",
    "username_base",
]
