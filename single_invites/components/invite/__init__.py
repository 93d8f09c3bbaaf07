"""
Invite component - create, list, revoke, decline and expire single invites.
"""

from ._impl import INELIGIBILITY_MESSAGES, SWEEPABLE_STATUSES, InviteRegistry
from .component import (
    run,
    run_create,
    run_decline,
    run_expire,
    run_list,
    run_list_for_moderation,
    run_revoke,
    run_transition,
    run_verify_token,
)
from .models import (
    CreatedInvite,
    CreateInviteInput,
    CreateInviteOutput,
    DeclineInviteInput,
    DeclineOutput,
    ExpireLapsedInput,
    ExpireOutput,
    InviteChangeOutput,
    InviteListOutput,
    ListForModerationInput,
    ListInvitesInput,
    ModerationItem,
    ModerationListOutput,
    RevokeInviteInput,
    TokenCheckOutput,
    TransitionStatusInput,
    VerifyInviteTokenInput,
)

__all__ = [
    # Entry points
    "run",
    "run_create",
    "run_decline",
    "run_expire",
    "run_list",
    "run_list_for_moderation",
    "run_revoke",
    "run_transition",
    "run_verify_token",
    # Input models
    "CreateInviteInput",
    "DeclineInviteInput",
    "ExpireLapsedInput",
    "ListForModerationInput",
    "ListInvitesInput",
    "RevokeInviteInput",
    "TransitionStatusInput",
    "VerifyInviteTokenInput",
    # Output models
    "CreatedInvite",
    "CreateInviteOutput",
    "DeclineOutput",
    "ExpireOutput",
    "InviteChangeOutput",
    "InviteListOutput",
    "ModerationItem",
    "ModerationListOutput",
    "TokenCheckOutput",
    # _impl re-exports
    "INELIGIBILITY_MESSAGES",
    "SWEEPABLE_STATUSES",
    "InviteRegistry",
]
