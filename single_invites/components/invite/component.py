"""
Invite component - single-member invite lifecycle orchestration.

Invariants:
- I1: An inviter never holds more than `max_active` non-terminal invites
- I2: Terminal invites (completed/revoked/declined/expired) never change status
- I3: Only the original inviter may revoke
- I4: Token outcomes are values (valid/invalid/expired/consumed), never errors
"""

from __future__ import annotations

from ._impl import InviteRegistry
from .models import (
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
    ModerationListOutput,
    RevokeInviteInput,
    TokenCheckOutput,
    TransitionStatusInput,
    VerifyInviteTokenInput,
)


def run_create(inp: CreateInviteInput, *, registry: InviteRegistry) -> CreateInviteOutput:
    created, errors = registry.create_invite(
        inp.inviter_id,
        inp.invitee_email,
        inp.role,
        ttl_hours=inp.ttl_hours,
        created_ip=inp.created_ip,
        user_agent=inp.user_agent,
    )
    return CreateInviteOutput(created=created, errors=errors, success=len(errors) == 0)


def run_list(inp: ListInvitesInput, *, registry: InviteRegistry) -> InviteListOutput:
    return InviteListOutput(invites=tuple(registry.list_invites(inp.inviter_id)))


def run_list_for_moderation(
    inp: ListForModerationInput, *, registry: InviteRegistry
) -> ModerationListOutput:
    return ModerationListOutput(items=tuple(registry.list_for_moderation(inp.statuses)))


def run_revoke(inp: RevokeInviteInput, *, registry: InviteRegistry) -> InviteChangeOutput:
    invite, changed, errors = registry.revoke_invite(inp.invite_id, inp.actor_id)
    return InviteChangeOutput(
        invite=invite, changed=changed, errors=errors, success=len(errors) == 0
    )


def run_verify_token(inp: VerifyInviteTokenInput, *, registry: InviteRegistry) -> TokenCheckOutput:
    status, invite = registry.verify_invite_token(inp.token)
    return TokenCheckOutput(status=status, invite=invite)


def run_decline(inp: DeclineInviteInput, *, registry: InviteRegistry) -> DeclineOutput:
    status, invite, errors = registry.decline(inp.token, inp.reason)
    return DeclineOutput(
        token_status=status, invite=invite, errors=errors, success=invite is not None
    )


def run_expire(inp: ExpireLapsedInput, *, registry: InviteRegistry) -> ExpireOutput:
    return ExpireOutput(expired_count=registry.expire_lapsed(inp.now))


def run_transition(inp: TransitionStatusInput, *, registry: InviteRegistry) -> InviteChangeOutput:
    invite, errors = registry.transition_status(
        inp.invite_id, inp.new_status, inp.actor_id, inp.metadata
    )
    return InviteChangeOutput(
        invite=invite, changed=invite is not None, errors=errors, success=len(errors) == 0
    )


def run(
    inp: (
        CreateInviteInput
        | ListInvitesInput
        | ListForModerationInput
        | RevokeInviteInput
        | VerifyInviteTokenInput
        | DeclineInviteInput
        | ExpireLapsedInput
        | TransitionStatusInput
    ),
    *,
    registry: InviteRegistry,
) -> (
    CreateInviteOutput
    | InviteListOutput
    | ModerationListOutput
    | InviteChangeOutput
    | TokenCheckOutput
    | DeclineOutput
    | ExpireOutput
):
    if isinstance(inp, CreateInviteInput):
        return run_create(inp, registry=registry)
    elif isinstance(inp, ListInvitesInput):
        return run_list(inp, registry=registry)
    elif isinstance(inp, ListForModerationInput):
        return run_list_for_moderation(inp, registry=registry)
    elif isinstance(inp, RevokeInviteInput):
        return run_revoke(inp, registry=registry)
    elif isinstance(inp, VerifyInviteTokenInput):
        return run_verify_token(inp, registry=registry)
    elif isinstance(inp, DeclineInviteInput):
        return run_decline(inp, registry=registry)
    elif isinstance(inp, ExpireLapsedInput):
        return run_expire(inp, registry=registry)
    elif isinstance(inp, TransitionStatusInput):
        return run_transition(inp, registry=registry)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
