"""
Accounts component - links approved invitees to durable accounts.

Invariants:
- I1: An existing invite source is never overwritten
- I2: Couple-owned emails are never linked
- I3: Profile hydration never clears a field the invitee did not supply
"""

from __future__ import annotations

from ._impl import AccountLinker
from .models import HydrateProfileInput, HydrateProfileOutput, LinkAccountInput, LinkAccountOutput


def run_link(inp: LinkAccountInput, *, linker: AccountLinker) -> LinkAccountOutput:
    account, created, errors = linker.link_invitee_account(inp.invite, inp.password_hash)
    return LinkAccountOutput(
        account=account, created=created, errors=errors, success=len(errors) == 0
    )


def run_hydrate(inp: HydrateProfileInput, *, linker: AccountLinker) -> HydrateProfileOutput:
    profile, applied = linker.hydrate_profile_from_submission(inp.invite_id, inp.account_id)
    return HydrateProfileOutput(profile=profile, applied_fields=applied)


def run(
    inp: LinkAccountInput | HydrateProfileInput,
    *,
    linker: AccountLinker,
) -> LinkAccountOutput | HydrateProfileOutput:
    if isinstance(inp, LinkAccountInput):
        return run_link(inp, linker=linker)
    elif isinstance(inp, HydrateProfileInput):
        return run_hydrate(inp, linker=linker)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
