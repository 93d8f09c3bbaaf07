"""
Activation component - post-approval activation tokens.

Invariants:
- I1: At most one unconsumed activation token per invite
- I2: A token completes at most once
- I3: Token and password failures leave no side effects
"""

from __future__ import annotations

from single_invites.domain.errors import not_found

from ._impl import ActivationIssuer
from .models import (
    CompleteActivationInput,
    CompleteActivationOutput,
    IssueActivationInput,
    IssueActivationOutput,
    VerifyActivationInput,
    VerifyActivationOutput,
)


def run_issue(inp: IssueActivationInput, *, issuer: ActivationIssuer) -> IssueActivationOutput:
    invite = issuer.invites.get_by_id(inp.invite_id)
    if invite is None:
        error = not_found("invite_not_found", f"Invite {inp.invite_id} not found")
        return IssueActivationOutput(activation=None, errors=[error], success=False)
    activation, errors = issuer.issue(invite, inp.actor_id)
    return IssueActivationOutput(activation=activation, errors=errors, success=len(errors) == 0)


def run_verify(inp: VerifyActivationInput, *, issuer: ActivationIssuer) -> VerifyActivationOutput:
    check = issuer.verify(inp.token)
    return VerifyActivationOutput(status=check.status, invite=check.invite)


def run_complete(
    inp: CompleteActivationInput, *, issuer: ActivationIssuer
) -> CompleteActivationOutput:
    check, completed, errors = issuer.complete(inp.token, inp.password)
    return CompleteActivationOutput(
        status=check.status,
        completed=completed,
        errors=errors,
        success=completed is not None,
    )


def run(
    inp: IssueActivationInput | VerifyActivationInput | CompleteActivationInput,
    *,
    issuer: ActivationIssuer,
) -> IssueActivationOutput | VerifyActivationOutput | CompleteActivationOutput:
    if isinstance(inp, IssueActivationInput):
        return run_issue(inp, issuer=issuer)
    elif isinstance(inp, VerifyActivationInput):
        return run_verify(inp, issuer=issuer)
    elif isinstance(inp, CompleteActivationInput):
        return run_complete(inp, issuer=issuer)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
