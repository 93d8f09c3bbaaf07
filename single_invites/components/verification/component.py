"""
Verification component - invitee submissions and moderator review.

Invariants:
- I1: Submissions require a valid invite token
- I2: Only moderators decide, and only on invites awaiting verification
- I3: A decided invite cannot be decided again
"""

from __future__ import annotations

from ._impl import VerificationWorkflow
from .models import (
    DecideInput,
    DecisionOutput,
    ResendActivationInput,
    ResendActivationOutput,
    SubmissionOutput,
    SubmitMediaInput,
    SubmitProfileInput,
)


def run_submit_profile(
    inp: SubmitProfileInput, *, workflow: VerificationWorkflow
) -> SubmissionOutput:
    status, session, errors = workflow.submit_profile(inp.token, inp.profile)
    return SubmissionOutput(
        token_status=status, session=session, errors=errors, success=session is not None
    )


def run_submit_media(inp: SubmitMediaInput, *, workflow: VerificationWorkflow) -> SubmissionOutput:
    status, session, errors = workflow.submit_media(inp.token, inp.media)
    return SubmissionOutput(
        token_status=status, session=session, errors=errors, success=session is not None
    )


def run_decide(inp: DecideInput, *, workflow: VerificationWorkflow) -> DecisionOutput:
    result, errors = workflow.decide(inp.invite_id, inp.actor_id, inp.decision, inp.reason)
    return DecisionOutput(result=result, errors=errors, success=len(errors) == 0)


def run_resend_activation(
    inp: ResendActivationInput, *, workflow: VerificationWorkflow
) -> ResendActivationOutput:
    activation, email_sent, errors = workflow.resend_activation(inp.invite_id, inp.actor_id)
    return ResendActivationOutput(
        activation=activation, email_sent=email_sent, errors=errors, success=len(errors) == 0
    )


def run(
    inp: SubmitProfileInput | SubmitMediaInput | DecideInput | ResendActivationInput,
    *,
    workflow: VerificationWorkflow,
) -> SubmissionOutput | DecisionOutput | ResendActivationOutput:
    if isinstance(inp, SubmitProfileInput):
        return run_submit_profile(inp, workflow=workflow)
    elif isinstance(inp, SubmitMediaInput):
        return run_submit_media(inp, workflow=workflow)
    elif isinstance(inp, DecideInput):
        return run_decide(inp, workflow=workflow)
    elif isinstance(inp, ResendActivationInput):
        return run_resend_activation(inp, workflow=workflow)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
