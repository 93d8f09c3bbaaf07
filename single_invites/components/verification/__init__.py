"""
Verification component - profile/media intake and moderation decisions.
"""

from ._impl import PROFILE_OPEN_STATUSES, VerificationWorkflow, validate_profile
from .component import (
    run,
    run_decide,
    run_resend_activation,
    run_submit_media,
    run_submit_profile,
)
from .models import (
    DecideInput,
    DecisionOutput,
    DecisionResult,
    ResendActivationInput,
    ResendActivationOutput,
    SubmissionOutput,
    SubmitMediaInput,
    SubmitProfileInput,
)
from .ports import InviteTokenVerifierPort

__all__ = [
    # Entry points
    "run",
    "run_decide",
    "run_resend_activation",
    "run_submit_media",
    "run_submit_profile",
    # Input models
    "DecideInput",
    "ResendActivationInput",
    "SubmitMediaInput",
    "SubmitProfileInput",
    # Output models
    "DecisionOutput",
    "DecisionResult",
    "ResendActivationOutput",
    "SubmissionOutput",
    # Ports
    "InviteTokenVerifierPort",
    # _impl re-exports
    "PROFILE_OPEN_STATUSES",
    "VerificationWorkflow",
    "validate_profile",
]
