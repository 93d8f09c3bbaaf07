"""
Activation component - issue, verify and redeem activation links.
"""

from ._impl import ISSUABLE_STATUSES, ActivationIssuer
from .component import run, run_complete, run_issue, run_verify
from .models import (
    ActivationCheck,
    CompleteActivationInput,
    CompleteActivationOutput,
    CompletedActivation,
    IssueActivationInput,
    IssueActivationOutput,
    IssuedActivation,
    VerifyActivationInput,
    VerifyActivationOutput,
)
from .ports import PasswordHasherPort

__all__ = [
    # Entry points
    "run",
    "run_complete",
    "run_issue",
    "run_verify",
    # Input models
    "CompleteActivationInput",
    "IssueActivationInput",
    "VerifyActivationInput",
    # Output models
    "ActivationCheck",
    "CompleteActivationOutput",
    "CompletedActivation",
    "IssueActivationOutput",
    "IssuedActivation",
    "VerifyActivationOutput",
    # Ports
    "PasswordHasherPort",
    # _impl re-exports
    "ISSUABLE_STATUSES",
    "ActivationIssuer",
]
