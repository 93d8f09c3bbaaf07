"""
Tokens component - opaque `{id}.{secret}` bearer tokens.
"""

from ._impl import TokenCodec, hash_secret
from .component import run, run_issue, run_verify
from .models import (
    TOKEN_SEPARATOR,
    IssuedToken,
    IssueTokenInput,
    ParsedToken,
    TokenCandidate,
    TokenConfig,
    VerifyTokenInput,
    VerifyTokenOutput,
)
from .ports import RandomSourcePort, StoredTokenPort

__all__ = [
    # Entry points
    "run",
    "run_issue",
    "run_verify",
    # Input models
    "IssueTokenInput",
    "VerifyTokenInput",
    # Output models
    "IssuedToken",
    "ParsedToken",
    "VerifyTokenOutput",
    # Config / values
    "TOKEN_SEPARATOR",
    "TokenCandidate",
    "TokenConfig",
    # Ports
    "RandomSourcePort",
    "StoredTokenPort",
    # _impl re-exports
    "TokenCodec",
    "hash_secret",
]
