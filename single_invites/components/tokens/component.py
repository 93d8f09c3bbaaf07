"""
Tokens component - opaque bearer token issuance and verification.

Invariants:
- I1: Plaintext secrets are never stored; only hash and salt are
- I2: Each issuance uses a fresh salt
- I3: Malformed tokens never match
"""

from __future__ import annotations

from ._impl import TokenCodec
from .models import IssuedToken, IssueTokenInput, VerifyTokenInput, VerifyTokenOutput


def run_issue(inp: IssueTokenInput, *, codec: TokenCodec | None = None) -> IssuedToken:
    """Issue a token addressing `inp.subject_id`."""
    codec = codec or TokenCodec()
    return codec.issue(inp.subject_id)


def run_verify(inp: VerifyTokenInput, *, codec: TokenCodec | None = None) -> VerifyTokenOutput:
    """Verify a combined token against stored candidates."""
    codec = codec or TokenCodec()
    return VerifyTokenOutput(match_index=codec.verify(inp.combined_token, inp.candidates))


def run(
    inp: IssueTokenInput | VerifyTokenInput,
    *,
    codec: TokenCodec | None = None,
) -> IssuedToken | VerifyTokenOutput:
    if isinstance(inp, IssueTokenInput):
        return run_issue(inp, codec=codec)
    elif isinstance(inp, VerifyTokenInput):
        return run_verify(inp, codec=codec)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
