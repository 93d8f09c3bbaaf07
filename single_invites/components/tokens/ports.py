"""
Tokens component port definitions.
"""

from __future__ import annotations

from typing import Protocol


class StoredTokenPort(Protocol):
    """Anything persisted with a token hash and salt (Invite, ActivationToken)."""

    token_hash: str
    token_salt: str


class RandomSourcePort(Protocol):
    """Cryptographically secure random bytes."""

    def __call__(self, nbytes: int) -> bytes:
        ...
