"""
Tokens component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

# Separator between subject id and secret; never produced by base64url
TOKEN_SEPARATOR = "."


@dataclass(frozen=True)
class TokenConfig:
    """Entropy settings for issued tokens."""

    secret_bytes: int = 32
    salt_bytes: int = 16

    def __post_init__(self) -> None:
        if self.secret_bytes < 32:
            raise ValueError("secret_bytes must be at least 32")
        if self.salt_bytes < 16:
            raise ValueError("salt_bytes must be at least 16")


@dataclass(frozen=True)
class ParsedToken:
    """A combined token split into the addressed row id and the bearer secret."""

    subject_id: UUID
    secret: str


@dataclass(frozen=True)
class IssuedToken:
    """
    Result of issuing a token.

    Only `combined_token` is handed to the holder; `salt` and `hash` (both
    hex) are what gets stored.
    """

    combined_token: str
    salt: str
    hash: str


@dataclass(frozen=True)
class TokenCandidate:
    """A stored (hash, salt) pair to verify a secret against."""

    hash: str
    salt: str


# --- Input Models ---


@dataclass(frozen=True)
class IssueTokenInput:
    subject_id: UUID


@dataclass(frozen=True)
class VerifyTokenInput:
    combined_token: str
    candidates: tuple[TokenCandidate, ...]


# --- Output Models ---


@dataclass(frozen=True)
class VerifyTokenOutput:
    match_index: int | None

    @property
    def matched(self) -> bool:
        return self.match_index is not None
