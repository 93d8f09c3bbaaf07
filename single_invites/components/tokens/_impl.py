"""
TokenCodec - opaque bearer tokens of the form `{subject_id}.{secret}`.

Key behaviors:
- The secret is base64url without padding (>= 32 random bytes), so the
  `.` separator can never occur inside it
- Stored hash = sha256(secret || salt) with a fresh salt per issuance
- Verification checks every candidate with a constant-time comparison and
  does not stop at the first match
- Malformed tokens fail closed (None) without touching storage
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import math
import re
import secrets
from collections.abc import Sequence
from uuid import UUID

from .models import (
    TOKEN_SEPARATOR,
    IssuedToken,
    ParsedToken,
    TokenCandidate,
    TokenConfig,
)
from .ports import RandomSourcePort, StoredTokenPort

_SECRET_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def hash_secret(secret: str, salt_hex: str) -> str:
    digest = hashlib.sha256()
    digest.update(secret.encode("utf-8"))
    digest.update(bytes.fromhex(salt_hex))
    return digest.hexdigest()


def _as_candidate(candidate: TokenCandidate | StoredTokenPort) -> TokenCandidate:
    if isinstance(candidate, TokenCandidate):
        return candidate
    return TokenCandidate(hash=candidate.token_hash, salt=candidate.token_salt)


class TokenCodec:
    def __init__(
        self,
        config: TokenConfig | None = None,
        random_bytes: RandomSourcePort = secrets.token_bytes,
    ):
        self.config = config or TokenConfig()
        self._random_bytes = random_bytes
        self._min_secret_length = math.ceil(self.config.secret_bytes * 4 / 3)

    def issue(self, subject_id: UUID) -> IssuedToken:
        secret = _b64url(self._random_bytes(self.config.secret_bytes))
        salt = self._random_bytes(self.config.salt_bytes).hex()
        return IssuedToken(
            combined_token=f"{subject_id}{TOKEN_SEPARATOR}{secret}",
            salt=salt,
            hash=hash_secret(secret, salt),
        )

    def parse(self, combined_token: str) -> ParsedToken | None:
        """Split a combined token; None for anything malformed."""
        if not isinstance(combined_token, str):
            return None

        subject, sep, secret = combined_token.strip().partition(TOKEN_SEPARATOR)
        if not sep or not subject or not secret:
            return None

        try:
            subject_id = UUID(subject)
        except ValueError:
            return None
        # Reject braces/urn forms so one id has exactly one spelling
        if str(subject_id) != subject.lower():
            return None

        if len(secret) < self._min_secret_length or not _SECRET_PATTERN.match(secret):
            return None

        return ParsedToken(subject_id=subject_id, secret=secret)

    def verify(
        self,
        token: str | ParsedToken,
        candidates: Sequence[TokenCandidate | StoredTokenPort],
    ) -> int | None:
        """
        Index of the candidate whose stored hash matches the token's secret.

        All candidates are hashed and compared even after a match so timing
        does not reveal which row matched.
        """
        parsed = token if isinstance(token, ParsedToken) else self.parse(token)
        if parsed is None:
            return None

        match_index: int | None = None
        for index, raw in enumerate(candidates):
            candidate = _as_candidate(raw)
            try:
                computed = hash_secret(parsed.secret, candidate.salt)
            except ValueError:
                # Corrupt salt in storage; the row can never match
                continue
            if hmac.compare_digest(computed, candidate.hash) and match_index is None:
                match_index = index

        return match_index
