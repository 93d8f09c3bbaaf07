"""
AccountLinker - turns an approved invitee into a durable single account.

Key behaviors:
- Lookup is by normalized (trimmed, lower-cased) invitee email
- An existing single account is reused: password replaced, email marked
  verified, invite source recorded only if none is set yet
- An email owned by a couple account is a conflict; nothing is written
- New usernames derive from the email local part, with a bounded number of
  suffixed retries before falling back to a random name
- Profile hydration only writes fields the invitee actually supplied
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Iterator
from typing import Any
from uuid import UUID, uuid4

from single_invites.domain.entities import (
    PROFILE_FIELDS,
    Account,
    Invite,
    SingleProfile,
)
from single_invites.domain.errors import InviteError, UsernameTakenError, conflict, not_found
from single_invites.domain.sanitize import normalize_email, sanitize_profile
from single_invites.rules.models import AccountRules, ProfileRules

from .ports import (
    AccountRepoPort,
    InviteRepoPort,
    ProfileRepoPort,
    TimePort,
    UsernameSuffixPort,
    VerificationSessionRepoPort,
)

logger = logging.getLogger(__name__)

_SUFFIX_LENGTH = 4


def _random_suffix() -> str:
    return f"{secrets.randbelow(10**_SUFFIX_LENGTH):0{_SUFFIX_LENGTH}d}"


def username_base(email: str, rules: AccountRules) -> str:
    """`{prefix}{alphanumeric local part}` capped at the configured length."""
    local = normalize_email(email).partition("@")[0]
    slug = re.sub(r"[^a-z0-9]", "", local) or "single"
    return f"{rules.username_prefix}{slug}"[: rules.username_max_length]


class AccountLinker:
    def __init__(
        self,
        accounts: AccountRepoPort,
        profiles: ProfileRepoPort,
        invites: InviteRepoPort,
        sessions: VerificationSessionRepoPort,
        clock: TimePort,
        account_rules: AccountRules | None = None,
        profile_rules: ProfileRules | None = None,
        suffix: UsernameSuffixPort = _random_suffix,
    ):
        self.accounts = accounts
        self.profiles = profiles
        self.invites = invites
        self.sessions = sessions
        self.clock = clock
        self.account_rules = account_rules or AccountRules()
        self.profile_rules = profile_rules or ProfileRules()
        self._suffix = suffix

    # --- Usernames ---

    def username_candidates(self, email: str) -> Iterator[str]:
        base = username_base(email, self.account_rules)
        yield base
        trimmed = base[: self.account_rules.username_max_length - _SUFFIX_LENGTH]
        for _ in range(self.account_rules.username_attempts - 1):
            yield f"{trimmed}{self._suffix()}"

    def _fallback_username(self) -> str:
        return f"{self.account_rules.username_prefix}{uuid4().hex[:10]}"

    def _create_account(self, invite: Invite, email: str, password_hash: str) -> Account:
        now = self.clock.now_utc()

        for username in self.username_candidates(email):
            if self.accounts.username_exists(username):
                continue
            account = Account(
                kind="single",
                username=username,
                email=email,
                password_hash=password_hash,
                email_verified=True,
                invite_source_account_id=invite.inviter_account_id,
                created_at=now,
                updated_at=now,
            )
            try:
                return self.accounts.save(account)
            except UsernameTakenError:
                # Taken between the check and the insert
                logger.info("Username %s taken concurrently; trying next candidate", username)

        account = Account(
            kind="single",
            username=self._fallback_username(),
            email=email,
            password_hash=password_hash,
            email_verified=True,
            invite_source_account_id=invite.inviter_account_id,
            created_at=now,
            updated_at=now,
        )
        return self.accounts.save(account)

    # --- Linking ---

    def link_invitee_account(
        self, invite: Invite, password_hash: str
    ) -> tuple[Account | None, bool, list[InviteError]]:
        """
        Resolve the invitee's account and record it on the invite.

        Returns:
            Tuple of (account, created, errors). Account is None if errors.
        """
        email = normalize_email(invite.invitee_email)
        matches = self.accounts.get_by_email(email)

        if any(a.kind == "couple" for a in matches):
            return None, False, [
                conflict(
                    "email_belongs_to_couple",
                    "This email is already associated with a couple account.",
                )
            ]

        now = self.clock.now_utc()
        existing = next((a for a in matches if a.kind == "single"), None)
        created = existing is None

        if existing is not None:
            account = self.accounts.attach_single(
                existing.id, password_hash, invite.inviter_account_id, now
            )
            if account is None:
                return None, False, [
                    not_found("account_not_found", f"Account {existing.id} no longer exists")
                ]
        else:
            account = self._create_account(invite, email, password_hash)

        self.invites.set_linked_account(invite.id, account.id, now)
        logger.info(
            "Linked invite %s to %s single account %s",
            invite.id,
            "new" if created else "existing",
            account.id,
        )
        return account, created, []

    # --- Profile ---

    def hydrate_profile_from_submission(
        self, invite_id: UUID, account_id: UUID
    ) -> tuple[SingleProfile | None, tuple[str, ...]]:
        """
        Upsert the account's profile from the invite's submitted profile.

        Only fields present in the submission are written, so a field the
        invitee left blank never clears an existing value.

        Returns:
            Tuple of (profile, applied_fields). Profile is None when there
            was nothing to apply.
        """
        session = self.sessions.get_by_invite(invite_id)
        if session is None or session.submitted_profile is None:
            return None, ()

        invite = self.invites.get_by_id(invite_id)
        inviter_id = invite.inviter_account_id if invite else None

        profile = sanitize_profile(session.submitted_profile, self.profile_rules)
        fields: dict[str, Any] = {
            name: getattr(profile, name)
            for name in PROFILE_FIELDS
            if getattr(profile, name) is not None
        }
        if not fields:
            return None, ()

        stored = self.profiles.upsert_fields(account_id, inviter_id, fields, self.clock.now_utc())
        return stored, tuple(fields)
