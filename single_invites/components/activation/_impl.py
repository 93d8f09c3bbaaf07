"""
ActivationIssuer - second-stage activation tokens.

Issued only after moderator approval. The combined token embeds the invite
id, so verification loads that invite's activation rows and checks the
secret against every one of them. Issuing a new token retires any
outstanding one for the same invite.

Completion claims the token row and moves the invite to awaiting_couple
with conditional writes before the account is touched, so two concurrent
completions cannot both succeed and a revoked invite never gains an
account. If linking fails, both writes are undone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from single_invites.components.accounts import AccountLinker
from single_invites.components.events import EventLog
from single_invites.components.tokens import TokenCodec
from single_invites.core.side_effects import run_isolated
from single_invites.domain.entities import ActivationToken, Invite, InviteStatus
from single_invites.domain.errors import InviteError, conflict, not_found, validation
from single_invites.domain.policy import PolicyEngine
from single_invites.rules.models import Rules

from .models import ActivationCheck, CompletedActivation, IssuedActivation
from .ports import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteMailerPort,
    InviteRepoPort,
    PasswordHasherPort,
    TimePort,
)

logger = logging.getLogger(__name__)

# Invite states in which an activation token may be (re)issued
ISSUABLE_STATUSES: tuple[InviteStatus, ...] = ("awaiting_verification", "awaiting_activation")


class ActivationIssuer:
    def __init__(
        self,
        tokens: ActivationTokenRepoPort,
        invites: InviteRepoPort,
        accounts: AccountRepoPort,
        events: EventLog,
        linker: AccountLinker,
        hasher: PasswordHasherPort,
        policy: PolicyEngine,
        clock: TimePort,
        rules: Rules,
        codec: TokenCodec,
        mailer: InviteMailerPort | None = None,
    ):
        self.tokens = tokens
        self.invites = invites
        self.accounts = accounts
        self.events = events
        self.linker = linker
        self.hasher = hasher
        self.policy = policy
        self.clock = clock
        self.rules = rules
        self.codec = codec
        self.mailer = mailer

    # --- Issue ---

    def issue(
        self, invite: Invite, actor_id: UUID | None = None
    ) -> tuple[IssuedActivation | None, list[InviteError]]:
        """
        Mint a fresh activation token for an approved invite.

        Any outstanding unconsumed token for the invite is invalidated in the
        same write. The expiry window is independent of the invite's own.

        Returns:
            Tuple of (activation, errors). Activation is None if errors.
        """
        if invite.status not in ISSUABLE_STATUSES:
            return None, [
                conflict(
                    "invalid_status",
                    f"Cannot issue an activation link for an invite in '{invite.status}' status",
                    current_status=invite.status,
                )
            ]

        now = self.clock.now_utc()
        issued = self.codec.issue(invite.id)
        row = ActivationToken(
            id=uuid4(),
            invite_id=invite.id,
            token_hash=issued.hash,
            token_salt=issued.salt,
            expires_at=now + timedelta(hours=self.rules.activation.ttl_hours),
            created_by_actor_id=actor_id,
            created_at=now,
        )
        self.tokens.replace_outstanding(row, now)

        self.events.append(
            invite.id,
            "invite.activation_token_created",
            actor_id,
            {"activation_token_id": str(row.id), "expires_at": row.expires_at.isoformat()},
        )
        logger.info("Issued activation token %s for invite %s", row.id, invite.id)

        return IssuedActivation(
            token_id=row.id,
            invite_id=invite.id,
            token=issued.combined_token,
            link=self.rules.links.activation_link(issued.combined_token),
            expires_at=row.expires_at,
        ), []

    def send_activation_email(self, invite: Invite, activation: IssuedActivation) -> bool:
        """Fire-and-forget activation email; True when dispatched without failure."""
        if self.mailer is None:
            return False
        inviter = self.accounts.get_by_id(invite.inviter_account_id)
        if inviter is not None:
            inviter_name = inviter.display_name()
        else:
            inviter_name = f"A {self.rules.email.site_name} couple"
        return run_isolated(
            f"activation email for invite {invite.id}",
            self.mailer.send_activation,
            invite.invitee_email,
            activation.link,
            inviter_name,
            self.rules.invites.role_labels.get(invite.requested_role, invite.requested_role),
            activation.expires_at,
        )

    def resend(
        self, invite_id: UUID, actor_id: UUID | None = None
    ) -> tuple[IssuedActivation | None, bool, list[InviteError]]:
        """
        Replace the outstanding activation token and email the new link.

        Returns:
            Tuple of (activation, email_sent, errors).
        """
        invite = self.invites.get_by_id(invite_id)
        if invite is None:
            return None, False, [not_found("invite_not_found", f"Invite {invite_id} not found")]
        if invite.status != "awaiting_activation":
            return None, False, [
                conflict(
                    "invalid_status",
                    f"Activation links can only be resent while awaiting activation, "
                    f"not '{invite.status}'",
                    current_status=invite.status,
                )
            ]

        activation, errors = self.issue(invite, actor_id)
        if activation is None:
            return None, False, errors
        return activation, self.send_activation_email(invite, activation), []

    # --- Verify ---

    def verify(self, combined_token: str) -> ActivationCheck:
        """Classify an activation token as valid, invalid, expired or consumed."""
        parsed = self.codec.parse(combined_token)
        if parsed is None:
            return ActivationCheck(status="invalid")

        rows = self.tokens.list_for_invite(parsed.subject_id)
        match = self.codec.verify(parsed, rows)
        if match is None:
            return ActivationCheck(status="invalid")

        row = rows[match]
        if row.consumed_at is not None:
            return ActivationCheck(status="consumed", token=row)
        if row.expires_at <= self.clock.now_utc():
            return ActivationCheck(status="expired", token=row)

        invite = self.invites.get_by_id(row.invite_id)
        if invite is None:
            return ActivationCheck(status="invalid")
        if invite.status != "awaiting_activation":
            if invite.status in ("awaiting_couple", "completed"):
                return ActivationCheck(status="consumed", token=row)
            return ActivationCheck(status="invalid", token=row)

        return ActivationCheck(status="valid", invite=invite, token=row)

    # --- Complete ---

    def complete(
        self, combined_token: str, password: str
    ) -> tuple[ActivationCheck, CompletedActivation | None, list[InviteError]]:
        """
        Set the invitee's password and link their account.

        Token failures and password violations return before anything is
        written. The token claim and the invite transition happen before
        linking; if linking fails or raises, both are undone so the invitee
        can retry.

        Returns:
            Tuple of (check, completed, errors). Completed is None unless the
            check was valid and no errors occurred.
        """
        check = self.verify(combined_token)
        if not check.valid or check.invite is None or check.token is None:
            return check, None, []

        violations = self.policy.password_violations(password)
        if violations:
            return check, None, [
                validation(
                    "weak_password",
                    "Password must contain " + ", ".join(violations) + ".",
                    field="password",
                )
            ]

        invite = check.invite
        password_hash = self.hasher.hash_password(password)
        now = self.clock.now_utc()

        claimed = self.tokens.claim(check.token.id, now)
        if claimed is None:
            return ActivationCheck(status="consumed", token=check.token), None, []

        moved = self.invites.transition(
            invite.id, ["awaiting_activation"], "awaiting_couple", now
        )
        if moved is None:
            self.tokens.release(claimed.id, now)
            current = self.invites.get_by_id(invite.id)
            current_status = current.status if current else invite.status
            return check, None, [
                conflict(
                    "invalid_status",
                    f"Invite is '{current_status}', not awaiting activation",
                    current_status=current_status,
                )
            ]

        try:
            account, created, errors = self.linker.link_invitee_account(moved, password_hash)
        except Exception:
            self._undo_claim(invite.id, claimed.id, now)
            raise
        if errors or account is None:
            self._undo_claim(invite.id, claimed.id, now)
            return check, None, errors

        self.events.append(
            invite.id,
            "invite.user_linked",
            account.id,
            {"account_id": str(account.id), "created": created},
        )
        _, applied = self.linker.hydrate_profile_from_submission(invite.id, account.id)
        self.events.append(
            invite.id,
            "invite.activation_completed",
            account.id,
            {"activation_token_id": str(claimed.id), "profile_fields": list(applied)},
        )
        self.events.status_changed(
            invite.id, "awaiting_activation", "awaiting_couple", account.id, stage="activation"
        )
        updated = self.invites.get_by_id(invite.id) or moved

        notified = False
        if self.mailer is not None:
            notified = run_isolated(
                f"admin notification for invite {invite.id}",
                self.mailer.notify_admin_new_member,
                "single",
                invite.requested_role,
                invite.inviter_account_id,
                invite.id,
                account.id,
            )

        logger.info("Activation completed for invite %s (account %s)", invite.id, account.id)
        return check, CompletedActivation(
            account_id=account.id,
            invite=updated,
            created=created,
            profile_fields=applied,
            admin_notified=notified,
        ), []

    def _undo_claim(self, invite_id: UUID, token_id: UUID, claimed_at: datetime) -> None:
        # Reverse of the claim step only; not an edge of the status graph
        self.invites.transition(invite_id, ["awaiting_couple"], "awaiting_activation", claimed_at)
        self.tokens.release(token_id, claimed_at)
