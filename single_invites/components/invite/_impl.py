"""
InviteRegistry - top-level orchestration of single-member invites.

Key behaviors:
- Only eligible couple accounts may invite (see PolicyEngine)
- The active-invite cap is enforced by one conditional insert, so
  concurrent creates cannot overshoot it
- Every status change is a compare-and-set on the current status and is
  followed by an `invite.status_changed` event
- Terminal invites never move; revoking one is a no-op
- Invite and side-effect emails are fire-and-forget
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from single_invites.components.events import EventLog, EventType
from single_invites.components.tokens import TokenCodec
from single_invites.core.side_effects import run_isolated
from single_invites.domain.entities import Invite, InviteEvent, InviteStatus, TokenStatus
from single_invites.domain.errors import (
    InviteError,
    conflict,
    forbidden,
    not_found,
    validation,
)
from single_invites.domain.policy import PolicyEngine
from single_invites.domain.sanitize import is_valid_email, normalize_email
from single_invites.domain.transitions import (
    ACTIVE_STATUSES,
    can_transition,
    is_terminal,
    sources_for,
)
from single_invites.rules.models import Rules

from .models import CreatedInvite, ModerationItem
from .ports import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteMailerPort,
    InviteRepoPort,
    TimePort,
    VerificationSessionRepoPort,
)

logger = logging.getLogger(__name__)

# Lapsed invites in these statuses are swept to `expired`; later stages are
# governed by their activation token's own expiry.
SWEEPABLE_STATUSES: tuple[InviteStatus, ...] = ("pending", "awaiting_verification")

INELIGIBILITY_MESSAGES = {
    "not_couple_account": "Only couple accounts can invite single members.",
    "emails_not_verified": "Both partner emails must be verified before inviting.",
    "membership_required": "A paid membership is required to invite single members.",
    "membership_expired": "Your membership has expired; renew it to invite single members.",
}


class InviteRegistry:
    def __init__(
        self,
        invites: InviteRepoPort,
        sessions: VerificationSessionRepoPort,
        activation_tokens: ActivationTokenRepoPort,
        accounts: AccountRepoPort,
        events: EventLog,
        policy: PolicyEngine,
        clock: TimePort,
        rules: Rules,
        codec: TokenCodec,
        mailer: InviteMailerPort | None = None,
    ):
        self.invites = invites
        self.sessions = sessions
        self.activation_tokens = activation_tokens
        self.accounts = accounts
        self.events = events
        self.policy = policy
        self.clock = clock
        self.rules = rules
        self.codec = codec
        self.mailer = mailer

    def role_label(self, role: str) -> str:
        return self.rules.invites.role_labels.get(role, role)

    def clamp_ttl(self, ttl_hours: int | None) -> int:
        cfg = self.rules.invites
        if ttl_hours is None:
            return cfg.default_ttl_hours
        return max(cfg.min_ttl_hours, min(cfg.max_ttl_hours, int(ttl_hours)))

    # --- Create ---

    def create_invite(
        self,
        inviter_id: UUID,
        invitee_email: str,
        role: str,
        ttl_hours: int | None = None,
        created_ip: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[CreatedInvite | None, list[InviteError]]:
        """
        Create an invite and send the invitee their link.

        Validation runs before eligibility, eligibility before the cap, and
        nothing is written until all three pass.

        Returns:
            Tuple of (created, errors). Created is None if errors.
        """
        errors: list[InviteError] = []
        email = normalize_email(invitee_email or "")
        if not email or not is_valid_email(email):
            errors.append(
                validation("invalid_email", "A valid invitee email is required.", "invitee_email")
            )
        if role not in self.rules.invites.role_labels:
            errors.append(validation("invalid_role", f"Unknown invite role: {role!r}", "role"))
        if errors:
            return None, errors

        inviter = self.accounts.get_by_id(inviter_id)
        if inviter is None:
            return None, [not_found("inviter_not_found", f"Account {inviter_id} not found")]

        now = self.clock.now_utc()
        reasons = self.policy.inviter_ineligibility(inviter, now)
        if reasons:
            return None, [
                forbidden(
                    "inviter_ineligible",
                    " ".join(INELIGIBILITY_MESSAGES[r] for r in reasons),
                    reasons=reasons,
                )
            ]

        invite_id = uuid4()
        issued = self.codec.issue(invite_id)
        invite = Invite(
            id=invite_id,
            inviter_account_id=inviter.id,
            invitee_email=email,
            requested_role=role,
            status="pending",
            token_hash=issued.hash,
            token_salt=issued.salt,
            expires_at=now + timedelta(hours=self.clamp_ttl(ttl_hours)),
            created_ip=created_ip,
            created_user_agent=user_agent,
            created_at=now,
            updated_at=now,
        )

        limit = self.rules.invites.max_active
        if not self.invites.create_with_cap(invite, ACTIVE_STATUSES, limit):
            active = self.invites.count_for_inviter(inviter.id, ACTIVE_STATUSES)
            return None, [
                conflict(
                    "invite_limit_reached",
                    f"You already have {active} active single invites (limit {limit}).",
                    active_count=active,
                    limit=limit,
                )
            ]

        self.events.append(
            invite.id,
            "invite.created",
            inviter.id,
            {
                "invitee_email": email,
                "requested_role": role,
                "expires_at": invite.expires_at.isoformat(),
                "plan_code": self.rules.invites.plan_code,
            },
        )

        link = self.rules.links.invite_link(issued.combined_token)
        email_sent = False
        if self.mailer is not None:
            email_sent = run_isolated(
                f"invite email for invite {invite.id}",
                self.mailer.send_invite,
                email,
                link,
                inviter.display_name(),
                self.role_label(role),
                invite.expires_at,
            )

        logger.info("Invite %s created by %s (%s)", invite.id, inviter.id, role)
        return CreatedInvite(
            invite=invite,
            token=issued.combined_token,
            link=link,
            role_label=self.role_label(role),
            email_sent=email_sent,
        ), []

    # --- Read ---

    def list_invites(self, inviter_id: UUID) -> list[Invite]:
        return self.invites.list_for_inviter(inviter_id)

    def list_for_moderation(
        self, statuses: Sequence[InviteStatus] | None = None
    ) -> list[ModerationItem]:
        """Invites in the given statuses (newest first) with their verification sessions."""
        wanted = list(statuses or self.rules.invites.default_moderation_statuses)
        invites = self.invites.list_by_status(wanted)
        sessions = self.sessions.get_for_invites(i.id for i in invites)
        return [
            ModerationItem(
                invite=i, session=sessions.get(i.id), role_label=self.role_label(i.requested_role)
            )
            for i in invites
        ]

    def history(self, invite_id: UUID) -> list[InviteEvent]:
        return self.events.history(invite_id)

    # --- Token ---

    def verify_invite_token(self, combined_token: str) -> tuple[TokenStatus, Invite | None]:
        """
        Classify an invite token.

        Malformed tokens, unknown ids and wrong secrets are all `invalid`,
        so a caller cannot probe which invite ids exist.
        """
        parsed = self.codec.parse(combined_token)
        if parsed is None:
            return "invalid", None

        invite = self.invites.get_by_id(parsed.subject_id)
        if invite is None or self.codec.verify(parsed, [invite]) is None:
            return "invalid", None

        if invite.status in ("awaiting_couple", "completed"):
            return "consumed", None
        if invite.status in ("revoked", "declined"):
            return "invalid", None
        if invite.status == "expired" or invite.expires_at <= self.clock.now_utc():
            return "expired", None

        return "valid", invite

    # --- Side exits ---

    def _exit(
        self,
        invite: Invite,
        to_status: InviteStatus,
        event_type: EventType,
        actor_id: UUID | None,
        metadata: dict[str, Any],
    ) -> Invite | None:
        now = self.clock.now_utc()
        moved = self.invites.transition(
            invite.id, sources_for(to_status), to_status, now, stamp_consumed=True
        )
        if moved is None:
            return None
        self.activation_tokens.invalidate_outstanding(invite.id, now)
        self.events.append(
            invite.id, event_type, actor_id, {"previous_status": invite.status, **metadata}
        )
        self.events.status_changed(invite.id, invite.status, to_status, actor_id, **metadata)
        return moved

    def revoke_invite(
        self, invite_id: UUID, actor_id: UUID
    ) -> tuple[Invite | None, bool, list[InviteError]]:
        """
        Revoke an invite on behalf of its inviter.

        Returns:
            Tuple of (invite, changed, errors). `changed` is False when the
            invite was already terminal.
        """
        invite = self.invites.get_by_id(invite_id)
        if invite is None:
            return None, False, [not_found("invite_not_found", f"Invite {invite_id} not found")]
        if invite.inviter_account_id != actor_id:
            return None, False, [
                forbidden("not_inviter", "Only the inviting account can revoke this invite.")
            ]
        if is_terminal(invite.status):
            return invite, False, []

        moved = self._exit(invite, "revoked", "invite.revoked", actor_id, {})
        if moved is None:
            # Lost a race; report whatever the invite became
            current = self.invites.get_by_id(invite_id) or invite
            return current, False, []

        logger.info("Invite %s revoked by %s", invite_id, actor_id)
        return moved, True, []

    def decline(
        self, combined_token: str, reason: str | None = None
    ) -> tuple[TokenStatus, Invite | None, list[InviteError]]:
        """
        Invitee-initiated decline.

        Returns:
            Tuple of (token_status, invite, errors).
        """
        status, invite = self.verify_invite_token(combined_token)
        if invite is None:
            return status, None, []

        reason = reason.strip() if reason and reason.strip() else None
        moved = self._exit(invite, "declined", "invite.declined", None, {"reason": reason})
        if moved is None:
            current = self.invites.get_by_id(invite.id)
            current_status = current.status if current else invite.status
            return status, None, [
                conflict(
                    "invalid_status",
                    f"Invite can no longer be declined (it is '{current_status}')",
                    current_status=current_status,
                )
            ]

        logger.info("Invite %s declined by invitee", invite.id)
        return status, moved, []

    def expire_lapsed(self, now: datetime | None = None) -> int:
        """Move lapsed pending/awaiting_verification invites to `expired`."""
        now = now or self.clock.now_utc()
        expired = 0
        for invite in self.invites.list_lapsed(now, SWEEPABLE_STATUSES):
            moved = self.invites.transition(invite.id, [invite.status], "expired", now)
            if moved is None:
                continue
            self.events.append(
                invite.id,
                "invite.expired",
                None,
                {"previous_status": invite.status, "expires_at": invite.expires_at.isoformat()},
            )
            self.events.status_changed(invite.id, invite.status, "expired")
            expired += 1

        if expired:
            logger.info("Expired %d lapsed invites", expired)
        return expired

    # --- Generic transition ---

    def transition_status(
        self,
        invite_id: UUID,
        new_status: InviteStatus,
        actor_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Invite | None, list[InviteError]]:
        """
        Move an invite along one edge of the status graph.

        Used for steps driven outside this package, such as
        awaiting_couple -> completed once the inviting couple confirms.
        """
        invite = self.invites.get_by_id(invite_id)
        if invite is None:
            return None, [not_found("invite_not_found", f"Invite {invite_id} not found")]
        if not can_transition(invite.status, new_status):
            return None, [
                conflict(
                    "invalid_transition",
                    f"Cannot move invite from '{invite.status}' to '{new_status}'",
                    current_status=invite.status,
                )
            ]

        now = self.clock.now_utc()
        moved = self.invites.transition(
            invite_id,
            [invite.status],
            new_status,
            now,
            stamp_consumed=is_terminal(new_status),
        )
        if moved is None:
            current = self.invites.get_by_id(invite_id)
            current_status = current.status if current else invite.status
            return None, [
                conflict(
                    "invalid_transition",
                    f"Invite changed concurrently (now '{current_status}')",
                    current_status=current_status,
                )
            ]

        if is_terminal(new_status):
            self.activation_tokens.invalidate_outstanding(invite_id, now)
        self.events.status_changed(
            invite_id, invite.status, new_status, actor_id, **dict(metadata or {})
        )
        logger.info("Invite %s moved %s -> %s", invite_id, invite.status, new_status)
        return moved, []
