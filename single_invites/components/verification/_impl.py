"""
VerificationWorkflow - invitee profile/media intake and moderator decisions.

Key behaviors:
- Submissions require the invite token to resolve to `valid`
- The profile is sanitized once here; the stored shape is canonical
- The first profile submission moves the invite to awaiting_verification
- Only moderators may decide, and only on invites awaiting verification
- Approval hands off to ActivationIssuer; rejection revokes the invite
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from single_invites.components.activation import ActivationIssuer, IssuedActivation
from single_invites.components.events import EventLog
from single_invites.domain.entities import (
    PROFILE_FIELDS,
    Invite,
    InviteStatus,
    ProfileSubmission,
    TokenStatus,
    VerificationSession,
)
from single_invites.domain.errors import (
    InviteError,
    conflict,
    forbidden,
    not_found,
    validation,
)
from single_invites.domain.policy import PolicyEngine
from single_invites.domain.sanitize import is_valid_email, sanitize_media, sanitize_profile
from single_invites.rules.models import Rules

from .models import DecisionResult
from .ports import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    InviteRepoPort,
    InviteTokenVerifierPort,
    TimePort,
    VerificationSessionRepoPort,
)

logger = logging.getLogger(__name__)

PROFILE_OPEN_STATUSES: tuple[InviteStatus, ...] = ("pending", "awaiting_verification")


def validate_profile(profile: ProfileSubmission) -> list[InviteError]:
    """Required-field checks on an already sanitized profile."""
    errors: list[InviteError] = []
    if not profile.consent_acknowledged:
        errors.append(
            validation(
                "consent_required",
                "Consent must be acknowledged before submitting a profile.",
                field="consent_acknowledged",
            )
        )
    if not profile.nickname:
        errors.append(validation("nickname_required", "Nickname is required.", field="nickname"))
    if not profile.contact_email or not is_valid_email(profile.contact_email):
        errors.append(
            validation(
                "invalid_contact_email",
                "A valid contact email is required.",
                field="contact_email",
            )
        )
    if not profile.country:
        errors.append(validation("country_required", "Country is required.", field="country"))
    if not profile.city:
        errors.append(validation("city_required", "City is required.", field="city"))
    return errors


class VerificationWorkflow:
    def __init__(
        self,
        invites: InviteRepoPort,
        sessions: VerificationSessionRepoPort,
        activation_tokens: ActivationTokenRepoPort,
        accounts: AccountRepoPort,
        events: EventLog,
        issuer: ActivationIssuer,
        token_verifier: InviteTokenVerifierPort,
        policy: PolicyEngine,
        clock: TimePort,
        rules: Rules,
    ):
        self.invites = invites
        self.sessions = sessions
        self.activation_tokens = activation_tokens
        self.accounts = accounts
        self.events = events
        self.issuer = issuer
        self.token_verifier = token_verifier
        self.policy = policy
        self.clock = clock
        self.rules = rules

    def _resolve(self, token: str) -> tuple[TokenStatus, Invite | None]:
        status, invite = self.token_verifier.verify_invite_token(token)
        if status != "valid":
            return status, None
        return status, invite

    # --- Profile ---

    def submit_profile(
        self, token: str, raw: Mapping[str, Any] | None
    ) -> tuple[TokenStatus, VerificationSession | None, list[InviteError]]:
        """
        Save (or replace) the invitee's profile.

        Returns:
            Tuple of (token_status, session, errors). Session is None unless
            the token was valid and no errors occurred.
        """
        status, invite = self._resolve(token)
        if invite is None:
            return status, None, []

        if invite.status not in PROFILE_OPEN_STATUSES:
            return status, None, [
                conflict(
                    "invalid_status",
                    f"Profile can no longer be changed (invite is '{invite.status}')",
                    current_status=invite.status,
                )
            ]

        profile = sanitize_profile(raw, self.rules.profile)
        errors = validate_profile(profile)
        if errors:
            return status, None, errors

        now = self.clock.now_utc()
        existing = self.sessions.get_by_invite(invite.id)
        media = existing.submitted_media if existing else None
        has_media = media is not None and not media.is_empty()

        session = self.sessions.upsert(
            VerificationSession(
                id=existing.id if existing else uuid4(),
                invite_id=invite.id,
                invitee_email=invite.invitee_email,
                status="under_review" if has_media else "awaiting_uploads",
                submitted_profile=profile,
                submitted_media=media,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
        )

        if invite.status == "pending":
            moved = self.invites.transition(
                invite.id, ["pending"], "awaiting_verification", now
            )
            if moved is not None:
                self.events.status_changed(
                    invite.id, "pending", "awaiting_verification", stage="profile"
                )

        self.events.append(
            invite.id,
            "verification.profile_saved",
            None,
            {
                "session_id": str(session.id),
                "fields": [name for name in PROFILE_FIELDS if getattr(profile, name) is not None],
            },
        )
        logger.info("Profile saved for invite %s", invite.id)
        return status, session, []

    # --- Media ---

    def submit_media(
        self, token: str, raw: Mapping[str, Any] | None
    ) -> tuple[TokenStatus, VerificationSession | None, list[InviteError]]:
        """
        Attach verification media and queue the session for review.

        Returns:
            Tuple of (token_status, session, errors).
        """
        status, invite = self._resolve(token)
        if invite is None:
            return status, None, []

        if invite.status != "awaiting_verification":
            return status, None, [
                conflict(
                    "invalid_status",
                    "Media can only be submitted after the profile and before review",
                    current_status=invite.status,
                )
            ]

        media = sanitize_media(raw)
        if media.is_empty():
            return status, None, [
                validation("media_required", "At least one media item is required.", field="media")
            ]

        existing = self.sessions.get_by_invite(invite.id)
        if existing is None:
            return status, None, [
                not_found("session_not_found", f"No verification session for invite {invite.id}")
            ]

        now = self.clock.now_utc()
        session = self.sessions.upsert(
            existing.model_copy(
                update={"submitted_media": media, "status": "under_review", "updated_at": now}
            )
        )
        self.events.append(
            invite.id,
            "verification.media_saved",
            None,
            {
                "session_id": str(session.id),
                "identity_documents": len(media.identity_documents),
                "selfies": len(media.selfies),
                "has_video": media.verification_video is not None,
            },
        )
        logger.info("Media saved for invite %s", invite.id)
        return status, session, []

    # --- Moderation ---

    def _moderator_errors(self, actor_id: UUID) -> list[InviteError]:
        if self.policy.can_moderate(self.accounts.get_by_id(actor_id)):
            return []
        return [
            forbidden(
                "not_moderator",
                "Only moderators may review single invites.",
                actor_id=str(actor_id),
            )
        ]

    def _stage_conflict(self, invite_id: UUID, fallback: InviteStatus) -> InviteError:
        current = self.invites.get_by_id(invite_id)
        status = current.status if current else fallback
        return conflict(
            "invalid_status",
            f"Invite is '{status}', not awaiting verification",
            current_status=status,
        )

    def decide(
        self,
        invite_id: UUID,
        actor_id: UUID,
        decision: str,
        reason: str | None = None,
    ) -> tuple[DecisionResult | None, list[InviteError]]:
        """
        Approve or reject an invitee's verification.

        Returns:
            Tuple of (result, errors). Result is None if errors.
        """
        errors = self._moderator_errors(actor_id)
        if errors:
            return None, errors

        if decision not in ("approve", "reject"):
            return None, [
                validation(
                    "invalid_decision",
                    "Decision must be 'approve' or 'reject'.",
                    field="decision",
                )
            ]

        invite = self.invites.get_by_id(invite_id)
        if invite is None:
            return None, [not_found("invite_not_found", f"Invite {invite_id} not found")]
        if invite.status != "awaiting_verification":
            return None, [
                conflict(
                    "invalid_status",
                    f"Invite is '{invite.status}', not awaiting verification",
                    current_status=invite.status,
                )
            ]

        session = self.sessions.get_by_invite(invite_id)
        if session is None:
            return None, [
                not_found("session_not_found", f"No verification session for invite {invite_id}")
            ]

        reason = reason.strip() if reason and reason.strip() else None
        if decision == "approve":
            return self._approve(invite, session, actor_id, reason)
        return self._reject(invite, session, actor_id, reason)

    def _approve(
        self,
        invite: Invite,
        session: VerificationSession,
        actor_id: UUID,
        notes: str | None,
    ) -> tuple[DecisionResult | None, list[InviteError]]:
        now = self.clock.now_utc()
        moved = self.invites.transition(
            invite.id, ["awaiting_verification"], "awaiting_activation", now
        )
        if moved is None:
            return None, [self._stage_conflict(invite.id, invite.status)]

        activation: IssuedActivation | None
        activation, errors = self.issuer.issue(moved, actor_id)
        if activation is None:
            return None, errors

        session = self.sessions.upsert(
            session.model_copy(
                update={
                    "status": "approved",
                    "moderation_notes": notes,
                    "rejection_reason": None,
                    "decision_actor_id": actor_id,
                    "decision_at": now,
                    "updated_at": now,
                }
            )
        )
        self.events.append(
            invite.id,
            "verification.decided",
            actor_id,
            {"decision": "approve", "session_id": str(session.id), "notes": notes},
        )
        self.events.status_changed(
            invite.id, "awaiting_verification", "awaiting_activation", actor_id, stage="moderation"
        )

        email_sent = self.issuer.send_activation_email(moved, activation)
        logger.info("Invite %s approved by %s", invite.id, actor_id)
        return DecisionResult(
            invite=moved,
            session=session,
            decision="approve",
            activation=activation,
            email_sent=email_sent,
        ), []

    def _reject(
        self,
        invite: Invite,
        session: VerificationSession,
        actor_id: UUID,
        reason: str | None,
    ) -> tuple[DecisionResult | None, list[InviteError]]:
        now = self.clock.now_utc()
        moved = self.invites.transition(
            invite.id, ["awaiting_verification"], "revoked", now, stamp_consumed=True
        )
        if moved is None:
            return None, [self._stage_conflict(invite.id, invite.status)]

        self.activation_tokens.invalidate_outstanding(invite.id, now)
        session = self.sessions.upsert(
            session.model_copy(
                update={
                    "status": "rejected",
                    "rejection_reason": reason,
                    "decision_actor_id": actor_id,
                    "decision_at": now,
                    "updated_at": now,
                }
            )
        )
        self.events.append(
            invite.id,
            "verification.decided",
            actor_id,
            {"decision": "reject", "session_id": str(session.id), "reason": reason},
        )
        self.events.status_changed(
            invite.id,
            "awaiting_verification",
            "revoked",
            actor_id,
            stage="moderation",
            reason=reason,
        )
        logger.info("Invite %s rejected by %s", invite.id, actor_id)
        return DecisionResult(invite=moved, session=session, decision="reject"), []

    def resend_activation(
        self, invite_id: UUID, actor_id: UUID
    ) -> tuple[IssuedActivation | None, bool, list[InviteError]]:
        """Moderator-triggered replacement of the activation link."""
        errors = self._moderator_errors(actor_id)
        if errors:
            return None, False, errors
        return self.issuer.resend(invite_id, actor_id)
