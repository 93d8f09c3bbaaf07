from datetime import datetime
from typing import Any

from pydantic import BaseModel

from single_invites.domain.entities import Invite, InviteEvent, VerificationSession


class InviteResponse(BaseModel):
    """Invite as shown to its inviter and to moderators (never the token hash)."""

    id: str
    invitee_email: str
    requested_role: str
    role_label: str
    status: str
    expires_at: datetime
    consumed_at: datetime | None = None
    linked_account_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_invite(cls, invite: Invite, role_label: str) -> "InviteResponse":
        return cls(
            id=str(invite.id),
            invitee_email=invite.invitee_email,
            requested_role=invite.requested_role,
            role_label=role_label,
            status=invite.status,
            expires_at=invite.expires_at,
            consumed_at=invite.consumed_at,
            linked_account_id=str(invite.linked_account_id) if invite.linked_account_id else None,
            created_at=invite.created_at,
            updated_at=invite.updated_at,
        )


class SessionResponse(BaseModel):
    id: str
    status: str
    submitted_profile: dict[str, Any] | None = None
    submitted_media: dict[str, Any] | None = None
    moderation_notes: str | None = None
    rejection_reason: str | None = None
    decision_at: datetime | None = None
    updated_at: datetime

    @classmethod
    def from_session(cls, session: VerificationSession) -> "SessionResponse":
        return cls(
            id=str(session.id),
            status=session.status,
            submitted_profile=(
                session.submitted_profile.model_dump() if session.submitted_profile else None
            ),
            submitted_media=(
                session.submitted_media.model_dump() if session.submitted_media else None
            ),
            moderation_notes=session.moderation_notes,
            rejection_reason=session.rejection_reason,
            decision_at=session.decision_at,
            updated_at=session.updated_at,
        )


class EventResponse(BaseModel):
    id: str
    event_type: str
    actor_account_id: str | None = None
    metadata: dict[str, Any]
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: InviteEvent) -> "EventResponse":
        return cls(
            id=str(event.id),
            event_type=event.event_type,
            actor_account_id=str(event.actor_account_id) if event.actor_account_id else None,
            metadata=event.metadata,
            occurred_at=event.occurred_at,
        )


class TokenRequest(BaseModel):
    token: str


class TokenStatusResponse(BaseModel):
    status: str
    invite_id: str | None = None
    requested_role: str | None = None
    role_label: str | None = None
    invitee_email: str | None = None
    expires_at: datetime | None = None
