from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
InviteStatus = Literal[
    "pending",
    "awaiting_verification",
    "awaiting_activation",
    "awaiting_couple",
    "completed",
    "revoked",
    "declined",
    "expired",
]
RequestedRole = Literal["single_male", "single_female"]
SessionStatus = Literal[
    "awaiting_profile", "awaiting_uploads", "under_review", "approved", "rejected"
]
AccountKind = Literal["couple", "single"]
TokenStatus = Literal["valid", "invalid", "expired", "consumed"]
Decision = Literal["approve", "reject"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Invite aggregate ---

class Invite(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    inviter_account_id: UUID
    invitee_email: str
    requested_role: RequestedRole
    status: InviteStatus = "pending"
    token_hash: str
    token_salt: str
    expires_at: datetime
    consumed_at: datetime | None = None
    linked_account_id: UUID | None = None
    created_ip: str | None = None
    created_user_agent: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class MediaItem(BaseModel):
    id: str
    url: str
    label: str | None = None

class MediaSubmission(BaseModel):
    identity_documents: list[MediaItem] = Field(default_factory=list)
    verification_video: MediaItem | None = None
    selfies: list[MediaItem] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.identity_documents or self.verification_video or self.selfies)

class ProfileSubmission(BaseModel):
    # None means the invitee did not supply the field
    consent_acknowledged: bool = False
    nickname: str | None = None
    contact_email: str | None = None
    country: str | None = None
    city: str | None = None
    short_bio: str | None = None
    interests: str | None = None
    play_preferences: str | None = None
    boundaries: str | None = None
    availability: dict[str, Any] | list[Any] | str | None = None

class VerificationSession(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    invite_id: UUID
    invitee_email: str
    status: SessionStatus = "awaiting_profile"
    submitted_profile: ProfileSubmission | None = None
    submitted_media: MediaSubmission | None = None
    moderation_notes: str | None = None
    decision_actor_id: UUID | None = None
    decision_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class ActivationToken(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    invite_id: UUID
    token_hash: str
    token_salt: str
    expires_at: datetime
    consumed_at: datetime | None = None
    created_by_actor_id: UUID | None = None
    created_at: datetime = Field(default_factory=utc_now)

class InviteEvent(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    invite_id: UUID
    event_type: str
    actor_account_id: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utc_now)

# --- Accounts ---

class Account(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    kind: AccountKind
    username: str
    email: str
    password_hash: str | None = None
    email_verified: bool = False
    partner_email_verified: bool = False
    membership_type: str = "free"
    membership_expires_at: datetime | None = None
    partner1_nickname: str | None = None
    partner2_nickname: str | None = None
    roles: list[str] = Field(default_factory=list)
    invite_source_account_id: UUID | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def display_name(self) -> str:
        """Name shown to invitees in emails."""
        nicknames = [
            n.strip() for n in (self.partner1_nickname, self.partner2_nickname) if n and n.strip()
        ]
        if len(nicknames) == 2:
            return f"{nicknames[0]} & {nicknames[1]}"
        if nicknames:
            return nicknames[0]
        if self.username.strip():
            return self.username.strip()
        if self.email.strip():
            return self.email.strip()
        return "A DateAstrum couple"

class SingleProfile(BaseModel):
    account_id: UUID
    inviter_account_id: UUID | None = None
    nickname: str | None = None
    contact_email: str | None = None
    country: str | None = None
    city: str | None = None
    short_bio: str | None = None
    interests: str | None = None
    play_preferences: str | None = None
    boundaries: str | None = None
    availability: dict[str, Any] | list[Any] | str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


PROFILE_FIELDS = (
    "nickname",
    "contact_email",
    "country",
    "city",
    "short_bio",
    "interests",
    "play_preferences",
    "boundaries",
    "availability",
)
