"""
Email interfaces for the invite lifecycle.

Two layers:
1. EmailPort: raw transactional send (DevEmailAdapter logs instead of sending).
2. InviteMailerPort: the lifecycle's email dispatcher. It renders invite,
   activation and admin-notification messages and sends them through an
   EmailPort. Callers treat it as fire-and-forget.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol
from uuid import UUID


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter or email disabled


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, reason: str = "Dev mode") -> EmailResult:
        return cls(status=EmailStatus.SKIPPED, recipient=recipient, error=reason)

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(status=EmailStatus.FAILED, recipient=recipient, error=error)

    @property
    def delivered(self) -> bool:
        """True unless the provider reported a failure."""
        return self.status != EmailStatus.FAILED


class EmailPort(Protocol):
    """Transactional email sending interface."""

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """Send one email. Should return a failed result rather than raise."""
        ...


class InviteMailerPort(Protocol):
    """Email dispatcher used by the invite, verification and activation components."""

    def send_invite(
        self,
        email: str,
        link: str,
        inviter_display_name: str,
        role_label: str,
        expires_at: datetime,
    ) -> EmailResult: ...

    def send_activation(
        self,
        email: str,
        link: str,
        inviter_display_name: str,
        role_label: str,
        expires_at: datetime,
    ) -> EmailResult: ...

    def notify_admin_new_member(
        self,
        account_type: str,
        role: str,
        inviter_account_id: UUID,
        invite_id: UUID,
        account_id: UUID,
    ) -> list[EmailResult]: ...
