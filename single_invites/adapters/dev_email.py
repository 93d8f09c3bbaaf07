"""
Dev Email Adapter.

Logs emails instead of sending them. Used for local development and tests;
every message is kept in memory so tests can assert on it.

Key behaviors:
- Returns SKIPPED status (not SENT)
- Never logs bodies (they carry bearer links)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from single_invites.core.ports.email import EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """Implements EmailPort by logging."""

    sent_emails: list[SentEmail] = field(default_factory=list)
    log_level: int = logging.INFO

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        message_id = f"dev-{uuid4().hex[:12]}"
        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipient=recipient,
                subject=subject,
                body_html=body_html,
                body_text=body_text or "",
                logged_at=datetime.now(UTC),
            )
        )

        logger.log(
            self.log_level,
            "[DEV EMAIL] id=%s to=%s subject=%r",
            message_id,
            recipient,
            subject,
        )

        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    def emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        self.sent_emails.clear()
