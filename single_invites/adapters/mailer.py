"""
InviteMailer - renders lifecycle emails and sends them through an EmailPort.

Implements InviteMailerPort. When email is disabled in rules, messages are
skipped (logged at INFO) rather than sent.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime
from uuid import UUID

from single_invites.core.ports.email import EmailPort, EmailResult
from single_invites.rules.models import EmailRules

logger = logging.getLogger(__name__)


def _format_expiry(expires_at: datetime) -> str:
    return expires_at.strftime("%d %B %Y at %H:%M UTC")


class InviteMailer:
    def __init__(self, email: EmailPort, rules: EmailRules):
        self.email = email
        self.rules = rules

    def _signature(self) -> str:
        return f"Warm regards,\nThe {self.rules.site_name} Concierge Team"

    def _send(self, recipient: str, subject: str, paragraphs: list[str]) -> EmailResult:
        if not self.rules.enabled:
            logger.info("Email disabled; skipping %r to %s", subject, recipient)
            return EmailResult.skipped(recipient, reason="Email disabled")

        body_text = "\n\n".join([*paragraphs, self._signature()])
        body_html = "".join(f"<p>{html.escape(p)}</p>" for p in paragraphs)
        body_html += "<p>" + html.escape(self._signature()).replace("\n", "<br />") + "</p>"
        return self.email.send_email(recipient, subject, body_html, body_text)

    def send_invite(
        self,
        email: str,
        link: str,
        inviter_display_name: str,
        role_label: str,
        expires_at: datetime,
    ) -> EmailResult:
        site = self.rules.site_name
        return self._send(
            email,
            f"{inviter_display_name} invited you to join {site}",
            [
                f"{inviter_display_name} would like you to join {site} with a {role_label}.",
                f"Start your verification here: {link}",
                f"This link is personal and expires on {_format_expiry(expires_at)}.",
            ],
        )

    def send_activation(
        self,
        email: str,
        link: str,
        inviter_display_name: str,
        role_label: str,
        expires_at: datetime,
    ) -> EmailResult:
        site = self.rules.site_name
        return self._send(
            email,
            f"Your {site} membership is approved",
            [
                f"Your {role_label} from {inviter_display_name} has been approved.",
                f"Set your password and activate your account here: {link}",
                f"This link can be used once and expires on {_format_expiry(expires_at)}.",
            ],
        )

    def notify_admin_new_member(
        self,
        account_type: str,
        role: str,
        inviter_account_id: UUID,
        invite_id: UUID,
        account_id: UUID,
    ) -> list[EmailResult]:
        paragraphs = [
            f"A new {account_type} member ({role}) has activated their account.",
            f"Account: {account_id}",
            f"Invite: {invite_id} (invited by {inviter_account_id})",
        ]
        return [
            self._send(recipient, f"New {account_type} member activated", paragraphs)
            for recipient in self.rules.admin_recipients
        ]
