from collections.abc import Sequence
from datetime import datetime

from single_invites.domain.entities import Account
from single_invites.rules.models import Rules

MODERATE_PERMISSION = "invites:moderate"


class PolicyEngine:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(self, roles: Sequence[str], action: str) -> bool:
        """
        Role-based check against rules.rbac.

        `*` grants everything; `scope:*` grants every action in that scope.
        """
        for role in roles:
            allowed_actions = self.rules.rbac.roles.get(role, [])
            if "*" in allowed_actions or action in allowed_actions:
                return True

            if ":" in action:
                scope = action.split(":")[0]
                if f"{scope}:*" in allowed_actions:
                    return True

        return False

    def can_moderate(self, account: Account | None) -> bool:
        if account is None:
            return False
        return self.check_permission(account.roles, MODERATE_PERMISSION)

    def inviter_ineligibility(self, account: Account, now: datetime) -> list[str]:
        """
        Reasons the account may not invite singles; empty when eligible.

        Inviters must be couple accounts with both partner emails verified
        and a paid membership that has not lapsed.
        """
        reasons: list[str] = []
        if account.kind != "couple":
            reasons.append("not_couple_account")
        if not (account.email_verified and account.partner_email_verified):
            reasons.append("emails_not_verified")

        membership = (account.membership_type or "free").strip().lower()
        if membership == "free":
            reasons.append("membership_required")
        elif account.membership_expires_at is not None and account.membership_expires_at <= now:
            reasons.append("membership_expired")

        return reasons

    def password_violations(self, password: str) -> list[str]:
        policy = self.rules.password
        violations: list[str] = []
        if len(password) < policy.min_length:
            violations.append(f"at least {policy.min_length} characters")
        if sum(1 for c in password if c.isupper()) < policy.min_uppercase:
            violations.append(f"at least {policy.min_uppercase} uppercase letter(s)")
        if sum(1 for c in password if c.isdigit()) < policy.min_digits:
            violations.append(f"at least {policy.min_digits} digit(s)")
        return violations
