from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class InviteRules(BaseModel):
    max_active: int = Field(default=3, ge=1)
    default_ttl_hours: int = Field(default=168, ge=1)
    max_ttl_hours: int = Field(default=720, ge=1)
    min_ttl_hours: int = Field(default=1, ge=1)
    plan_code: str = "single_monthly_15"
    role_labels: dict[str, str]
    default_moderation_statuses: list[str] = Field(
        default_factory=lambda: ["awaiting_verification"]
    )

    @field_validator("role_labels")
    @classmethod
    def _roles_present(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("role_labels must name at least one role")
        return value

class ActivationRules(BaseModel):
    ttl_hours: int = Field(default=168, ge=1)

class TokenRules(BaseModel):
    secret_bytes: int = Field(default=32, ge=32)
    salt_bytes: int = Field(default=16, ge=16)

class LinkRules(BaseModel):
    frontend_base_url: str
    invite_path: str = "/join/singles"
    activation_path: str = "/join/singles/activate"

    def build(self, path: str, token: str) -> str:
        """`{base}{path}?token={token}` with the token URL-encoded."""
        return f"{self.frontend_base_url.rstrip('/')}{path}?token={quote(token, safe='')}"

    def invite_link(self, token: str) -> str:
        return self.build(self.invite_path, token)

    def activation_link(self, token: str) -> str:
        return self.build(self.activation_path, token)

class ProfileRules(BaseModel):
    """Maximum stored length per submitted profile field."""
    nickname: int = 120
    contact_email: int = 320
    country: int = 120
    city: int = 120
    short_bio: int = 600
    interests: int = 500
    play_preferences: int = 500
    boundaries: int = 500

class PasswordRules(BaseModel):
    min_length: int = Field(default=8, ge=1)
    min_uppercase: int = Field(default=1, ge=0)
    min_digits: int = Field(default=2, ge=0)

class AccountRules(BaseModel):
    username_prefix: str = "single_"
    username_max_length: int = Field(default=20, ge=8)
    username_attempts: int = Field(default=6, ge=1)

class RbacRules(BaseModel):
    roles: dict[str, list[str]]

class StorageRules(BaseModel):
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=0.05, ge=0)

class EmailRules(BaseModel):
    enabled: bool = True
    site_name: str = "DateAstrum"
    admin_recipients: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    project: ProjectRules
    invites: InviteRules
    activation: ActivationRules
    tokens: TokenRules
    links: LinkRules
    profile: ProfileRules
    password: PasswordRules
    accounts: AccountRules
    rbac: RbacRules
    storage: StorageRules
    email: EmailRules
