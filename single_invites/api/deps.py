import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from single_invites.api.auth_utils import decode_access_token
from single_invites.app_shell.context import ServiceContext
from single_invites.domain.entities import Account
from single_invites.rules.loader import load_rules
from single_invites.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("SINGLES_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "singles.db")
        self.rules_path = Path(os.environ.get("SINGLES_RULES_PATH", self.base_dir / "rules.yaml"))
        self.migrations_dir = str(
            os.environ.get("SINGLES_MIGRATIONS_DIR", self.base_dir / "migrations")
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Services ---
@lru_cache
def get_context() -> ServiceContext:
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return ServiceContext.create(settings.db_path, get_rules(), settings.migrations_dir)


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_account(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    ctx: ServiceContext = Depends(get_context),
) -> Account:
    # 1. Cookie first (HttpOnly), then the Authorization header
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ", 1)[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Decode
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account_id = payload.get("sub")
    if account_id is None or not isinstance(account_id, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    # 3. Fetch account
    try:
        account = ctx.account_repo.get_by_id(UUID(account_id))
    except ValueError:
        account = None
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )

    return account


def get_moderator(
    account: Account = Depends(get_current_account),
    ctx: ServiceContext = Depends(get_context),
) -> Account:
    if not ctx.policy.can_moderate(account):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator access required",
        )
    return account
