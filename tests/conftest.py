from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from argon2 import PasswordHasher

from single_invites.adapters.auth.crypto import Argon2PasswordHasher
from single_invites.adapters.dev_email import DevEmailAdapter
from single_invites.app_shell.context import ServiceContext
from single_invites.domain.entities import Account
from single_invites.rules.loader import load_rules

ROOT = Path(__file__).resolve().parents[1]


class FixedClock:
    """Controllable clock shared by every component in a test context."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta

    def set(self, now: datetime) -> None:
        self._now = now


@pytest.fixture
def rules():
    # Load REAL rules from the project root
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def migrations_dir() -> str:
    return str(ROOT / "migrations")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def email() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def hasher() -> Argon2PasswordHasher:
    # Cheap parameters keep the suite fast; the algorithm is unchanged
    return Argon2PasswordHasher(PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1))


@pytest.fixture
def ctx(rules, clock, email, hasher) -> ServiceContext:
    """In-memory ServiceContext with a dev email adapter."""
    return ServiceContext.in_memory(rules, clock=clock, email=email, hasher=hasher)


@pytest.fixture
def sqlite_ctx(tmp_path, rules, clock, email, hasher, migrations_dir) -> ServiceContext:
    """ServiceContext backed by a freshly migrated temporary SQLite database."""
    db_path = str(tmp_path / "singles.db")
    return ServiceContext.create(
        db_path, rules, migrations_dir, clock=clock, email=email, hasher=hasher
    )


def _couple(clock: FixedClock, **overrides) -> Account:
    values = {
        "kind": "couple",
        "username": "alexandsam",
        "email": "couple@example.com",
        "email_verified": True,
        "partner_email_verified": True,
        "membership_type": "premium",
        "membership_expires_at": clock.now_utc() + timedelta(days=30),
        "partner1_nickname": "Alex",
        "partner2_nickname": "Sam",
        "created_at": clock.now_utc(),
        "updated_at": clock.now_utc(),
    }
    values.update(overrides)
    return Account(**values)


@pytest.fixture
def make_couple(clock):
    """Factory for couple accounts; eligible to invite unless overridden."""

    def _make(**overrides) -> Account:
        return _couple(clock, **overrides)

    return _make


@pytest.fixture
def inviter(ctx, make_couple) -> Account:
    return ctx.account_repo.save(make_couple())


@pytest.fixture
def moderator(ctx, clock) -> Account:
    return ctx.account_repo.save(
        Account(
            kind="single",
            username="mod_jo",
            email="moderator@example.com",
            email_verified=True,
            roles=["moderator"],
            created_at=clock.now_utc(),
            updated_at=clock.now_utc(),
        )
    )


@pytest.fixture
def valid_profile() -> dict:
    return {
        "nickname": "Ace",
        "contact_email": "bull@example.com",
        "country": "GR",
        "city": "Athens",
        "consent_acknowledged": True,
    }


@pytest.fixture
def valid_media() -> dict:
    return {
        "identity_documents": [{"id": "doc-1", "url": "https://cdn.example.com/doc-1.jpg"}],
        "verification_video": {"id": "vid-1", "url": "https://cdn.example.com/vid-1.mp4"},
        "selfies": [{"id": "selfie-1", "url": "https://cdn.example.com/selfie-1.jpg"}],
    }
