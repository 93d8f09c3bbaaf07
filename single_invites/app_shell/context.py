from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from single_invites.adapters.auth.crypto import Argon2PasswordHasher
from single_invites.adapters.clock import SystemClock
from single_invites.adapters.dev_email import DevEmailAdapter
from single_invites.adapters.mailer import InviteMailer
from single_invites.adapters.memory import InMemoryStore
from single_invites.adapters.sqlite.migrator import SchemaGuard
from single_invites.adapters.sqlite.repos import (
    SQLiteAccountRepo,
    SQLiteActivationTokenRepo,
    SQLiteEventRepo,
    SQLiteInviteRepo,
    SQLiteProfileRepo,
    SQLiteSessionRepo,
)
from single_invites.components.accounts import AccountLinker
from single_invites.components.activation import ActivationIssuer, PasswordHasherPort
from single_invites.components.events import EventLog
from single_invites.components.invite import InviteRegistry
from single_invites.components.tokens import TokenCodec, TokenConfig
from single_invites.components.verification import VerificationWorkflow
from single_invites.core.ports import (
    AccountRepoPort,
    ActivationTokenRepoPort,
    EmailPort,
    InviteEventRepoPort,
    InviteRepoPort,
    ProfileRepoPort,
    TimePort,
    VerificationSessionRepoPort,
)
from single_invites.domain.policy import PolicyEngine
from single_invites.rules.models import Rules


@dataclass
class ServiceContext:
    registry: InviteRegistry
    workflow: VerificationWorkflow
    issuer: ActivationIssuer
    linker: AccountLinker
    events: EventLog
    invite_repo: InviteRepoPort
    session_repo: VerificationSessionRepoPort
    activation_repo: ActivationTokenRepoPort
    event_repo: InviteEventRepoPort
    account_repo: AccountRepoPort
    profile_repo: ProfileRepoPort
    email: EmailPort
    mailer: InviteMailer
    policy: PolicyEngine
    rules: Rules
    clock: TimePort
    schema_guard: SchemaGuard | None = None

    @classmethod
    def wire(
        cls,
        rules: Rules,
        *,
        invite_repo: InviteRepoPort,
        session_repo: VerificationSessionRepoPort,
        activation_repo: ActivationTokenRepoPort,
        event_repo: InviteEventRepoPort,
        account_repo: AccountRepoPort,
        profile_repo: ProfileRepoPort,
        clock: TimePort | None = None,
        email: EmailPort | None = None,
        hasher: PasswordHasherPort | None = None,
        codec: TokenCodec | None = None,
        schema_guard: SchemaGuard | None = None,
    ) -> ServiceContext:
        """Build every component over the given repositories."""
        clock = clock or SystemClock()
        email = email or DevEmailAdapter()
        hasher = hasher or Argon2PasswordHasher()
        codec = codec or TokenCodec(
            TokenConfig(secret_bytes=rules.tokens.secret_bytes, salt_bytes=rules.tokens.salt_bytes)
        )

        policy = PolicyEngine(rules)
        mailer = InviteMailer(email, rules.email)
        events = EventLog(event_repo, clock)

        registry = InviteRegistry(
            invite_repo,
            session_repo,
            activation_repo,
            account_repo,
            events,
            policy,
            clock,
            rules,
            codec,
            mailer,
        )
        linker = AccountLinker(
            account_repo,
            profile_repo,
            invite_repo,
            session_repo,
            clock,
            account_rules=rules.accounts,
            profile_rules=rules.profile,
        )
        issuer = ActivationIssuer(
            activation_repo,
            invite_repo,
            account_repo,
            events,
            linker,
            hasher,
            policy,
            clock,
            rules,
            codec,
            mailer,
        )
        workflow = VerificationWorkflow(
            invite_repo,
            session_repo,
            activation_repo,
            account_repo,
            events,
            issuer,
            registry,
            policy,
            clock,
            rules,
        )

        return cls(
            registry=registry,
            workflow=workflow,
            issuer=issuer,
            linker=linker,
            events=events,
            invite_repo=invite_repo,
            session_repo=session_repo,
            activation_repo=activation_repo,
            event_repo=event_repo,
            account_repo=account_repo,
            profile_repo=profile_repo,
            email=email,
            mailer=mailer,
            policy=policy,
            rules=rules,
            clock=clock,
            schema_guard=schema_guard,
        )

    @classmethod
    def create(
        cls,
        db_path: str,
        rules: Rules,
        migrations_dir: str,
        **overrides: Any,
    ) -> ServiceContext:
        """SQLite-backed context; the schema is ensured before returning."""
        guard = SchemaGuard(db_path, migrations_dir)
        guard.ensure()

        storage = rules.storage
        return cls.wire(
            rules,
            invite_repo=SQLiteInviteRepo(db_path, storage),
            session_repo=SQLiteSessionRepo(db_path, storage),
            activation_repo=SQLiteActivationTokenRepo(db_path, storage),
            event_repo=SQLiteEventRepo(db_path, storage),
            account_repo=SQLiteAccountRepo(db_path, storage),
            profile_repo=SQLiteProfileRepo(db_path, storage),
            schema_guard=guard,
            **overrides,
        )

    @classmethod
    def in_memory(cls, rules: Rules, **overrides: Any) -> ServiceContext:
        store = InMemoryStore()
        return cls.wire(
            rules,
            invite_repo=store.invites,
            session_repo=store.sessions,
            activation_repo=store.activation_tokens,
            event_repo=store.events,
            account_repo=store.accounts,
            profile_repo=store.profiles,
            **overrides,
        )
