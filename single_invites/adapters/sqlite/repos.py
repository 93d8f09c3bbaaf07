"""
SQLite repositories for the invite lifecycle.

Each call opens its own connection (busy timeout = per-call deadline) unless
an external connection is supplied. Transient lock/busy errors are retried
with exponential backoff; everything else propagates.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID

from single_invites.domain.entities import (
    PROFILE_FIELDS,
    Account,
    ActivationToken,
    Invite,
    InviteEvent,
    InviteStatus,
    MediaSubmission,
    ProfileSubmission,
    SingleProfile,
    VerificationSession,
)
from single_invites.domain.errors import UsernameTakenError
from single_invites.domain.sanitize import normalize_email
from single_invites.rules.models import StorageRules

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS = ("database is locked", "database is busy", "database table is locked")


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _iso(dt: datetime | None) -> str | None:
    # Fixed-width UTC strings compare correctly as text
    if dt is None:
        return None
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


def parse_uuid(s: str | None) -> UUID | None:
    return UUID(s) if s else None


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def _is_transient(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        storage: StorageRules | None = None,
        connection: sqlite3.Connection | None = None,
    ):
        self.db_path = db_path
        self.storage = storage or StorageRules()
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=self.storage.busy_timeout_seconds)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _run(self, op: Callable[[sqlite3.Connection], T]) -> T:
        """
        Run `op` in its own transaction, retrying transient lock errors.

        With an external connection the caller owns the transaction, so
        there is no commit and no retry.
        """
        attempts = self.storage.retry_attempts if self._should_close() else 1
        attempt = 1
        while True:
            conn = self._get_conn()
            try:
                result = op(conn)
                if self._should_close():
                    conn.commit()
                return result
            except sqlite3.OperationalError as e:
                if self._should_close():
                    conn.rollback()
                if not _is_transient(e) or attempt >= attempts:
                    raise
                delay = self.storage.retry_base_delay_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite busy (%s); retry %d/%d in %.3fs", e, attempt, attempts - 1, delay
                )
            except Exception:
                if self._should_close():
                    conn.rollback()
                raise
            finally:
                if self._should_close():
                    conn.close()
            time.sleep(delay)
            attempt += 1


# -----------------------------------------------------------------------------
# Invites
# -----------------------------------------------------------------------------

_INVITE_COLUMNS = (
    "id, inviter_account_id, invitee_email, requested_role, status, token_hash, "
    "token_salt, expires_at, consumed_at, linked_account_id, created_ip, "
    "created_user_agent, created_at, updated_at"
)


class SQLiteInviteRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> Invite:
        return Invite(
            id=UUID(row["id"]),
            inviter_account_id=UUID(row["inviter_account_id"]),
            invitee_email=row["invitee_email"],
            requested_role=row["requested_role"],
            status=row["status"],
            token_hash=row["token_hash"],
            token_salt=row["token_salt"],
            expires_at=parse_dt(row["expires_at"]),
            consumed_at=parse_dt(row["consumed_at"]),
            linked_account_id=parse_uuid(row["linked_account_id"]),
            created_ip=row["created_ip"],
            created_user_agent=row["created_user_agent"],
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def _values(self, invite: Invite) -> tuple[Any, ...]:
        return (
            str(invite.id),
            str(invite.inviter_account_id),
            invite.invitee_email,
            invite.requested_role,
            invite.status,
            invite.token_hash,
            invite.token_salt,
            _iso(invite.expires_at),
            _iso(invite.consumed_at),
            str(invite.linked_account_id) if invite.linked_account_id else None,
            invite.created_ip,
            invite.created_user_agent,
            _iso(invite.created_at),
            _iso(invite.updated_at),
        )

    def get_by_id(self, invite_id: UUID) -> Invite | None:
        def op(conn: sqlite3.Connection) -> Invite | None:
            row = conn.execute(
                "SELECT * FROM single_invites WHERE id = ?", (str(invite_id),)
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def create_with_cap(
        self, invite: Invite, counted_statuses: Sequence[InviteStatus], limit: int
    ) -> bool:
        def op(conn: sqlite3.Connection) -> bool:
            values = self._values(invite)
            cursor = conn.execute(
                f"""
                INSERT INTO single_invites ({_INVITE_COLUMNS})
                SELECT {_placeholders(values)}
                WHERE (
                    SELECT COUNT(*) FROM single_invites
                    WHERE inviter_account_id = ?
                    AND status IN ({_placeholders(counted_statuses)})
                ) < ?
                """,
                (*values, str(invite.inviter_account_id), *counted_statuses, limit),
            )
            return cursor.rowcount == 1

        return self._run(op)

    def count_for_inviter(self, inviter_id: UUID, statuses: Sequence[InviteStatus]) -> int:
        def op(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                f"""
                SELECT COUNT(*) AS n FROM single_invites
                WHERE inviter_account_id = ? AND status IN ({_placeholders(statuses)})
                """,
                (str(inviter_id), *statuses),
            ).fetchone()
            return int(row["n"])

        return self._run(op)

    def list_for_inviter(self, inviter_id: UUID) -> list[Invite]:
        def op(conn: sqlite3.Connection) -> list[Invite]:
            rows = conn.execute(
                """
                SELECT * FROM single_invites
                WHERE inviter_account_id = ?
                ORDER BY created_at DESC
                """,
                (str(inviter_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)

    def list_by_status(self, statuses: Sequence[InviteStatus]) -> list[Invite]:
        if not statuses:
            return []

        def op(conn: sqlite3.Connection) -> list[Invite]:
            rows = conn.execute(
                f"""
                SELECT * FROM single_invites
                WHERE status IN ({_placeholders(statuses)})
                ORDER BY created_at DESC
                """,
                tuple(statuses),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)

    def list_lapsed(self, now: datetime, statuses: Sequence[InviteStatus]) -> list[Invite]:
        def op(conn: sqlite3.Connection) -> list[Invite]:
            rows = conn.execute(
                f"""
                SELECT * FROM single_invites
                WHERE status IN ({_placeholders(statuses)}) AND expires_at <= ?
                ORDER BY created_at DESC
                """,
                (*statuses, _iso(now)),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)

    def transition(
        self,
        invite_id: UUID,
        from_statuses: Sequence[InviteStatus],
        to_status: InviteStatus,
        now: datetime,
        *,
        stamp_consumed: bool = False,
    ) -> Invite | None:
        def op(conn: sqlite3.Connection) -> Invite | None:
            now_iso = _iso(now)
            row = conn.execute(
                f"""
                UPDATE single_invites
                SET status = ?,
                    updated_at = ?,
                    consumed_at = CASE WHEN ? THEN COALESCE(consumed_at, ?) ELSE consumed_at END
                WHERE id = ? AND status IN ({_placeholders(from_statuses)})
                RETURNING *
                """,
                (to_status, now_iso, int(stamp_consumed), now_iso, str(invite_id), *from_statuses),
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def set_linked_account(self, invite_id: UUID, account_id: UUID, now: datetime) -> None:
        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                "UPDATE single_invites SET linked_account_id = ?, updated_at = ? WHERE id = ?",
                (str(account_id), _iso(now), str(invite_id)),
            )

        self._run(op)


# -----------------------------------------------------------------------------
# Verification sessions
# -----------------------------------------------------------------------------


class SQLiteSessionRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> VerificationSession:
        profile = row["submitted_profile"]
        media = row["submitted_media"]
        return VerificationSession(
            id=UUID(row["id"]),
            invite_id=UUID(row["invite_id"]),
            invitee_email=row["invitee_email"],
            status=row["status"],
            submitted_profile=ProfileSubmission.model_validate_json(profile) if profile else None,
            submitted_media=MediaSubmission.model_validate_json(media) if media else None,
            moderation_notes=row["moderation_notes"],
            decision_actor_id=parse_uuid(row["decision_actor_id"]),
            decision_at=parse_dt(row["decision_at"]),
            rejection_reason=row["rejection_reason"],
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def get_by_invite(self, invite_id: UUID) -> VerificationSession | None:
        def op(conn: sqlite3.Connection) -> VerificationSession | None:
            row = conn.execute(
                "SELECT * FROM single_verification_sessions WHERE invite_id = ?",
                (str(invite_id),),
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def upsert(self, session: VerificationSession) -> VerificationSession:
        def op(conn: sqlite3.Connection) -> VerificationSession:
            row = conn.execute(
                """
                INSERT INTO single_verification_sessions (
                    id, invite_id, invitee_email, status, submitted_profile,
                    submitted_media, moderation_notes, decision_actor_id,
                    decision_at, rejection_reason, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(invite_id) DO UPDATE SET
                    invitee_email=excluded.invitee_email,
                    status=excluded.status,
                    submitted_profile=excluded.submitted_profile,
                    submitted_media=excluded.submitted_media,
                    moderation_notes=excluded.moderation_notes,
                    decision_actor_id=excluded.decision_actor_id,
                    decision_at=excluded.decision_at,
                    rejection_reason=excluded.rejection_reason,
                    updated_at=excluded.updated_at
                RETURNING *
                """,
                (
                    str(session.id),
                    str(session.invite_id),
                    session.invitee_email,
                    session.status,
                    session.submitted_profile.model_dump_json()
                    if session.submitted_profile
                    else None,
                    session.submitted_media.model_dump_json() if session.submitted_media else None,
                    session.moderation_notes,
                    str(session.decision_actor_id) if session.decision_actor_id else None,
                    _iso(session.decision_at),
                    session.rejection_reason,
                    _iso(session.created_at),
                    _iso(session.updated_at),
                ),
            ).fetchone()
            return self._map_row(row)

        return self._run(op)

    def get_for_invites(self, invite_ids: Iterable[UUID]) -> dict[UUID, VerificationSession]:
        ids = [str(i) for i in invite_ids]
        if not ids:
            return {}

        def op(conn: sqlite3.Connection) -> dict[UUID, VerificationSession]:
            rows = conn.execute(
                f"""
                SELECT * FROM single_verification_sessions
                WHERE invite_id IN ({_placeholders(ids)})
                """,
                ids,
            ).fetchall()
            sessions = [self._map_row(r) for r in rows]
            return {s.invite_id: s for s in sessions}

        return self._run(op)


# -----------------------------------------------------------------------------
# Activation tokens
# -----------------------------------------------------------------------------


class SQLiteActivationTokenRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> ActivationToken:
        return ActivationToken(
            id=UUID(row["id"]),
            invite_id=UUID(row["invite_id"]),
            token_hash=row["token_hash"],
            token_salt=row["token_salt"],
            expires_at=parse_dt(row["expires_at"]),
            consumed_at=parse_dt(row["consumed_at"]),
            created_by_actor_id=parse_uuid(row["created_by_actor_id"]),
            created_at=parse_dt(row["created_at"]),
        )

    @staticmethod
    def _invalidate(conn: sqlite3.Connection, invite_id: UUID, now: datetime) -> int:
        cursor = conn.execute(
            """
            UPDATE single_activation_tokens
            SET consumed_at = ?
            WHERE invite_id = ? AND consumed_at IS NULL
            """,
            (_iso(now), str(invite_id)),
        )
        return cursor.rowcount

    def replace_outstanding(self, token: ActivationToken, now: datetime) -> ActivationToken:
        def op(conn: sqlite3.Connection) -> ActivationToken:
            self._invalidate(conn, token.invite_id, now)
            conn.execute(
                """
                INSERT INTO single_activation_tokens (
                    id, invite_id, token_hash, token_salt, expires_at,
                    consumed_at, created_by_actor_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(token.id),
                    str(token.invite_id),
                    token.token_hash,
                    token.token_salt,
                    _iso(token.expires_at),
                    _iso(token.consumed_at),
                    str(token.created_by_actor_id) if token.created_by_actor_id else None,
                    _iso(token.created_at),
                ),
            )
            return token

        return self._run(op)

    def invalidate_outstanding(self, invite_id: UUID, now: datetime) -> int:
        return self._run(lambda conn: self._invalidate(conn, invite_id, now))

    def list_for_invite(self, invite_id: UUID) -> list[ActivationToken]:
        def op(conn: sqlite3.Connection) -> list[ActivationToken]:
            rows = conn.execute(
                """
                SELECT * FROM single_activation_tokens
                WHERE invite_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (str(invite_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)

    def claim(self, token_id: UUID, now: datetime) -> ActivationToken | None:
        def op(conn: sqlite3.Connection) -> ActivationToken | None:
            row = conn.execute(
                """
                UPDATE single_activation_tokens
                SET consumed_at = ?
                WHERE id = ? AND consumed_at IS NULL
                RETURNING *
                """,
                (_iso(now), str(token_id)),
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def release(self, token_id: UUID, claimed_at: datetime) -> None:
        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                UPDATE single_activation_tokens
                SET consumed_at = NULL
                WHERE id = ? AND consumed_at = ?
                """,
                (str(token_id), _iso(claimed_at)),
            )

        self._run(op)


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


class SQLiteEventRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> InviteEvent:
        return InviteEvent(
            id=UUID(row["id"]),
            invite_id=UUID(row["invite_id"]),
            event_type=row["event_type"],
            actor_account_id=parse_uuid(row["actor_account_id"]),
            metadata=json.loads(row["metadata_json"] or "{}"),
            occurred_at=parse_dt(row["occurred_at"]),
        )

    def append(self, event: InviteEvent) -> InviteEvent:
        def op(conn: sqlite3.Connection) -> InviteEvent:
            conn.execute(
                """
                INSERT INTO single_invite_events (
                    id, invite_id, seq, event_type, actor_account_id,
                    metadata_json, occurred_at
                )
                SELECT ?, ?, COALESCE(MAX(seq), 0) + 1, ?, ?, ?, ?
                FROM single_invite_events WHERE invite_id = ?
                """,
                (
                    str(event.id),
                    str(event.invite_id),
                    event.event_type,
                    str(event.actor_account_id) if event.actor_account_id else None,
                    json.dumps(event.metadata, default=str),
                    _iso(event.occurred_at),
                    str(event.invite_id),
                ),
            )
            return event

        return self._run(op)

    def list_for_invite(self, invite_id: UUID) -> list[InviteEvent]:
        def op(conn: sqlite3.Connection) -> list[InviteEvent]:
            rows = conn.execute(
                """
                SELECT * FROM single_invite_events
                WHERE invite_id = ?
                ORDER BY occurred_at ASC, seq ASC
                """,
                (str(invite_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)


# -----------------------------------------------------------------------------
# Accounts and profiles
# -----------------------------------------------------------------------------


class SQLiteAccountRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> Account:
        return Account(
            id=UUID(row["id"]),
            kind=row["kind"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            email_verified=bool(row["email_verified"]),
            partner_email_verified=bool(row["partner_email_verified"]),
            membership_type=row["membership_type"],
            membership_expires_at=parse_dt(row["membership_expires_at"]),
            partner1_nickname=row["partner1_nickname"],
            partner2_nickname=row["partner2_nickname"],
            roles=json.loads(row["roles_json"] or "[]"),
            invite_source_account_id=parse_uuid(row["invite_source_account_id"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def get_by_id(self, account_id: UUID) -> Account | None:
        def op(conn: sqlite3.Connection) -> Account | None:
            row = conn.execute(
                "SELECT * FROM accounts WHERE id = ?", (str(account_id),)
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def get_by_email(self, email: str) -> list[Account]:
        def op(conn: sqlite3.Connection) -> list[Account]:
            rows = conn.execute(
                "SELECT * FROM accounts WHERE lower(trim(email)) = ? ORDER BY created_at ASC",
                (normalize_email(email),),
            ).fetchall()
            return [self._map_row(r) for r in rows]

        return self._run(op)

    def username_exists(self, username: str) -> bool:
        def op(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                "SELECT 1 FROM accounts WHERE username = ?", (username,)
            ).fetchone()
            return row is not None

        return self._run(op)

    def save(self, account: Account) -> Account:
        def op(conn: sqlite3.Connection) -> Account:
            conn.execute(
                """
                INSERT INTO accounts (
                    id, kind, username, email, password_hash, email_verified,
                    partner_email_verified, membership_type, membership_expires_at,
                    partner1_nickname, partner2_nickname, roles_json,
                    invite_source_account_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    kind=excluded.kind,
                    username=excluded.username,
                    email=excluded.email,
                    password_hash=excluded.password_hash,
                    email_verified=excluded.email_verified,
                    partner_email_verified=excluded.partner_email_verified,
                    membership_type=excluded.membership_type,
                    membership_expires_at=excluded.membership_expires_at,
                    partner1_nickname=excluded.partner1_nickname,
                    partner2_nickname=excluded.partner2_nickname,
                    roles_json=excluded.roles_json,
                    invite_source_account_id=excluded.invite_source_account_id,
                    updated_at=excluded.updated_at
                """,
                (
                    str(account.id),
                    account.kind,
                    account.username,
                    account.email,
                    account.password_hash,
                    int(account.email_verified),
                    int(account.partner_email_verified),
                    account.membership_type,
                    _iso(account.membership_expires_at),
                    account.partner1_nickname,
                    account.partner2_nickname,
                    json.dumps(account.roles),
                    str(account.invite_source_account_id)
                    if account.invite_source_account_id
                    else None,
                    _iso(account.created_at),
                    _iso(account.updated_at),
                ),
            )
            return account

        try:
            return self._run(op)
        except sqlite3.IntegrityError as e:
            if "accounts.username" in str(e):
                raise UsernameTakenError(account.username) from e
            raise

    def attach_single(
        self, account_id: UUID, password_hash: str, inviter_id: UUID, now: datetime
    ) -> Account | None:
        def op(conn: sqlite3.Connection) -> Account | None:
            row = conn.execute(
                """
                UPDATE accounts
                SET password_hash = ?,
                    email_verified = 1,
                    invite_source_account_id = COALESCE(invite_source_account_id, ?),
                    updated_at = ?
                WHERE id = ? AND kind = 'single'
                RETURNING *
                """,
                (password_hash, str(inviter_id), _iso(now), str(account_id)),
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)


_PROFILE_COLUMNS = {name: name for name in PROFILE_FIELDS}
_PROFILE_COLUMNS["availability"] = "availability_json"


class SQLiteProfileRepo(SQLiteRepoBase):
    def _map_row(self, row: dict[str, Any]) -> SingleProfile:
        availability = row.get("availability_json")
        return SingleProfile(
            account_id=UUID(row["account_id"]),
            inviter_account_id=parse_uuid(row["inviter_account_id"]),
            nickname=row["nickname"],
            contact_email=row.get("contact_email"),
            country=row["country"],
            city=row.get("city"),
            short_bio=row["short_bio"],
            interests=row["interests"],
            play_preferences=row["play_preferences"],
            boundaries=row["boundaries"],
            availability=json.loads(availability) if availability else None,
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def get(self, account_id: UUID) -> SingleProfile | None:
        def op(conn: sqlite3.Connection) -> SingleProfile | None:
            row = conn.execute(
                "SELECT * FROM single_profiles WHERE account_id = ?", (str(account_id),)
            ).fetchone()
            return self._map_row(row) if row else None

        return self._run(op)

    def upsert_fields(
        self,
        account_id: UUID,
        inviter_id: UUID | None,
        fields: Mapping[str, Any],
        now: datetime,
    ) -> SingleProfile:
        unknown = set(fields) - set(_PROFILE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")

        columns = [_PROFILE_COLUMNS[name] for name in fields]
        values = [
            json.dumps(value) if name == "availability" and value is not None else value
            for name, value in fields.items()
        ]
        insert_columns = ", ".join(["account_id", "inviter_account_id", *columns])
        updates = "".join(f"{col}=excluded.{col}, " for col in columns)

        def op(conn: sqlite3.Connection) -> SingleProfile:
            row = conn.execute(
                f"""
                INSERT INTO single_profiles ({insert_columns}, created_at, updated_at)
                VALUES ({_placeholders([None, None, *columns, None, None])})
                ON CONFLICT(account_id) DO UPDATE SET
                    {updates}
                    inviter_account_id = COALESCE(
                        single_profiles.inviter_account_id, excluded.inviter_account_id
                    ),
                    updated_at = excluded.updated_at
                RETURNING *
                """,
                (
                    str(account_id),
                    str(inviter_id) if inviter_id else None,
                    *values,
                    _iso(now),
                    _iso(now),
                ),
            ).fetchone()
            return self._map_row(row)

        return self._run(op)
