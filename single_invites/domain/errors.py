from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Any, Literal

ErrorKind = Literal["validation", "forbidden", "conflict", "not_found"]


@dataclass(frozen=True)
class InviteError:
    """A typed failure returned by the invite lifecycle components."""

    kind: ErrorKind
    code: str
    message: str
    field: str | None = None
    context: dict[str, Any] = dc_field(default_factory=dict)


class UsernameTakenError(ValueError):
    """Raised by account storage when a username is already in use."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"Username already taken: {username}")


def validation(code: str, message: str, field: str | None = None) -> InviteError:
    return InviteError(kind="validation", code=code, message=message, field=field)


def forbidden(code: str, message: str, **context: Any) -> InviteError:
    return InviteError(kind="forbidden", code=code, message=message, context=context)


def conflict(code: str, message: str, **context: Any) -> InviteError:
    return InviteError(kind="conflict", code=code, message=message, context=context)


def not_found(code: str, message: str, **context: Any) -> InviteError:
    return InviteError(kind="not_found", code=code, message=message, context=context)
