from typing import NoReturn

from fastapi import HTTPException, status

from single_invites.domain.entities import TokenStatus
from single_invites.domain.errors import InviteError

STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "conflict": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
}

TOKEN_MESSAGES: dict[str, str] = {
    "invalid": "This link is not valid.",
    "expired": "This link has expired.",
    "consumed": "This link has already been used.",
}


def error_detail(errors: list[InviteError]) -> dict[str, object]:
    return {
        "code": errors[0].code,
        "message": errors[0].message,
        "errors": [
            {"code": e.code, "message": e.message, "field": e.field, **e.context} for e in errors
        ],
    }


def raise_for_errors(errors: list[InviteError]) -> None:
    """Convert component errors to an HTTPException (the first error picks the status)."""
    if not errors:
        return
    raise HTTPException(status_code=STATUS_BY_KIND[errors[0].kind], detail=error_detail(errors))


def raise_for_token(token_status: TokenStatus) -> NoReturn:
    """Non-valid token outcomes: 410 for used/expired links, 400 otherwise."""
    code = status.HTTP_400_BAD_REQUEST
    if token_status in ("expired", "consumed"):
        code = status.HTTP_410_GONE
    raise HTTPException(
        status_code=code,
        detail={"code": f"token_{token_status}", "message": TOKEN_MESSAGES[token_status]},
    )
