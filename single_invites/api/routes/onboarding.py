"""
Public onboarding routes for invitees.

Every call carries the combined token in the body. Token outcomes other
than `valid` map to 400 (invalid) or 410 (expired/consumed).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from single_invites.api.deps import get_context
from single_invites.api.errors import raise_for_errors, raise_for_token
from single_invites.api.schemas import SessionResponse, TokenRequest, TokenStatusResponse
from single_invites.app_shell.context import ServiceContext
from single_invites.components.activation import (
    CompleteActivationInput,
    VerifyActivationInput,
    run_complete,
)
from single_invites.components.activation import run_verify as run_verify_activation
from single_invites.components.invite import (
    DeclineInviteInput,
    VerifyInviteTokenInput,
    run_decline,
    run_verify_token,
)
from single_invites.components.verification import (
    SubmitMediaInput,
    SubmitProfileInput,
    run_submit_media,
    run_submit_profile,
)
from single_invites.domain.entities import Invite, TokenStatus

router = APIRouter()


class ProfileRequest(BaseModel):
    token: str
    profile: dict[str, Any] = Field(default_factory=dict)


class MediaRequest(BaseModel):
    token: str
    media: dict[str, Any] = Field(default_factory=dict)


class DeclineRequest(BaseModel):
    token: str
    reason: str | None = None


class ActivateRequest(BaseModel):
    token: str
    password: str


class ActivateResponse(BaseModel):
    account_id: str
    created: bool
    invite_status: str


def _token_response(
    ctx: ServiceContext, token_status: TokenStatus, invite: Invite | None
) -> TokenStatusResponse:
    if invite is None:
        return TokenStatusResponse(status=token_status)
    return TokenStatusResponse(
        status=token_status,
        invite_id=str(invite.id),
        requested_role=invite.requested_role,
        role_label=ctx.registry.role_label(invite.requested_role),
        invitee_email=invite.invitee_email,
        expires_at=invite.expires_at,
    )


@router.post("/validate", response_model=TokenStatusResponse)
def validate_invite(
    body: TokenRequest, ctx: ServiceContext = Depends(get_context)
) -> TokenStatusResponse:
    output = run_verify_token(VerifyInviteTokenInput(token=body.token), registry=ctx.registry)
    return _token_response(ctx, output.status, output.invite)


@router.post("/profile", response_model=SessionResponse)
def submit_profile(
    body: ProfileRequest, ctx: ServiceContext = Depends(get_context)
) -> SessionResponse:
    output = run_submit_profile(
        SubmitProfileInput(token=body.token, profile=body.profile), workflow=ctx.workflow
    )
    if output.token_status != "valid":
        raise_for_token(output.token_status)
    raise_for_errors(output.errors)
    assert output.session is not None
    return SessionResponse.from_session(output.session)


@router.post("/media", response_model=SessionResponse)
def submit_media(body: MediaRequest, ctx: ServiceContext = Depends(get_context)) -> SessionResponse:
    output = run_submit_media(
        SubmitMediaInput(token=body.token, media=body.media), workflow=ctx.workflow
    )
    if output.token_status != "valid":
        raise_for_token(output.token_status)
    raise_for_errors(output.errors)
    assert output.session is not None
    return SessionResponse.from_session(output.session)


@router.post("/decline")
def decline_invite(
    body: DeclineRequest, ctx: ServiceContext = Depends(get_context)
) -> dict[str, str]:
    output = run_decline(
        DeclineInviteInput(token=body.token, reason=body.reason), registry=ctx.registry
    )
    if output.token_status != "valid":
        raise_for_token(output.token_status)
    raise_for_errors(output.errors)
    return {"status": "declined"}


@router.post("/activate/validate", response_model=TokenStatusResponse)
def validate_activation(
    body: TokenRequest, ctx: ServiceContext = Depends(get_context)
) -> TokenStatusResponse:
    output = run_verify_activation(VerifyActivationInput(token=body.token), issuer=ctx.issuer)
    return _token_response(ctx, output.status, output.invite)


@router.post("/activate", response_model=ActivateResponse)
def activate(body: ActivateRequest, ctx: ServiceContext = Depends(get_context)) -> ActivateResponse:
    output = run_complete(
        CompleteActivationInput(token=body.token, password=body.password), issuer=ctx.issuer
    )
    if output.status != "valid":
        raise_for_token(output.status)
    raise_for_errors(output.errors)
    assert output.completed is not None
    return ActivateResponse(
        account_id=str(output.completed.account_id),
        created=output.completed.created,
        invite_status=output.completed.invite.status,
    )
