"""
Inviter-facing single invite routes.

A couple account creates, lists and revokes its own single invites.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from single_invites.api.deps import get_context, get_current_account
from single_invites.api.errors import raise_for_errors
from single_invites.api.schemas import InviteResponse
from single_invites.app_shell.context import ServiceContext
from single_invites.components.invite import (
    CreateInviteInput,
    ListInvitesInput,
    RevokeInviteInput,
    run_create,
    run_list,
    run_revoke,
)
from single_invites.domain.entities import Account

router = APIRouter()


class CreateInviteRequest(BaseModel):
    invitee_email: str = Field(..., description="Email the invite is sent to")
    role: str = Field(..., description="single_male or single_female")
    ttl_hours: int | None = Field(None, description="Link lifetime; clamped to configured bounds")


class CreateInviteResponse(BaseModel):
    invite: InviteResponse
    link: str
    email_sent: bool


@router.post("", response_model=CreateInviteResponse, status_code=status.HTTP_201_CREATED)
def create_invite(
    body: CreateInviteRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    ctx: ServiceContext = Depends(get_context),
) -> CreateInviteResponse:
    output = run_create(
        CreateInviteInput(
            inviter_id=account.id,
            invitee_email=body.invitee_email,
            role=body.role,
            ttl_hours=body.ttl_hours,
            created_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        ),
        registry=ctx.registry,
    )
    raise_for_errors(output.errors)
    assert output.created is not None

    created = output.created
    return CreateInviteResponse(
        invite=InviteResponse.from_invite(created.invite, created.role_label),
        link=created.link,
        email_sent=created.email_sent,
    )


@router.get("", response_model=list[InviteResponse])
def list_invites(
    account: Account = Depends(get_current_account),
    ctx: ServiceContext = Depends(get_context),
) -> list[InviteResponse]:
    output = run_list(ListInvitesInput(inviter_id=account.id), registry=ctx.registry)
    return [
        InviteResponse.from_invite(i, ctx.registry.role_label(i.requested_role))
        for i in output.invites
    ]


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_invite(
    invite_id: UUID,
    account: Account = Depends(get_current_account),
    ctx: ServiceContext = Depends(get_context),
) -> Response:
    output = run_revoke(
        RevokeInviteInput(invite_id=invite_id, actor_id=account.id), registry=ctx.registry
    )
    raise_for_errors(output.errors)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
