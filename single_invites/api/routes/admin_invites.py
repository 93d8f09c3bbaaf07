"""
Moderator routes for single invites.

Lists invites awaiting review (with their verification sessions),
records approve/reject decisions and exposes each invite's event history.
"""

from __future__ import annotations

from datetime import datetime
from typing import get_args
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from single_invites.api.deps import get_context, get_moderator
from single_invites.api.errors import raise_for_errors
from single_invites.api.schemas import EventResponse, InviteResponse, SessionResponse
from single_invites.app_shell.context import ServiceContext
from single_invites.components.events import HistoryInput, run_history
from single_invites.components.invite import ListForModerationInput, run_list_for_moderation
from single_invites.components.verification import (
    DecideInput,
    ResendActivationInput,
    run_decide,
    run_resend_activation,
)
from single_invites.domain.entities import Account, InviteStatus

router = APIRouter()

_KNOWN_STATUSES = set(get_args(InviteStatus))


class DecisionRequest(BaseModel):
    reason: str | None = None


class ModerationItemResponse(BaseModel):
    invite: InviteResponse
    session: SessionResponse | None = None


class DecisionResponse(BaseModel):
    invite: InviteResponse
    session: SessionResponse
    activation_link: str | None = None
    activation_expires_at: datetime | None = None
    email_sent: bool = False


class ActivationLinkResponse(BaseModel):
    activation_link: str
    activation_expires_at: datetime
    email_sent: bool


def _parse_statuses(raw: str | None) -> tuple[InviteStatus, ...] | None:
    if not raw:
        return None
    statuses = tuple(s.strip() for s in raw.split(",") if s.strip())
    unknown = [s for s in statuses if s not in _KNOWN_STATUSES]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "invalid_status_filter", "message": f"Unknown statuses: {unknown}"},
        )
    return statuses  # type: ignore[return-value]


@router.get("", response_model=list[ModerationItemResponse])
def list_for_moderation(
    status_filter: str | None = Query(None, alias="status"),
    moderator: Account = Depends(get_moderator),
    ctx: ServiceContext = Depends(get_context),
) -> list[ModerationItemResponse]:
    output = run_list_for_moderation(
        ListForModerationInput(statuses=_parse_statuses(status_filter)), registry=ctx.registry
    )
    return [
        ModerationItemResponse(
            invite=InviteResponse.from_invite(item.invite, item.role_label),
            session=SessionResponse.from_session(item.session) if item.session else None,
        )
        for item in output.items
    ]


def _decide(
    ctx: ServiceContext, invite_id: UUID, moderator: Account, decision: str, reason: str | None
) -> DecisionResponse:
    output = run_decide(
        DecideInput(invite_id=invite_id, actor_id=moderator.id, decision=decision, reason=reason),
        workflow=ctx.workflow,
    )
    raise_for_errors(output.errors)
    assert output.result is not None

    result = output.result
    activation = result.activation
    return DecisionResponse(
        invite=InviteResponse.from_invite(
            result.invite, ctx.registry.role_label(result.invite.requested_role)
        ),
        session=SessionResponse.from_session(result.session),
        activation_link=activation.link if activation else None,
        activation_expires_at=activation.expires_at if activation else None,
        email_sent=result.email_sent,
    )


@router.post("/{invite_id}/approve", response_model=DecisionResponse)
def approve_invite(
    invite_id: UUID,
    body: DecisionRequest | None = None,
    moderator: Account = Depends(get_moderator),
    ctx: ServiceContext = Depends(get_context),
) -> DecisionResponse:
    return _decide(ctx, invite_id, moderator, "approve", body.reason if body else None)


@router.post("/{invite_id}/reject", response_model=DecisionResponse)
def reject_invite(
    invite_id: UUID,
    body: DecisionRequest | None = None,
    moderator: Account = Depends(get_moderator),
    ctx: ServiceContext = Depends(get_context),
) -> DecisionResponse:
    return _decide(ctx, invite_id, moderator, "reject", body.reason if body else None)


@router.post("/{invite_id}/resend-activation", response_model=ActivationLinkResponse)
def resend_activation(
    invite_id: UUID,
    moderator: Account = Depends(get_moderator),
    ctx: ServiceContext = Depends(get_context),
) -> ActivationLinkResponse:
    output = run_resend_activation(
        ResendActivationInput(invite_id=invite_id, actor_id=moderator.id), workflow=ctx.workflow
    )
    raise_for_errors(output.errors)
    assert output.activation is not None
    return ActivationLinkResponse(
        activation_link=output.activation.link,
        activation_expires_at=output.activation.expires_at,
        email_sent=output.email_sent,
    )


@router.get("/{invite_id}/events", response_model=list[EventResponse])
def invite_events(
    invite_id: UUID,
    moderator: Account = Depends(get_moderator),
    ctx: ServiceContext = Depends(get_context),
) -> list[EventResponse]:
    if ctx.invite_repo.get_by_id(invite_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
    output = run_history(HistoryInput(invite_id=invite_id), repo=ctx.event_repo, time=ctx.clock)
    return [EventResponse.from_event(e) for e in output.events]
