"""
Events component - invite audit trail.

Invariants:
- I1: Insert-only
- I2: History is returned oldest first
"""

from __future__ import annotations

from ._impl import EventLog
from .models import AppendEventInput, EventOutput, HistoryInput, HistoryOutput
from .ports import InviteEventRepoPort, TimePort


def run_append(
    inp: AppendEventInput,
    *,
    repo: InviteEventRepoPort,
    time: TimePort,
) -> EventOutput:
    log = EventLog(repo, time)
    event = log.append(inp.invite_id, inp.event_type, inp.actor_account_id, inp.metadata)
    return EventOutput(event=event)


def run_history(
    inp: HistoryInput,
    *,
    repo: InviteEventRepoPort,
    time: TimePort,
) -> HistoryOutput:
    log = EventLog(repo, time)
    return HistoryOutput(events=tuple(log.history(inp.invite_id)))


def run(
    inp: AppendEventInput | HistoryInput,
    *,
    repo: InviteEventRepoPort,
    time: TimePort,
) -> EventOutput | HistoryOutput:
    if isinstance(inp, AppendEventInput):
        return run_append(inp, repo=repo, time=time)
    elif isinstance(inp, HistoryInput):
        return run_history(inp, repo=repo, time=time)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
