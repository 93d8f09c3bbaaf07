from typing import get_args

import pytest

from single_invites.domain.entities import InviteStatus
from single_invites.domain.transitions import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    is_terminal,
    sources_for,
)

ALL_STATUSES = get_args(InviteStatus)


def test_forward_chain():
    assert can_transition("pending", "awaiting_verification")
    assert can_transition("awaiting_verification", "awaiting_activation")
    assert can_transition("awaiting_activation", "awaiting_couple")
    assert can_transition("awaiting_couple", "completed")


def test_no_skipping_stages():
    assert not can_transition("pending", "awaiting_activation")
    assert not can_transition("pending", "completed")
    assert not can_transition("awaiting_verification", "awaiting_couple")


def test_no_backward_moves():
    assert not can_transition("awaiting_activation", "awaiting_verification")
    assert not can_transition("awaiting_couple", "pending")


@pytest.mark.parametrize("current", ACTIVE_STATUSES)
@pytest.mark.parametrize("side_exit", ["revoked", "declined", "expired"])
def test_side_exits_from_every_active_status(current, side_exit):
    assert can_transition(current, side_exit)


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
def test_terminal_statuses_never_move(terminal):
    assert is_terminal(terminal)
    for target in ALL_STATUSES:
        assert not can_transition(terminal, target)


def test_self_transition_is_not_a_transition():
    assert not can_transition("pending", "pending")


def test_sources_for():
    assert sources_for("awaiting_verification") == ("pending",)
    assert set(sources_for("revoked")) == set(ACTIVE_STATUSES)
    assert sources_for("pending") == ()
