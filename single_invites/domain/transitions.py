from single_invites.domain.entities import InviteStatus

TERMINAL_STATUSES: frozenset[InviteStatus] = frozenset(
    {"completed", "revoked", "declined", "expired"}
)

# Statuses that count against an inviter's active-invite cap
ACTIVE_STATUSES: tuple[InviteStatus, ...] = (
    "pending",
    "awaiting_verification",
    "awaiting_activation",
    "awaiting_couple",
)

# Side exits are reachable from any non-terminal status
SIDE_EXITS: frozenset[InviteStatus] = frozenset({"revoked", "declined", "expired"})

_FORWARD: dict[InviteStatus, InviteStatus] = {
    "pending": "awaiting_verification",
    "awaiting_verification": "awaiting_activation",
    "awaiting_activation": "awaiting_couple",
    "awaiting_couple": "completed",
}


def is_terminal(status: InviteStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: InviteStatus, new: InviteStatus) -> bool:
    """
    Determine if an invite may move from `current` to `new`.
    Terminal statuses never move; self-transitions are not transitions.
    """
    if is_terminal(current) or current == new:
        return False
    if new in SIDE_EXITS:
        return True
    return _FORWARD.get(current) == new


def sources_for(new: InviteStatus) -> tuple[InviteStatus, ...]:
    """Every status from which `new` is reachable in a single step."""
    return tuple(s for s in ACTIVE_STATUSES if can_transition(s, new))
