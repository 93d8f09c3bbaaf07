"""
Events component - append-only invite event ledger.
"""

from ._impl import EventLog
from .component import run, run_append, run_history
from .models import AppendEventInput, EventOutput, EventType, HistoryInput, HistoryOutput
from .ports import InviteEventRepoPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_append",
    "run_history",
    # Input models
    "AppendEventInput",
    "HistoryInput",
    # Output models
    "EventOutput",
    "EventType",
    "HistoryOutput",
    # Ports
    "InviteEventRepoPort",
    "TimePort",
    # _impl re-exports
    "EventLog",
]
