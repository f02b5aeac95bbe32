"""Reading-state machine, event ledger and book operations."""

from .ledger import EventLedger
from .service import ReadingService
from .state import (
    TRANSITIONS,
    allowed_next_states,
    apply,
    apply_progress,
    can_transition,
    manual_update,
    progress_percent,
)

__all__ = [
    "EventLedger",
    "ReadingService",
    "TRANSITIONS",
    "allowed_next_states",
    "apply",
    "apply_progress",
    "can_transition",
    "manual_update",
    "progress_percent",
]
