"""Obligation lifecycle: the status state machine and the service that persists it."""

from src.lifecycle.service import ObligationService
from src.lifecycle.state import (
    ALLOWED_TRANSITIONS,
    InvalidTransitionError,
    ObligationStateError,
    apply_overdue,
    can_transition,
    reinstated_copy,
    transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "InvalidTransitionError",
    "ObligationService",
    "ObligationStateError",
    "apply_overdue",
    "can_transition",
    "reinstated_copy",
    "transition",
]
