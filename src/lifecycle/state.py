"""
Obligation State Machine

Pure functions over ScheduledTransaction status. Nothing here touches
storage; the lifecycle service persists whatever these return.

    PENDING --> PAID | OVERDUE | SKIPPED
    OVERDUE --> PAID | SKIPPED
    PAID, SKIPPED: terminal

CRITICAL: Statuses only move forward. Undoing a skip is not a transition;
it creates a new PENDING record (see `reinstated_copy`).
"""

from datetime import date, datetime

from src.models.finance import ObligationStatus, ScheduledTransaction, new_id


ALLOWED_TRANSITIONS: dict[ObligationStatus, frozenset[ObligationStatus]] = {
    ObligationStatus.PENDING: frozenset({
        ObligationStatus.PAID,
        ObligationStatus.OVERDUE,
        ObligationStatus.SKIPPED,
    }),
    ObligationStatus.OVERDUE: frozenset({
        ObligationStatus.PAID,
        ObligationStatus.SKIPPED,
    }),
    ObligationStatus.PAID: frozenset(),
    ObligationStatus.SKIPPED: frozenset(),
}


class ObligationStateError(Exception):
    """Base exception for lifecycle state problems."""
    pass


class InvalidTransitionError(ObligationStateError):
    """A status change the state machine does not allow."""

    def __init__(
        self,
        obligation_id: str,
        current: ObligationStatus,
        target: ObligationStatus,
    ):
        self.obligation_id = obligation_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot change obligation from {current.value} to {target.value}"
        )


def can_transition(current: ObligationStatus, target: ObligationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(
    obligation: ScheduledTransaction,
    target: ObligationStatus,
    **updates,
) -> ScheduledTransaction:
    """
    Return a copy of `obligation` in status `target`.

    Extra keyword arguments are applied to the copy (e.g. cleared_date).

    Raises:
        InvalidTransitionError: If the move is not allowed
    """
    if not can_transition(obligation.status, target):
        raise InvalidTransitionError(obligation.id, obligation.status, target)

    return obligation.model_copy(update={
        **updates,
        "status": target,
        "updated_at": datetime.now(),
    })


def apply_overdue(
    obligations: list[ScheduledTransaction],
    today: date,
) -> list[ScheduledTransaction]:
    """
    PENDING obligations due before `today` become OVERDUE.

    Returns only the changed copies. Running it again on the result set
    changes nothing, so the pass is safe to repeat.
    """
    return [
        transition(obligation, ObligationStatus.OVERDUE)
        for obligation in obligations
        if obligation.status == ObligationStatus.PENDING
        and obligation.due_date < today
    ]


def reinstated_copy(skipped: ScheduledTransaction) -> ScheduledTransaction:
    """
    Fresh PENDING copy of a SKIPPED obligation.

    The skipped record itself is left untouched.
    """
    if skipped.status != ObligationStatus.SKIPPED:
        raise ObligationStateError(
            f"Only skipped obligations can be reinstated (status is {skipped.status.value})"
        )

    now = datetime.now()
    return skipped.model_copy(update={
        "id": new_id(),
        "status": ObligationStatus.PENDING,
        "matched_transaction_id": None,
        "cleared_date": None,
        "created_at": now,
        "updated_at": now,
    })
