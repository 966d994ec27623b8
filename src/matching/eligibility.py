"""
Pairing Eligibility

Hard filters applied before any scoring, in both directions, and again
at confirmation time. A pair that fails any of these is never offered
and can never be confirmed.
"""

from typing import Optional

from src.models.finance import (
    ScheduledTransaction,
    Transaction,
    TransactionType,
)


PAIRABLE_TYPES = (TransactionType.EXPENSE, TransactionType.OBLIGATION)


def is_transaction_paired(
    transaction_id: str,
    obligations: list[ScheduledTransaction],
) -> bool:
    """True if any obligation already points at this transaction."""
    return any(o.matched_transaction_id == transaction_id for o in obligations)


def is_pairable_type(transaction: Transaction) -> bool:
    return transaction.type in PAIRABLE_TYPES


def accounts_compatible(
    transaction: Transaction,
    obligation: ScheduledTransaction,
) -> bool:
    """Accounts must agree when both sides name one."""
    if transaction.account_id and obligation.account_id:
        return transaction.account_id == obligation.account_id
    return True


def within_window(
    transaction: Transaction,
    obligation: ScheduledTransaction,
    window_days: int,
) -> bool:
    return abs((transaction.date - obligation.due_date).days) <= window_days


def check_pairing(
    transaction: Transaction,
    obligation: ScheduledTransaction,
    obligations: list[ScheduledTransaction],
    window_days: int,
) -> Optional[str]:
    """
    Why this pair is not eligible, or None when it is.

    `obligations` must be the full obligation set, so a transaction
    already claimed by any other obligation is caught.
    """
    if not obligation.is_open:
        return f"Obligation is already {obligation.status.value}"

    if not is_pairable_type(transaction):
        return "Transaction must be EXPENSE or OBLIGATION type"

    if is_transaction_paired(transaction.id, obligations):
        return "Transaction is already paired to another scheduled item"

    if not accounts_compatible(transaction, obligation):
        return "Account mismatch"

    if not within_window(transaction, obligation, window_days):
        return f"Transaction date is more than {window_days} days from the due date"

    return None


def can_pair(
    transaction: Transaction,
    obligation: ScheduledTransaction,
    obligations: list[ScheduledTransaction],
    window_days: int,
) -> tuple[bool, Optional[str]]:
    """
    Returns:
        (can_pair, reason_if_not)
    """
    reason = check_pairing(transaction, obligation, obligations, window_days)
    return reason is None, reason
