"""
Transaction to Scheduled Conversion

Turns an existing transaction into a recurring bill ("this was my rent,
remind me every month").
"""

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.models.finance import (
    RecurrencePattern,
    ScheduledTransaction,
    Transaction,
    TransactionType,
)
from src.models.requests import RecurringBillRequest


def can_convert_to_recurring(transaction: Transaction) -> tuple[bool, Optional[str]]:
    """
    Check whether a transaction may become a recurring bill.

    Returns:
        (can_convert, reason_if_not)
    """
    if transaction.type == TransactionType.TRANSFER:
        return False, "Transfer transactions cannot be converted to recurring bills"

    if not transaction.account_id:
        return False, "Transaction must be associated with an account"

    return True, None


def default_recurring_request(transaction: Transaction) -> RecurringBillRequest:
    """Monthly, every month, first due one month after the transaction."""
    return RecurringBillRequest(
        recurrence_pattern=RecurrencePattern.MONTHLY,
        recurrence_interval=1,
        first_due_date=transaction.date + relativedelta(months=1),
    )


def convert_transaction_to_scheduled(
    transaction: Transaction,
    request: RecurringBillRequest,
) -> ScheduledTransaction:
    """
    Build the obligation for a converted transaction.

    Expenses become OBLIGATION-type bills; other types keep their type.
    The request is expected to be validated already.
    """
    obligation_type = (
        TransactionType.OBLIGATION
        if transaction.type == TransactionType.EXPENSE
        else transaction.type
    )

    notes = request.notes or (
        f"Created from transaction on {transaction.date.isoformat()}"
        + (f" - {transaction.merchant}" if transaction.merchant else "")
    )

    now = datetime.now()
    return ScheduledTransaction(
        amount=transaction.amount,
        currency=transaction.currency,
        merchant=transaction.merchant or "Unknown",
        category=transaction.category,
        type=obligation_type,
        account_id=transaction.account_id,
        due_date=request.first_due_date,
        recurrence_pattern=request.recurrence_pattern,
        recurrence_interval=request.recurrence_interval,
        recurrence_end_date=request.recurrence_end_date,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
