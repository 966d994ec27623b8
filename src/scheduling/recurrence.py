"""
Recurrence Generator

Pure date arithmetic for obligations. Every due date the engine produces
(previews, batch series, suggestions) comes from `next_due_date`, so the
preview a user sees and the records that get created can never disagree.

Monthly steps are always taken from the base date, not chained from the
previous occurrence: Jan 31 -> Feb 29 -> Mar 31 -> Apr 30.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.models.finance import (
    ObligationStatus,
    RecurrencePattern,
    ScheduledTransaction,
    new_id,
)
from src.models.requests import BatchSeriesParams


def next_due_date(
    base: date,
    pattern: RecurrencePattern,
    interval: int,
    occurrence_index: int,
) -> date:
    """
    Due date of the `occurrence_index`-th occurrence (0 is the base itself).

    MONTHLY clamps the day to the target month's length; WEEKLY steps
    7 * interval days; CUSTOM steps interval days; ONCE never advances.

    Raises:
        ValueError: negative occurrence index, or an interval below 1 for a
            repeating pattern
    """
    if occurrence_index < 0:
        raise ValueError("occurrence_index cannot be negative")
    if pattern != RecurrencePattern.ONCE and interval < 1:
        raise ValueError(f"Recurrence interval must be at least 1, got {interval}")

    steps = interval * occurrence_index
    if pattern == RecurrencePattern.MONTHLY:
        return base + relativedelta(months=steps)
    if pattern == RecurrencePattern.WEEKLY:
        return base + timedelta(days=7 * steps)
    if pattern == RecurrencePattern.CUSTOM:
        return base + timedelta(days=steps)
    return base


def preview_due_dates(
    base: date,
    pattern: RecurrencePattern,
    interval: int,
    count: int,
    end_date: Optional[date] = None,
) -> list[date]:
    """
    First `count` due dates, without creating any records.

    ONCE yields only the base date. Dates after `end_date` are dropped.
    """
    if count <= 0:
        return []
    if pattern == RecurrencePattern.ONCE:
        return [base] if end_date is None or base <= end_date else []

    dates = []
    for index in range(count):
        due = next_due_date(base, pattern, interval, index)
        if end_date is not None and due > end_date:
            break
        dates.append(due)
    return dates


def build_batch_series(
    params: BatchSeriesParams,
    series_id: Optional[str] = None,
) -> list[ScheduledTransaction]:
    """
    Expand batch parameters into individual ONCE obligations.

    All items share one series ID, merchant and currency. Cheque numbers
    and images are assigned by position; missing images are simply absent.
    Params are expected to be validated already.
    """
    series_id = series_id or new_id()
    now = datetime.now()
    total = params.number_of_cheques
    obligations = []

    for index in range(total):
        cheque_number = (
            str(params.starting_cheque_number + index)
            if params.starting_cheque_number is not None
            else None
        )
        cheque_image = (
            params.cheque_images[index]
            if index < len(params.cheque_images)
            else None
        )
        label = "Cheque" if params.is_cheque else "Instalment"

        obligations.append(ScheduledTransaction(
            amount=params.amount,
            currency=params.currency,
            merchant=params.merchant,
            category=params.category,
            type=params.type,
            account_id=params.account_id,
            due_date=next_due_date(
                params.first_due_date,
                params.frequency.pattern,
                params.interval,
                index,
            ),
            recurrence_pattern=RecurrencePattern.ONCE,
            recurrence_interval=1,
            status=ObligationStatus.PENDING,
            series_id=series_id,
            is_cheque=params.is_cheque,
            cheque_number=cheque_number,
            cheque_image=cheque_image,
            notes=f"{label} #{index + 1} of {total}",
            created_at=now,
            updated_at=now,
        ))

    return obligations
