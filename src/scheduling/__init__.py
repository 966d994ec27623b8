"""Recurrence generation, transaction conversion and the daily trigger."""

from src.scheduling.conversion import (
    can_convert_to_recurring,
    convert_transaction_to_scheduled,
    default_recurring_request,
)
from src.scheduling.daily import DailyTrigger, seconds_until_midnight
from src.scheduling.recurrence import (
    build_batch_series,
    next_due_date,
    preview_due_dates,
)

__all__ = [
    "DailyTrigger",
    "build_batch_series",
    "can_convert_to_recurring",
    "convert_transaction_to_scheduled",
    "default_recurring_request",
    "next_due_date",
    "preview_due_dates",
    "seconds_until_midnight",
]
