"""
Command Models

Plain data requests handed to the engine by the UI layer. Range checks on
intervals, counts and dates live in the schedule validator, so problems
come back as field-attributed issues instead of exceptions.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.finance import RecurrencePattern, TransactionType


class SeriesFrequency(str, Enum):
    """Spacing between the items of a batch series."""
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"

    @property
    def pattern(self) -> RecurrencePattern:
        return RecurrencePattern(self.value)


class ScheduleRequest(BaseModel):
    """Create a single (possibly recurring) obligation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    merchant: str = ""
    amount: Decimal = Decimal("0")
    currency: str = "INR"
    category: str = ""
    type: TransactionType = TransactionType.EXPENSE
    account_id: Optional[str] = None
    due_date: Optional[date] = None
    recurrence_pattern: RecurrencePattern = RecurrencePattern.ONCE
    recurrence_interval: int = 1
    recurrence_end_date: Optional[date] = None
    is_cheque: bool = False
    cheque_number: Optional[str] = None
    cheque_image: Optional[str] = None
    notes: Optional[str] = None


class BatchSeriesParams(BaseModel):
    """
    Expand N post-dated cheques (or instalments) into a series.

    Cheque numbers are `starting_cheque_number + position`; images are
    assigned by position and may be fewer than the number of items.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    merchant: str = ""
    amount: Decimal = Decimal("0")
    currency: str = "INR"
    category: str = ""
    type: TransactionType = TransactionType.EXPENSE
    account_id: Optional[str] = None
    first_due_date: Optional[date] = None
    frequency: SeriesFrequency = SeriesFrequency.MONTHLY
    interval: int = 1
    number_of_cheques: int = 1
    starting_cheque_number: Optional[int] = None
    cheque_images: list[str] = Field(default_factory=list)
    is_cheque: bool = True


class RecurringBillRequest(BaseModel):
    """Recurrence settings used when turning a transaction into a bill."""

    recurrence_pattern: RecurrencePattern = RecurrencePattern.MONTHLY
    recurrence_interval: int = 1
    first_due_date: Optional[date] = None
    recurrence_end_date: Optional[date] = None
    notes: Optional[str] = None
