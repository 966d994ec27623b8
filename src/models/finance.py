"""
Core Data Models for the Obligation Engine

These models define the record shapes the engine reads and writes:
1. Transaction - a real financial event handed over by the persistence layer
2. Account - the balance holder that warnings and reconciliation refer to
3. ScheduledTransaction - a projected obligation tracked through its lifecycle

Money is always Decimal. Dates are plain local calendar days.
"""

import datetime as dt
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kind of money movement."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"
    OBLIGATION = "OBLIGATION"


class RecurrencePattern(str, Enum):
    """
    How an obligation repeats.

    CUSTOM treats the interval as a number of days.
    """
    ONCE = "ONCE"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"


class ObligationStatus(str, Enum):
    """
    Lifecycle status of a scheduled obligation.

    CRITICAL: PAID and SKIPPED are terminal. PAID is only reached through
    an explicit confirmation, never derived automatically.
    """
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    SKIPPED = "SKIPPED"


class AccountType(str, Enum):
    """Supported account kinds."""
    BANK = "Bank"
    CREDIT_CARD = "Credit Card"
    CASH = "Cash"
    WALLET = "Wallet"
    LOAN = "Loan"
    OTHER = "Other"


# =============================================================================
# TRANSACTIONS & ACCOUNTS
# =============================================================================

class ParsedMeta(BaseModel):
    """
    Account status snapshot reported alongside a transaction.

    Typically read off a bank SMS: "Avl Bal 12,340.00".
    """
    available_balance: Optional[Decimal] = Field(
        default=None,
        description="Available balance right after the transaction"
    )
    available_credit: Optional[Decimal] = Field(
        default=None,
        description="Available credit right after the transaction"
    )

    @property
    def has_snapshot(self) -> bool:
        return self.available_balance is not None or self.available_credit is not None


class Transaction(BaseModel):
    """
    A real financial event.

    The amount is always a positive magnitude; direction comes from `type`.
    A transaction without `account_id` is orphaned; account checks during
    matching only apply when both sides name an account.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Unique transaction ID"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Positive magnitude of the transaction"
    )
    currency: str = Field(
        default="INR",
        min_length=1,
        max_length=10,
    )
    type: TransactionType
    date: dt.date
    time: Optional[dt.time] = None
    merchant: str = Field(
        default="",
        max_length=200,
    )
    category: str = Field(
        default="",
        max_length=100,
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Owning account; None means orphaned"
    )
    account_name: Optional[str] = Field(
        default=None,
        description="Snapshot of the account name or raw account text"
    )
    raw_text: Optional[str] = Field(
        default=None,
        description="Free text / OCR provenance"
    )
    tags: list[str] = Field(default_factory=list)
    parsed_meta: Optional[ParsedMeta] = None

    # Cheque details as printed on a bank statement line
    is_cheque: bool = False
    cheque_number: Optional[str] = Field(
        default=None,
        max_length=30,
    )

    @property
    def is_orphaned(self) -> bool:
        return self.account_id is None

    def sort_key(self) -> tuple:
        """Chronological ordering key (date, time, id)."""
        return (self.date, self.time or time.min, self.id)


class Account(BaseModel):
    """
    A balance holder.

    Balance is signed: positive for assets, negative for revolving debt.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    type: AccountType = AccountType.BANK
    currency: str = Field(default="INR")
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Stored balance (signed)"
    )
    opening_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance before the first recorded transaction"
    )
    total_credit_limit: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Credit limit, needed to turn available credit into debt"
    )
    loan_principal: Optional[Decimal] = Field(default=None, ge=0)
    payment_due_day: Optional[int] = Field(
        default=None,
        description="Day of month (1-31) a card or loan payment is due"
    )


class AccountReassignment(BaseModel):
    """
    Batch command moving historical transactions to another account.

    Consumed by the transaction store; the engine never rewrites
    `account_id` inline. When `transaction_ids` is None every transaction
    on the source account is moved.
    """
    source_account_id: str = Field(..., min_length=1)
    target_account_id: str = Field(..., min_length=1)
    transaction_ids: Optional[list[str]] = None

    @model_validator(mode='after')
    def validate_distinct(self) -> 'AccountReassignment':
        if self.source_account_id == self.target_account_id:
            raise ValueError("Source and target account must differ")
        return self


# =============================================================================
# SCHEDULED OBLIGATIONS
# =============================================================================

class ScheduledTransaction(BaseModel):
    """
    A projected future obligation.

    Created by the recurrence generator (directly, as a batch series, or by
    converting an existing transaction). Only the lifecycle service writes
    `status` and `matched_transaction_id`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(default_factory=new_id)

    # What is owed
    amount: Decimal = Field(..., ge=0)
    currency: str = Field(default="INR", min_length=1, max_length=10)
    merchant: str = Field(..., max_length=200)
    category: str = Field(default="", max_length=100)
    type: TransactionType = TransactionType.EXPENSE
    account_id: Optional[str] = None

    # When
    due_date: date
    recurrence_pattern: RecurrencePattern = RecurrencePattern.ONCE
    recurrence_interval: int = Field(
        default=1,
        description="Months, weeks or days between occurrences depending on pattern"
    )
    recurrence_end_date: Optional[date] = None

    # Lifecycle
    status: ObligationStatus = ObligationStatus.PENDING
    matched_transaction_id: Optional[str] = None
    cleared_date: Optional[date] = None

    # Series & cheque metadata
    series_id: Optional[str] = None
    is_cheque: bool = False
    cheque_number: Optional[str] = Field(default=None, max_length=30)
    cheque_image: Optional[str] = Field(
        default=None,
        description="Scanned cheque image reference (URL or base64)"
    )

    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator('merchant')
    @classmethod
    def merchant_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("Merchant cannot be empty")
        return v

    @property
    def is_open(self) -> bool:
        """Still awaiting payment (PENDING or OVERDUE)."""
        return self.status in (ObligationStatus.PENDING, ObligationStatus.OVERDUE)

    def days_until_due(self, today: date) -> int:
        return (self.due_date - today).days
