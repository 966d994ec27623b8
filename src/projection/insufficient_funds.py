"""
Insufficient-Funds Projector

Answers "will the bills scheduled for this account push it below zero?",
not "is this account negative?". An account with no upcoming obligations
never gets a warning, whatever its balance.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from src.config import get_settings
from src.models.finance import Account, ObligationStatus, ScheduledTransaction
from src.models.results import InsufficientFundsWarning


def upcoming_for_account(
    account: Account,
    obligations: list[ScheduledTransaction],
    today: date,
    horizon_days: int,
) -> list[ScheduledTransaction]:
    """PENDING obligations on the account due in [today, today + horizon], by due date."""
    horizon_end = today + timedelta(days=horizon_days)
    upcoming = [
        o for o in obligations
        if o.account_id == account.id
        and o.status == ObligationStatus.PENDING
        and today <= o.due_date <= horizon_end
    ]
    return sorted(upcoming, key=lambda o: (o.due_date, o.id))


def check_insufficient_funds(
    account: Account,
    obligations: list[ScheduledTransaction],
    horizon_days: Optional[int] = None,
    today: Optional[date] = None,
) -> Optional[InsufficientFundsWarning]:
    """
    Warning if the account balance minus upcoming obligations is below zero.

    A projected balance of exactly zero is not a shortage.
    """
    today = today or date.today()
    if horizon_days is None:
        horizon_days = get_settings().engine.upcoming_horizon_days

    upcoming = upcoming_for_account(account, obligations, today, horizon_days)
    if not upcoming:
        return None

    total = sum((o.amount for o in upcoming), Decimal("0"))
    projected = account.balance - total
    if projected >= 0:
        return None

    return InsufficientFundsWarning(
        account_id=account.id,
        account_name=account.name,
        current_balance=account.balance,
        upcoming_obligations=total,
        shortage=abs(projected),
        affected_obligations=upcoming,
        days_until_first=upcoming[0].days_until_due(today),
    )


def all_insufficient_funds_warnings(
    accounts: list[Account],
    obligations: list[ScheduledTransaction],
    horizon_days: Optional[int] = None,
    today: Optional[date] = None,
) -> list[InsufficientFundsWarning]:
    warnings = []
    for account in accounts:
        warning = check_insufficient_funds(account, obligations, horizon_days, today)
        if warning:
            warnings.append(warning)
    return warnings
