"""
Obligation Views

Read-only, deterministic listings over stored obligations for the
presentation layer. Every listing comes straight from storage; nothing is
estimated or cached.
"""

import calendar
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from src.config import get_settings
from src.models.finance import ObligationStatus, ScheduledTransaction
from src.services.storage import ObligationStorageInterface


def _by_due_date(obligations: list[ScheduledTransaction]) -> list[ScheduledTransaction]:
    return sorted(obligations, key=lambda o: (o.due_date, o.created_at, o.id))


class ObligationViews:
    """Filtered obligation listings."""

    def __init__(self, storage: ObligationStorageInterface):
        self._storage = storage

    def by_status(self, status: ObligationStatus) -> list[ScheduledTransaction]:
        return _by_due_date([o for o in self._storage.list_all() if o.status == status])

    def upcoming(
        self,
        days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[ScheduledTransaction]:
        """PENDING obligations due within the next `days` days (today included)."""
        today = today or date.today()
        if days is None:
            days = get_settings().engine.upcoming_horizon_days
        end = today + timedelta(days=days)
        return _by_due_date([
            o for o in self._storage.list_all()
            if o.status == ObligationStatus.PENDING and today <= o.due_date <= end
        ])

    def overdue(self) -> list[ScheduledTransaction]:
        return self.by_status(ObligationStatus.OVERDUE)

    def by_series(self, series_id: str) -> list[ScheduledTransaction]:
        return _by_due_date(self._storage.list_by_series(series_id))

    def series_progress(self, series_id: str) -> dict[str, object]:
        """Counts per status and the amount still open for one series."""
        members = self._storage.list_by_series(series_id)
        counts = {status.value: 0 for status in ObligationStatus}
        for member in members:
            counts[member.status.value] += 1
        remaining = sum((m.amount for m in members if m.is_open), Decimal("0"))
        return {
            "total": len(members),
            "counts": counts,
            "remaining_amount": remaining,
        }

    def calendar(self, year: int, month: int) -> dict[date, list[ScheduledTransaction]]:
        """Obligations of any status grouped by due day within one month."""
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])

        grouped: dict[date, list[ScheduledTransaction]] = defaultdict(list)
        for obligation in _by_due_date(self._storage.list_all()):
            if first <= obligation.due_date <= last:
                grouped[obligation.due_date].append(obligation)
        return dict(grouped)
