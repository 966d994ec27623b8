"""
Schedule Validation

DESIGN DECISION: Validation happens in two distinct layers:

REQUEST VALIDATION:
- Required field presence (due date, merchant)
- Range checks (recurrence interval, series length, due day 1-31)
- Date ordering (end date after first due date)
- Errors here block the request

SERIES VALIDATION:
- Duplicate due dates
- Duplicate, decreasing or widely gapped cheque numbers
- Unusual spacing between due dates
- These are data-integrity warnings; the operation still succeeds

IMPORTANT: Validation NEVER raises and NEVER silently fixes issues.
It reports them, attributed to a field, for the caller to show.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.config import get_settings
from src.models.finance import (
    Account,
    RecurrencePattern,
    ScheduledTransaction,
)
from src.models.requests import (
    BatchSeriesParams,
    RecurringBillRequest,
    ScheduleRequest,
)
from src.models.results import ValidationIssue, ValidationResult


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _warning(
    field: str,
    issue_type: str,
    message: str,
    obligation_id: Optional[str] = None,
    fix: Optional[str] = None,
) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
        suggested_fix=fix,
        obligation_id=obligation_id,
    )


def _cheque_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class ScheduleValidator:
    """
    Validates scheduling requests and existing obligation series.
    """

    def __init__(self):
        self._settings = get_settings().engine

    # -------------------------------------------------------------------------
    # Request validation
    # -------------------------------------------------------------------------

    def _check_interval(
        self,
        interval: int,
        pattern: RecurrencePattern,
        field: str,
    ) -> list[ValidationIssue]:
        if pattern == RecurrencePattern.ONCE:
            return []
        max_interval = self._settings.max_recurrence_interval
        if interval < 1 or interval > max_interval:
            return [_error(
                field,
                "out_of_range",
                f"Recurrence interval must be between 1 and {max_interval}",
                "Pick how many months, weeks or days apart the payments are",
            )]
        return []

    def _check_amount_and_merchant(self, amount: Decimal, merchant: str) -> list[ValidationIssue]:
        issues = []
        if not merchant or not merchant.strip():
            issues.append(_error(
                "merchant",
                "missing",
                "Payee / merchant name is required",
            ))
        if amount <= 0:
            issues.append(_error(
                "amount",
                "invalid_value",
                "Amount must be greater than zero",
            ))
        return issues

    def _check_dates(
        self,
        first_due: Optional[date],
        end_date: Optional[date],
        due_field: str,
    ) -> list[ValidationIssue]:
        if first_due is None:
            return [_error(
                due_field,
                "missing",
                "Due date is required",
            )]
        if end_date is not None and end_date <= first_due:
            return [_error(
                "recurrence_end_date",
                "inconsistent",
                "End date must be after first due date",
            )]
        return []

    def validate_schedule_request(self, request: ScheduleRequest) -> ValidationResult:
        """Validate a single-obligation scheduling request."""
        issues = []
        issues.extend(self._check_amount_and_merchant(request.amount, request.merchant))
        issues.extend(self._check_dates(
            request.due_date, request.recurrence_end_date, "due_date"
        ))
        issues.extend(self._check_interval(
            request.recurrence_interval, request.recurrence_pattern, "recurrence_interval"
        ))
        if (
            request.recurrence_pattern == RecurrencePattern.ONCE
            and request.recurrence_end_date is not None
        ):
            issues.append(ValidationIssue(
                field="recurrence_end_date",
                issue_type="ignored",
                message="End date has no effect on a one-time obligation",
                severity="info",
            ))
        return ValidationResult(issues=issues)

    def validate_recurring_request(self, request: RecurringBillRequest) -> ValidationResult:
        """Validate the recurrence settings used to convert a transaction."""
        issues = []
        issues.extend(self._check_dates(
            request.first_due_date, request.recurrence_end_date, "first_due_date"
        ))
        issues.extend(self._check_interval(
            request.recurrence_interval, request.recurrence_pattern, "recurrence_interval"
        ))
        return ValidationResult(issues=issues)

    def validate_batch_params(self, params: BatchSeriesParams) -> ValidationResult:
        """Validate batch series parameters before anything is created."""
        issues = []
        issues.extend(self._check_amount_and_merchant(params.amount, params.merchant))
        issues.extend(self._check_dates(params.first_due_date, None, "first_due_date"))
        issues.extend(self._check_interval(
            params.interval, params.frequency.pattern, "interval"
        ))

        max_length = self._settings.max_series_length
        if params.number_of_cheques < 1 or params.number_of_cheques > max_length:
            issues.append(_error(
                "number_of_cheques",
                "out_of_range",
                f"Number of cheques must be between 1 and {max_length}",
            ))

        if params.starting_cheque_number is not None and params.starting_cheque_number < 0:
            issues.append(_error(
                "starting_cheque_number",
                "invalid_value",
                "Starting cheque number cannot be negative",
            ))

        if len(params.cheque_images) > max(params.number_of_cheques, 0):
            issues.append(ValidationIssue(
                field="cheque_images",
                issue_type="ignored",
                message="More images than cheques; extra images will be ignored",
                severity="info",
            ))

        return ValidationResult(issues=issues)

    def validate_account(self, account: Account) -> ValidationResult:
        """Validate account settings the engine depends on."""
        issues = []
        if account.payment_due_day is not None and not 1 <= account.payment_due_day <= 31:
            issues.append(_error(
                "payment_due_day",
                "out_of_range",
                "Payment due day must be between 1 and 31",
            ))
        return ValidationResult(issues=issues)

    # -------------------------------------------------------------------------
    # Series validation (warnings only)
    # -------------------------------------------------------------------------

    def validate_series(self, obligations: list[ScheduledTransaction]) -> ValidationResult:
        """
        Check a series for numbering and date progression problems.

        Every issue is a warning; a series is never rejected here.
        """
        if not obligations:
            return ValidationResult()

        ordered = sorted(obligations, key=lambda o: (o.due_date, o.created_at))
        issues = []
        issues.extend(self._check_series_consistency(ordered))
        issues.extend(self._check_cheque_numbering(ordered))
        issues.extend(self._check_duplicate_numbers(ordered))
        issues.extend(self._check_date_progression(ordered))
        return ValidationResult(issues=issues)

    def _check_series_consistency(
        self,
        ordered: list[ScheduledTransaction],
    ) -> list[ValidationIssue]:
        first = ordered[0]
        issues = []
        for item in ordered[1:]:
            if item.merchant != first.merchant or item.currency != first.currency:
                issues.append(_warning(
                    "merchant",
                    "series_mismatch",
                    f"Item due {item.due_date} has a different payee or currency than the series",
                    obligation_id=item.id,
                ))
        return issues

    def _check_cheque_numbering(
        self,
        ordered: list[ScheduledTransaction],
    ) -> list[ValidationIssue]:
        numbered = [
            (item, _cheque_int(item.cheque_number))
            for item in ordered
            if _cheque_int(item.cheque_number) is not None
        ]
        issues = []
        for (current, current_num), (following, next_num) in zip(numbered, numbered[1:]):
            if next_num < current_num:
                issues.append(_warning(
                    "cheque_number",
                    "decreasing_cheque_number",
                    f"Cheque #{following.cheque_number} has a lower number than "
                    f"previous cheque #{current.cheque_number}",
                    obligation_id=following.id,
                ))
            elif next_num - current_num > 3:
                gap = next_num - current_num
                issues.append(_warning(
                    "cheque_number",
                    "cheque_number_gap",
                    f"Large gap in cheque numbering: #{current.cheque_number} to "
                    f"#{following.cheque_number} ({gap - 1} numbers skipped)",
                    obligation_id=following.id,
                ))
        return issues

    def _check_duplicate_numbers(
        self,
        ordered: list[ScheduledTransaction],
    ) -> list[ValidationIssue]:
        by_number: dict[str, list[ScheduledTransaction]] = defaultdict(list)
        for item in ordered:
            if item.cheque_number:
                by_number[item.cheque_number.strip()].append(item)

        issues = []
        for number, items in by_number.items():
            if len(items) < 2:
                continue
            for item in items:
                issues.append(_warning(
                    "cheque_number",
                    "duplicate_cheque_number",
                    f"Duplicate cheque number: #{number} appears {len(items)} times",
                    obligation_id=item.id,
                ))
        return issues

    def _check_date_progression(
        self,
        ordered: list[ScheduledTransaction],
    ) -> list[ValidationIssue]:
        if len(ordered) < 2:
            return []

        gaps = [
            (following.due_date - current.due_date).days
            for current, following in zip(ordered, ordered[1:])
        ]
        baseline = gaps[:3]
        average = sum(baseline) / len(baseline)
        tolerance = max(3, average * 0.2)

        issues = []
        for (current, following), gap in zip(zip(ordered, ordered[1:]), gaps):
            if gap == 0:
                issues.append(_warning(
                    "due_date",
                    "duplicate_due_date",
                    f"Two items share the due date {current.due_date.isoformat()}",
                    obligation_id=following.id,
                ))
            elif len(baseline) >= 2 and abs(gap - average) > tolerance:
                issues.append(_warning(
                    "due_date",
                    "unusual_interval",
                    f"Unusual date interval: {gap} days (expected ~{round(average)} days)",
                    obligation_id=following.id,
                ))
        return issues

    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------

    def suggest_next_cheque_number(
        self,
        obligations: list[ScheduledTransaction],
    ) -> Optional[str]:
        """Highest numeric cheque number in the series plus one."""
        numbers = [
            n for n in (_cheque_int(o.cheque_number) for o in obligations)
            if n is not None
        ]
        if not numbers:
            return None
        return str(max(numbers) + 1)

    def suggest_next_due_date(
        self,
        obligations: list[ScheduledTransaction],
    ) -> Optional[date]:
        """
        Last due date plus the average of the most recent gaps.

        A single-item series is assumed monthly.
        """
        if not obligations:
            return None

        ordered = sorted(o.due_date for o in obligations)
        last = ordered[-1]
        if len(ordered) == 1:
            return last + relativedelta(months=1)

        recent = ordered[-4:]
        gaps = [(b - a).days for a, b in zip(recent, recent[1:])]
        return last + timedelta(days=round(sum(gaps) / len(gaps)))

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
