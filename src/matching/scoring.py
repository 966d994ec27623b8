"""
Match Scoring

One scorer for both matching directions:

FORWARD  - a transaction just arrived; which obligation does it pay?
REVERSE  - the user picked an obligation; which transaction paid it?

The weights below are a contract, not configuration. The two directions
differ only where the table says so (exact merchant, far dates, account).

    Signal            Forward   Reverse
    exact amount        100       100     (< 0.01 apart)
    amount <= 5%         50        50     (relative to the obligation)
    amount <= 10%        25        25
    exact merchant      100        75     (case-insensitive)
    merchant contains    50        50
    fuzzy merchant       25        25     (edit distance <= 3)
    same day             50        50
    <= 7 days            25        25
    <= 14 days           15        15
    <= 30 days           10         5
    same account          -        50     (forward filters on account)
    cheque no. in text   75        75
    same category        10        10
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from src.models.finance import ScheduledTransaction, Transaction
from src.models.results import MatchConfidence


class Direction(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


AMOUNT_TOLERANCE = Decimal("0.01")

AMOUNT_EXACT_POINTS = 100
AMOUNT_CLOSE_POINTS = 50
AMOUNT_SIMILAR_POINTS = 25
AMOUNT_CLOSE_PERCENT = Decimal("5")
AMOUNT_SIMILAR_PERCENT = Decimal("10")

MERCHANT_EXACT_POINTS = {Direction.FORWARD: 100, Direction.REVERSE: 75}
MERCHANT_CONTAINS_POINTS = 50
MERCHANT_FUZZY_POINTS = 25
FUZZY_MAX_DISTANCE = 3
FUZZY_MAX_LENGTH_DIFF = 5

# (max days apart, points); first bucket that fits wins
DATE_BUCKETS = {
    Direction.FORWARD: ((0, 50), (7, 25), (14, 15), (30, 10)),
    Direction.REVERSE: ((0, 50), (7, 25), (14, 15), (30, 5)),
}

ACCOUNT_POINTS = {Direction.FORWARD: 0, Direction.REVERSE: 50}
CHEQUE_NUMBER_POINTS = 75
CATEGORY_POINTS = 10

HIGH_CONFIDENCE = 150
MEDIUM_CONFIDENCE = 75
LOW_CONFIDENCE = 25


def levenshtein_distance(first: str, second: str) -> int:
    """Classic edit distance (insert, delete, substitute)."""
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, start=1):
        current = [i]
        for j, char_b in enumerate(second, start=1):
            current.append(min(
                previous[j - 1] + (char_a != char_b),
                previous[j] + 1,
                current[j - 1] + 1,
            ))
        previous = current
    return previous[-1]


def fuzzy_match(first: str, second: str) -> bool:
    if abs(len(first) - len(second)) > FUZZY_MAX_LENGTH_DIFF:
        return False
    return levenshtein_distance(first, second) <= FUZZY_MAX_DISTANCE


def amount_percent_diff(transaction_amount: Decimal, obligation_amount: Decimal) -> Decimal:
    """Difference as a percentage of the obligation amount."""
    diff = abs(transaction_amount - obligation_amount)
    if obligation_amount == 0:
        return Decimal("0") if diff == 0 else Decimal("100")
    return diff / obligation_amount * 100


def _score_amount(tx: Transaction, ob: ScheduledTransaction) -> tuple[int, Optional[str]]:
    if abs(tx.amount - ob.amount) < AMOUNT_TOLERANCE:
        return AMOUNT_EXACT_POINTS, "Exact amount match"

    percent = amount_percent_diff(tx.amount, ob.amount)
    if percent <= AMOUNT_CLOSE_PERCENT:
        return AMOUNT_CLOSE_POINTS, f"Close amount (±{percent:.1f}%)"
    if percent <= AMOUNT_SIMILAR_PERCENT:
        return AMOUNT_SIMILAR_POINTS, f"Similar amount (±{percent:.1f}%)"
    return 0, None


def _score_merchant(
    tx: Transaction,
    ob: ScheduledTransaction,
    direction: Direction,
) -> tuple[int, Optional[str]]:
    tx_merchant = (tx.merchant or "").strip().lower()
    ob_merchant = (ob.merchant or "").strip().lower()
    if not tx_merchant or not ob_merchant:
        return 0, None

    if tx_merchant == ob_merchant:
        return MERCHANT_EXACT_POINTS[direction], "Exact merchant match"
    if tx_merchant in ob_merchant or ob_merchant in tx_merchant:
        return MERCHANT_CONTAINS_POINTS, "Merchant keyword match"
    if fuzzy_match(tx_merchant, ob_merchant):
        return MERCHANT_FUZZY_POINTS, "Fuzzy merchant match"
    return 0, None


def _score_date(
    tx: Transaction,
    ob: ScheduledTransaction,
    direction: Direction,
) -> tuple[int, Optional[str]]:
    days = abs((tx.date - ob.due_date).days)
    for max_days, points in DATE_BUCKETS[direction]:
        if days <= max_days:
            if days == 0:
                return points, "Same day"
            return points, f"{days} day{'s' if days != 1 else ''} difference"
    return 0, None


def score_pair(
    transaction: Transaction,
    obligation: ScheduledTransaction,
    direction: Direction,
) -> tuple[int, list[str]]:
    """
    Score how well `transaction` fits `obligation`.

    Eligibility is not checked here; see `matching.eligibility`.

    Returns:
        (score, reason tokens in signal order)
    """
    score = 0
    reasons: list[str] = []

    for points, reason in (
        _score_amount(transaction, obligation),
        _score_merchant(transaction, obligation, direction),
        _score_date(transaction, obligation, direction),
    ):
        if points:
            score += points
            reasons.append(reason)

    account_points = ACCOUNT_POINTS[direction]
    if (
        account_points
        and transaction.account_id
        and transaction.account_id == obligation.account_id
    ):
        score += account_points
        reasons.append("Same account")

    cheque_number = (obligation.cheque_number or "").strip()
    if cheque_number and (
        cheque_number in (transaction.merchant or "")
        or cheque_number in (transaction.raw_text or "")
    ):
        score += CHEQUE_NUMBER_POINTS
        reasons.append("Cheque number found in transaction")

    if (
        transaction.category
        and obligation.category
        and transaction.category.lower() == obligation.category.lower()
    ):
        score += CATEGORY_POINTS
        reasons.append("Category match")

    if not reasons:
        reasons.append("Low confidence match")

    return score, reasons


def confidence_for(score: int) -> MatchConfidence:
    if score >= HIGH_CONFIDENCE:
        return MatchConfidence.HIGH
    if score >= MEDIUM_CONFIDENCE:
        return MatchConfidence.MEDIUM
    if score >= LOW_CONFIDENCE:
        return MatchConfidence.LOW
    return MatchConfidence.NONE
