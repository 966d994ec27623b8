"""
Matching Engine

Links real transactions to the obligations they pay.

Three entry points, one scorer:
1. Forward  - `find_matches` / `suggest_match` for a newly imported transaction
2. Reverse  - `find_pairing_candidates` for an obligation the user picked
3. Cheque   - `match_cheque_transaction` for statement lines carrying a
              cheque number, matched by number first and amount second

IMPORTANT: Nothing here writes. Suggestions are only suggestions; the user
confirms, and the lifecycle service re-checks eligibility before pairing.
"""

from typing import Optional
from uuid import UUID

import structlog

from src.audit.logger import AuditLogger
from src.config import EngineSettings, get_settings
from src.matching.eligibility import can_pair, check_pairing
from src.matching.scoring import (
    AMOUNT_CLOSE_PERCENT,
    AMOUNT_TOLERANCE,
    Direction,
    amount_percent_diff,
    confidence_for,
    score_pair,
)
from src.models.audit import AuditEventBuilder
from src.models.finance import ScheduledTransaction, Transaction
from src.models.results import (
    ChequeMatchResult,
    ChequeMatchSummary,
    ChequePairingCandidate,
    MatchCandidate,
    MatchConfidence,
    PairingSummary,
)


class MatchingEngine:
    """
    Scores and ranks transaction/obligation pairs.

    Usage:
        engine = MatchingEngine()
        best = engine.suggest_match(transaction, obligations)
        if best:
            # show to the user; confirm via ObligationService.confirm_pairing
            ...
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().engine
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("obligations.matching")

    # -------------------------------------------------------------------------
    # Forward: transaction -> obligations
    # -------------------------------------------------------------------------

    def find_matches(
        self,
        transaction: Transaction,
        obligations: list[ScheduledTransaction],
        all_obligations: Optional[list[ScheduledTransaction]] = None,
        min_score: int = 0,
    ) -> list[MatchCandidate]:
        """
        Rank eligible obligations for a transaction, best first.

        Args:
            transaction: The newly imported transaction
            obligations: Obligations to consider
            all_obligations: Full obligation set for the "already paired"
                check; defaults to `obligations`
            min_score: Drop candidates scoring below this
        """
        everything = all_obligations if all_obligations is not None else obligations
        window = self._settings.match_window_days

        candidates = []
        for obligation in obligations:
            if check_pairing(transaction, obligation, everything, window) is not None:
                continue
            score, reasons = score_pair(transaction, obligation, Direction.FORWARD)
            if score < min_score:
                continue
            candidates.append(MatchCandidate(
                obligation=obligation,
                score=score,
                reasons=reasons,
                confidence=confidence_for(score),
            ))

        candidates.sort(key=lambda c: (-c.score, c.obligation.due_date))
        return candidates

    def suggest_match(
        self,
        transaction: Transaction,
        obligations: list[ScheduledTransaction],
        all_obligations: Optional[list[ScheduledTransaction]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[MatchCandidate]:
        """Best candidate scoring at least `suggestion_min_score`, if any."""
        matches = self.find_matches(
            transaction,
            obligations,
            all_obligations=all_obligations,
            min_score=self._settings.suggestion_min_score,
        )
        if not matches:
            return None

        best = matches[0]
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.match_suggested(
                transaction_id=transaction.id,
                obligation_id=best.obligation.id,
                score=best.score,
                confidence=best.confidence.value,
                correlation_id=correlation_id,
            ))
        return best

    # -------------------------------------------------------------------------
    # Reverse: obligation -> transactions
    # -------------------------------------------------------------------------

    def find_pairing_candidates(
        self,
        obligation: ScheduledTransaction,
        transactions: list[Transaction],
        obligations: list[ScheduledTransaction],
    ) -> list[ChequePairingCandidate]:
        """
        Rank transactions that could have paid `obligation`, best first.

        `obligations` is the full obligation set, used to leave out
        transactions already paired elsewhere.
        """
        window = self._settings.match_window_days
        candidates = []
        for transaction in transactions:
            if check_pairing(transaction, obligation, obligations, window) is not None:
                continue
            score, reasons = score_pair(transaction, obligation, Direction.REVERSE)
            candidates.append(ChequePairingCandidate(
                transaction=transaction,
                relevance_score=score,
                reasons=reasons,
                confidence=confidence_for(score),
            ))

        candidates.sort(key=lambda c: (-c.relevance_score, c.transaction.sort_key()))
        return candidates

    def pairing_summary(self, candidates: list[ChequePairingCandidate]) -> PairingSummary:
        counts = {level: 0 for level in MatchConfidence}
        for candidate in candidates:
            counts[candidate.confidence] += 1
        return PairingSummary(
            total=len(candidates),
            high=counts[MatchConfidence.HIGH],
            medium=counts[MatchConfidence.MEDIUM],
            low=counts[MatchConfidence.LOW],
            none=counts[MatchConfidence.NONE],
        )

    def can_pair(
        self,
        transaction: Transaction,
        obligation: ScheduledTransaction,
        obligations: list[ScheduledTransaction],
    ) -> tuple[bool, Optional[str]]:
        return can_pair(
            transaction,
            obligation,
            obligations,
            self._settings.match_window_days,
        )

    # -------------------------------------------------------------------------
    # Cheque number matching
    # -------------------------------------------------------------------------

    def match_cheque_transaction(
        self,
        transaction: Transaction,
        obligations: list[ScheduledTransaction],
    ) -> ChequeMatchResult:
        """
        Match a statement cheque line by cheque number, then amount.

        HIGH    number and amount agree
        MEDIUM  single cheque within 5%, or closest of several with that number
        LOW     single cheque, amount off by more than 5%
        NONE    not a cheque line, or no open cheque with that number
        """
        if not transaction.is_cheque or not transaction.cheque_number:
            return ChequeMatchResult()

        number = transaction.cheque_number.strip()
        amount = transaction.amount

        same_number = [
            o for o in obligations
            if o.is_cheque
            and o.cheque_number
            and o.cheque_number.strip() == number
            and o.is_open
            and o.matched_transaction_id is None
        ]

        if not same_number:
            return ChequeMatchResult(
                mismatch_warning=f"No pending scheduled cheque found with number {number}",
            )

        exact = next(
            (o for o in same_number if abs(o.amount - amount) < AMOUNT_TOLERANCE),
            None,
        )
        if exact is not None:
            reason = (
                f"Cheque #{number} matches with exact amount {amount:.2f}"
                if len(same_number) == 1
                else f"Multiple cheques with #{number} found - matched by exact amount {amount:.2f}"
            )
            return ChequeMatchResult(
                matched_obligation=exact,
                confidence=MatchConfidence.HIGH,
                match_reason=reason,
            )

        if len(same_number) == 1:
            cheque = same_number[0]
            difference = abs(cheque.amount - amount)
            if amount_percent_diff(amount, cheque.amount) <= AMOUNT_CLOSE_PERCENT:
                return ChequeMatchResult(
                    matched_obligation=cheque,
                    confidence=MatchConfidence.MEDIUM,
                    match_reason=(
                        f"Cheque #{number} matches but amount differs slightly "
                        f"(expected: {cheque.amount:.2f}, actual: {amount:.2f}, "
                        f"diff: {difference:.2f})"
                    ),
                )
            return ChequeMatchResult(
                matched_obligation=cheque,
                confidence=MatchConfidence.LOW,
                match_reason=f"Cheque #{number} found but amount mismatch is significant",
                mismatch_warning=(
                    f"Expected amount: {cheque.amount:.2f}, but bank statement shows: "
                    f"{amount:.2f} (difference: {difference:.2f})"
                ),
            )

        closest = min(same_number, key=lambda o: (abs(o.amount - amount), o.due_date))
        return ChequeMatchResult(
            matched_obligation=closest,
            confidence=MatchConfidence.MEDIUM,
            match_reason=f"Multiple cheques with #{number} found - matched by closest amount",
            mismatch_warning=(
                f"Multiple pending cheques with #{number}. Matched closest amount "
                f"(expected: {closest.amount:.2f}, actual: {amount:.2f})"
            ),
        )

    def batch_match_cheques(
        self,
        transactions: list[Transaction],
        obligations: list[ScheduledTransaction],
    ) -> dict[int, ChequeMatchResult]:
        """Cheque results keyed by position; non-cheque lines are left out."""
        results = {}
        for index, transaction in enumerate(transactions):
            if transaction.is_cheque and transaction.cheque_number:
                results[index] = self.match_cheque_transaction(transaction, obligations)

        self._logger.info(
            "cheques_matched",
            lines=len(transactions),
            cheques=len(results),
        )
        return results

    def cheque_match_summary(
        self,
        results: dict[int, ChequeMatchResult],
    ) -> ChequeMatchSummary:
        summary = ChequeMatchSummary(total=len(results))
        for result in results.values():
            if result.confidence == MatchConfidence.HIGH:
                summary.high_confidence += 1
                continue
            if result.confidence == MatchConfidence.MEDIUM:
                summary.medium_confidence += 1
            elif result.confidence == MatchConfidence.LOW:
                summary.low_confidence += 1
            else:
                summary.no_match += 1
            if result.mismatch_warning:
                summary.warnings.append(result.mismatch_warning)
        return summary
