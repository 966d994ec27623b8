"""Transaction / obligation matching."""

from src.matching.eligibility import (
    can_pair,
    check_pairing,
    is_transaction_paired,
)
from src.matching.engine import MatchingEngine
from src.matching.scoring import (
    Direction,
    confidence_for,
    fuzzy_match,
    levenshtein_distance,
    score_pair,
)

__all__ = [
    "Direction",
    "MatchingEngine",
    "can_pair",
    "check_pairing",
    "confidence_for",
    "fuzzy_match",
    "is_transaction_paired",
    "levenshtein_distance",
    "score_pair",
]
