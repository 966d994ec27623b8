"""Forward-looking balance projections."""

from src.projection.insufficient_funds import (
    all_insufficient_funds_warnings,
    check_insufficient_funds,
    upcoming_for_account,
)

__all__ = [
    "all_insufficient_funds_warnings",
    "check_insufficient_funds",
    "upcoming_for_account",
]
