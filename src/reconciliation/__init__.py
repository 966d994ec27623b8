"""Stored vs recomputed balance checks."""

from src.reconciliation.reconciler import (
    BalanceReconciler,
    is_adjustment_transaction,
    snapshot_balance,
)

__all__ = [
    "BalanceReconciler",
    "is_adjustment_transaction",
    "snapshot_balance",
]
