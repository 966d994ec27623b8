"""
Obligation Engine - Source Package

Scheduled obligations, pairing and balance reconciliation for a personal
finance tracker.

DESIGN PRINCIPLES:
1. Engine suggests -> Human confirms -> Engine re-checks
2. Refuse with a reason, never crash
3. No silent corrections to balances or statuses
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Obligation Engine Team"
