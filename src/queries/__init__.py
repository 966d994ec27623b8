"""Read-only obligation views."""

from src.queries.views import ObligationViews

__all__ = ["ObligationViews"]
