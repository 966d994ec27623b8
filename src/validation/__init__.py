"""Validation package."""

from src.validation.validator import ScheduleValidator

__all__ = ["ScheduleValidator"]
