"""Domain exceptions shared by the economy and quiz modules."""

from __future__ import annotations


class EconomyValidationError(ValueError):
    """An input to an economy calculation is out of its valid range."""


class QuizStateError(ValueError):
    """A quiz session operation was called from a state that does not allow it."""


def require_non_negative(name: str, value: float) -> None:
    """Raise EconomyValidationError if value is negative."""
    if value < 0:
        raise EconomyValidationError(f"{name} must be non-negative, got {value}")
