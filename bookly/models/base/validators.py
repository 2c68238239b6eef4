"""
Model-level validators and constraint helpers.

Provides the validation outcome type returned by domain models and
range checks shared by their validation rules.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

Number = Union[int, float]


@dataclass
class ValidationOutcome:
    """Result of a read-only model validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationOutcome":
        return cls(is_valid=not errors, errors=list(errors))


def validate_range(
    value: Optional[Number],
    minimum: Number,
    maximum: Number,
    label: str,
    unit: str = ""
) -> Optional[str]:
    """
    Check that a value lies within an inclusive range.

    Args:
        value: Value to check (None is accepted)
        minimum: Lowest allowed value
        maximum: Highest allowed value
        label: Human readable field label for the message
        unit: Optional unit appended to the bounds

    Returns:
        Error message if out of range, None otherwise
    """
    if value is None:
        return None

    if value < minimum or value > maximum:
        suffix = f" {unit}" if unit else ""
        return f"{label} must be between {minimum} and {maximum}{suffix}"

    return None


def is_blank(value: Optional[str]) -> bool:
    """True when value is None or only whitespace."""
    return value is None or not str(value).strip()


__all__ = [
    "ValidationOutcome",
    "validate_range",
    "is_blank",
]
