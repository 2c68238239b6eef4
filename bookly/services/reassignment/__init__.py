"""
Reassignment services package.
"""

from bookly.services.reassignment.equivalence_oracle import (
    EquivalenceOracle,
    NullEquivalenceOracle,
    rank_candidates,
)
from bookly.services.reassignment.reassignment_service import ReassignmentService

__all__ = [
    "EquivalenceOracle",
    "NullEquivalenceOracle",
    "rank_candidates",
    "ReassignmentService",
]
