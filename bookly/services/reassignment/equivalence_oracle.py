"""
Equivalence oracle contract.

The oracle scores candidate replacement resources against an original
booking. Scoring lives outside this package; the service only consumes
ranked candidates.
"""

from abc import ABC, abstractmethod
from typing import List

from bookly.core.logging import get_logger
from bookly.schemas.reassignment.equivalence import EquivalenceQuery, EquivalentResource

logger = get_logger(__name__)


class EquivalenceOracle(ABC):
    """Abstract base class for equivalence oracles."""

    @property
    @abstractmethod
    def oracle_name(self) -> str:
        """Name used in logs and error details."""
        pass

    @abstractmethod
    def find_equivalents(self, query: EquivalenceQuery) -> List[EquivalentResource]:
        """
        Find replacement candidates for a resource.

        Args:
            query: Original resource, time window and matching criteria

        Returns:
            Candidates in any order; callers rank them by score
        """
        pass


class NullEquivalenceOracle(EquivalenceOracle):
    """Oracle that never finds candidates, used when none is configured."""

    @property
    def oracle_name(self) -> str:
        return "null"

    def find_equivalents(self, query: EquivalenceQuery) -> List[EquivalentResource]:
        logger.debug(f"No equivalence oracle configured, skipping lookup for {query.resource_id}")
        return []


def rank_candidates(candidates: List[EquivalentResource], limit: int) -> List[EquivalentResource]:
    """Highest score first, truncated to limit. Ties keep oracle order."""
    return sorted(candidates, key=lambda candidate: candidate.score, reverse=True)[:limit]


__all__ = [
    "EquivalenceOracle",
    "NullEquivalenceOracle",
    "rank_candidates",
]
