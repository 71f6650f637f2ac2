"""
Chunk Router - Which Provider Handles Which Piece of Work

Per-chunk policy, evaluated in order for each chunk in document order:
    1. high-fidelity budget exhausted            → high-throughput
    2. caller prefers high-throughput            → high-throughput
    3. chunk fits the per-chunk ceiling AND
       (section is critical OR caller prefers
       high-fidelity)                            → high-fidelity (budget += 1)
    4. otherwise                                 → high-throughput

Whole-document policy:
    below the token threshold and no high-throughput preference
        → high-fidelity, otherwise high-throughput

The RoutingState counter is mutated without locking. Chunks must be routed
sequentially; parallel chunk processing needs a lock around ``assign``.

Author: Shubham Singh
Date: January 2026
"""

from typing import Iterable, Optional, Tuple

from loguru import logger

from clinical_document_processing.core.constants import CRITICAL_SECTION_KEYWORDS
from clinical_document_processing.core.enums import ProviderRole
from clinical_document_processing.core.models import Chunk, RoutingBudget, RoutingState


class ChunkRouter:
    """
    Assigns a provider role to each chunk under a per-document budget.

    Example:
        >>> router = ChunkRouter()
        >>> state = RoutingState()
        >>> router.assign(chunk, state, RoutingBudget(max_high_fidelity_chunks=3))
        <ProviderRole.HIGH_FIDELITY: 'high_fidelity'>
    """

    def __init__(self, critical_keywords: Iterable[str] = CRITICAL_SECTION_KEYWORDS):
        self._critical_keywords: Tuple[str, ...] = tuple(k.lower() for k in critical_keywords)

    @property
    def critical_keywords(self) -> Tuple[str, ...]:
        return self._critical_keywords

    def is_critical(self, section_name: str) -> bool:
        """True when the section name contains any critical keyword (case-insensitive)."""
        name = section_name.lower()
        return any(keyword in name for keyword in self._critical_keywords)

    def assign(
        self,
        chunk: Chunk,
        state: RoutingState,
        budget: RoutingBudget,
        preference: Optional[ProviderRole] = None,
    ) -> ProviderRole:
        """
        Route one chunk. Increments ``state.high_fidelity_used`` on a
        high-fidelity assignment.
        """
        if state.high_fidelity_used >= budget.max_high_fidelity_chunks:
            role, reason = ProviderRole.HIGH_THROUGHPUT, "budget exhausted"
        elif preference == ProviderRole.HIGH_THROUGHPUT:
            role, reason = ProviderRole.HIGH_THROUGHPUT, "caller preference"
        elif chunk.token_count <= budget.per_chunk_ceiling and (
            self.is_critical(chunk.section_name) or preference == ProviderRole.HIGH_FIDELITY
        ):
            state.high_fidelity_used += 1
            role, reason = ProviderRole.HIGH_FIDELITY, "critical section or preference"
        else:
            role, reason = ProviderRole.HIGH_THROUGHPUT, "default"

        logger.debug(
            f"Chunk routed | Position: {chunk.position} | Section: {chunk.section_name} | "
            f"Tokens: {chunk.token_count} | Provider: {role.value} | Reason: {reason} | "
            f"High-fidelity used: {state.high_fidelity_used}/{budget.max_high_fidelity_chunks}"
        )
        return role

    @staticmethod
    def select_whole_document_provider(
        total_tokens: int, threshold: int, preference: Optional[ProviderRole] = None
    ) -> ProviderRole:
        """Coarse routing for non-chunked processing."""
        if total_tokens < threshold and preference != ProviderRole.HIGH_THROUGHPUT:
            return ProviderRole.HIGH_FIDELITY
        return ProviderRole.HIGH_THROUGHPUT
