"""
Domain Models for Hybrid Clinical Document Processing

This module defines the core data structures that flow through one
orchestration call. All entities are created at the start of a call and
discarded at its end; nothing here is persisted.

Model Hierarchy:
    Chunk               → Immutable, ordered slice of a source document
    DocumentAnalysis    → Chunker's size estimate and provider recommendation
    ProviderAssignment  → Routing decision for one chunk
    RoutingBudget       → Per-document cap on high-fidelity chunks
    RoutingState        → Running high-fidelity counter for one document
    RetryState          → Attempt bookkeeping for one logical provider call
    ShapeCheck          → Value-or-error result of a shape validator
    ParsedResult        → Reconciled value with provenance flag
    FieldUpdate         → Targeted field overlay produced by enhancement
    EnhancementOutcome  → Result of overlaying field updates on a base result
    UsageMetrics        → Per-call usage tally owned by the orchestrator
    ProcessingOptions   → Caller options for one orchestration call
    ProcessingResult    → Final result plus usage metrics

Author: Shubham Singh
Date: January 2026
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from clinical_document_processing.core.enums import (
    ChunkingStrategy,
    DocumentType,
    ProviderRole,
)

T = TypeVar("T")


# =============================================================================
# STAGE 1: CHUNKING MODELS
# =============================================================================


@dataclass(frozen=True)
class Chunk:
    """
    A bounded, token-counted slice of a source document.

    What it does:
        Carries one unit of work from the chunker through routing,
        provider calls and reconciliation to the merger.

    Why it is frozen:
        Chunks are produced by the chunker and must not change on their way
        to the merger; chunk order (``position``) is significant for merge.

    Attributes:
        content: Text of the chunk (section headers included)
        token_count: Estimated token count of ``content``
        section_name: Comma-separated titles of the sections in the chunk
        position: Zero-based index of the chunk in document order
        chunk_id: Stable identifier (document name, type and position)
        document_type: Type of the source document
        has_overlap: Whether the chunk starts with a context-overlap marker
    """

    content: str
    token_count: int
    section_name: str
    position: int
    chunk_id: str = ""
    document_type: DocumentType = DocumentType.PROTOCOL
    has_overlap: bool = False


@dataclass(frozen=True)
class DocumentAnalysis:
    """Chunker's pre-flight estimate for a whole document."""

    total_tokens: int
    estimated_chunks: int
    recommended_provider: ProviderRole
    section_count: int = 0
    complexity: str = "low"


# =============================================================================
# STAGE 2: ROUTING MODELS
# =============================================================================


@dataclass(frozen=True)
class ProviderAssignment:
    """Routing decision for a single chunk. Derived, never persisted."""

    chunk: Chunk
    provider: ProviderRole


@dataclass(frozen=True)
class RoutingBudget:
    """
    Per-document limits applied by the chunk router.

    Attributes:
        max_high_fidelity_chunks: Ceiling on chunks routed to high-fidelity
        per_chunk_ceiling: Largest chunk (tokens) high-fidelity may receive
    """

    max_high_fidelity_chunks: int = 3
    per_chunk_ceiling: int = 80_000


@dataclass
class RoutingState:
    """
    Mutable routing state for one document.

    Not synchronized: the orchestrator processes chunks strictly
    sequentially, so only one coroutine ever touches this object.
    """

    high_fidelity_used: int = 0


# =============================================================================
# STAGE 3: RETRY MODEL
# =============================================================================


@dataclass
class RetryState:
    """Attempt bookkeeping scoped to one ``RetryController.run()``."""

    attempt: int = 0
    last_error: Optional[BaseException] = None


# =============================================================================
# STAGE 4: RECONCILIATION MODELS
# =============================================================================


@dataclass(frozen=True)
class ShapeCheck(Generic[T]):
    """
    Tagged result of a shape validator: either a typed value or an error.

    Validators never raise; they return ``ShapeCheck.accept(value)`` or
    ``ShapeCheck.reject(reason)``.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def accept(cls, value: T) -> "ShapeCheck[T]":
        return cls(value=value)

    @classmethod
    def reject(cls, reason: str) -> "ShapeCheck[T]":
        return cls(error=reason)


@dataclass(frozen=True)
class ParsedResult(Generic[T]):
    """
    Outcome of reconciling raw provider text.

    What it does:
        Holds either a validated value of the caller-declared shape, or the
        caller-supplied fallback value of the same shape. Never raw text.

    Attributes:
        value: Validated value or fallback value
        from_fallback: True when ``value`` is the fallback
        repaired: True when truncation repair was needed to recover ``value``
        failure_reason: Why reconciliation degraded (None on success)
        diagnostic_excerpt: Leading characters of the raw text, kept only on failure
    """

    value: T
    from_fallback: bool = False
    repaired: bool = False
    failure_reason: Optional[str] = None
    diagnostic_excerpt: Optional[str] = None


# =============================================================================
# STAGE 5: MERGE MODELS
# =============================================================================


@dataclass
class FieldUpdate:
    """
    Targeted field overlay produced by re-processing one critical section.

    Attributes:
        section_name: Name of the enhanced section (e.g. "endpoints")
        fields: Field name → new value, only the fields to overlay
        applied: False when re-processing failed; ``fields`` are then ignored
        reason: Why the update was not applied
    """

    section_name: str
    fields: Dict[str, Any] = field(default_factory=dict)
    applied: bool = True
    reason: Optional[str] = None


@dataclass
class EnhancementOutcome(Generic[T]):
    """Base result with the applied field updates overlaid on it."""

    result: T
    applied_sections: List[str] = field(default_factory=list)
    skipped_sections: List[str] = field(default_factory=list)
    high_fidelity_calls: int = 0


# =============================================================================
# STAGE 6: ORCHESTRATION MODELS
# =============================================================================


@dataclass
class UsageMetrics:
    """
    Usage tally for one orchestration call.

    Owned exclusively by the orchestrator invocation that created it.
    Mutated without locking; chunk processing is sequential.
    """

    provider_counts: Dict[ProviderRole, int] = field(
        default_factory=lambda: {role: 0 for role in ProviderRole}
    )
    total_chunks: int = 0
    processing_time_ms: int = 0
    enhanced_sections: List[str] = field(default_factory=list)

    def record(self, role: ProviderRole, count: int = 1) -> None:
        """Add ``count`` units of work to ``role``'s tally."""
        self.provider_counts[role] = self.provider_counts.get(role, 0) + count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider_counts": {role.value: n for role, n in self.provider_counts.items()},
            "total_chunks": self.total_chunks,
            "processing_time_ms": self.processing_time_ms,
            "enhanced_sections": list(self.enhanced_sections),
        }


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Caller options for one orchestration call.

    Attributes:
        preferred_provider: Explicit provider preference (None = automatic)
        max_high_fidelity_chunks: Budget override (None = configuration default)
        chunking_strategy: CONSERVATIVE halves the per-chunk token ceiling
        enhance_critical_sections: Re-process critical sections with
            high-fidelity after a high-throughput whole-document pass
            (None = configuration default)
    """

    preferred_provider: Optional[ProviderRole] = None
    max_high_fidelity_chunks: Optional[int] = None
    chunking_strategy: ChunkingStrategy = ChunkingStrategy.AUTO
    enhance_critical_sections: Optional[bool] = None


@dataclass
class ProcessingResult(Generic[T]):
    """Final structured result of an orchestration call plus usage metadata."""

    result: T
    metrics: UsageMetrics
    from_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = self.result
        if hasattr(result, "model_dump"):
            result = result.model_dump(by_alias=True)
        elif isinstance(result, list):
            result = [r.model_dump(by_alias=True) if hasattr(r, "model_dump") else r for r in result]
        return {
            "result": result,
            "metadata": self.metrics.to_dict(),
            "from_fallback": self.from_fallback,
        }
