"""
Clinical Document Processing - Resilient Multi-Provider Orchestration Core

Generates structured clinical documents (study protocols, CRF
specifications, risk assessments) by orchestrating two interchangeable
content providers: a high-fidelity provider for small or critical work and a
high-throughput provider for everything large.

Architecture Overview:
    clinical_document_processing/
    ├── core/            → Models, schemas, enums, configuration (Layer 0 - Pure)
    ├── clients/         → Rate limiting, retry, provider adapters (Layer 1 - Infrastructure)
    ├── chunking/        → Section-aware document chunker (Layer 2)
    ├── reconciliation/  → Structured values from model text (Layer 2)
    ├── routing/         → Provider selection per chunk / document (Layer 2)
    ├── merging/         → Chunk merge and enhancement merge (Layer 2)
    ├── prompts/         → Prompt templates (Layer 2)
    └── pipeline.py      → HybridOrchestrator (Layer 3 - Public API)

Quick Start:
    import asyncio
    from clinical_document_processing import HybridOrchestrator, DocumentType

    orchestrator = HybridOrchestrator.from_environment()
    result = asyncio.run(orchestrator.process_whole_document(text, DocumentType.PROTOCOL))

Author: Shubham Singh
Date: January 2026
"""

__version__ = "1.0.0"
__author__ = "Shubham Singh"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Point
from clinical_document_processing.pipeline import HybridOrchestrator

# Core Models
from clinical_document_processing.core.models import (
    Chunk,
    EnhancementOutcome,
    ParsedResult,
    ProcessingOptions,
    ProcessingResult,
    UsageMetrics,
)

# Enums
from clinical_document_processing.core.enums import (
    ChunkingStrategy,
    DocumentType,
    ProcessingStrategy,
    ProviderRole,
)

# Configuration
from clinical_document_processing.core.config import OrchestratorConfiguration

# Exceptions
from clinical_document_processing.core.exceptions import (
    ClinicalDocumentProcessingError,
    ConfigurationError,
    FatalProviderError,
    MergeInputMismatchError,
    ProviderError,
    TransientProviderError,
)

__all__ = [
    # Main Entry Point (use this!)
    "HybridOrchestrator",
    # Core Models
    "Chunk",
    "EnhancementOutcome",
    "ParsedResult",
    "ProcessingOptions",
    "ProcessingResult",
    "UsageMetrics",
    # Enums
    "ChunkingStrategy",
    "DocumentType",
    "ProcessingStrategy",
    "ProviderRole",
    # Configuration
    "OrchestratorConfiguration",
    # Exceptions
    "ClinicalDocumentProcessingError",
    "ConfigurationError",
    "FatalProviderError",
    "MergeInputMismatchError",
    "ProviderError",
    "TransientProviderError",
]
