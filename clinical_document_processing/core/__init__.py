"""
Core Layer - Domain Models, Schemas, Enums, and Configuration

This layer contains PURE, side-effect-free components that form the
foundation of the orchestration core.

Submodules:
    models.py     → Data structures (Chunk, ParsedResult, UsageMetrics, ...)
    schemas.py    → Pydantic document shapes and fallback factories
    enums.py      → Enumerations (ProviderRole, DocumentType, ...)
    config.py     → Configuration dataclass
    constants.py  → Marker lists, keyword sets, context limits
    exceptions.py → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.core.models import (
    Chunk,
    DocumentAnalysis,
    ParsedResult,
    ProcessingOptions,
    ProcessingResult,
    UsageMetrics,
)
from clinical_document_processing.core.enums import (
    ChunkingStrategy,
    DocumentType,
    ErrorClass,
    ProviderRole,
)
from clinical_document_processing.core.config import OrchestratorConfiguration
from clinical_document_processing.core.exceptions import (
    ClinicalDocumentProcessingError,
    ConfigurationError,
    FatalProviderError,
    MergeInputMismatchError,
    ProviderCallError,
    ProviderError,
    TransientProviderError,
)

__all__ = [
    # Models
    "Chunk",
    "DocumentAnalysis",
    "ParsedResult",
    "ProcessingOptions",
    "ProcessingResult",
    "UsageMetrics",
    # Enums
    "ChunkingStrategy",
    "DocumentType",
    "ErrorClass",
    "ProviderRole",
    # Configuration
    "OrchestratorConfiguration",
    # Exceptions
    "ClinicalDocumentProcessingError",
    "ConfigurationError",
    "FatalProviderError",
    "MergeInputMismatchError",
    "ProviderCallError",
    "ProviderError",
    "TransientProviderError",
]
