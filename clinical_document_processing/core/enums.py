"""
Enumerations for Hybrid Clinical Document Processing

This module defines all enumeration types used throughout the orchestration
core. Enums provide:
    1. Type safety for categorical values
    2. IDE autocomplete support
    3. Clear domain semantics

Enumeration Categories:
    ProviderRole        → The two interchangeable content provider roles
    DocumentType        → Kinds of clinical source documents
    ChunkingStrategy    → How aggressively documents are split
    ProcessingStrategy  → Whole-document vs. chunked processing
    ErrorClass          → Retry classification of provider failures

Author: Shubham Singh
Date: January 2026
"""

from enum import Enum


# =============================================================================
# STAGE 1: PROVIDER ROLE ENUMERATION
# =============================================================================
# The system talks to two content providers. Roles describe the
# fidelity-vs-cost tradeoff, not specific vendors.


class ProviderRole(str, Enum):
    """
    Role a content provider plays in the hybrid pipeline.

    What it does:
        Identifies which of the two providers handles a unit of work.
        Used as the key for routing decisions and usage metrics.

    Why it exists:
        1. Routing logic must not depend on vendor names
        2. Usage metrics are tallied per role
        3. Callers express preferences in terms of roles
    """

    HIGH_FIDELITY = "high_fidelity"
    """Small-context, stronger reasoning, costlier provider."""

    HIGH_THROUGHPUT = "high_throughput"
    """Large-context, cheaper provider."""


# =============================================================================
# STAGE 2: DOCUMENT TYPE ENUMERATION
# =============================================================================


class DocumentType(str, Enum):
    """
    Types of clinical source documents the orchestrator can process.

    Each type has its own section markers (chunking), its own extraction
    prompt, its own shape validator and its own fallback value.
    """

    PROTOCOL = "protocol"
    """Clinical study protocol (objectives, endpoints, eligibility, ...)."""

    CRF = "crf"
    """Case report form specification (forms and fields)."""


# =============================================================================
# STAGE 3: CHUNKING STRATEGY ENUMERATION
# =============================================================================


class ChunkingStrategy(str, Enum):
    """How the per-chunk token ceiling is derived from configuration."""

    AUTO = "auto"
    """Use the configured maximum tokens per chunk."""

    CONSERVATIVE = "conservative"
    """Halve the configured maximum tokens per chunk."""


# =============================================================================
# STAGE 4: PROCESSING STRATEGY ENUMERATION
# =============================================================================


class ProcessingStrategy(str, Enum):
    """Outcome of the orchestrator's strategy selection step."""

    WHOLE_DOCUMENT = "whole_document"
    CHUNKED = "chunked"


# =============================================================================
# STAGE 5: ERROR CLASSIFICATION
# =============================================================================


class ErrorClass(str, Enum):
    """
    Retry classification of a failed provider call.

    RETRYABLE errors are retried with exponential backoff; FATAL errors
    are re-raised immediately without consuming a retry.
    """

    RETRYABLE = "retryable"
    FATAL = "fatal"
