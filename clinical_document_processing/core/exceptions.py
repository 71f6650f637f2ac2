"""
Domain Exceptions for Hybrid Clinical Document Processing

This module defines all custom exceptions used throughout the orchestration
core. Well-defined exceptions enable:
    1. Clear error categorization for debugging
    2. Specific catch blocks for different failure modes
    3. Rich error context for troubleshooting

Exception Hierarchy:
    ClinicalDocumentProcessingError (base)
    ├── ConfigurationError          → Invalid configuration
    ├── ProviderCallError           → One failed SDK call (pre-retry)
    ├── ProviderError               → Provider produced no output after retries
    │   ├── TransientProviderError  → Retryable failures exhausted
    │   └── FatalProviderError      → Non-retryable failure
    └── MergeInputMismatchError     → Chunk/partial-result count mismatch

Reconciliation failures are deliberately absent: an unparseable response is
always resolved to a fallback value and never raised.

Usage:
    from clinical_document_processing.core.exceptions import ProviderError

    try:
        text = await provider.generate_content(prompt)
    except ProviderError as e:
        logger.error(f"{e.provider} failed after {e.attempts} attempt(s)")

Author: Shubham Singh
Date: January 2026
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================
# All domain exceptions inherit from this base class.


class ClinicalDocumentProcessingError(Exception):
    """
    Base exception for all document processing errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ClinicalDocumentProcessingError):
    """
    Error in orchestrator configuration.

    When raised:
        - Missing required API keys
        - Non-positive rate limits, budgets or thresholds
        - Unknown provider names
    """

    pass


# =============================================================================
# STAGE 3: PROVIDER ERRORS
# =============================================================================
# Errors raised at the content provider boundary.


class ProviderCallError(ClinicalDocumentProcessingError):
    """
    A single content provider SDK call failed.

    What it does:
        Wraps the SDK's exception so the rest of the system sees a domain
        error, while keeping the SDK's message text intact.

    Why the message matters:
        The retry classifier inspects the message for tokens such as
        "429" or "rate limit". Adapters must embed the original message
        verbatim for classification to keep working.

    Attributes:
        provider: Name of the provider (gemini, openai)
        original_error: The wrapped SDK exception, if any
    """

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        self.provider = provider
        self.original_error = original_error
        super().__init__(message, context={"provider": provider})


class ProviderError(ClinicalDocumentProcessingError):
    """
    A content provider failed to produce any output.

    What it does:
        Surfaces the final failure of a logical provider call to the
        orchestrator, naming the provider and the number of attempts made.

    Attributes:
        provider: Name of the provider that failed
        attempts: How many times the operation was invoked
        original_error: The last underlying error
    """

    def __init__(
        self,
        message: str,
        provider: str,
        attempts: int = 1,
        original_error: Optional[Exception] = None,
    ):
        self.provider = provider
        self.attempts = attempts
        self.original_error = original_error
        super().__init__(
            message,
            context={
                "provider": provider,
                "attempts": attempts,
                "original_error": str(original_error) if original_error else None,
            },
        )


class TransientProviderError(ProviderError):
    """
    Retryable failures persisted through every retry.

    Raised after the Retry Controller exhausted its attempt cap on errors
    classified as retryable (rate limit, quota, timeout, 5xx, 429).
    """

    pass


class FatalProviderError(ProviderError):
    """
    Non-retryable provider failure (e.g. invalid API key).

    Raised immediately after the first failing attempt.
    """

    pass


# =============================================================================
# STAGE 4: MERGE ERRORS
# =============================================================================


class MergeInputMismatchError(ClinicalDocumentProcessingError):
    """
    Number of partial results differs from the number of chunks.

    This is a programming-contract violation: it is never retried and never
    silently corrected.

    Attributes:
        expected: Number of chunks produced by the chunker
        received: Number of partial results handed to the merger
    """

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expected {expected} partial results but received {received}",
            context={"expected": expected, "received": received},
        )
