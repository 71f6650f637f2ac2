"""
Clients Layer - Content Provider Abstractions

This layer provides clean abstractions over content providers (OpenAI for
the high-fidelity role, Gemini for the high-throughput role), enabling the
orchestrator to work with either provider interchangeably.

Submodules:
    rate_limiter.py  → Minimum-interval throttle per provider
    retry.py         → Error classification and exponential-backoff retry
    llm_client.py    → Protocol and base implementation
    gemini_client.py → Google Gemini implementation
    openai_client.py → OpenAI implementation

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.clients.llm_client import (
    BaseContentProvider,
    ContentProviderProtocol,
)
from clinical_document_processing.clients.rate_limiter import RateLimiter
from clinical_document_processing.clients.retry import (
    RetryController,
    classify_error,
    compute_backoff_delay_ms,
)
from clinical_document_processing.clients.gemini_client import GeminiClient
from clinical_document_processing.clients.openai_client import OpenAIClient

__all__ = [
    "BaseContentProvider",
    "ContentProviderProtocol",
    "RateLimiter",
    "RetryController",
    "classify_error",
    "compute_backoff_delay_ms",
    "GeminiClient",
    "OpenAIClient",
]
