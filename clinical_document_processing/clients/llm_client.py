"""
Content Provider Protocol and Base Implementation

This module defines the interface for content providers and provides a base
class with common functionality (rate limiting, classified retry, metrics).

Protocol Pattern:
    - ContentProviderProtocol defines the interface
    - BaseContentProvider provides common implementation
    - Concrete providers (GeminiClient, OpenAIClient) extend base

Call discipline (identical for both roles):
    1. acquire() the provider's RateLimiter
    2. run the SDK call through the provider's RetryController
    3. on failure, surface a ProviderError naming the provider

Author: Shubham Singh
Date: January 2026
"""

from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_document_processing.clients.rate_limiter import RateLimiter
from clinical_document_processing.clients.retry import RetryController
from clinical_document_processing.core.enums import ErrorClass, ProviderRole
from clinical_document_processing.core.exceptions import (
    FatalProviderError,
    TransientProviderError,
)


# =============================================================================
# STAGE 1: CONTENT PROVIDER PROTOCOL
# =============================================================================
# Defines the contract that all content providers must follow.


@runtime_checkable
class ContentProviderProtocol(Protocol):
    """
    Protocol defining the interface for content providers.

    What it does:
        Specifies the capability set both provider roles share, enabling
        the orchestrator to treat them interchangeably and tests to inject
        fakes.

    Required Methods:
        generate_content(prompt) → Generate text from prompt

    Properties:
        provider_name → Name of the provider (gemini, openai)
        model_name → Name of the model being used
        role → ProviderRole this instance plays
    """

    async def generate_content(self, prompt: str) -> str:
        """
        Generate text from a prompt.

        Raises:
            ProviderError: If no output could be produced
        """
        ...

    @property
    def provider_name(self) -> str:
        ...

    @property
    def model_name(self) -> str:
        ...

    @property
    def role(self) -> ProviderRole:
        ...


# =============================================================================
# STAGE 2: BASE CONTENT PROVIDER (ABSTRACT)
# =============================================================================


class BaseContentProvider(ABC):
    """
    Abstract base class for content providers with common functionality.

    What it does:
        Owns the provider's RateLimiter and RetryController and wraps every
        SDK call in them, so concrete implementations only implement the
        API-specific ``_call_api``.

    What subclasses must implement:
        - _call_api(prompt): Actual API call; failures raise ProviderCallError
          whose message embeds the SDK message verbatim
        - provider_name: Property returning provider name

    What base class provides:
        - Rate limiting before each logical call
        - Classified retry with exponential backoff
        - Translation of final failures into ProviderError
        - Call metrics
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        role: ProviderRole,
        requests_per_minute: int = 10,
        max_retries: int = 3,
        rate_limiter: Optional[RateLimiter] = None,
        retry_controller: Optional[RetryController] = None,
    ):
        """
        Initialize base content provider.

        Args:
            api_key: API key for the provider
            model_name: Name of model to use
            role: Role this provider plays (high-fidelity / high-throughput)
            requests_per_minute: Rate used when no limiter is supplied
            max_retries: Retry cap used when no controller is supplied
            rate_limiter: Optional limiter override (for testing)
            retry_controller: Optional retry controller override (for testing)
        """
        # =====================================================================
        # STAGE 2.1: STORE CONFIGURATION
        # =====================================================================
        self._api_key = api_key
        self._model_name = model_name
        self._role = role

        # =====================================================================
        # STAGE 2.2: RESILIENCE COMPONENTS
        # =====================================================================
        self._rate_limiter = rate_limiter or RateLimiter(
            requests_per_minute=requests_per_minute, name=self.provider_name
        )
        self._retry_controller = retry_controller or RetryController(max_retries=max_retries)

        # =====================================================================
        # STAGE 2.3: TRACKING STATE
        # =====================================================================
        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    async def generate_content(self, prompt: str) -> str:
        """
        Generate text from prompt with rate limiting and retry.

        Algorithm:
            1. Acquire the rate limiter
            2. Call the API through the retry controller
            3. Track metrics
            4. Return result, or raise a ProviderError naming this provider

        Args:
            prompt: The generation prompt

        Returns:
            Generated text

        Raises:
            TransientProviderError: Retryable failures exhausted every retry
            FatalProviderError: Non-retryable failure
        """
        # Step 1: Rate limiting
        await self._rate_limiter.acquire()

        # Step 2: Call with retry
        attempts = 0

        async def attempt() -> str:
            nonlocal attempts
            attempts += 1
            return await self._call_api(prompt)

        try:
            result = await self._retry_controller.run(attempt, label=self.provider_name)
        except Exception as error:
            self._failed_calls += 1
            if self._retry_controller.classify(error) is ErrorClass.RETRYABLE:
                error_type = TransientProviderError
            else:
                error_type = FatalProviderError
            logger.error(
                f"Content generation failed | Provider: {self.provider_name} | "
                f"Attempts: {attempts} | {error}"
            )
            raise error_type(
                f"{self.provider_name} failed to generate content after {attempts} attempt(s)",
                provider=self.provider_name,
                attempts=attempts,
                original_error=error,
            ) from error

        # Step 3: Track metrics
        self._total_calls += 1
        logger.debug(
            f"Content generated | Provider: {self.provider_name} | "
            f"Attempts: {attempts} | Length: {len(result)} chars"
        )
        return result

    # =========================================================================
    # STAGE 4: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    async def _call_api(self, prompt: str) -> str:
        """
        Make the actual API call. Must be implemented by subclasses.

        Raises:
            ProviderCallError: If the API call fails
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'gemini', 'openai')."""
        ...

    # =========================================================================
    # STAGE 5: COMMON IMPLEMENTATION
    # =========================================================================

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self._model_name

    @property
    def role(self) -> ProviderRole:
        """Return the role this provider plays."""
        return self._role

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    # =========================================================================
    # STAGE 6: METRICS
    # =========================================================================

    @property
    def total_calls(self) -> int:
        """Total number of successful logical calls."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        """Number of logical calls that ended in a ProviderError."""
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
