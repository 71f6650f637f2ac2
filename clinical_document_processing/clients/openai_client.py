"""
OpenAI Client - High-Fidelity Content Provider

This module provides the concrete ContentProvider for OpenAI's API.
Its bounded context window and higher extraction precision make it the
high-fidelity role: small whole documents, critical-section chunks and
enhancement passes go here.

Why Separate File:
    1. Single Responsibility: one provider per file
    2. Easy to swap: just change import
    3. Provider-specific handling: SDK-level retries disabled

Author: Shubham Singh
Date: January 2026
"""

from typing import Optional

from loguru import logger

from clinical_document_processing.clients.llm_client import BaseContentProvider
from clinical_document_processing.clients.rate_limiter import RateLimiter
from clinical_document_processing.clients.retry import RetryController
from clinical_document_processing.core.enums import ProviderRole
from clinical_document_processing.core.exceptions import ConfigurationError, ProviderCallError


# =============================================================================
# STAGE 1: OPENAI CLIENT IMPLEMENTATION
# =============================================================================


class OpenAIClient(BaseContentProvider):
    """
    OpenAI content provider.

    What it does:
        Generates text with OpenAI chat models via the openai library's
        AsyncOpenAI client.

    Error translation:
        SDK failures become ProviderCallError with the SDK message embedded
        verbatim ("Error code: 429 - ..."). The SDK's own retry loop is
        disabled so that only the RetryController decides about retries.

    Example:
        >>> client = OpenAIClient(api_key="...", model_name="gpt-4o")
        >>> text = await client.generate_content("Extract the protocol...")
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o",
        role: ProviderRole = ProviderRole.HIGH_FIDELITY,
        requests_per_minute: int = 10,
        max_retries: int = 3,
        temperature: float = 0.2,
        max_output_tokens: int = 4096,
        rate_limiter: Optional[RateLimiter] = None,
        retry_controller: Optional[RetryController] = None,
    ):
        """
        Initialize OpenAI client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure OpenAI SDK

        Args:
            api_key: OpenAI API key
            model_name: Model to use (default: gpt-4o)
            role: Role this instance plays (default: high-fidelity)
            requests_per_minute: Permitted calls per minute
            max_retries: Max retries after the first attempt
            temperature: Sampling temperature
            max_output_tokens: Output token cap per call
            rate_limiter: Optional limiter override (for testing)
            retry_controller: Optional retry controller override (for testing)
        """
        # =====================================================================
        # STAGE 1.1: INITIALIZE BASE CLASS
        # =====================================================================
        super().__init__(
            api_key=api_key,
            model_name=model_name,
            role=role,
            requests_per_minute=requests_per_minute,
            max_retries=max_retries,
            rate_limiter=rate_limiter,
            retry_controller=retry_controller,
        )
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

        # =====================================================================
        # STAGE 1.2: CONFIGURE OPENAI SDK
        # =====================================================================
        self._client = None
        self._initialize_client()

        logger.info(f"OpenAIClient initialized | Model: {model_name} | Role: {role.value}")

    def _initialize_client(self) -> None:
        """
        Initialize the async OpenAI client.

        Lazy import to avoid requiring openai at module load.
        """
        try:
            from openai import AsyncOpenAI

            # Manual retry control
            self._client = AsyncOpenAI(api_key=self._api_key, max_retries=0)

        except ImportError:
            raise ConfigurationError(
                "openai package not installed. Install with: pip install openai",
                context={"provider": "openai"},
            )
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize OpenAI client: {e}", context={"provider": "openai"}
            ) from e

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    async def _call_api(self, prompt: str) -> str:
        """
        Make the actual OpenAI API call.

        Args:
            prompt: Generation prompt

        Returns:
            Generated text

        Raises:
            ProviderCallError: If the API call fails or yields no text
        """
        from openai import APITimeoutError

        try:
            response = await self._client.chat.completions.create(
                model=self._model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
            )
        except APITimeoutError as e:
            raise ProviderCallError(
                f"OpenAI API timeout: {e}", provider="openai", original_error=e
            ) from e
        except Exception as e:
            raise ProviderCallError(
                f"OpenAI API error: {e}", provider="openai", original_error=e
            ) from e

        # Extract text from response
        if response.choices:
            message = response.choices[0].message
            if message.content:
                return message.content

        raise ProviderCallError("OpenAI returned empty response", provider="openai")

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        """Return provider name."""
        return "openai"
