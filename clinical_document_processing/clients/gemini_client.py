"""
Gemini Client - High-Throughput Content Provider

This module provides the concrete ContentProvider for Google's Gemini API.
Its very large context window makes it the high-throughput role: whole
documents above the token threshold and every non-critical chunk go here.

Why Separate File:
    1. Single Responsibility: one provider per file
    2. Easy to swap: just change import
    3. Provider-specific handling: safety settings, block reasons

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
# STAGE 1: GEMINI CLIENT IMPLEMENTATION
# =============================================================================


class GeminiClient(BaseContentProvider):
    """
    Google Gemini content provider.

    What it does:
        Generates text with Gemini models via the google-generativeai
        library's async API.

    Error translation:
        Every SDK failure becomes a ProviderCallError whose message embeds
        the SDK message verbatim ("429 Resource has been exhausted", ...),
        so the retry classifier sees the same text the SDK produced.
        Deadline errors are labelled as timeouts.

    Example:
        >>> client = GeminiClient(api_key="...", model_name="gemini-1.5-pro")
        >>> text = await client.generate_content("Extract the protocol...")
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-pro",
        role: ProviderRole = ProviderRole.HIGH_THROUGHPUT,
        requests_per_minute: int = 10,
        max_retries: int = 3,
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
        rate_limiter: Optional[RateLimiter] = None,
        retry_controller: Optional[RetryController] = None,
    ):
        """
        Initialize Gemini client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure Gemini SDK

        Args:
            api_key: Google API key (Gemini)
            model_name: Model to use (default: gemini-1.5-pro)
            role: Role this instance plays (default: high-throughput)
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
        self._generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }

        # =====================================================================
        # STAGE 1.2: CONFIGURE GEMINI SDK
        # =====================================================================
        self._model = None
        self._initialize_client()

        logger.info(f"GeminiClient initialized | Model: {model_name} | Role: {role.value}")

    def _initialize_client(self) -> None:
        """
        Initialize the Gemini model.

        Lazy import to avoid requiring google-generativeai at module load.
        """
        try:
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)

            # Permissive safety settings: protocols describe adverse events,
            # overdoses and deaths in clinical terms
            safety_settings = [
                {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
            ]

            self._model = genai.GenerativeModel(
                model_name=self._model_name,
                safety_settings=safety_settings,
                generation_config=self._generation_config,
            )

        except ImportError:
            raise ConfigurationError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai",
                context={"provider": "gemini"},
            )
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize Gemini client: {e}", context={"provider": "gemini"}
            ) from e

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    async def _call_api(self, prompt: str) -> str:
        """
        Make the actual Gemini API call.

        Args:
            prompt: Generation prompt

        Returns:
            Generated text

        Raises:
            ProviderCallError: If the API call fails or yields no text
        """
        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            message = str(e)
            if "deadline" in message.lower():
                message = f"timeout: {message}"
            raise ProviderCallError(
                f"Gemini API error: {message}", provider="gemini", original_error=e
            ) from e

        # Check for blocked content
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            raise ProviderCallError(
                f"Content filtered by gemini: {feedback.block_reason}", provider="gemini"
            )

        # Extract text from candidates
        for candidate in response.candidates or []:
            if candidate.content and candidate.content.parts:
                text = "".join(part.text for part in candidate.content.parts if part.text)
                if text:
                    return text

        raise ProviderCallError("Gemini returned empty response", provider="gemini")

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        """Return provider name."""
        return "gemini"
