"""
Configuration for the Hybrid Document Processing Orchestrator

This module defines the configuration dataclass used to construct Content
Providers and the orchestrator explicitly at startup. Configuration is:
    1. Loaded from environment variables (with .env support)
    2. Validated at startup to fail fast on misconfiguration
    3. Passed explicitly - there are no module-level singleton clients

Configuration Hierarchy:
    OrchestratorConfiguration (main config)
    ├── Provider Settings (API keys, model names)
    ├── Rate/Retry Settings (requests per minute, retries, backoff)
    ├── Routing Settings (whole-document threshold, high-fidelity budget)
    ├── Chunking Settings (max tokens per chunk)
    └── Reconciliation Settings (diagnostic excerpt length)

Usage:
    from clinical_document_processing.core.config import OrchestratorConfiguration

    # Load from environment
    config = OrchestratorConfiguration.from_environment()

    # Or configure programmatically
    config = OrchestratorConfiguration(
        gemini_api_key="your-key",
        openai_api_key="your-key",
        max_high_fidelity_chunks=5,
    )

Author: Shubham Singh
Date: January 2026
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from clinical_document_processing.core.constants import CRITICAL_SECTION_KEYWORDS
from clinical_document_processing.core.exceptions import ConfigurationError


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================
# Centralized defaults make configuration transparent and overridable.
# The routing thresholds are hand-tuned; keep them here, not in logic.


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 Provider Defaults
    # -------------------------------------------------------------------------
    DEFAULT_GEMINI_MODEL = "gemini-1.5-pro"  # high-throughput
    DEFAULT_OPENAI_MODEL = "gpt-4o"  # high-fidelity
    DEFAULT_REQUESTS_PER_MINUTE = 10

    # -------------------------------------------------------------------------
    # 1.2 Retry Defaults
    # -------------------------------------------------------------------------
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_BACKOFF_BASE_MS = 1000
    DEFAULT_BACKOFF_MAX_MS = 30000
    DEFAULT_BACKOFF_JITTER_MS = 1000

    # -------------------------------------------------------------------------
    # 1.3 Routing Defaults
    # -------------------------------------------------------------------------
    DEFAULT_WHOLE_DOCUMENT_TOKEN_THRESHOLD = 80_000
    DEFAULT_MAX_HIGH_FIDELITY_CHUNKS = 3
    DEFAULT_PER_CHUNK_TOKEN_CEILING = 80_000
    DEFAULT_MAX_ENHANCED_SECTIONS = 3

    # -------------------------------------------------------------------------
    # 1.4 Chunking / Reconciliation Defaults
    # -------------------------------------------------------------------------
    DEFAULT_MAX_TOKENS_PER_CHUNK = 80_000
    DEFAULT_OVERLAP_TOKENS = 500
    DEFAULT_DIAGNOSTIC_EXCERPT_CHARS = 2000


# =============================================================================
# STAGE 2: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class OrchestratorConfiguration:
    """
    Configuration for the hybrid document processing orchestrator.

    What it does:
        Encapsulates every parameter needed to build both Content Providers,
        their Rate Limiters and Retry Controllers, and the orchestrator.

    Why it exists:
        1. Single source of truth for all configuration
        2. Validated at startup to fail fast on errors
        3. Lets tests construct the orchestrator with fakes and custom limits

    Example:
        >>> config = OrchestratorConfiguration.from_environment()
        >>> config.whole_document_token_threshold
        80000
    """

    # -------------------------------------------------------------------------
    # 2.1 Provider Configuration
    # -------------------------------------------------------------------------
    gemini_api_key: Optional[str] = None
    """Google Gemini API key. Backs the high-throughput provider."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL
    """Gemini model name (large context, cheaper)."""

    openai_api_key: Optional[str] = None
    """OpenAI API key. Backs the high-fidelity provider."""

    openai_model: str = ConfigDefaults.DEFAULT_OPENAI_MODEL
    """OpenAI model name (stronger reasoning, costlier)."""

    requests_per_minute: int = ConfigDefaults.DEFAULT_REQUESTS_PER_MINUTE
    """Per-provider request rate enforced by each provider's Rate Limiter."""

    # -------------------------------------------------------------------------
    # 2.2 Retry Configuration
    # -------------------------------------------------------------------------
    max_retries: int = ConfigDefaults.DEFAULT_MAX_RETRIES
    """Retries after the initial attempt for retryable failures."""

    backoff_base_ms: int = ConfigDefaults.DEFAULT_BACKOFF_BASE_MS
    backoff_max_ms: int = ConfigDefaults.DEFAULT_BACKOFF_MAX_MS
    backoff_jitter_ms: int = ConfigDefaults.DEFAULT_BACKOFF_JITTER_MS

    # -------------------------------------------------------------------------
    # 2.3 Routing Configuration
    # -------------------------------------------------------------------------
    whole_document_token_threshold: int = ConfigDefaults.DEFAULT_WHOLE_DOCUMENT_TOKEN_THRESHOLD
    """Documents below this size go to the high-fidelity provider wholesale."""

    max_high_fidelity_chunks: int = ConfigDefaults.DEFAULT_MAX_HIGH_FIDELITY_CHUNKS
    """Per-document cap on chunks routed to the high-fidelity provider."""

    per_chunk_token_ceiling: int = ConfigDefaults.DEFAULT_PER_CHUNK_TOKEN_CEILING
    """Largest chunk the router will send to the high-fidelity provider."""

    critical_section_keywords: Tuple[str, ...] = field(
        default_factory=lambda: tuple(CRITICAL_SECTION_KEYWORDS)
    )
    """Section-name keywords that qualify a chunk for high-fidelity routing."""

    enhance_critical_sections: bool = True
    """Re-process critical sections with high-fidelity after a high-throughput pass."""

    max_enhanced_sections: int = ConfigDefaults.DEFAULT_MAX_ENHANCED_SECTIONS
    """Upper bound on high-fidelity enhancement calls per document."""

    # -------------------------------------------------------------------------
    # 2.4 Chunking / Reconciliation Configuration
    # -------------------------------------------------------------------------
    max_tokens_per_chunk: int = ConfigDefaults.DEFAULT_MAX_TOKENS_PER_CHUNK
    """Chunker ceiling. The conservative strategy halves it."""

    overlap_tokens: int = ConfigDefaults.DEFAULT_OVERLAP_TOKENS

    diagnostic_excerpt_chars: int = ConfigDefaults.DEFAULT_DIAGNOSTIC_EXCERPT_CHARS
    """Raw-response characters kept in logs when reconciliation falls back."""

    # -------------------------------------------------------------------------
    # 2.5 Validation Methods
    # -------------------------------------------------------------------------

    def validate(self, require_api_keys: bool = True) -> None:
        """
        Validate configuration parameters.

        Checks:
            1. Both provider API keys are configured (unless disabled)
            2. Rates, budgets and thresholds are in valid ranges

        Args:
            require_api_keys: Skip the API key check (fakes injected in tests)

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if require_api_keys:
            if not self.gemini_api_key:
                raise ConfigurationError(
                    "Gemini API key required for the high-throughput provider",
                    context={"setting": "GEMINI_API_KEY", "provider": "gemini"},
                )
            if not self.openai_api_key:
                raise ConfigurationError(
                    "OpenAI API key required for the high-fidelity provider",
                    context={"setting": "OPENAI_API_KEY", "provider": "openai"},
                )

        if self.requests_per_minute <= 0:
            raise ConfigurationError(
                f"requests_per_minute must be positive, got {self.requests_per_minute}",
                context={"setting": "API_RATE_LIMIT"},
            )

        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries cannot be negative, got {self.max_retries}",
                context={"setting": "MAX_RETRIES"},
            )

        if not (0 < self.backoff_base_ms <= self.backoff_max_ms):
            raise ConfigurationError(
                f"Invalid backoff range: base={self.backoff_base_ms}, max={self.backoff_max_ms}",
                context={"base": self.backoff_base_ms, "max": self.backoff_max_ms},
            )

        if self.max_high_fidelity_chunks < 0:
            raise ConfigurationError(
                f"max_high_fidelity_chunks cannot be negative, got {self.max_high_fidelity_chunks}",
                context={"setting": "MAX_HIGH_FIDELITY_CHUNKS"},
            )

        for name in ("whole_document_token_threshold", "per_chunk_token_ceiling", "max_tokens_per_chunk"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"{name} must be positive, got {getattr(self, name)}",
                    context={"setting": name.upper()},
                )

    # -------------------------------------------------------------------------
    # 2.6 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "OrchestratorConfiguration":
        """
        Load configuration from environment variables.

        STAGE 1: Load .env file (if specified or found)
        STAGE 2: Read environment variables
        STAGE 3: Convert to typed configuration
        STAGE 4: Validate configuration (optional)

        Args:
            env_file: Path to .env file (optional, auto-detected if not provided)
            validate_on_load: Whether to validate after loading

        Returns:
            Configured OrchestratorConfiguration instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # STAGE 1: Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            possible_locations = [
                Path.cwd() / ".env",
                Path.cwd() / "clinical_document_processing" / ".env",
            ]
            for location in possible_locations:
                if location.exists():
                    load_dotenv(location)
                    break

        # STAGE 2 + 3: Read environment variables into typed configuration
        try:
            config = cls(
                # Provider settings
                gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                openai_api_key=os.getenv("OPENAI_API_KEY"),
                openai_model=os.getenv("OPENAI_MODEL", ConfigDefaults.DEFAULT_OPENAI_MODEL),
                requests_per_minute=int(
                    os.getenv("API_RATE_LIMIT", ConfigDefaults.DEFAULT_REQUESTS_PER_MINUTE)
                ),
                # Retry settings
                max_retries=int(os.getenv("MAX_RETRIES", ConfigDefaults.DEFAULT_MAX_RETRIES)),
                backoff_base_ms=int(
                    os.getenv("BACKOFF_BASE_MS", ConfigDefaults.DEFAULT_BACKOFF_BASE_MS)
                ),
                backoff_max_ms=int(
                    os.getenv("BACKOFF_MAX_MS", ConfigDefaults.DEFAULT_BACKOFF_MAX_MS)
                ),
                backoff_jitter_ms=int(
                    os.getenv("BACKOFF_JITTER_MS", ConfigDefaults.DEFAULT_BACKOFF_JITTER_MS)
                ),
                # Routing settings
                whole_document_token_threshold=int(
                    os.getenv(
                        "WHOLE_DOCUMENT_TOKEN_THRESHOLD",
                        ConfigDefaults.DEFAULT_WHOLE_DOCUMENT_TOKEN_THRESHOLD,
                    )
                ),
                max_high_fidelity_chunks=int(
                    os.getenv(
                        "MAX_HIGH_FIDELITY_CHUNKS", ConfigDefaults.DEFAULT_MAX_HIGH_FIDELITY_CHUNKS
                    )
                ),
                per_chunk_token_ceiling=int(
                    os.getenv(
                        "PER_CHUNK_TOKEN_CEILING", ConfigDefaults.DEFAULT_PER_CHUNK_TOKEN_CEILING
                    )
                ),
                enhance_critical_sections=os.getenv("ENHANCE_CRITICAL_SECTIONS", "true").lower()
                == "true",
                max_enhanced_sections=int(
                    os.getenv("MAX_ENHANCED_SECTIONS", ConfigDefaults.DEFAULT_MAX_ENHANCED_SECTIONS)
                ),
                # Chunking settings
                max_tokens_per_chunk=int(
                    os.getenv("MAX_TOKENS_PER_CHUNK", ConfigDefaults.DEFAULT_MAX_TOKENS_PER_CHUNK)
                ),
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid numeric setting in environment: {e}", context={"source": "environment"}
            ) from e

        # STAGE 4: Validate
        if validate_on_load:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "gemini_model": self.gemini_model,
            "openai_model": self.openai_model,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "openai_api_key": "***" if self.openai_api_key else None,
            "requests_per_minute": self.requests_per_minute,
            "max_retries": self.max_retries,
            "whole_document_token_threshold": self.whole_document_token_threshold,
            "max_high_fidelity_chunks": self.max_high_fidelity_chunks,
            "per_chunk_token_ceiling": self.per_chunk_token_ceiling,
            "max_tokens_per_chunk": self.max_tokens_per_chunk,
            "enhance_critical_sections": self.enhance_critical_sections,
            "max_enhanced_sections": self.max_enhanced_sections,
        }
