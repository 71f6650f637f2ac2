"""
Hybrid Orchestrator - Main Entry Point

This is the PUBLIC API entry point for the orchestration core. It composes
the chunker, router, content providers, reconciler and merger behind one
façade.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HybridOrchestrator                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ┌─────────┐   ┌────────┐   ┌──────────┐   ┌───────────┐   ┌─────┐ │
    │   │ Chunker │ → │ Router │ → │ Provider │ → │ Reconciler│ → │Merge│ │
    │   └─────────┘   └────────┘   └──────────┘   └───────────┘   └─────┘ │
    │                                 │                                   │
    │                      RateLimiter + RetryController                  │
    └─────────────────────────────────────────────────────────────────────┘

Per-call state machine:
    INIT → STRATEGY_SELECT → {WHOLE_DOCUMENT | CHUNKED}
         → (per unit: ROUTE → PROVIDER_CALL → RECONCILE) → MERGE → DONE

Chunks are processed strictly sequentially: the router's high-fidelity
counter and the UsageMetrics tally are mutated without locking.

Usage:
    from clinical_document_processing import HybridOrchestrator

    orchestrator = HybridOrchestrator.from_environment()
    result = await orchestrator.process_whole_document(protocol_text)
    print(result.metrics.provider_counts)

Author: Shubham Singh
Date: January 2026
"""

import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from loguru import logger

from clinical_document_processing.chunking import (
    DocumentChunkerProtocol,
    SectionDocumentChunker,
)
from clinical_document_processing.chunking.document_chunker import CHARS_PER_TOKEN
from clinical_document_processing.clients import (
    ContentProviderProtocol,
    GeminiClient,
    OpenAIClient,
    RetryController,
)
from clinical_document_processing.core.config import OrchestratorConfiguration
from clinical_document_processing.core.enums import (
    ChunkingStrategy,
    DocumentType,
    ProcessingStrategy,
    ProviderRole,
)
from clinical_document_processing.core.exceptions import ConfigurationError, ProviderError
from clinical_document_processing.core.models import (
    Chunk,
    EnhancementOutcome,
    FieldUpdate,
    ParsedResult,
    ProcessingOptions,
    ProcessingResult,
    ProviderAssignment,
    RoutingBudget,
    RoutingState,
    UsageMetrics,
)
from clinical_document_processing.core.schemas import (
    CriteriaUpdate,
    EndpointsUpdate,
    RiskAssessmentResult,
    SafetyUpdate,
    fallback_risk_assessment,
)
from clinical_document_processing.merging import (
    ResultMerger,
    extract_critical_sections,
    has_content,
    merge_func_for,
)
from clinical_document_processing.prompts import PromptBuilder
from clinical_document_processing.reconciliation import (
    ResponseReconciler,
    fallback_for,
    schema_validator,
    validator_for,
)
from clinical_document_processing.routing import ChunkRouter

ProcessFunc = Callable[[Chunk, ContentProviderProtocol], Awaitable[Any]]
MergeFunc = Callable[[List[Any]], Any]

# Shape returned by the high-fidelity provider for each enhanced section.
ENHANCEMENT_UPDATE_MODELS = {
    "endpoints": EndpointsUpdate,
    "inclusion_exclusion": CriteriaUpdate,
    "safety": SafetyUpdate,
}


# =============================================================================
# STAGE 1: ORCHESTRATOR CLASS
# =============================================================================


class HybridOrchestrator:
    """
    Top-level façade of the multi-provider orchestration core.

    What it does:
        Decides whole-document vs. chunked processing, routes each unit of
        work to the high-fidelity or high-throughput provider, reconciles
        every response into a typed value and merges partial results.

    Why it exists:
        1. Simple API: callers see three operations and a result object
        2. Encapsulation: budget, retry and fallback discipline stay inside
        3. Testability: every collaborator can be replaced with a fake

    Example:
        >>> orchestrator = HybridOrchestrator.from_environment()
        >>> result = await orchestrator.process_whole_document(text, DocumentType.PROTOCOL)
        >>> result.metrics.to_dict()["provider_counts"]
        {'high_fidelity': 3, 'high_throughput': 1}
    """

    def __init__(
        self,
        config: OrchestratorConfiguration,
        high_fidelity: Optional[ContentProviderProtocol] = None,
        high_throughput: Optional[ContentProviderProtocol] = None,
        chunker: Optional[DocumentChunkerProtocol] = None,
        router: Optional[ChunkRouter] = None,
        reconciler: Optional[ResponseReconciler] = None,
        merger: Optional[ResultMerger] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        """
        Initialize orchestrator with configuration and optional component overrides.

        Args:
            config: Orchestrator configuration
            high_fidelity: Optional high-fidelity provider override (for testing)
            high_throughput: Optional high-throughput provider override (for testing)
            chunker: Optional chunker override
            router: Optional router override
            reconciler: Optional reconciler override
            merger: Optional merger override
            prompt_builder: Optional prompt builder override
        """
        # =====================================================================
        # STAGE 1.1: STORE CONFIGURATION
        # =====================================================================
        self._config = config

        # =====================================================================
        # STAGE 1.2: INITIALIZE CONTENT PROVIDERS
        # =====================================================================
        self._providers: Dict[ProviderRole, ContentProviderProtocol] = {
            ProviderRole.HIGH_FIDELITY: high_fidelity or self._create_high_fidelity(config),
            ProviderRole.HIGH_THROUGHPUT: high_throughput or self._create_high_throughput(config),
        }

        # =====================================================================
        # STAGE 1.3: INITIALIZE COLLABORATORS
        # =====================================================================
        self._chunker = chunker or SectionDocumentChunker(overlap_tokens=config.overlap_tokens)
        self._router = router or ChunkRouter(critical_keywords=config.critical_section_keywords)
        self._reconciler = reconciler or ResponseReconciler(
            diagnostic_excerpt_chars=config.diagnostic_excerpt_chars
        )
        self._merger = merger or ResultMerger()
        self._prompts = prompt_builder or PromptBuilder()

        logger.info(
            f"HybridOrchestrator initialized | "
            f"High-fidelity: {self._providers[ProviderRole.HIGH_FIDELITY].model_name} | "
            f"High-throughput: {self._providers[ProviderRole.HIGH_THROUGHPUT].model_name}"
        )

    # =========================================================================
    # STAGE 2: WHOLE-DOCUMENT PROCESSING
    # =========================================================================

    async def process_whole_document(
        self,
        text: str,
        document_type: DocumentType = DocumentType.PROTOCOL,
        options: Optional[ProcessingOptions] = None,
    ) -> ProcessingResult:
        """
        Process a document in a single provider call.

        Documents below the whole-document threshold go to high-fidelity
        unless the caller prefers high-throughput. Larger protocols go to
        high-throughput and are then refined by critical-section
        enhancement (unless disabled).

        Args:
            text: Full document text
            document_type: Type of the document
            options: Caller options (defaults apply when None)

        Returns:
            ProcessingResult with the document value and usage metrics

        Raises:
            ProviderError: If the chosen provider produced no output
        """
        options = options or ProcessingOptions()
        started = time.perf_counter()
        metrics = UsageMetrics(total_chunks=1)

        # =====================================================================
        # STAGE 2.1: STRATEGY SELECT
        # =====================================================================
        analysis = self._chunker.analyze_document(text, document_type)
        role = self._router.select_whole_document_provider(
            analysis.total_tokens,
            self._config.whole_document_token_threshold,
            options.preferred_provider,
        )
        logger.info(
            f"Whole-document processing | Type: {document_type.value} | "
            f"Tokens: {analysis.total_tokens} | Sections: {analysis.section_count} | "
            f"Complexity: {analysis.complexity} | Provider: {role.value}"
        )

        # =====================================================================
        # STAGE 2.2: PROVIDER CALL + RECONCILE
        # =====================================================================
        metrics.record(role)
        parsed = await self._generate_and_reconcile(
            role,
            self._prompts.build_extraction_prompt(text, document_type),
            validator_for(document_type),
            fallback_for(document_type),
        )
        result = parsed.value

        # =====================================================================
        # STAGE 2.3: CRITICAL-SECTION ENHANCEMENT
        # =====================================================================
        if (
            role == ProviderRole.HIGH_THROUGHPUT
            and document_type == DocumentType.PROTOCOL
            and self._enhancement_enabled(options)
        ):
            outcome = await self.enhance_critical_sections(result, text)
            result = outcome.result
            metrics.record(ProviderRole.HIGH_FIDELITY, outcome.high_fidelity_calls)
            metrics.enhanced_sections.extend(outcome.applied_sections)

        metrics.processing_time_ms = _elapsed_ms(started)
        logger.info(
            f"Whole-document processing complete | Fallback: {parsed.from_fallback} | "
            f"Enhanced: {metrics.enhanced_sections} | Time: {metrics.processing_time_ms}ms"
        )
        return ProcessingResult(result=result, metrics=metrics, from_fallback=parsed.from_fallback)

    # =========================================================================
    # STAGE 3: CHUNKED PROCESSING
    # =========================================================================

    async def process_chunked(
        self,
        text: str,
        document_type: DocumentType,
        process_func: ProcessFunc,
        merge_func: MergeFunc,
        options: Optional[ProcessingOptions] = None,
        document_name: str = "document",
    ) -> ProcessingResult:
        """
        Process a document chunk by chunk with per-chunk routing.

        Algorithm:
            1. Chunk the document (conservative strategy halves the ceiling)
            2. For each chunk in order: route, then await ``process_func``
               with the routed provider
            3. Merge partials in chunk order with ``merge_func``

        Args:
            text: Full document text
            document_type: Type of the document
            process_func: ``(chunk, provider) -> partial``; a returned
                ParsedResult is unwrapped and its provenance tracked
            merge_func: Combines the ordered partials into one value
            options: Caller options (defaults apply when None)
            document_name: Name used in chunk ids

        Returns:
            ProcessingResult; ``from_fallback`` is True when every chunk fell back

        Raises:
            ProviderError: If any chunk's provider produced no output
            MergeInputMismatchError: If partial count differs from chunk count
        """
        options = options or ProcessingOptions()
        started = time.perf_counter()

        # =====================================================================
        # STAGE 3.1: CHUNK
        # =====================================================================
        max_tokens = self._config.max_tokens_per_chunk
        if options.chunking_strategy == ChunkingStrategy.CONSERVATIVE:
            max_tokens //= 2
        chunks = self._chunker.chunk_document(
            text,
            document_type,
            max_tokens_per_chunk=max_tokens,
            provider_preference=options.preferred_provider,
            document_name=document_name,
        )
        logger.info(
            f"Document chunked | Name: {document_name} | Chunks: {len(chunks)} | "
            f"Sizes: {[c.token_count for c in chunks]}"
        )

        # =====================================================================
        # STAGE 3.2: ROUTE → PROVIDER_CALL → RECONCILE (sequential)
        # =====================================================================
        budget = RoutingBudget(
            max_high_fidelity_chunks=(
                options.max_high_fidelity_chunks
                if options.max_high_fidelity_chunks is not None
                else self._config.max_high_fidelity_chunks
            ),
            per_chunk_ceiling=self._config.per_chunk_token_ceiling,
        )
        state = RoutingState()
        metrics = UsageMetrics(total_chunks=len(chunks))
        partials: List[Any] = []
        fallback_chunks = 0

        for chunk in chunks:
            assignment = ProviderAssignment(
                chunk=chunk,
                provider=self._router.assign(chunk, state, budget, options.preferred_provider),
            )
            metrics.record(assignment.provider)
            try:
                partial = await process_func(chunk, self._providers[assignment.provider])
            except ProviderError as e:
                logger.error(
                    f"Chunked processing failed | Chunk: {chunk.position} | "
                    f"Provider: {e.provider} | Attempts: {e.attempts}"
                )
                raise

            if isinstance(partial, ParsedResult):
                fallback_chunks += int(partial.from_fallback)
                partial = partial.value
            partials.append(partial)

        # =====================================================================
        # STAGE 3.3: MERGE
        # =====================================================================
        result = self._merger.merge_chunks(chunks, partials, merge_func)

        metrics.processing_time_ms = _elapsed_ms(started)
        logger.info(
            f"Chunked processing complete | Chunks: {len(chunks)} | "
            f"Usage: {metrics.to_dict()['provider_counts']} | "
            f"Fallback chunks: {fallback_chunks} | Time: {metrics.processing_time_ms}ms"
        )
        return ProcessingResult(
            result=result,
            metrics=metrics,
            from_fallback=bool(chunks) and fallback_chunks == len(chunks),
        )

    def chunk_processor(self, document_type: DocumentType) -> ProcessFunc:
        """
        Standard ``process_func`` for ``process_chunked``.

        Prompts the routed provider for a partial extraction of the chunk and
        reconciles the answer against the document type's partial validator.
        """
        validator = validator_for(document_type, partial=True)

        async def process(chunk: Chunk, provider: ContentProviderProtocol) -> ParsedResult:
            raw_text = await provider.generate_content(self._prompts.build_chunk_prompt(chunk))
            return self._reconciler.reconcile(
                raw_text, validator, fallback_for(document_type, partial=True)
            )

        return process

    async def process(
        self,
        text: str,
        document_type: DocumentType = DocumentType.PROTOCOL,
        strategy: ProcessingStrategy = ProcessingStrategy.WHOLE_DOCUMENT,
        options: Optional[ProcessingOptions] = None,
        document_name: str = "document",
    ) -> ProcessingResult:
        """Process with the standard chunk processor and merge function for the type."""
        if strategy == ProcessingStrategy.CHUNKED:
            return await self.process_chunked(
                text,
                document_type,
                self.chunk_processor(document_type),
                merge_func_for(document_type),
                options=options,
                document_name=document_name,
            )
        return await self.process_whole_document(text, document_type, options)

    # =========================================================================
    # STAGE 4: CRITICAL-SECTION ENHANCEMENT
    # =========================================================================

    async def enhance_critical_sections(
        self, base_result: Any, original_text: str, max_sections: Optional[int] = None
    ) -> EnhancementOutcome:
        """
        Re-process critical sections with the high-fidelity provider.

        At most ``max_sections`` sections (configuration default when None)
        are sent, one call each. A section whose call fails, whose response
        falls back, or whose extraction comes back empty is recorded as
        skipped and leaves the base value untouched.

        Returns:
            EnhancementOutcome with the overlaid result and applied section names
        """
        limit = self._config.max_enhanced_sections if max_sections is None else max_sections
        sections = list(extract_critical_sections(original_text).items())[: max(limit, 0)]
        provider = self._providers[ProviderRole.HIGH_FIDELITY]
        max_chars = self._config.per_chunk_token_ceiling * CHARS_PER_TOKEN

        logger.debug(f"Enhancing critical sections | Found: {[name for name, _ in sections]}")

        updates: List[FieldUpdate] = []
        calls = 0
        for name, section_text in sections:
            calls += 1
            prompt = self._prompts.build_enhancement_prompt(name, section_text[:max_chars])
            try:
                raw_text = await provider.generate_content(prompt)
            except ProviderError as e:
                logger.warning(f"Enhancement call failed | Section: {name} | {e}")
                updates.append(FieldUpdate(section_name=name, applied=False, reason=str(e)))
                continue

            parsed = self._reconciler.reconcile(
                raw_text, schema_validator(ENHANCEMENT_UPDATE_MODELS[name]), None
            )
            if parsed.from_fallback:
                updates.append(
                    FieldUpdate(section_name=name, applied=False, reason=parsed.failure_reason)
                )
                continue

            fields = _update_fields(parsed.value)
            if not any(has_content(value) for value in fields.values()):
                updates.append(
                    FieldUpdate(section_name=name, applied=False, reason="empty extraction")
                )
                continue
            updates.append(FieldUpdate(section_name=name, fields=fields))

        outcome = self._merger.merge_enhancements(base_result, updates)
        outcome.high_fidelity_calls = calls
        logger.info(
            f"Enhancement complete | Applied: {outcome.applied_sections} | "
            f"Skipped: {outcome.skipped_sections} | Calls: {calls}"
        )
        return outcome

    # =========================================================================
    # STAGE 5: RISK ASSESSMENT
    # =========================================================================

    async def generate_risk_assessment(
        self, protocol: Any, crfs: Sequence[Any]
    ) -> ProcessingResult:
        """
        Assess data management risk of a protocol and its CRFs.

        Uses the high-throughput provider; the answer must carry a ``risks``
        array, otherwise the manual-review fallback is returned.
        """
        started = time.perf_counter()
        metrics = UsageMetrics(total_chunks=1)
        metrics.record(ProviderRole.HIGH_THROUGHPUT)

        parsed = await self._generate_and_reconcile(
            ProviderRole.HIGH_THROUGHPUT,
            self._prompts.build_risk_assessment_prompt(protocol, crfs),
            schema_validator(RiskAssessmentResult),
            fallback_risk_assessment(),
        )

        metrics.processing_time_ms = _elapsed_ms(started)
        logger.info(
            f"Risk assessment complete | Risks: {len(parsed.value.risks)} | "
            f"Fallback: {parsed.from_fallback}"
        )
        return ProcessingResult(
            result=parsed.value, metrics=metrics, from_fallback=parsed.from_fallback
        )

    # =========================================================================
    # STAGE 6: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "HybridOrchestrator":
        """
        Create orchestrator from environment configuration.

        Args:
            env_file: Path to .env file (optional)

        Raises:
            ConfigurationError: If required settings missing
        """
        config = OrchestratorConfiguration.from_environment(env_file=env_file, validate_on_load=True)
        return cls(config)

    # =========================================================================
    # STAGE 7: PRIVATE HELPERS
    # =========================================================================

    async def _generate_and_reconcile(
        self, role: ProviderRole, prompt: str, validator: Callable, fallback: Any
    ) -> ParsedResult:
        raw_text = await self._providers[role].generate_content(prompt)
        return self._reconciler.reconcile(raw_text, validator, fallback)

    def _enhancement_enabled(self, options: ProcessingOptions) -> bool:
        if options.enhance_critical_sections is None:
            return self._config.enhance_critical_sections
        return options.enhance_critical_sections

    @staticmethod
    def _retry_controller(config: OrchestratorConfiguration) -> RetryController:
        return RetryController(
            max_retries=config.max_retries,
            base_delay_ms=config.backoff_base_ms,
            max_delay_ms=config.backoff_max_ms,
            jitter_ms=config.backoff_jitter_ms,
        )

    def _create_high_fidelity(self, config: OrchestratorConfiguration) -> OpenAIClient:
        """Create the high-fidelity provider from configuration."""
        if not config.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key required", context={"setting": "OPENAI_API_KEY"}
            )
        return OpenAIClient(
            api_key=config.openai_api_key,
            model_name=config.openai_model,
            requests_per_minute=config.requests_per_minute,
            retry_controller=self._retry_controller(config),
        )

    def _create_high_throughput(self, config: OrchestratorConfiguration) -> GeminiClient:
        """Create the high-throughput provider from configuration."""
        if not config.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key required", context={"setting": "GEMINI_API_KEY"}
            )
        return GeminiClient(
            api_key=config.gemini_api_key,
            model_name=config.gemini_model,
            requests_per_minute=config.requests_per_minute,
            retry_controller=self._retry_controller(config),
        )

    # =========================================================================
    # STAGE 8: PROPERTIES AND METRICS
    # =========================================================================

    @property
    def config(self) -> OrchestratorConfiguration:
        """Current configuration."""
        return self._config

    @property
    def chunker(self) -> DocumentChunkerProtocol:
        """Document chunker in use."""
        return self._chunker

    def provider(self, role: ProviderRole) -> ContentProviderProtocol:
        """Content provider playing ``role``."""
        return self._providers[role]

    def get_statistics(self) -> dict:
        """Per-provider call statistics (providers without metrics are skipped)."""
        stats = {}
        for role, provider in self._providers.items():
            if hasattr(provider, "success_rate"):
                stats[role.value] = {
                    "provider": provider.provider_name,
                    "model": provider.model_name,
                    "total_calls": provider.total_calls,
                    "failed_calls": provider.failed_calls,
                    "success_rate": provider.success_rate,
                }
        return stats


# =============================================================================
# STAGE 9: MODULE HELPERS
# =============================================================================


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _update_fields(update: Any) -> Dict[str, Any]:
    # Models go to the merger as-is; it drops empty values and matches dict key style.
    return {name: getattr(update, name) for name in type(update).model_fields}


# =============================================================================
# SMOKE TEST
# =============================================================================

if __name__ == "__main__":
    import sys

    print("=" * 60)
    print("HYBRID ORCHESTRATOR - SMOKE TEST")
    print("=" * 60)

    try:
        # 1. Initialize orchestrator
        print("1. Initializing orchestrator from environment...")
        orchestrator = HybridOrchestrator.from_environment()
        print("   [OK] Orchestrator initialized successfully")

        # 2. Inspect configuration
        print("\n2. Configuration loaded:")
        for key, value in orchestrator.config.to_dict().items():
            print(f"   - {key}: {value}")

        # 3. Analyze a tiny document (no provider calls)
        sample = "STUDY OBJECTIVES\nAssess efficacy.\n\nPRIMARY ENDPOINTS\nHbA1c change at week 24."
        chunks = orchestrator.chunker.chunk_document(
            sample, DocumentType.PROTOCOL, orchestrator.config.max_tokens_per_chunk
        )
        print(f"\n3. Sample chunked into {len(chunks)} chunk(s): {[c.section_name for c in chunks]}")

        print("\n[OK] SMOKE TEST PASSED: System is ready for processing.")

    except Exception as e:
        print(f"\n[FAIL] SMOKE TEST FAILED: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
