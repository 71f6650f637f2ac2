"""
Document Chunker - Section-Aware Splitting of Clinical Documents

The orchestrator treats the chunker as a pure collaborator: it trusts the
token counts for routing and the chunk order for merging. This module
defines that contract and a default implementation.

Algorithm (SectionDocumentChunker):
    1. Split the text at lines that consist of a known uppercase section
       header (optionally followed by a colon); text before the first header
       becomes a PREAMBLE section
    2. Greedily group consecutive sections while the rendered chunk (headers,
       separators and overlap included) stays within the per-chunk ceiling
    3. When a chunk is closed, optionally open the next one with a short
       context-overlap section naming the previous chunk's sections, left
       out when it would push the next section over the ceiling

Token counts are estimated at ~4 characters per token.

Author: Shubham Singh
Date: January 2026
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Protocol, runtime_checkable

from loguru import logger

from clinical_document_processing.core.config import ConfigDefaults
from clinical_document_processing.core.constants import (
    OVERLAP_SECTION,
    PREAMBLE_SECTION,
    PROVIDER_CONTEXT_LIMITS,
    SECTION_MARKERS,
)
from clinical_document_processing.core.enums import DocumentType, ProviderRole
from clinical_document_processing.core.models import Chunk, DocumentAnalysis

CHARS_PER_TOKEN = 4
SECTION_SEPARATOR = "\n\n"


def estimate_tokens(text: str) -> int:
    """Rough token count (~4 characters per token)."""
    return _chars_to_tokens(len(text))


def _chars_to_tokens(chars: int) -> int:
    return int(chars / CHARS_PER_TOKEN) + 1


def _rendered_chars(section: "_Section") -> int:
    # Length of "TITLE\ncontent" as written into a chunk.
    return len(section.title) + 1 + len(section.content)


# =============================================================================
# STAGE 1: CHUNKER PROTOCOL
# =============================================================================


@runtime_checkable
class DocumentChunkerProtocol(Protocol):
    """Contract the orchestrator relies on. Implementations must be side-effect free."""

    def analyze_document(self, text: str, document_type: DocumentType) -> DocumentAnalysis:
        ...

    def chunk_document(
        self,
        text: str,
        document_type: DocumentType,
        max_tokens_per_chunk: int,
        provider_preference: Optional[ProviderRole] = None,
        document_name: str = "document",
    ) -> List[Chunk]:
        ...


# =============================================================================
# STAGE 2: SECTION-BASED IMPLEMENTATION
# =============================================================================


@dataclass
class _Section:
    title: str
    content: str
    token_count: int


class SectionDocumentChunker:
    """
    Default chunker splitting on uppercase section headers.

    Example:
        >>> chunker = SectionDocumentChunker()
        >>> chunks = chunker.chunk_document(text, DocumentType.PROTOCOL, max_tokens_per_chunk=80000)
        >>> [c.section_name for c in chunks]
        ['PREAMBLE, PROTOCOL SYNOPSIS, STUDY OBJECTIVES', 'STUDY ENDPOINTS']
    """

    def __init__(self, overlap_tokens: int = ConfigDefaults.DEFAULT_OVERLAP_TOKENS):
        self._overlap_tokens = overlap_tokens
        self._patterns = {
            document_type: self._build_marker_pattern(SECTION_MARKERS[document_type.value])
            for document_type in DocumentType
        }

    @staticmethod
    def _build_marker_pattern(markers: List[str]) -> Pattern[str]:
        alternatives = "|".join(re.escape(marker) for marker in markers)
        return re.compile(rf"^\s*({alternatives})\s*:?\s*$", re.IGNORECASE)

    # -------------------------------------------------------------------------
    # 2.1 Analysis
    # -------------------------------------------------------------------------

    def analyze_document(self, text: str, document_type: DocumentType) -> DocumentAnalysis:
        """
        Estimate size and recommend a provider for the whole document.

        High-fidelity is recommended when the document fits its context
        window; chunk estimates use the recommended provider's optimal size.
        """
        total_tokens = estimate_tokens(text)
        sections = self._extract_sections(text, document_type)

        if total_tokens > PROVIDER_CONTEXT_LIMITS["high_fidelity"]["max_tokens"]:
            recommended = ProviderRole.HIGH_THROUGHPUT
        else:
            recommended = ProviderRole.HIGH_FIDELITY
        optimal = PROVIDER_CONTEXT_LIMITS[recommended.value]["optimal_tokens"]
        estimated_chunks = -(-total_tokens // optimal)

        if len(sections) > 20 or total_tokens > 200_000:
            complexity = "high"
        elif len(sections) > 10 or total_tokens > 100_000:
            complexity = "medium"
        else:
            complexity = "low"

        return DocumentAnalysis(
            total_tokens=total_tokens,
            estimated_chunks=estimated_chunks,
            recommended_provider=recommended,
            section_count=len(sections),
            complexity=complexity,
        )

    # -------------------------------------------------------------------------
    # 2.2 Chunking
    # -------------------------------------------------------------------------

    def chunk_document(
        self,
        text: str,
        document_type: DocumentType,
        max_tokens_per_chunk: int,
        provider_preference: Optional[ProviderRole] = None,
        document_name: str = "document",
    ) -> List[Chunk]:
        """
        Split ``text`` into ordered chunks of at most ``max_tokens_per_chunk``.

        The ceiling applies to the rendered chunk, headers and context
        overlap included. The overlap is left out of a chunk it would push
        over the ceiling. A single section larger than the ceiling becomes its
        own chunk; the router's per-chunk ceiling keeps such chunks away from
        high-fidelity. ``provider_preference`` does not change the split;
        routing applies it.
        """
        sections = self._extract_sections(text, document_type)
        groups: List[List[_Section]] = []
        current: List[_Section] = []
        current_chars = 0

        for section in sections:
            section_chars = _rendered_chars(section)
            if current and _chars_to_tokens(
                current_chars + len(SECTION_SEPARATOR) + section_chars
            ) > max_tokens_per_chunk:
                groups.append(current)
                current = []
                current_chars = 0
                if self._overlap_tokens > 0:
                    overlap = self._overlap_section(groups[-1])
                    overlap_chars = _rendered_chars(overlap)
                    with_overlap = overlap_chars + len(SECTION_SEPARATOR) + section_chars
                    if _chars_to_tokens(with_overlap) <= max_tokens_per_chunk:
                        current.append(overlap)
                        current_chars = overlap_chars
            current.append(section)
            current_chars += section_chars + (len(SECTION_SEPARATOR) if len(current) > 1 else 0)

        if current:
            groups.append(current)

        chunks = [
            self._build_chunk(group, position, document_type, document_name)
            for position, group in enumerate(groups)
        ]
        logger.debug(
            f"Document chunked | Type: {document_type.value} | Sections: {len(sections)} | "
            f"Chunks: {len(chunks)} | Ceiling: {max_tokens_per_chunk}"
        )
        return chunks

    # -------------------------------------------------------------------------
    # 2.3 Helpers
    # -------------------------------------------------------------------------

    def _extract_sections(self, text: str, document_type: DocumentType) -> List[_Section]:
        pattern = self._patterns[document_type]
        sections: List[_Section] = []
        title = PREAMBLE_SECTION
        lines: List[str] = []

        def close_section() -> None:
            content = "\n".join(lines).strip()
            if title != PREAMBLE_SECTION or content:
                sections.append(_Section(title, content, estimate_tokens(content)))

        for line in text.split("\n"):
            match = pattern.match(line)
            if match:
                close_section()
                title = match.group(1).upper()
                lines = []
            else:
                lines.append(line)
        close_section()

        return sections

    @staticmethod
    def _overlap_section(previous: List[_Section]) -> _Section:
        titles = ", ".join(s.title for s in previous if s.title != OVERLAP_SECTION)
        content = f"[Previous context summary]\n{titles}"
        return _Section(OVERLAP_SECTION, content, estimate_tokens(content))

    @staticmethod
    def _build_chunk(
        sections: List[_Section], position: int, document_type: DocumentType, document_name: str
    ) -> Chunk:
        content = SECTION_SEPARATOR.join(f"{s.title}\n{s.content}" for s in sections)
        return Chunk(
            content=content,
            token_count=estimate_tokens(content),
            section_name=", ".join(s.title for s in sections if s.title != OVERLAP_SECTION),
            position=position,
            chunk_id=f"{document_name}_{document_type.value}_chunk_{position}",
            document_type=document_type,
            has_overlap=any(s.title == OVERLAP_SECTION for s in sections),
        )
