"""
Critical-Section Extraction for High-Fidelity Enhancement

After a high-throughput whole-document pass, the sections that matter most
(endpoints, eligibility criteria, safety) are cut out of the original text
and re-processed by the high-fidelity provider.

A line starts a critical section when it is short enough to be a header and
matches one of ENHANCEMENT_SECTION_PATTERNS; a header matching
SECTION_TERMINATOR_PATTERN (procedures, statistics, ...) closes the current
section. Repeated headers of the same kind (e.g. "Primary Endpoints" then
"Secondary Endpoints") accumulate into one section.

Author: Shubham Singh
Date: January 2026
"""

from typing import Dict, List, Optional

from clinical_document_processing.core.constants import (
    ENHANCEMENT_SECTION_PATTERNS,
    SECTION_TERMINATOR_PATTERN,
)

MAX_HEADER_LENGTH = 80


def _classify_header(line: str) -> Optional[str]:
    for name, pattern in ENHANCEMENT_SECTION_PATTERNS.items():
        if pattern.match(line):
            return name
    return None


def extract_critical_sections(text: str) -> Dict[str, str]:
    """
    Extract critical sections from protocol text.

    Returns:
        Section name → section text (header line included), in the order of
        ENHANCEMENT_SECTION_PATTERNS; sections not found are absent
    """
    collected: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and len(stripped) <= MAX_HEADER_LENGTH:
            name = _classify_header(stripped)
            if name is not None:
                current = name
                collected.setdefault(name, [])
            elif SECTION_TERMINATOR_PATTERN.match(stripped):
                current = None
                continue

        if current is not None:
            collected[current].append(line)

    return {
        name: "\n".join(collected[name]).strip()
        for name in ENHANCEMENT_SECTION_PATTERNS
        if name in collected and "\n".join(collected[name]).strip()
    }
