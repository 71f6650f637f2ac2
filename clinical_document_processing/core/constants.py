"""
Constants for Hybrid Clinical Document Processing

This module defines constant values used throughout the orchestration core.

Constant Categories:
    RETRYABLE_ERROR_MARKERS     → Substrings that make a provider error retryable
    CRITICAL_SECTION_KEYWORDS   → Section names that deserve the high-fidelity provider
    SECTION_MARKERS             → Uppercase section headers per document type
    ENHANCEMENT_SECTION_PATTERNS → Header patterns for critical-section enhancement
    PROVIDER_CONTEXT_LIMITS     → Context sizes used for provider recommendations

Author: Shubham Singh
Date: January 2026
"""

import re
from typing import Dict, List, Pattern, Tuple


# =============================================================================
# STAGE 1: ERROR CLASSIFICATION
# =============================================================================
# Provider SDKs report failures as free text. These substrings (matched
# case-insensitively) mark a failure as transient.

RETRYABLE_ERROR_MARKERS: Tuple[str, ...] = (
    "rate limit",
    "quota",
    "timeout",
    "503",
    "429",
    "500",
)


# =============================================================================
# STAGE 2: ROUTING
# =============================================================================

CRITICAL_SECTION_KEYWORDS: Tuple[str, ...] = (
    "endpoints",
    "safety",
    "inclusion",
    "exclusion",
    "primary",
    "secondary",
)

# Context limits in tokens. The high-fidelity provider is recommended for
# documents that fit its window.
PROVIDER_CONTEXT_LIMITS: Dict[str, Dict[str, int]] = {
    "high_fidelity": {"max_tokens": 100_000, "optimal_tokens": 80_000},
    "high_throughput": {"max_tokens": 2_000_000, "optimal_tokens": 1_500_000},
}


# =============================================================================
# STAGE 3: SECTION MARKERS (CHUNKING)
# =============================================================================
# A line consisting only of one of these headers (optionally followed by a
# colon) starts a new section.

SECTION_MARKERS: Dict[str, List[str]] = {
    # -------------------------------------------------------------------------
    # 3.1 Protocol sections
    # -------------------------------------------------------------------------
    "protocol": [
        "PROTOCOL SYNOPSIS",
        "STUDY OBJECTIVES",
        "STUDY DESIGN",
        "STUDY POPULATION",
        "INCLUSION CRITERIA",
        "EXCLUSION CRITERIA",
        "STUDY PROCEDURES",
        "STUDY ENDPOINTS",
        "STATISTICAL ANALYSIS",
        "SAFETY MONITORING",
        "DATA MANAGEMENT",
        "QUALITY ASSURANCE",
        "ETHICS AND REGULATORY",
        "REFERENCES",
        "APPENDICES",
        "PRIMARY OBJECTIVE",
        "SECONDARY OBJECTIVE",
        "EXPLORATORY OBJECTIVE",
        "PRIMARY ENDPOINTS",
        "SECONDARY ENDPOINTS",
        "SAMPLE SIZE",
        "RANDOMIZATION",
        "BLINDING",
        "INTERVENTION",
        "CONCOMITANT MEDICATIONS",
        "ADVERSE EVENTS",
        "SERIOUS ADVERSE EVENTS",
        "DATA AND SAFETY MONITORING",
        "PROTOCOL AMENDMENTS",
    ],
    # -------------------------------------------------------------------------
    # 3.2 CRF sections
    # -------------------------------------------------------------------------
    "crf": [
        "DEMOGRAPHICS",
        "MEDICAL HISTORY",
        "PHYSICAL EXAMINATION",
        "VITAL SIGNS",
        "LABORATORY TESTS",
        "CONCOMITANT MEDICATIONS",
        "ADVERSE EVENTS",
        "STUDY DRUG ADMINISTRATION",
        "EFFICACY ASSESSMENTS",
        "SAFETY ASSESSMENTS",
        "PROTOCOL DEVIATIONS",
        "STUDY COMPLETION",
        "EARLY TERMINATION",
        "VISIT",
        "SCREENING",
        "BASELINE",
        "TREATMENT",
        "FOLLOW-UP",
        "END OF STUDY",
        "UNSCHEDULED VISIT",
    ],
}

PREAMBLE_SECTION = "PREAMBLE"
OVERLAP_SECTION = "CONTEXT_OVERLAP"


# =============================================================================
# STAGE 4: CRITICAL-SECTION ENHANCEMENT
# =============================================================================
# Header patterns used to cut critical sections out of the original text
# before re-processing them with the high-fidelity provider. Order matters:
# it is the order in which enhancements are attempted.

ENHANCEMENT_SECTION_PATTERNS: Dict[str, Pattern[str]] = {
    "endpoints": re.compile(
        r"^(\d+(\.\d+)*\.?\s*)?(study\s+)?(primary|secondary|endpoints?|outcome)", re.IGNORECASE
    ),
    "inclusion_exclusion": re.compile(
        r"^(\d+(\.\d+)*\.?\s*)?(study\s+)?(inclusion|exclusion|eligibility|criteria)", re.IGNORECASE
    ),
    "safety": re.compile(
        r"^(\d+(\.\d+)*\.?\s*)?(study\s+)?(safety|adverse|pharmacovigilance)", re.IGNORECASE
    ),
}

# Header patterns that close a critical section without starting a new one.
SECTION_TERMINATOR_PATTERN: Pattern[str] = re.compile(
    r"^(\d+(\.\d+)*\.?\s*)?(study\s+)?"
    r"(procedures|assessments|visits|statistical|data management|design|population|objectives?|"
    r"synopsis|sample size|randomization|blinding|intervention|concomitant|quality|ethics|"
    r"references|appendi)",
    re.IGNORECASE,
)
