"""
Merging Layer - Partial Results into One Document

Submodules:
    result_merger.py     → Chunk merge, enhancement merge, standard merge functions
    section_extractor.py → Critical sections of the original text for enhancement

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.merging.result_merger import (
    ResultMerger,
    has_content,
    merge_crf_partials,
    merge_func_for,
    merge_protocol_partials,
)
from clinical_document_processing.merging.section_extractor import extract_critical_sections

__all__ = [
    "ResultMerger",
    "has_content",
    "merge_crf_partials",
    "merge_func_for",
    "merge_protocol_partials",
    "extract_critical_sections",
]
