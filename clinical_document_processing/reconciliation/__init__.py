"""
Reconciliation Layer - Recovering Typed Values from Model Output

Submodules:
    response_reconciler.py → Extraction/repair cascade with fallback
    shape_validators.py    → Pydantic-backed validators and per-type registry

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.reconciliation.response_reconciler import (
    ResponseReconciler,
    extract_fenced_block,
    is_truncated,
    repair_truncation,
    trim_to_boundaries,
)
from clinical_document_processing.reconciliation.shape_validators import (
    fallback_for,
    list_validator,
    schema_validator,
    validator_for,
)

__all__ = [
    "ResponseReconciler",
    "extract_fenced_block",
    "is_truncated",
    "repair_truncation",
    "trim_to_boundaries",
    "fallback_for",
    "list_validator",
    "schema_validator",
    "validator_for",
]
