"""
Shape Validators - Pydantic-Backed Checks Returning ShapeCheck

A shape validator takes a parsed JSON value and returns either the typed
value or a rejection reason. Validators never raise: pydantic's
ValidationError is converted into ``ShapeCheck.reject``.

Registry:
    validator_for(document_type, partial=False) → validator for a document type
    fallback_for(document_type, partial=False)  → fresh fallback value

``partial=True`` selects the per-chunk variants: a chunk may legitimately
contain no CRF forms, so the partial CRF validator accepts an empty list and
the partial fallbacks are empty structures rather than placeholder content.

Author: Shubham Singh
Date: January 2026
"""

from typing import Any, Callable, List, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from clinical_document_processing.core.enums import DocumentType
from clinical_document_processing.core.models import ShapeCheck
from clinical_document_processing.core.schemas import (
    CRFSpecification,
    StudyProtocol,
    fallback_crf_forms,
    fallback_protocol,
)

M = TypeVar("M", bound=BaseModel)

ShapeValidator = Callable[[Any], ShapeCheck]


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{error.error_count()} error(s), first at {location}: {first['msg']}"


def schema_validator(model: Type[M]) -> ShapeValidator:
    """Validator accepting a JSON object that ``model`` can validate."""

    def validate(value: Any) -> ShapeCheck:
        if not isinstance(value, dict):
            return ShapeCheck.reject(
                f"{model.__name__} expects an object, got {type(value).__name__}"
            )
        try:
            return ShapeCheck.accept(model.model_validate(value))
        except ValidationError as e:
            return ShapeCheck.reject(f"{model.__name__}: {_describe(e)}")

    return validate


def list_validator(
    model: Type[M], coerce_single: bool = True, allow_empty: bool = False
) -> ShapeValidator:
    """
    Validator accepting a JSON array of ``model`` objects.

    Args:
        model: Item model
        coerce_single: Wrap a lone object in a one-element list
        allow_empty: Accept ``[]``
    """
    adapter = TypeAdapter(List[model])

    def validate(value: Any) -> ShapeCheck:
        if coerce_single and isinstance(value, dict):
            value = [value]
        if not isinstance(value, list):
            return ShapeCheck.reject(
                f"List[{model.__name__}] expects an array, got {type(value).__name__}"
            )
        if not value and not allow_empty:
            return ShapeCheck.reject(f"List[{model.__name__}] is empty")
        try:
            return ShapeCheck.accept(adapter.validate_python(value))
        except ValidationError as e:
            return ShapeCheck.reject(f"List[{model.__name__}]: {_describe(e)}")

    return validate


# =============================================================================
# DOCUMENT TYPE REGISTRY
# =============================================================================


def validator_for(document_type: DocumentType, partial: bool = False) -> ShapeValidator:
    """Shape validator for whole-document or per-chunk output of ``document_type``."""
    if document_type == DocumentType.PROTOCOL:
        return schema_validator(StudyProtocol)
    return list_validator(CRFSpecification, allow_empty=partial)


def fallback_for(document_type: DocumentType, partial: bool = False) -> Any:
    """Fresh fallback value for ``document_type``."""
    if document_type == DocumentType.PROTOCOL:
        return fallback_protocol()
    if partial:
        return []
    return fallback_crf_forms()
