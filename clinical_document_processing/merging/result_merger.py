"""
Result Merger - Combining Partial Results into One Document Value

Two merge modes:
    Chunk merge        → per-chunk partials, merged in document order by a
                         caller-supplied merge function
    Enhancement merge  → targeted field updates overlaid on a base result,
                         every other field left untouched

Standard merge functions for the built-in document types live here too:
    merge_protocol_partials → StudyProtocol from per-chunk StudyProtocols
    merge_crf_partials      → CRF form list from per-chunk form lists

Author: Shubham Singh
Date: January 2026
"""

from typing import Any, Callable, Dict, Iterable, List, Sequence, TypeVar, Union

from loguru import logger
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from clinical_document_processing.core.enums import DocumentType
from clinical_document_processing.core.exceptions import MergeInputMismatchError
from clinical_document_processing.core.models import Chunk, EnhancementOutcome, FieldUpdate
from clinical_document_processing.core.schemas import (
    CRFSpecification,
    Endpoint,
    StudyDesign,
    StudyEndpoints,
    StudyObjectives,
    StudyPopulation,
    StudyProtocol,
)

P = TypeVar("P")
T = TypeVar("T")

# Placeholder values the models use for "not found in this chunk".
_EMPTY_SCALARS = {"", "unknown", "not specified"}


# =============================================================================
# STAGE 1: RESULT MERGER
# =============================================================================


class ResultMerger:
    """
    Structural guarantees around merging.

    What it does:
        - Chunk merge: checks one partial per chunk and hands the partials to
          the merge function in chunk order
        - Enhancement merge: overlays applied field updates, records the rest
          as skipped
    """

    def merge_chunks(
        self,
        chunks: Sequence[Chunk],
        partials: Sequence[P],
        merge_func: Callable[[List[P]], T],
    ) -> T:
        """
        Merge per-chunk partial results in document order.

        Raises:
            MergeInputMismatchError: If ``len(partials) != len(chunks)``
        """
        if len(partials) != len(chunks):
            raise MergeInputMismatchError(expected=len(chunks), received=len(partials))

        ordered = [
            partial
            for _, partial in sorted(zip(chunks, partials), key=lambda pair: pair[0].position)
        ]
        logger.debug(f"Merging {len(ordered)} partial result(s) in document order")
        return merge_func(ordered)

    def merge_enhancements(self, base: T, updates: Iterable[FieldUpdate]) -> EnhancementOutcome[T]:
        """
        Overlay applied updates onto ``base``.

        Only the fields named in an applied update change; a pydantic base is
        copied with ``model_copy`` and a dict base with a shallow copy, so the
        caller's ``base`` is never mutated.
        """
        result = base
        outcome: EnhancementOutcome[T] = EnhancementOutcome(result=base)

        for update in updates:
            if not update.applied:
                outcome.skipped_sections.append(update.section_name)
                logger.info(
                    f"Enhancement not applied | Section: {update.section_name} | "
                    f"Reason: {update.reason}"
                )
                continue
            result = self._overlay(result, update.fields)
            outcome.applied_sections.append(update.section_name)

        outcome.result = result
        return outcome

    def _overlay(self, base: Any, fields: Dict[str, Any], camel_case: bool = False) -> Any:
        """
        Copy ``base`` with the non-empty values of ``fields`` applied.

        Empty values (empty lists, blank strings, None, models with no
        content) leave the base value in place. A nested model is overlaid
        field by field onto the base's nested value, so a partial endpoints
        answer replaces only the tiers it carries.
        """
        if isinstance(base, BaseModel):
            known = type(base).model_fields
            unknown = [name for name in fields if name not in known]
            if unknown:
                logger.warning(f"Ignoring unknown update fields: {', '.join(unknown)}")

            update = {}
            for name, value in fields.items():
                if name not in known or not has_content(value):
                    continue
                current = getattr(base, name)
                if isinstance(value, BaseModel) and isinstance(current, BaseModel):
                    value = self._overlay(current, _model_fields(value))
                update[name] = value
            return base.model_copy(update=update)

        if isinstance(base, dict):
            merged = dict(base)
            camel_case = camel_case or _uses_camel_case(base)
            for name, value in fields.items():
                if not has_content(value):
                    continue
                key = _dict_key(base, name, camel_case)
                current = base.get(key)
                if isinstance(value, BaseModel) and isinstance(current, dict):
                    merged[key] = self._overlay(current, _model_fields(value), camel_case)
                else:
                    merged[key] = _plain(value, by_alias=camel_case or key != name)
            return merged

        raise TypeError(f"Cannot overlay fields onto {type(base).__name__}")


def has_content(value: Any) -> bool:
    """True when ``value`` carries data: a non-blank scalar or a non-empty container or model."""
    if value is None:
        return False
    if isinstance(value, BaseModel):
        return any(has_content(v) for v in _model_fields(value).values())
    if isinstance(value, dict):
        return any(has_content(v) for v in value.values())
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def _model_fields(model: BaseModel) -> Dict[str, Any]:
    return {name: getattr(model, name) for name in type(model).model_fields}


def _uses_camel_case(data: dict) -> bool:
    return any(isinstance(key, str) and key != key.lower() for key in data)


def _dict_key(base: dict, name: str, camel_case: bool) -> str:
    # Reuse whichever spelling the base already has; otherwise follow its key style.
    alias = to_camel(name)
    if name in base:
        return name
    if alias in base or camel_case:
        return alias
    return name


def _plain(value: Any, by_alias: bool) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=by_alias)
    if isinstance(value, list):
        return [_plain(item, by_alias) for item in value]
    return value


# =============================================================================
# STAGE 2: STANDARD MERGE FUNCTIONS
# =============================================================================


def _first_present(values: Iterable[str], default: str) -> str:
    for value in values:
        if value and value.strip().lower() not in _EMPTY_SCALARS:
            return value
    return default


def _unique(items: Iterable[T], key: Callable[[T], Any] = lambda item: item) -> List[T]:
    seen = set()
    unique: List[T] = []
    for item in items:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(item)
    return unique


def merge_protocol_partials(partials: List[Union[StudyProtocol, dict]]) -> StudyProtocol:
    """
    Merge per-chunk protocol extractions (already in chunk order).

    Scalars: first value that is not a placeholder wins.
    Nested objects: first partial that differs from the empty default wins.
    Lists: concatenated in chunk order with duplicates removed.
    """
    protocols = [
        p if isinstance(p, StudyProtocol) else StudyProtocol.model_validate(p) for p in partials
    ]
    if not protocols:
        return StudyProtocol()

    def first_scalar(name: str) -> str:
        return _first_present((getattr(p, name) for p in protocols), "Unknown")

    def first_nested(name: str, empty: BaseModel) -> BaseModel:
        for p in protocols:
            value = getattr(p, name)
            if value != empty:
                return value
        return empty

    def concat(name: str) -> List[Any]:
        return _unique(item for p in protocols for item in getattr(p, name))

    def concat_endpoints(tier: str) -> List[Endpoint]:
        return _unique(
            (e for p in protocols for e in getattr(p.endpoints, tier)),
            key=lambda e: e.name.strip().lower(),
        )

    return StudyProtocol(
        study_title=first_scalar("study_title"),
        protocol_number=first_scalar("protocol_number"),
        study_phase=first_scalar("study_phase"),
        investigational_drug=first_scalar("investigational_drug"),
        sponsor=first_scalar("sponsor"),
        indication=first_scalar("indication"),
        study_design=first_nested("study_design", StudyDesign()),
        population=first_nested("population", StudyPopulation()),
        objectives=StudyObjectives(
            primary=_unique(o for p in protocols for o in p.objectives.primary),
            secondary=_unique(o for p in protocols for o in p.objectives.secondary),
            exploratory=_unique(o for p in protocols for o in p.objectives.exploratory),
        ),
        endpoints=StudyEndpoints(
            primary=concat_endpoints("primary"),
            secondary=concat_endpoints("secondary"),
            exploratory=concat_endpoints("exploratory"),
        ),
        visit_schedule=_unique(
            (v for p in protocols for v in p.visit_schedule),
            key=lambda v: v.visit_name.strip().lower(),
        ),
        inclusion_criteria=concat("inclusion_criteria"),
        exclusion_criteria=concat("exclusion_criteria"),
        safety_assessments=concat("safety_assessments"),
    )


def merge_crf_partials(
    partials: List[List[Union[CRFSpecification, dict]]]
) -> List[CRFSpecification]:
    """Concatenate per-chunk CRF form lists in chunk order."""
    return [
        form if isinstance(form, CRFSpecification) else CRFSpecification.model_validate(form)
        for forms in partials
        for form in forms
    ]


def merge_func_for(document_type: DocumentType) -> Callable[[List[Any]], Any]:
    """Standard merge function for the built-in document types."""
    if document_type == DocumentType.PROTOCOL:
        return merge_protocol_partials
    return merge_crf_partials
