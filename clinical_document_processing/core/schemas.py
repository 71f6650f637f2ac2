"""
Document Schemas - Structured Shapes Recovered from Provider Output

These Pydantic models define the structured values the reconciler recovers
from free-text model output. Using Pydantic gives us:
    1. Explicit shape validation (required keys and types)
    2. Tolerance for the camelCase keys models emit
    3. Defaults for fields models commonly leave out

Each document type also has a deterministic fallback factory, the
known-good minimal structure substituted when reconciliation fails.

Author: Shubham Singh
Date: January 2026
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _DocumentModel(BaseModel):
    """Shared config: accept camelCase or snake_case, ignore unknown keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _coerce_str_list(value: Any) -> Any:
    # Models sometimes answer with a single string where a list is expected.
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


# =============================================================================
# STAGE 1: PROTOCOL SCHEMAS
# =============================================================================


class Endpoint(_DocumentModel):
    """A single study endpoint."""

    name: str
    description: str = ""
    timepoint: str = "As specified in protocol"


class StudyEndpoints(_DocumentModel):
    """
    Primary, secondary and exploratory endpoints.

    Entries may arrive as plain strings; they are promoted to Endpoint
    objects whose name and description are the string.
    """

    primary: List[Endpoint] = Field(default_factory=list)
    secondary: List[Endpoint] = Field(default_factory=list)
    exploratory: List[Endpoint] = Field(default_factory=list)

    @field_validator("primary", "secondary", "exploratory", mode="before")
    @classmethod
    def promote_strings(cls, value: Any) -> Any:
        value = _coerce_str_list(value)
        if not isinstance(value, list):
            return value
        return [{"name": v, "description": v} if isinstance(v, str) else v for v in value]


class StudyDesign(_DocumentModel):
    type: str = "Not specified"
    duration: str = "Not specified"
    number_of_arms: int = 1
    description: str = ""


class StudyObjectives(_DocumentModel):
    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)
    exploratory: List[str] = Field(default_factory=list)

    @field_validator("primary", "secondary", "exploratory", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        value = _coerce_str_list(value)
        if isinstance(value, list):
            # Objective objects collapse to their description.
            return [v.get("description", str(v)) if isinstance(v, dict) else v for v in value]
        return value


class StudyPopulation(_DocumentModel):
    target_enrollment: Optional[int] = None
    age_range: str = "Not specified"
    gender: str = "all"
    description: str = ""


class VisitSchedule(_DocumentModel):
    visit_name: str
    timepoint: str = ""
    procedures: List[str] = Field(default_factory=list)


class StudyProtocol(_DocumentModel):
    """
    Structured clinical study protocol.

    What it does:
        The document-shaped value produced by whole-document protocol
        processing, by merging chunk partials, and refined by critical
        section enhancement.

    Shape rules:
        Every field has a default so partial extractions validate; a field
        that is present with the wrong type (e.g. ``endpoints`` as a number)
        is rejected.
    """

    study_title: str = "Unknown"
    protocol_number: str = "Unknown"
    study_phase: str = "Unknown"
    investigational_drug: str = "Unknown"
    sponsor: str = "Unknown"
    indication: str = "Unknown"
    study_design: StudyDesign = Field(default_factory=StudyDesign)
    objectives: StudyObjectives = Field(default_factory=StudyObjectives)
    population: StudyPopulation = Field(default_factory=StudyPopulation)
    endpoints: StudyEndpoints = Field(default_factory=StudyEndpoints)
    visit_schedule: List[VisitSchedule] = Field(default_factory=list)
    inclusion_criteria: List[str] = Field(default_factory=list)
    exclusion_criteria: List[str] = Field(default_factory=list)
    safety_assessments: List[str] = Field(default_factory=list)

    @field_validator("inclusion_criteria", "exclusion_criteria", "safety_assessments", mode="before")
    @classmethod
    def coerce_criteria(cls, value: Any) -> Any:
        return _coerce_str_list(value)


# =============================================================================
# STAGE 2: CRF SCHEMAS
# =============================================================================


class CDISCMapping(_DocumentModel):
    domain: str
    variable: str
    codelist: Optional[str] = None


class CRFField(_DocumentModel):
    field_name: str
    field_oid: str = Field(default="", alias="fieldOID")
    field_type: str = "text"
    required: bool = False
    cdisc_mapping: Optional[CDISCMapping] = None


class CRFSpecification(_DocumentModel):
    """A single case report form. ``form_name`` is the only required key."""

    form_name: str
    form_oid: str = Field(default="", alias="formOID")
    version: str = "1.0"
    fields: List[CRFField] = Field(default_factory=list)


# =============================================================================
# STAGE 3: RISK ASSESSMENT SCHEMAS
# =============================================================================


class RiskItem(_DocumentModel):
    category: str = "General"
    risk: str
    impact: str = "medium"
    likelihood: str = "medium"
    mitigation: str = ""


class RiskAssessmentResult(_DocumentModel):
    """Risk assessment. ``risks`` is required and must be an array."""

    risks: List[RiskItem]
    summary: str = ""
    overall_risk_level: str = "medium"
    recommendations: List[str] = Field(default_factory=list)


# =============================================================================
# STAGE 4: ENHANCEMENT UPDATE SCHEMAS
# =============================================================================
# Shapes returned by the high-fidelity provider when it re-processes one
# critical section.


class EndpointsUpdate(_DocumentModel):
    endpoints: StudyEndpoints


class CriteriaUpdate(_DocumentModel):
    inclusion_criteria: List[str]
    exclusion_criteria: List[str]

    @field_validator("inclusion_criteria", "exclusion_criteria", mode="before")
    @classmethod
    def coerce_criteria(cls, value: Any) -> Any:
        return _coerce_str_list(value)


class SafetyUpdate(_DocumentModel):
    safety_assessments: List[str]

    @field_validator("safety_assessments", mode="before")
    @classmethod
    def coerce_assessments(cls, value: Any) -> Any:
        return _coerce_str_list(value)


# =============================================================================
# STAGE 5: FALLBACK FACTORIES
# =============================================================================
# Deterministic minimal structures. Factories return fresh objects so
# callers may mutate them freely.


def fallback_protocol() -> StudyProtocol:
    """Minimal protocol used when a protocol response cannot be reconciled."""
    return StudyProtocol()


def fallback_crf_forms() -> List[CRFSpecification]:
    """Minimal 'Visit Details' form used when a CRF response cannot be reconciled."""
    return [
        CRFSpecification(
            form_name="Visit Details",
            form_oid="VD01",
            version="1.0",
            fields=[
                CRFField(
                    field_name="Site ID",
                    field_oid="SITEID",
                    field_type="text",
                    required=True,
                    cdisc_mapping=CDISCMapping(domain="DM", variable="SITEID"),
                ),
                CRFField(
                    field_name="Subject Number",
                    field_oid="SUBJNUM",
                    field_type="text",
                    required=True,
                    cdisc_mapping=CDISCMapping(domain="DM", variable="SUBJID"),
                ),
            ],
        )
    ]


def fallback_risk_assessment() -> RiskAssessmentResult:
    """Empty risk assessment flagged for manual review."""
    return RiskAssessmentResult(
        risks=[],
        summary="Risk assessment could not be recovered from the model response.",
        overall_risk_level="medium",
        recommendations=["Review risk assessment manually due to parsing errors"],
    )
