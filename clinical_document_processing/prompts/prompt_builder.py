"""
Prompt Builder - Extraction, Enhancement and Risk Prompts

This module constructs prompts for the content providers. Every prompt asks
for JSON only, in the camelCase shape the document schemas accept; the
reconciler copes with whatever the model actually returns.

Why Separate Prompt Builder:
    1. Single Responsibility: prompt construction separate from orchestration
    2. Testability: prompts can be tested without provider calls
    3. Maintainability: centralized prompt templates

Author: Shubham Singh
Date: January 2026
"""

import json
from typing import Any, Sequence

from clinical_document_processing.core.enums import DocumentType
from clinical_document_processing.core.models import Chunk


# =============================================================================
# STAGE 1: OUTPUT SHAPES
# =============================================================================

PROTOCOL_SHAPE = """{
  "studyTitle": "string",
  "protocolNumber": "string",
  "studyPhase": "string",
  "investigationalDrug": "string",
  "sponsor": "string",
  "indication": "string",
  "studyDesign": {"type": "string", "duration": "string", "numberOfArms": 0, "description": "string"},
  "objectives": {"primary": ["string"], "secondary": ["string"], "exploratory": ["string"]},
  "population": {"targetEnrollment": 0, "ageRange": "string", "gender": "string", "description": "string"},
  "endpoints": {
    "primary": [{"name": "string", "description": "string", "timepoint": "string"}],
    "secondary": [{"name": "string", "description": "string", "timepoint": "string"}],
    "exploratory": [{"name": "string", "description": "string", "timepoint": "string"}]
  },
  "visitSchedule": [{"visitName": "string", "timepoint": "string", "procedures": ["string"]}],
  "inclusionCriteria": ["string"],
  "exclusionCriteria": ["string"],
  "safetyAssessments": ["string"]
}"""

CRF_SHAPE = """[
  {
    "formName": "string",
    "formOID": "string",
    "version": "string",
    "fields": [
      {
        "fieldName": "string",
        "fieldOID": "string",
        "fieldType": "text|number|date|select|checkbox",
        "required": true,
        "cdiscMapping": {"domain": "string", "variable": "string", "codelist": "string"}
      }
    ]
  }
]"""

SECTION_SHAPES = {
    "endpoints": """{"endpoints": {"primary": [{"name": "string", "description": "string", "timepoint": "string"}], "secondary": [...], "exploratory": [...]}}""",
    "inclusion_exclusion": """{"inclusionCriteria": ["string"], "exclusionCriteria": ["string"]}""",
    "safety": """{"safetyAssessments": ["string"]}""",
}

RISK_SHAPE = """{
  "risks": [
    {"category": "string", "risk": "string", "impact": "low|medium|high",
     "likelihood": "low|medium|high", "mitigation": "string"}
  ],
  "summary": "string",
  "overallRiskLevel": "low|medium|high",
  "recommendations": ["string"]
}"""


# =============================================================================
# STAGE 2: PROMPT TEMPLATES
# =============================================================================

EXTRACTION_TEMPLATE = """You are a clinical data management expert extracting structured information from a {document_label}.

Return ONLY valid JSON matching this structure, with no commentary:
{shape}

Use "Unknown" for scalar values that are not stated. Do not invent content.

{document_label_upper}:
{text}
"""

CHUNK_EXTRACTION_TEMPLATE = """You are a clinical data management expert. The text below is part {part} of a {document_label}, covering: {sections}.

Extract ONLY what this part contains. Return ONLY valid JSON matching this structure, with no commentary:
{shape}

Use "Unknown" for scalar values not stated in this part and empty arrays for lists it does not cover.

PART {part}:
{text}
"""

ENHANCEMENT_TEMPLATE = """You are a senior clinical scientist reviewing the {section_label} section of a clinical study protocol.

Extract the section's content completely and precisely. Return ONLY valid JSON matching this structure, with no commentary:
{shape}

SECTION TEXT:
{text}
"""

RISK_TEMPLATE = """You are a clinical data management risk specialist. Assess the data management risks of the study below, considering protocol complexity, CRF design and data quality.

Return ONLY valid JSON matching this structure, with no commentary:
{shape}

PROTOCOL:
{protocol}

CRF SPECIFICATIONS:
{crfs}
"""

_SECTION_LABELS = {
    "endpoints": "endpoints",
    "inclusion_exclusion": "inclusion/exclusion criteria",
    "safety": "safety assessment",
}


# =============================================================================
# STAGE 3: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Builds prompts for every provider call the orchestrator makes.

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build_extraction_prompt(text, DocumentType.PROTOCOL)
    """

    @staticmethod
    def _shape_for(document_type: DocumentType) -> str:
        return PROTOCOL_SHAPE if document_type == DocumentType.PROTOCOL else CRF_SHAPE

    @staticmethod
    def _label_for(document_type: DocumentType) -> str:
        if document_type == DocumentType.PROTOCOL:
            return "clinical study protocol"
        return "case report form (CRF) specification"

    def build_extraction_prompt(self, text: str, document_type: DocumentType) -> str:
        """Prompt extracting the whole document."""
        label = self._label_for(document_type)
        return EXTRACTION_TEMPLATE.format(
            document_label=label,
            document_label_upper=label.upper(),
            shape=self._shape_for(document_type),
            text=text,
        )

    def build_chunk_prompt(self, chunk: Chunk) -> str:
        """Prompt extracting the partial result of one chunk."""
        return CHUNK_EXTRACTION_TEMPLATE.format(
            part=chunk.position + 1,
            document_label=self._label_for(chunk.document_type),
            sections=chunk.section_name or "unnamed sections",
            shape=self._shape_for(chunk.document_type),
            text=chunk.content,
        )

    def build_enhancement_prompt(self, section_name: str, section_text: str) -> str:
        """Prompt re-processing one critical protocol section."""
        return ENHANCEMENT_TEMPLATE.format(
            section_label=_SECTION_LABELS.get(section_name, section_name),
            shape=SECTION_SHAPES[section_name],
            text=section_text,
        )

    def build_risk_assessment_prompt(self, protocol: Any, crfs: Sequence[Any]) -> str:
        """Prompt assessing data management risk of a protocol and its CRFs."""
        return RISK_TEMPLATE.format(
            shape=RISK_SHAPE,
            protocol=_to_json(protocol),
            crfs=_to_json(list(crfs)),
        )


def _to_json(value: Any) -> str:
    if hasattr(value, "model_dump"):
        value = value.model_dump(by_alias=True)
    elif isinstance(value, list):
        value = [v.model_dump(by_alias=True) if hasattr(v, "model_dump") else v for v in value]
    return json.dumps(value, indent=2, default=str)

