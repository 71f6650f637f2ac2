"""Tests for chunk merging, enhancement overlay and the standard merge functions."""

import json

import pytest

from clinical_document_processing.core.exceptions import MergeInputMismatchError
from clinical_document_processing.core.models import Chunk, FieldUpdate
from clinical_document_processing.core.schemas import (
    CRFSpecification,
    StudyEndpoints,
    StudyProtocol,
)
from clinical_document_processing.merging import (
    ResultMerger,
    merge_crf_partials,
    merge_protocol_partials,
)


def chunk(position):
    return Chunk(content="", token_count=1, section_name=f"S{position}", position=position)


@pytest.fixture
def merger():
    return ResultMerger()


@pytest.fixture
def protocol():
    return StudyProtocol.model_validate(
        {
            "studyTitle": "GLY-301",
            "studyPhase": "Phase 3",
            "studyDesign": {"type": "Randomized", "numberOfArms": 2},
            "endpoints": {"primary": ["HbA1c change"]},
            "inclusionCriteria": ["Adults 18-75"],
            "exclusionCriteria": ["Type 1 diabetes"],
            "safetyAssessments": ["Vital signs"],
            "visitSchedule": [{"visitName": "Screening", "timepoint": "Day -14"}],
        }
    )


class TestMergeChunks:
    def test_partials_are_passed_in_document_order(self, merger):
        chunks = [chunk(2), chunk(0), chunk(1)]
        partials = ["third", "first", "second"]

        assert merger.merge_chunks(chunks, partials, list) == ["first", "second", "third"]

    def test_count_mismatch_is_a_contract_violation(self, merger):
        with pytest.raises(MergeInputMismatchError) as raised:
            merger.merge_chunks([chunk(0), chunk(1)], ["only one"], list)

        assert raised.value.expected == 2
        assert raised.value.received == 1


class TestMergeEnhancements:
    def test_endpoints_update_leaves_other_fields_identical(self, merger, protocol):
        before = json.dumps(protocol.model_dump(exclude={"endpoints"}), sort_keys=True)
        new_endpoints = StudyEndpoints.model_validate(
            {"primary": [{"name": "Change in HbA1c from baseline", "timepoint": "Week 24"}]}
        )

        outcome = merger.merge_enhancements(
            protocol, [FieldUpdate("endpoints", {"endpoints": new_endpoints})]
        )

        after = json.dumps(outcome.result.model_dump(exclude={"endpoints"}), sort_keys=True)
        assert after == before
        assert outcome.result.endpoints.primary[0].name == "Change in HbA1c from baseline"
        assert outcome.applied_sections == ["endpoints"]

    def test_base_is_not_mutated(self, merger, protocol):
        merger.merge_enhancements(
            protocol, [FieldUpdate("safety", {"safety_assessments": ["Adverse events"]})]
        )

        assert protocol.safety_assessments == ["Vital signs"]

    def test_unapplied_update_is_skipped(self, merger, protocol):
        outcome = merger.merge_enhancements(
            protocol,
            [
                FieldUpdate("endpoints", {"endpoints": StudyEndpoints()}, applied=False, reason="fallback"),
                FieldUpdate("safety", {"safety_assessments": ["Adverse events"]}),
            ],
        )

        assert outcome.result.endpoints == protocol.endpoints
        assert outcome.result.safety_assessments == ["Adverse events"]
        assert outcome.applied_sections == ["safety"]
        assert outcome.skipped_sections == ["endpoints"]

    def test_no_updates_returns_base(self, merger, protocol):
        outcome = merger.merge_enhancements(protocol, [])

        assert outcome.result is protocol
        assert outcome.applied_sections == []

    def test_unknown_model_fields_are_ignored(self, merger, protocol):
        outcome = merger.merge_enhancements(protocol, [FieldUpdate("x", {"not_a_field": 1})])

        assert outcome.result.model_dump() == protocol.model_dump()

    def test_dict_base(self, merger):
        base = {"a": 1, "b": 2}

        outcome = merger.merge_enhancements(base, [FieldUpdate("b", {"b": 3})])

        assert outcome.result == {"a": 1, "b": 3}
        assert base == {"a": 1, "b": 2}

    def test_empty_values_never_replace_base_values(self, merger, protocol):
        outcome = merger.merge_enhancements(
            protocol,
            [
                FieldUpdate(
                    "inclusion_exclusion",
                    {"inclusion_criteria": ["Adults aged 18 to 75"], "exclusion_criteria": []},
                )
            ],
        )

        assert outcome.result.inclusion_criteria == ["Adults aged 18 to 75"]
        assert outcome.result.exclusion_criteria == ["Type 1 diabetes"]

    def test_endpoint_tiers_are_overlaid_one_by_one(self, merger, protocol):
        base = protocol.model_copy(
            update={
                "endpoints": StudyEndpoints.model_validate(
                    {"primary": ["HbA1c change"], "secondary": ["FPG change"]}
                )
            }
        )
        update = StudyEndpoints.model_validate({"exploratory": ["Body weight"]})

        outcome = merger.merge_enhancements(base, [FieldUpdate("endpoints", {"endpoints": update})])

        endpoints = outcome.result.endpoints
        assert [e.name for e in endpoints.primary] == ["HbA1c change"]
        assert [e.name for e in endpoints.secondary] == ["FPG change"]
        assert [e.name for e in endpoints.exploratory] == ["Body weight"]

    def test_camel_case_dict_base_gets_camel_case_keys(self, merger):
        base = {"studyTitle": "GLY-301", "endpoints": {"primary": [{"name": "HbA1c change"}]}}
        update = StudyEndpoints.model_validate({"secondary": ["FPG change"]})

        outcome = merger.merge_enhancements(
            base,
            [
                FieldUpdate("safety", {"safety_assessments": ["Adverse events"]}),
                FieldUpdate("endpoints", {"endpoints": update}),
            ],
        )

        assert outcome.result["safetyAssessments"] == ["Adverse events"]
        assert "safety_assessments" not in outcome.result
        assert outcome.result["endpoints"]["primary"] == [{"name": "HbA1c change"}]
        assert outcome.result["endpoints"]["secondary"][0]["name"] == "FPG change"
        assert base["endpoints"] == {"primary": [{"name": "HbA1c change"}]}

    def test_unsupported_base_type(self, merger):
        with pytest.raises(TypeError):
            merger.merge_enhancements([1, 2], [FieldUpdate("x", {"a": 1})])


class TestStandardMergeFunctions:
    def test_protocol_scalars_take_first_real_value(self):
        merged = merge_protocol_partials(
            [
                StudyProtocol(),
                StudyProtocol(study_title="GLY-301", sponsor="Not specified"),
                StudyProtocol(study_title="Later title", sponsor="Acme"),
            ]
        )

        assert merged.study_title == "GLY-301"
        assert merged.sponsor == "Acme"
        assert merged.protocol_number == "Unknown"

    def test_protocol_lists_are_concatenated_without_duplicates(self):
        merged = merge_protocol_partials(
            [
                {"inclusionCriteria": ["Adults"], "endpoints": {"primary": ["HbA1c change"]}},
                {"inclusionCriteria": ["Adults", "Signed consent"], "endpoints": {"primary": ["hba1c change", "FPG"]}},
            ]
        )

        assert merged.inclusion_criteria == ["Adults", "Signed consent"]
        assert [e.name for e in merged.endpoints.primary] == ["HbA1c change", "FPG"]

    def test_protocol_nested_objects_take_first_non_default(self):
        merged = merge_protocol_partials(
            [StudyProtocol(), {"studyDesign": {"type": "Crossover", "numberOfArms": 2}}]
        )

        assert merged.study_design.type == "Crossover"

    def test_empty_protocol_partials(self):
        assert merge_protocol_partials([]) == StudyProtocol()

    def test_crf_partials_concatenate_in_order(self):
        merged = merge_crf_partials(
            [[CRFSpecification(form_name="Demographics")], [], [{"formName": "Vital Signs"}]]
        )

        assert [form.form_name for form in merged] == ["Demographics", "Vital Signs"]
