"""Tests for the response reconciliation cascade and shape validators."""

import pytest

from clinical_document_processing.core.enums import DocumentType
from clinical_document_processing.core.models import ShapeCheck
from clinical_document_processing.core.schemas import (
    CRFSpecification,
    RiskAssessmentResult,
    StudyProtocol,
    fallback_risk_assessment,
)
from clinical_document_processing.reconciliation import (
    ResponseReconciler,
    extract_fenced_block,
    fallback_for,
    is_truncated,
    list_validator,
    repair_truncation,
    schema_validator,
    trim_to_boundaries,
    validator_for,
)

FALLBACK = {"fallback": True}


def any_object(value):
    if isinstance(value, dict):
        return ShapeCheck.accept(value)
    return ShapeCheck.reject("expected an object")


@pytest.fixture
def reconciler():
    return ResponseReconciler()


class TestCascadeSteps:
    def test_fenced_block_interior_is_extracted(self):
        assert extract_fenced_block('Result:\n```json\n{"a": 1}\n```\nDone') == '{"a": 1}'

    def test_no_fenced_block(self):
        assert extract_fenced_block('{"a": 1}') is None

    def test_boundary_trim_drops_prose(self):
        assert trim_to_boundaries('Sure! {"a": [1, 2]} Hope this helps.') == '{"a": [1, 2]}'

    def test_boundary_trim_without_brackets(self):
        assert trim_to_boundaries("no structure here") is None

    @pytest.mark.parametrize(
        "text",
        ['[{"a": 1},', '{"a": "unfinished', '[{"a": 1}', '{"a": [1, 2}', '{"a": {"b": 1}'],
    )
    def test_truncated_candidates(self, text):
        assert is_truncated(text)

    @pytest.mark.parametrize("text", ['{"a": 1}', '[{"a": "x]"}]', '{"a": "brace } inside"}'])
    def test_complete_candidates(self, text):
        assert not is_truncated(text)

    def test_repair_closes_open_brackets_after_last_object(self):
        assert repair_truncation('{"items": [{"id": 1}, {"id": 2}, {"id"') == (
            '{"items": [{"id": 1}, {"id": 2}]}'
        )

    def test_repair_without_complete_object(self):
        assert repair_truncation('[{"formName": "A"') is None


class TestResponseReconciler:
    def test_fenced_json_object(self, reconciler):
        result = reconciler.reconcile('```json\n{"a":1}\n```', any_object, FALLBACK)

        assert result.value == {"a": 1}
        assert not result.from_fallback
        assert not result.repaired

    def test_object_surrounded_by_prose(self, reconciler):
        result = reconciler.reconcile('Here you go:\n{"a": 1}\nThanks', any_object, FALLBACK)

        assert result.value == {"a": 1}

    def test_unterminated_array_keeps_complete_items(self, reconciler):
        result = reconciler.reconcile(
            '[{"formName":"A"},{"formName":"B"',
            list_validator(CRFSpecification),
            [],
        )

        assert not result.from_fallback
        assert result.repaired
        assert [form.form_name for form in result.value] == ["A"]

    def test_brackets_inside_strings_do_not_confuse_repair(self, reconciler):
        result = reconciler.reconcile(
            '[{"formName": "A [draft]"}, {"formName": "B {',
            list_validator(CRFSpecification),
            [],
        )

        assert [form.form_name for form in result.value] == ["A [draft]"]

    def test_truncated_object_is_repaired(self, reconciler):
        result = reconciler.reconcile(
            '{"risks": [{"risk": "Data loss", "impact": "high"}, {"risk": "Late ent',
            schema_validator(RiskAssessmentResult),
            fallback_risk_assessment(),
        )

        assert result.repaired
        assert [item.risk for item in result.value.risks] == ["Data loss"]
        assert result.value.risks[0].impact == "high"

    def test_trailing_bracket_noise_is_cut(self, reconciler):
        result = reconciler.reconcile('{"a": 1} see reference [1]', any_object, FALLBACK)

        assert result.value == {"a": 1}
        assert result.repaired

    def test_plain_text_yields_fallback(self, reconciler):
        result = reconciler.reconcile("not json at all", any_object, FALLBACK)

        assert result.value is FALLBACK
        assert result.from_fallback
        assert result.failure_reason == "no JSON structure found"
        assert result.diagnostic_excerpt == "not json at all"

    def test_empty_text_yields_fallback(self, reconciler):
        result = reconciler.reconcile("", any_object, FALLBACK)

        assert result.from_fallback

    def test_truncated_without_complete_object_yields_fallback(self, reconciler):
        result = reconciler.reconcile('[{"formName": "A"', list_validator(CRFSpecification), [])

        assert result.from_fallback
        assert result.value == []

    def test_invalid_json_yields_fallback(self, reconciler):
        result = reconciler.reconcile("{'single': 'quotes'}", any_object, FALLBACK)

        assert result.from_fallback
        assert result.failure_reason == "invalid JSON"

    def test_shape_rejection_yields_fallback(self, reconciler):
        fallback = fallback_risk_assessment()

        result = reconciler.reconcile(
            '{"summary": "no risks key"}', schema_validator(RiskAssessmentResult), fallback
        )

        assert result.value is fallback
        assert result.failure_reason.startswith("shape rejected")

    def test_diagnostic_excerpt_is_capped(self):
        reconciler = ResponseReconciler(diagnostic_excerpt_chars=2000)

        result = reconciler.reconcile("x" * 5000, any_object, FALLBACK)

        assert len(result.diagnostic_excerpt) == 2000

    def test_successful_result_has_no_excerpt(self, reconciler):
        result = reconciler.reconcile('{"a": 1}', any_object, FALLBACK)

        assert result.diagnostic_excerpt is None
        assert result.failure_reason is None


class TestShapeValidators:
    def test_protocol_accepts_camel_case_keys(self):
        check = schema_validator(StudyProtocol)(
            {"studyTitle": "GLY-301", "inclusionCriteria": "Adults only"}
        )

        assert check.ok
        assert check.value.study_title == "GLY-301"
        assert check.value.inclusion_criteria == ["Adults only"]

    def test_protocol_rejects_non_object(self):
        assert not schema_validator(StudyProtocol)([1, 2]).ok

    def test_protocol_rejects_wrong_field_type(self):
        assert not schema_validator(StudyProtocol)({"endpoints": 42}).ok

    def test_single_form_is_wrapped_in_list(self):
        check = list_validator(CRFSpecification)({"formName": "Demographics"})

        assert check.ok
        assert check.value[0].form_name == "Demographics"

    def test_empty_form_list_depends_on_partial(self):
        assert not validator_for(DocumentType.CRF)([]).ok
        assert validator_for(DocumentType.CRF, partial=True)([]).ok

    def test_fallbacks_are_fresh_values(self):
        first = fallback_for(DocumentType.CRF)
        second = fallback_for(DocumentType.CRF)

        assert first[0].form_name == "Visit Details"
        assert first is not second
        assert fallback_for(DocumentType.CRF, partial=True) == []
        assert fallback_for(DocumentType.PROTOCOL).study_title == "Unknown"
