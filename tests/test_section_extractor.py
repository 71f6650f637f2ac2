"""Tests for cutting critical sections out of protocol text."""

from clinical_document_processing.merging import extract_critical_sections

PROTOCOL = """\
1. PROTOCOL SYNOPSIS
Glucoretin versus placebo in type 2 diabetes.

2. STUDY OBJECTIVES
To evaluate glycaemic control.

3.1 Primary Endpoints
Change in HbA1c from baseline to week 24.

3.2 Secondary Endpoints
Change in fasting plasma glucose.

4. STUDY DESIGN
Randomized, double-blind, two arms.

5. INCLUSION CRITERIA
Adults aged 18 to 75.

6. EXCLUSION CRITERIA
History of ketoacidosis.

7. STUDY PROCEDURES
Visits every four weeks.

8. SAFETY MONITORING
Hypoglycaemia events recorded at every visit.

9. STATISTICAL ANALYSIS
Mixed model for repeated measures.
"""


def test_sections_are_returned_in_fixed_order():
    sections = extract_critical_sections(PROTOCOL)

    assert list(sections) == ["endpoints", "inclusion_exclusion", "safety"]


def test_repeated_headers_accumulate():
    endpoints = extract_critical_sections(PROTOCOL)["endpoints"]

    assert endpoints.startswith("3.1 Primary Endpoints")
    assert "Change in HbA1c" in endpoints
    assert "fasting plasma glucose" in endpoints


def test_terminator_header_closes_section():
    sections = extract_critical_sections(PROTOCOL)

    assert "Randomized" not in sections["endpoints"]
    assert "Visits every four weeks" not in sections["inclusion_exclusion"]
    assert "Mixed model" not in sections["safety"]
    assert "History of ketoacidosis" in sections["inclusion_exclusion"]


def test_long_lines_are_never_headers():
    text = "STUDY DESIGN\n" + "Safety " + "x" * 100 + "\n"

    assert extract_critical_sections(text) == {}


def test_missing_sections_are_absent():
    sections = extract_critical_sections("SAFETY MONITORING\nAdverse events are recorded.\n")

    assert list(sections) == ["safety"]


def test_header_without_body_still_counts():
    assert extract_critical_sections("ADVERSE EVENTS\n") == {"safety": "ADVERSE EVENTS"}
