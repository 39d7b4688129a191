"""
Reference Validation Tests
==========================
Every worked reference case reproduces through the full evaluator.

Test Categories:
1. Suite coverage
2. Per-suite pass rates
3. Report formatting
"""

import pytest

from nephrocalc.registry import REGISTRY
from nephrocalc.validation import (
    REFERENCE_SUITES,
    ReferenceCase,
    format_suite_report,
    format_summary,
    run_case,
    run_reference_suite,
    validate_all,
)
from nephrocalc.evaluator import Evaluator


# ============================================================
# TEST: COVERAGE
# ============================================================

class TestCoverage:

    def test_suites_name_real_calculators(self):
        for calc_id in REFERENCE_SUITES:
            assert calc_id in REGISTRY

    def test_nearly_every_calculator_has_cases(self):
        missing = {d.id for d in REGISTRY} - set(REFERENCE_SUITES)
        assert missing == {"ascvd-risk"}

    def test_unknown_suite_is_empty(self):
        assert run_reference_suite("no-such-suite") == []


# ============================================================
# TEST: PASS RATES
# ============================================================

class TestReferenceCases:

    @pytest.mark.parametrize("calc_id", sorted(REFERENCE_SUITES))
    def test_suite_passes(self, calc_id):
        results = run_reference_suite(calc_id)
        failures = [(r.case.name, r.actual, r.message) for r in results if not r.passed]
        assert results
        assert failures == []

    def test_validate_all(self):
        summary = validate_all()
        assert summary.ok
        assert summary.failed == 0
        assert summary.failed_calculators == []
        assert summary.total == sum(len(s.cases) for s in REFERENCE_SUITES.values())

    def test_failing_case_reported(self):
        case = ReferenceCase(name="wrong on purpose", inputs={"sodium": 140, "chloride": 105, "bicarbonate": 20},
                             expected=99, tolerance=0.1)
        result = run_case(case, "anion-gap", Evaluator())
        assert not result.passed
        assert result.actual == 15
        assert result.error == 84

    def test_error_case_reported(self):
        case = ReferenceCase(name="missing input", inputs={}, expected=0)
        result = run_case(case, "anion-gap", Evaluator())
        assert not result.passed
        assert result.actual is None
        assert "Missing required field" in result.message


# ============================================================
# TEST: REPORTS
# ============================================================

class TestReports:

    def test_suite_report(self):
        text = format_suite_report("fena", run_reference_suite("fena"))
        assert "TEST REPORT: fena" in text
        assert "Pass Rate: 2/2 (100.0%)" in text
        assert "PASS: Prerenal" in text

    def test_summary(self):
        text = format_summary(validate_all())
        assert "RESULTS SUMMARY" in text
        assert "OVERALL" in text
        assert "Failed calculators" not in text
