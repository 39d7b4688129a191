"""
Derived Metric Evaluator Tests
==============================
End-to-end evaluation: validation, unit normalization, formula, rounding
and interpretation.

Test Categories:
1. Seed values from worked examples
2. Input validation errors
3. Unit normalization (flags, literals, strict and lenient modes)
4. Bounds checking
5. Determinism and request isolation
6. eGFR comparison
7. Formula domain errors
"""

import math

import pytest

from nephrocalc.config import Settings
from nephrocalc.errors import (
    InvalidInput,
    MissingRequiredField,
    UnknownCalculator,
    UnsupportedUnitConversion,
)
from nephrocalc.evaluator import Evaluator, compare_egfr, evaluate, parse_flag, parse_number
from nephrocalc.interpretation import InterpretationRule, otherwise
from nephrocalc.models import CalculatorDefinition, EvaluationRequest, InputSpec
from nephrocalc.registry import Registry

FENA_SEED = {"urineNa": 20, "plasmaCr": 2.0, "plasmaNa": 140, "urineCr": 80}


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def evaluator():
    return Evaluator(settings=Settings())


@pytest.fixture
def lenient():
    return Evaluator(settings=Settings(strict_units=False, enforce_bounds=False))


def request_for(calc_id, values, units=None):
    return EvaluationRequest(calculator_id=calc_id, values=values, units=units or {})


# ============================================================
# TEST: SEED VALUES
# ============================================================

class TestSeeds:

    def test_fena(self, evaluator):
        result = evaluator.evaluate(request_for("fena", FENA_SEED))
        assert result.raw_value == pytest.approx(0.357142857)
        assert result.value == 0.36
        assert result.unit == "%"
        assert result.interpretation.startswith("Prerenal azotemia")

    def test_corrected_calcium(self, evaluator):
        result = evaluator.evaluate(request_for("corrected-calcium", {"measuredCa": 7.5, "albumin": 2.0}))
        assert result.value == pytest.approx(9.1)
        assert result.interpretation == "Normal corrected calcium"

    def test_anion_gap(self, evaluator):
        result = evaluator.evaluate(request_for("anion-gap", {"sodium": 140, "chloride": 105, "bicarbonate": 20}))
        assert result.value == 15
        assert result.interpretation == "Borderline high"

    def test_ckd_epi(self, evaluator):
        result = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 1.0, "age": 45, "sex": "M"}))
        assert result.value == 95
        assert result.interpretation == "Normal kidney function (CKD Stage 1)"
        assert result.result_label == "eGFR"

    def test_module_level_evaluate(self):
        result = evaluate("anion-gap", {"sodium": 140, "chloride": 105, "bicarbonate": 20})
        assert result.value == 15

    def test_details_passed_through(self, evaluator):
        result = evaluator.evaluate(request_for("delta-gap", {"measuredAG": 24, "measuredHCO3": 12}))
        assert result.value == 1.0
        assert result.details == {"delta_gap": 12, "delta_hco3": 12}
        assert "log" in result.audit_trace


# ============================================================
# TEST: VALIDATION
# ============================================================

class TestValidation:

    def test_unknown_calculator(self, evaluator):
        with pytest.raises(UnknownCalculator):
            evaluator.evaluate(request_for("not-a-calculator", {}))

    def test_missing_required_field(self, evaluator):
        values = dict(FENA_SEED)
        del values["urineNa"]
        with pytest.raises(MissingRequiredField) as exc:
            evaluator.evaluate(request_for("fena", values))
        assert exc.value.field_id == "urineNa"

    def test_blank_string_is_missing(self, evaluator):
        with pytest.raises(MissingRequiredField):
            evaluator.evaluate(request_for("fena", {**FENA_SEED, "plasmaNa": "  "}))

    def test_non_numeric(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("fena", {**FENA_SEED, "urineNa": "twenty"}))
        assert exc.value.field_id == "urineNa"

    def test_numeric_strings_accepted(self, evaluator):
        result = evaluator.evaluate(request_for("fena", {k: str(v) for k, v in FENA_SEED.items()}))
        assert result.value == 0.36

    def test_bad_option(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 1.0, "age": 45, "sex": "X"}))
        assert exc.value.field_id == "sex"

    def test_option_matched_by_label(self, evaluator):
        by_label = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 0.6, "age": 30, "sex": "female"}))
        by_value = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 0.6, "age": 30, "sex": "F"}))
        assert by_label.value == by_value.value == 124

    def test_optional_default_used(self, evaluator):
        # normalAG / normalHCO3 default to 12 / 24
        result = evaluator.evaluate(request_for("delta-gap", {"measuredAG": 24, "measuredHCO3": 12}))
        assert result.audit_trace["inputs_used"]["normalAG"] == "12"

    def test_formula_domain_error(self, evaluator):
        with pytest.raises(InvalidInput):
            evaluator.evaluate(request_for("delta-gap", {"measuredAG": 20, "measuredHCO3": 24}))

    def test_parse_number_rejects_booleans_and_nan(self):
        with pytest.raises(InvalidInput):
            parse_number("x", True)
        with pytest.raises(InvalidInput):
            parse_number("x", float("nan"))
        with pytest.raises(InvalidInput):
            parse_number("x", "inf")
        assert parse_number("x", " 1.5 ") == 1.5

    def test_parse_flag(self):
        assert parse_flag("x", "Yes") is True
        assert parse_flag("x", 0) is False
        with pytest.raises(InvalidInput):
            parse_flag("x", "maybe")


# ============================================================
# TEST: UNIT NORMALIZATION
# ============================================================

class TestUnitNormalization:

    def test_si_flag(self, evaluator):
        conventional = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 1.0, "age": 45, "sex": "M"}))
        si = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 88.4, "age": 45, "sex": "M"},
                                            {"creatinine": "si"}))
        assert si.value == conventional.value
        assert si.raw_value == pytest.approx(conventional.raw_value)

    def test_literal_unit_flag(self, evaluator):
        result = evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 88.4, "age": 45, "sex": "M"},
                                                {"creatinine": "umol/L"}))
        assert result.value == 95

    def test_fena_units_cancel(self, evaluator):
        si_values = {**FENA_SEED, "plasmaCr": 2.0 * 88.4, "urineCr": 80 * 88.4}
        result = evaluator.evaluate(request_for("fena", si_values, {"plasmaCr": "si", "urineCr": "si"}))
        assert result.value == 0.36

    def test_calcium_albumin_si(self, evaluator):
        result = evaluator.evaluate(request_for("corrected-calcium", {"measuredCa": 1.875, "albumin": 20},
                                                {"measuredCa": "si", "albumin": "si"}))
        assert result.value == pytest.approx(9.1)

    def test_imperial_weight_and_height(self, evaluator):
        result = evaluator.evaluate(request_for("bmi", {"weight": 154.32, "height": 66.93},
                                                {"weight": "lbs", "height": "in"}))
        assert result.value == pytest.approx(24.2, abs=0.1)

    def test_unknown_unit_strict(self, evaluator):
        with pytest.raises(UnsupportedUnitConversion):
            evaluator.evaluate(request_for("fena", FENA_SEED, {"urineNa": "furlongs"}))

    def test_unknown_unit_lenient(self, lenient):
        result = lenient.evaluate(request_for("fena", FENA_SEED, {"urineNa": "furlongs"}))
        assert result.value == 0.36
        assert [w.code for w in result.warnings] == ["unit_passthrough"]
        assert result.warnings[0].field == "urineNa"

    def test_unit_flag_on_unitless_input(self, evaluator):
        with pytest.raises(UnsupportedUnitConversion):
            evaluator.evaluate(request_for("qsofa", {"respiratoryRate": 24, "systolicBP": 95, "gcs": 15},
                                           {"systolicBP": "mg/dL"}))

    def test_magnitude_inference_is_reported(self):
        definition = CalculatorDefinition(
            id="echo", name="Echo", description="", category="Test",
            inputs=(InputSpec(id="urea", label="Urea", unit="mmol/L"),),
            result_label="Urea", result_unit="mmol/L", precision=2,
            interpretation=InterpretationRule(otherwise("ok")),
        )
        registry = Registry([definition], {"echo": lambda v: {"outputs": {"result": v["urea"]}}})
        result = Evaluator(registry, Settings()).evaluate(request_for("echo", {"urea": 20}, {"urea": "mg/dL"}))
        assert result.value == pytest.approx(7.14)
        assert [w.code for w in result.warnings] == ["ambiguous_unit_inference"]


# ============================================================
# TEST: BOUNDS
# ============================================================

class TestBounds:

    def test_below_min(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 1.0, "age": 15, "sex": "M"}))
        assert exc.value.field_id == "age"

    def test_bounds_can_be_disabled(self, lenient):
        result = lenient.evaluate(request_for("ckd-epi-creatinine", {"creatinine": 1.0, "age": 15, "sex": "M"}))
        assert result.value > 0


# ============================================================
# TEST: DETERMINISM
# ============================================================

class TestDeterminism:

    def test_repeated_evaluation_identical(self, evaluator):
        req = request_for("kdpi", {"donorAge": 55, "donorHeight": 165, "donorWeight": 70, "donorCreatinine": 1.8,
                                   "hypertensionDuration": "NO", "diabetesDuration": "NO",
                                   "causeOfDeath": "CVA", "isDCD": "YES"})
        first = evaluator.evaluate(req)
        second = evaluator.evaluate(req)
        assert first.model_dump() == second.model_dump()

    def test_request_not_mutated(self, evaluator):
        values = {"creatinine": 88.4, "age": 45, "sex": "M"}
        req = request_for("ckd-epi-creatinine", values, {"creatinine": "si"})
        evaluator.evaluate(req)
        assert req.values == values
        assert req.units == {"creatinine": "si"}


# ============================================================
# TEST: eGFR COMPARISON
# ============================================================

class TestCompareEgfr:

    def test_rows_rounded_and_interpreted(self):
        rows = compare_egfr(1.0, 45, "M")
        ckd_epi = rows[0]
        assert ckd_epi["equation"] == "CKD-EPI 2021"
        assert ckd_epi["value"] == 95
        assert ckd_epi["interpretation"] == "Normal kidney function (CKD Stage 1)"

    def test_bis1_not_applicable_under_70(self):
        bis1 = {row["equation"]: row for row in compare_egfr(1.0, 45, "M")}["BIS1"]
        assert bis1["value"] is None
        assert bis1["interpretation"] is None

    def test_si_creatinine(self):
        assert compare_egfr(88.4, 45, "M", unit="si")[0]["value"] == 95

    def test_rejects_non_positive(self):
        with pytest.raises(InvalidInput):
            compare_egfr(0, 45, "M")


# ============================================================
# TEST: FORMULA DOMAIN
# ============================================================

TTKG_SEED = {"urineK": 40, "plasmaK": 5.5, "urineOsm": 400, "plasmaOsm": 290}
SODIUM_RATE_SEED = {"currentNa": 120, "targetNa": 130, "infusionNa": 513, "totalBodyWater": 35,
                    "correctionHours": 24}


def _echo_registry(runner):
    definition = CalculatorDefinition(
        id="echo", name="Echo", description="", category="Test",
        inputs=(InputSpec(id="x", label="X"),),
        result_label="X", result_unit="", interpretation=InterpretationRule(otherwise("ok")),
    )
    return Registry([definition], {"echo": runner})


class TestFormulaDomain:

    def test_ttkg_zero_plasma_osmolality(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("ttkg", {**TTKG_SEED, "plasmaOsm": 0}))
        assert exc.value.field_id == "plasmaOsm"

    def test_sodium_rate_negative_body_water_out_of_bounds(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("sodium-correction-rate", {**SODIUM_RATE_SEED, "totalBodyWater": -1}))
        assert exc.value.field_id == "totalBodyWater"

    def test_sodium_rate_negative_body_water_without_bounds(self, lenient):
        with pytest.raises(InvalidInput) as exc:
            lenient.evaluate(request_for("sodium-correction-rate", {**SODIUM_RATE_SEED, "totalBodyWater": -1}))
        assert exc.value.field_id == "totalBodyWater"

    def test_negative_weight_rejected(self, evaluator):
        with pytest.raises(InvalidInput) as exc:
            evaluator.evaluate(request_for("bmi", {"weight": -70, "height": 170}))
        assert exc.value.field_id == "weight"

    def test_division_by_zero_in_runner(self):
        registry = _echo_registry(lambda v: {"outputs": {"result": 1 / v["x"]}})
        with pytest.raises(InvalidInput) as exc:
            Evaluator(registry, Settings()).evaluate(request_for("echo", {"x": 0}))
        assert exc.value.field_id == "echo"

    def test_math_domain_error_in_runner(self):
        registry = _echo_registry(lambda v: {"outputs": {"result": math.log(v["x"])}})
        with pytest.raises(InvalidInput) as exc:
            Evaluator(registry, Settings()).evaluate(request_for("echo", {"x": -1}))
        assert exc.value.field_id == "echo"
