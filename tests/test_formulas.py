"""
Formula and Runner Tests
========================
Closed-form equations in canonical units, and the per-calculator runners
that wrap them with audit trails.

Test Categories:
1. Rounding
2. Kidney function equations
3. AKI, electrolyte and proteinuria equations
4. Dialysis and transplant equations
5. Scores
6. Runner payloads
"""

import math

import pytest

from nephrocalc import formulas as f
from nephrocalc.calculators import CALCULATORS
from nephrocalc.errors import InvalidInput, MissingRequiredField


def run(calc_id, values):
    return CALCULATORS[calc_id]["run"](values)


# ============================================================
# TEST: ROUNDING
# ============================================================

class TestRounding:

    def test_half_up(self):
        assert f.round_half_up(2.5) == 3
        assert f.round_half_up(0.125, 2) == 0.13
        assert f.round_half_up(94.58, 0) == 95

    def test_fena_seed_rounds_to_two_places(self):
        raw = f.fena(20, 2.0, 140, 80)
        assert raw == pytest.approx(0.357142857)
        assert f.round_half_up(raw, 2) == 0.36


# ============================================================
# TEST: KIDNEY FUNCTION
# ============================================================

class TestKidneyFunction:

    def test_ckd_epi_male(self):
        assert f.ckd_epi_creatinine(1.0, 45, "M") == pytest.approx(94.6, abs=0.1)

    def test_ckd_epi_female_factor(self):
        # Female coefficient applies regardless of label spelling
        assert f.ckd_epi_creatinine(0.6, 30, "female") == pytest.approx(f.ckd_epi_creatinine(0.6, 30, "F"))

    def test_ckd_epi_rejects_zero_creatinine(self):
        with pytest.raises(InvalidInput) as exc:
            f.ckd_epi_creatinine(0, 45, "M")
        assert exc.value.field_id == "creatinine"

    def test_cockcroft_gault(self):
        assert f.cockcroft_gault(1.0, 50, 70, "M") == pytest.approx(87.5)
        assert f.cockcroft_gault(1.0, 50, 70, "F") == pytest.approx(87.5 * 0.85)

    def test_schwartz(self):
        assert f.schwartz(0.5, 120) == pytest.approx(99.12)

    def test_egfr_slope_requires_time(self):
        assert f.egfr_slope(60, 50, 2) == -5
        with pytest.raises(InvalidInput):
            f.egfr_slope(60, 50, 0)

    def test_fas_q_values(self):
        assert f.fas_q(10, "M") == pytest.approx(0.5029)
        assert f.fas_q(16, "F") == 0.66
        assert f.fas_q(30, "M") == 0.90

    def test_fas_age_adjustment_after_40(self):
        assert f.fas(0.9, 30, "M") == pytest.approx(107.3)
        assert f.fas(0.9, 60, "M") == pytest.approx(107.3 * 0.988 ** 20)

    def test_compare_egfr_bis1_only_from_70(self):
        young = {row["equation"]: row for row in f.compare_egfr(1.0, 50, "M")}
        old = {row["equation"]: row for row in f.compare_egfr(1.0, 80, "M")}
        assert young["BIS1"]["value"] is None
        assert old["BIS1"]["value"] == pytest.approx(f.bis1(1.0, 80, "M"))
        assert list(young) == ["CKD-EPI 2021", "MDRD", "Lund-Malmö revised", "BIS1", "FAS"]


# ============================================================
# TEST: AKI, ELECTROLYTES, PROTEINURIA
# ============================================================

class TestAkiAndElectrolytes:

    def test_anion_gap(self):
        assert f.anion_gap(140, 105, 20) == 15

    def test_delta_gap(self):
        out = f.delta_gap(24, 12)
        assert out == {"delta_gap": 12, "delta_hco3": 12, "ratio": 1.0}

    def test_delta_gap_undefined_at_normal_bicarbonate(self):
        with pytest.raises(InvalidInput) as exc:
            f.delta_gap(20, 24)
        assert exc.value.field_id == "measuredHCO3"

    def test_fena_zero_denominator(self):
        with pytest.raises(InvalidInput):
            f.fena(20, 2.0, 140, 0)

    def test_mehran_egfr_band(self):
        assert f.mehran_score(True, False, False, True, False, False, 250, egfr=35, creatinine=1.8) == 15

    def test_mehran_creatinine_fallback(self):
        assert f.mehran_score(False, False, False, False, False, False, 100, creatinine=2.0) == 5
        assert f.mehran_score(False, False, False, False, False, False, 100, creatinine=1.5) == 1

    def test_mehran_egfr_takes_precedence(self):
        assert f.mehran_score(False, False, False, False, False, False, 0, egfr=70, creatinine=3.0) == 0

    def test_corrected_sodium(self):
        assert f.corrected_sodium(130, 600) == pytest.approx(138)

    def test_corrected_calcium_seed(self):
        assert f.corrected_calcium(7.5, 2.0) == pytest.approx(9.1)

    def test_osmolal_gap(self):
        assert f.osmolal_gap(300, 140, 90, 14) == pytest.approx(10)

    def test_protein_excretion_needs_inputs(self):
        assert f.protein_excretion_24h(ratio_mg_mg=1.2) == 1.2
        assert f.protein_excretion_24h(protein_mg_dl=50, creatinine_mg_dl=100) == 0.5
        with pytest.raises(InvalidInput):
            f.protein_excretion_24h(creatinine_mg_dl=100)

    def test_ttkg_zero_plasma_osmolality(self):
        with pytest.raises(InvalidInput) as exc:
            f.ttkg(40, 5.5, 400, 0)
        assert exc.value.field_id == "plasmaOsm"

    def test_sodium_correction_rate_body_water_domain(self):
        with pytest.raises(InvalidInput) as exc:
            f.sodium_correction_rate(120, 513, -1, 24)
        assert exc.value.field_id == "totalBodyWater"

    def test_igan_rejects_unknown_horizon(self):
        with pytest.raises(InvalidInput):
            f.igan_risk(40, 60, 100, 1.0, years=3)


# ============================================================
# TEST: DIALYSIS AND TRANSPLANT
# ============================================================

class TestDialysisAndTransplant:

    def test_daugirdas(self):
        assert f.ktv_daugirdas(60, 20, 70, 240, 0) == pytest.approx(-math.log(1 / 3 - 0.032))

    def test_daugirdas_log_domain(self):
        assert f.ktv_daugirdas(60, 59, 70, 10000, 0) == 0.0

    def test_watson(self):
        assert f.watson_tbw(40, 175, 75, "M") == pytest.approx(42.79, abs=0.01)
        assert f.watson_tbw(40, 160, 60, "F") == pytest.approx(29.80, abs=0.01)

    def test_kdri_reference_donor(self):
        kdri = f.kdri(40, 170, 80, "NO", "NO", "OTHER", 1.0, "NO")
        assert kdri == pytest.approx(1 / f.KDRI_MEDIAN)
        assert f.kdpi_from_kdri(kdri) == 16

    def test_kdpi_table_ends(self):
        assert f.kdpi_from_kdri(0.1) == 0
        assert f.kdpi_from_kdri(1.0) == 50
        assert f.kdpi_from_kdri(5.0) == 100

    def test_epts_clamped(self):
        assert f.epts(20, False, False, 0) == 0
        assert f.epts(60, True, False, 3) == pytest.approx(11.5)
        assert f.epts(90, True, True, 200) == 100

    def test_banff_categories(self):
        assert f.banff_classification(0, 0, 0, 0, 0, 0, 0, 0, 0, 0, False)["category"] == 1
        tcmr = f.banff_classification(2, 2, 0, 0, 0, 0, 0, 0, 0, 0, False)
        assert tcmr["category"] == 4
        assert tcmr["subtype"] == "Grade IB"
        abmr = f.banff_classification(0, 0, 0, 2, 1, 0, 0, 0, 0, 2, False)
        assert abmr["category"] == 2
        assert abmr["subtype"] == "Active ABMR"

    def test_banff_borderline(self):
        assert f.banff_classification(1, 0, 0, 0, 0, 0, 0, 0, 0, 0, False)["category"] == 3


# ============================================================
# TEST: SCORES
# ============================================================

class TestScores:

    def test_qsofa(self):
        assert f.qsofa(24, 95, 15) == 2
        assert f.qsofa(16, 120, 15) == 0

    def test_weighted_sum(self):
        assert f.weighted_sum({"seizures": True, "arthritis": True}, f.SLEDAI_WEIGHTS) == 12

    def test_count_true(self):
        assert f.count_true({"fatigue": True, "illness": False}, f.FRAIL_ITEMS) == 1

    def test_ascvd_in_range(self):
        risk = f.ascvd_risk(55, "M", "White", 213, 50, 120, False, False, False)
        assert 0 < risk < 20

    def test_ascvd_smoking_raises_risk(self):
        base = f.ascvd_risk(60, "F", "White", 200, 50, 140, False, False, False)
        smoker = f.ascvd_risk(60, "F", "White", 200, 50, 140, False, False, True)
        assert smoker > base


# ============================================================
# TEST: RUNNER PAYLOADS
# ============================================================

class TestRunners:

    def test_payload_shape(self):
        out = run("fena", {"urineNa": 20, "plasmaCr": 2.0, "plasmaNa": 140, "urineCr": 80})
        assert out["success"] is True
        assert out["outputs"]["result"] == pytest.approx(0.357142857)
        assert set(out["audit_trace"]) == {"inputs_used", "log"}

    def test_delta_gap_details(self):
        out = run("delta-gap", {"measuredAG": 24, "measuredHCO3": 12, "normalAG": 12, "normalHCO3": 24})
        assert out["outputs"] == {"result": 1.0, "delta_gap": 12, "delta_hco3": 12}

    def test_mehran_logs_fallback(self):
        out = run("cin-mehran-score", {"contrastVolume": 100, "creatinine": 2.0, "egfr": None})
        assert out["outputs"]["result"] == 5
        assert any("SCr > 1.5" in line for line in out["audit_trace"]["log"])

    def test_24_hour_ratio_mode_needs_ratio(self):
        with pytest.raises(MissingRequiredField) as exc:
            run("24-hour-protein", {"testType": "pcr", "inputMode": "ratio", "ratioValue": None})
        assert exc.value.field_id == "ratioValue"

    def test_kdpi_reports_kdri(self):
        out = run("kdpi", {"donorAge": 40, "donorHeight": 170, "donorWeight": 80, "donorCreatinine": 1.0,
                           "hypertensionDuration": "NO", "diabetesDuration": "NO",
                           "causeOfDeath": "OTHER", "isDCD": "NO"})
        assert out["outputs"]["result"] == 16
        assert out["outputs"]["kdri"] == pytest.approx(0.712, abs=0.001)
