"""
Clinical Recommendation Tests
=============================
Band keys, follow-up entries and their attachment to evaluation results.

Test Categories:
1. Table integrity
2. Band selection at the edges
3. Explicit band lookup
4. Attachment through the evaluator and tools
"""

import pytest

from nephrocalc.config import Settings
from nephrocalc.evaluator import Evaluator
from nephrocalc.interpretation import InterpretationRule, at_least, otherwise
from nephrocalc.models import EvaluationRequest, Recommendation, Urgency
from nephrocalc.recommendations import (
    RECOMMENDATIONS,
    RecommendationSet,
    get_recommendation,
    recommend,
)
from nephrocalc.registry import REGISTRY
from nephrocalc.tools import CalcTools


@pytest.fixture
def evaluator():
    return Evaluator(REGISTRY, Settings())


def _rec(band, urgency=Urgency.ROUTINE):
    return Recommendation(band=band, condition=band, recommendation=band, action_items=("act",), urgency=urgency)


# ============================================================
# TEST: TABLE INTEGRITY
# ============================================================

class TestTable:

    def test_every_calculator_registered(self):
        for calc_id in RECOMMENDATIONS:
            assert calc_id in REGISTRY, calc_id

    def test_every_entry_has_actions(self):
        for rec_set in RECOMMENDATIONS.values():
            for entry in rec_set.entries.values():
                assert entry.action_items
                assert entry.condition

    def test_band_without_entry_rejected(self):
        with pytest.raises(ValueError):
            RecommendationSet(InterpretationRule(at_least(1, "high"), otherwise("low")), [_rec("high")])

    def test_frozen(self):
        entry = get_recommendation("kfre", "low")
        with pytest.raises(ValueError):
            entry.urgency = Urgency.EMERGENT


# ============================================================
# TEST: BAND SELECTION
# ============================================================

class TestBandSelection:

    @pytest.mark.parametrize("egfr,band", [
        (95, "stage1"), (90, "stage1"), (89, "stage2"), (45, "stage3a"),
        (44, "stage3b"), (15, "stage4"), (14, "stage5"),
    ])
    def test_ckd_stages(self, egfr, band):
        assert recommend("ckd-epi-creatinine", egfr).band == band

    def test_ckd_urgency_escalates(self):
        assert recommend("ckd-epi-creatinine", 50).urgency is Urgency.ROUTINE
        assert recommend("ckd-epi-creatinine", 20).urgency is Urgency.URGENT
        assert recommend("ckd-epi-creatinine", 10).urgency is Urgency.EMERGENT

    def test_shared_by_other_egfr_equations(self):
        assert recommend("fas-full-age-spectrum", 50).band == "stage3a"
        assert recommend("bis1-elderly", 50) is recommend("ckd-epi-creatinine", 50)

    @pytest.mark.parametrize("risk,band", [(9.9, "low"), (10, "moderate"), (40, "moderate"), (40.1, "high")])
    def test_kfre(self, risk, band):
        assert recommend("kfre", risk).band == band

    @pytest.mark.parametrize("score,band", [(5, "low"), (6, "moderate"), (11, "high"), (16, "veryhigh")])
    def test_mehran_points(self, score, band):
        assert recommend("cin-mehran-score", score).band == band

    @pytest.mark.parametrize("risk,band", [(4.9, "low"), (5, "borderline"), (7.5, "intermediate"), (20, "high")])
    def test_ascvd(self, risk, band):
        assert recommend("ascvd-risk", risk).band == band

    def test_no_recommendation_for_other_calculators(self):
        assert recommend("anion-gap", 15) is None


# ============================================================
# TEST: EXPLICIT LOOKUP
# ============================================================

class TestExplicitLookup:

    def test_known_band(self):
        entry = get_recommendation("cin-mehran-score", "veryhigh")
        assert entry.urgency is Urgency.EMERGENT
        assert "Prepare for possible dialysis" in entry.action_items

    def test_unknown_band(self):
        assert get_recommendation("kfre", "stage9") is None

    def test_unknown_calculator(self):
        assert get_recommendation("nope", "low") is None


# ============================================================
# TEST: ATTACHMENT
# ============================================================

class TestAttachment:

    def test_evaluator_attaches_rounded_band(self, evaluator):
        result = evaluator.evaluate(EvaluationRequest(
            calculator_id="ckd-epi-creatinine", values={"creatinine": 1.0, "age": 45, "sex": "M"},
        ))
        assert result.value == 95
        assert result.recommendation.band == "stage1"

    def test_evaluator_severe_reduction(self, evaluator):
        result = evaluator.evaluate(EvaluationRequest(
            calculator_id="ckd-epi-creatinine", values={"creatinine": 5.0, "age": 60, "sex": "M"},
        ))
        assert result.value < 15
        assert result.recommendation.band == "stage5"
        assert result.recommendation.urgency is Urgency.EMERGENT

    def test_mehran_through_evaluator(self, evaluator):
        result = evaluator.evaluate(EvaluationRequest(
            calculator_id="cin-mehran-score", values={"contrastVolume": 100, "creatinine": 2.0},
        ))
        assert result.value == 5
        assert result.recommendation.band == "low"

    def test_absent_for_unmapped_calculator(self, evaluator):
        result = evaluator.evaluate(EvaluationRequest(
            calculator_id="anion-gap", values={"sodium": 140, "chloride": 105, "bicarbonate": 20},
        ))
        assert result.recommendation is None

    def test_execute_calc_outputs(self, evaluator):
        result = CalcTools(REGISTRY, evaluator).execute_calc(
            "ckd-epi-creatinine", {"creatinine": 1.0, "age": 45, "sex": "M"})
        rec = result.outputs["recommendation"]
        assert rec["band"] == "stage1"
        assert rec["urgency"] == "routine"
        assert isinstance(rec["action_items"], list)

    def test_execute_calc_without_recommendation(self, evaluator):
        result = CalcTools(REGISTRY, evaluator).execute_calc(
            "anion-gap", {"sodium": 140, "chloride": 105, "bicarbonate": 20})
        assert "recommendation" not in result.outputs
