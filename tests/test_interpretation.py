"""
Interpretation Band Tests
=========================
Ordered first-match band resolution, used standalone and through the catalog.

Test Categories:
1. Band construction and predicates
2. First-match ordering and boundary inclusivity
3. Input-aware bands and notes
4. Catalog interpretation seeds
"""

import pytest

from nephrocalc.interpretation import (
    InterpretationRule,
    above,
    at_least,
    at_most,
    below,
    between,
    equals,
    otherwise,
    strictly_between,
    when,
)
from nephrocalc.registry import REGISTRY


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def ckd_epi():
    return REGISTRY.require("ckd-epi-creatinine").interpretation


# ============================================================
# TEST: RULE CONSTRUCTION
# ============================================================

class TestRuleConstruction:

    def test_empty_rule_rejected(self):
        with pytest.raises(ValueError):
            InterpretationRule()

    def test_last_band_must_be_catch_all(self):
        with pytest.raises(ValueError):
            InterpretationRule(at_least(90, "Normal"), below(90, "Low"))

    def test_describe_lists_bands_in_order(self):
        rule = InterpretationRule(at_least(90, "Normal"), otherwise("Reduced"))
        assert rule.describe() == [">= 90: Normal", "otherwise: Reduced"]

    def test_computed_text(self):
        rule = InterpretationRule(otherwise(lambda v: f"Score {v:g}"))
        assert rule(7) == "Score 7"
        assert "(computed from value)" in rule.describe()[0]


# ============================================================
# TEST: ORDERING AND BOUNDARIES
# ============================================================

class TestBandOrdering:

    def test_first_match_wins(self):
        rule = InterpretationRule(at_least(10, "high"), at_least(5, "mid"), otherwise("low"))
        assert rule(12) == "high"
        assert rule(7) == "mid"
        assert rule(1) == "low"

    def test_descending_declaration_kept(self):
        # Bands may be declared low-to-high; order is the calculator's choice
        rule = InterpretationRule(below(1, "prerenal"), at_most(2, "indeterminate"), otherwise("intrinsic"))
        assert rule(0.99) == "prerenal"
        assert rule(1) == "indeterminate"
        assert rule(2) == "indeterminate"
        assert rule(2.01) == "intrinsic"

    def test_predicate_edges(self):
        assert InterpretationRule(above(5, "a"), otherwise("b"))(5) == "b"
        assert InterpretationRule(between(1, 2, "in"), otherwise("out"))(2) == "in"
        assert InterpretationRule(strictly_between(1, 2, "in"), otherwise("out"))(2) == "out"
        assert InterpretationRule(equals(0, "zero"), otherwise("other"))(0) == "zero"

    def test_ckd_epi_stage1_boundary_inclusive(self, ckd_epi):
        assert ckd_epi(90) == "Normal kidney function (CKD Stage 1)"

    def test_ckd_epi_just_below_boundary(self, ckd_epi):
        assert ckd_epi(89.999) == "Mild decrease in kidney function (CKD Stage 2)"

    def test_ckd_epi_stage5(self, ckd_epi):
        assert ckd_epi(10).startswith("Kidney failure (CKD Stage 5)")


# ============================================================
# TEST: INPUT-AWARE BANDS
# ============================================================

class TestInputAwareBands:

    def test_when_sees_inputs(self):
        rule = InterpretationRule(
            when(lambda v, inputs: inputs.get("pediatric", False), "pediatric band", "pediatric"),
            otherwise("adult band"),
        )
        assert rule(50, {"pediatric": True}) == "pediatric band"
        assert rule(50) == "adult band"

    def test_bis1_below_age_70(self):
        rule = REGISTRY.require("bis1-elderly").interpretation
        assert rule(58, {"age": 65}).startswith("BIS1 is designed for patients ≥70 years")
        assert rule(58, {"age": 80}) == "Mild to moderate decrease (CKD Stage 3a)"

    def test_note_appended(self):
        rule = REGISTRY.require("fas-full-age-spectrum").interpretation
        child = rule(100, {"age": 10})
        adult = rule(100, {"age": 40})
        assert child.startswith("Normal kidney function (CKD Stage 1)")
        assert "pediatric" in child
        assert adult == "Normal kidney function (CKD Stage 1)"


# ============================================================
# TEST: CATALOG SEEDS
# ============================================================

class TestCatalogSeeds:

    def test_fena_prerenal(self):
        rule = REGISTRY.require("fena").interpretation
        assert rule(0.36).startswith("Prerenal azotemia")

    def test_corrected_calcium_normal(self):
        rule = REGISTRY.require("corrected-calcium").interpretation
        assert rule(9.1) == "Normal corrected calcium"
        assert rule(8.4).startswith("Hypocalcemia")
        assert rule(10.6).startswith("Hypercalcemia")

    def test_anion_gap_borderline(self):
        rule = REGISTRY.require("anion-gap").interpretation
        assert rule(15) == "Borderline high"
        assert rule(12).startswith("Normal anion gap")
        assert rule(17).startswith("High anion gap")
