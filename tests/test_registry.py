"""
Calculator Registry Tests
=========================
Catalog integrity, lookup and search.

Test Categories:
1. Catalog integrity (unique ids, resolvable analytes, runners)
2. Lookup by id and category
3. Search ranking and the empty-query guard
4. Injected registries
"""

import pytest

from nephrocalc.calculators import CALCULATORS
from nephrocalc.catalog import CATALOG, CATEGORIES, KIDNEY_FUNCTION
from nephrocalc.errors import UnknownCalculator
from nephrocalc.interpretation import InterpretationRule, otherwise
from nephrocalc.models import CalculatorDefinition, InputSpec
from nephrocalc.registry import REGISTRY, Registry
from nephrocalc.units import get_analyte


def _definition(calc_id, name="Test", description="", category="Test", inputs=()):
    return CalculatorDefinition(
        id=calc_id, name=name, description=description, category=category, inputs=inputs,
        result_label="x", result_unit="", interpretation=InterpretationRule(otherwise("ok")),
    )


# ============================================================
# TEST: CATALOG INTEGRITY
# ============================================================

class TestCatalogIntegrity:

    def test_catalog_size(self):
        assert len(CATALOG) == 63
        assert len(REGISTRY) == 63

    def test_ids_unique(self):
        ids = [d.id for d in CATALOG]
        assert len(ids) == len(set(ids))

    def test_unit_toggles_resolve(self):
        for definition in REGISTRY:
            for spec in definition.inputs:
                if spec.has_unit_toggle:
                    conv = get_analyte(spec.analyte)
                    assert spec.unit in conv.units, f"{definition.id}.{spec.id}"

    def test_every_definition_has_a_runner(self):
        assert set(CALCULATORS) == {d.id for d in CATALOG}
        for definition in REGISTRY:
            assert callable(REGISTRY.runner_for(definition.id))

    def test_categories_known(self):
        assert set(REGISTRY.list_categories()) <= set(CATEGORIES)

    def test_physical_quantities_non_negative(self):
        for definition in REGISTRY:
            for spec in definition.inputs:
                if spec.analyte in ("weight", "height", "osmolality") or spec.id == "totalBodyWater":
                    assert spec.min == 0, f"{definition.id}.{spec.id}"

    def test_select_defaults_are_options(self):
        for definition in REGISTRY:
            for spec in definition.inputs:
                if spec.options and spec.default is not None:
                    assert spec.default in spec.option_values, f"{definition.id}.{spec.id}"


# ============================================================
# TEST: LOOKUP
# ============================================================

class TestLookup:

    def test_get_by_id(self):
        assert REGISTRY.get_by_id("fena").name.startswith("Fractional Excretion of Sodium")
        assert REGISTRY.get_by_id("nope") is None

    def test_require_unknown(self):
        with pytest.raises(UnknownCalculator) as exc:
            REGISTRY.require("nope")
        assert exc.value.to_dict() == {"code": "unknown_calculator", "message": "Unknown calculator: nope",
                                       "calc_id": "nope"}

    def test_get_by_category_keeps_catalog_order(self):
        kidney = REGISTRY.get_by_category(KIDNEY_FUNCTION)
        assert kidney[0].id == "ckd-epi-creatinine"
        assert all(d.category == KIDNEY_FUNCTION for d in kidney)

    def test_get_by_category_unknown(self):
        assert REGISTRY.get_by_category("Astrology") == []

    def test_list_categories_sorted(self):
        categories = REGISTRY.list_categories()
        assert categories == sorted(categories)

    def test_contains(self):
        assert "kdpi" in REGISTRY
        assert "KDPI" not in REGISTRY


# ============================================================
# TEST: SEARCH
# ============================================================

class TestSearch:

    def test_empty_query_returns_nothing(self):
        assert REGISTRY.search("") == []
        assert REGISTRY.search("   ") == []

    def test_sodium_matches_every_mention(self):
        results = REGISTRY.search("sodium")
        expected = {
            d.id for d in REGISTRY
            if "sodium" in d.name.lower() or "sodium" in d.description.lower() or "sodium" in d.category.lower()
        }
        assert results
        assert {d.id for d in results} == expected
        assert "fena" in expected

    def test_case_insensitive(self):
        assert [d.id for d in REGISTRY.search("SODIUM")] == [d.id for d in REGISTRY.search("sodium")]

    def test_name_matches_rank_first(self):
        registry = Registry([
            _definition("a", name="Other", description="mentions gap"),
            _definition("b", name="Gap score"),
            _definition("c", name="Other", category="Gap category"),
        ])
        assert [d.id for d in registry.search("gap")] == ["b", "a", "c"]

    def test_limit(self):
        assert len(REGISTRY.search("eGFR", limit=2)) == 2
        assert REGISTRY.search("eGFR", limit=0) == []


# ============================================================
# TEST: INJECTED REGISTRIES
# ============================================================

class TestInjectedRegistry:

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            Registry([_definition("x"), _definition("x")])

    def test_unknown_analyte_rejected(self):
        bad = _definition("x", inputs=(InputSpec(id="v", label="V", unit="mg/dL", analyte="unobtainium"),))
        with pytest.raises(ValueError):
            Registry([bad])

    def test_unit_outside_analyte_rejected(self):
        bad = _definition("x", inputs=(InputSpec(id="v", label="V", unit="kPa", analyte="creatinine"),))
        with pytest.raises(ValueError):
            Registry([bad])

    def test_missing_runner(self):
        registry = Registry([_definition("x")])
        with pytest.raises(UnknownCalculator):
            registry.runner_for("x")

    def test_repr(self):
        assert repr(Registry([_definition("x")])) == "Registry(1 calculators, 1 categories)"
