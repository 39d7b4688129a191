"""
Tool Handler Tests
==================
calc_info / execute_calc / search_calcs, and the execute_tool dispatcher.

Test Categories:
1. Tool definitions
2. calc_info schema payloads
3. execute_calc results and collected errors
4. execute_tool dispatch
"""

import pytest

from nephrocalc.config import Settings
from nephrocalc.errors import UnknownCalculator
from nephrocalc.evaluator import Evaluator
from nephrocalc.registry import REGISTRY
from nephrocalc.tools import TOOL_DEFINITIONS, CalcTools, format_calc_info, split_variables


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def tools():
    return CalcTools(REGISTRY, Evaluator(REGISTRY, Settings()))


# ============================================================
# TEST: DEFINITIONS
# ============================================================

class TestToolDefinitions:

    def test_names(self):
        names = [d["function"]["name"] for d in TOOL_DEFINITIONS]
        assert names == ["calc_info", "execute_calc", "search_calcs"]

    def test_required_parameters(self):
        by_name = {d["function"]["name"]: d["function"]["parameters"] for d in TOOL_DEFINITIONS}
        assert by_name["execute_calc"]["required"] == ["calc_id", "variables"]


# ============================================================
# TEST: CALC INFO
# ============================================================

class TestCalcInfo:

    def test_schema_payload(self, tools):
        info = tools.calc_info("fena")
        assert info.calc_id == "fena"
        assert info.result_unit == "%"
        assert [inp["id"] for inp in info.inputs] == ["urineNa", "plasmaCr", "plasmaNa", "urineCr"]
        assert info.inputs[1]["analyte"] == "creatinine"
        assert info.references

    def test_loose_id_resolution(self, tools):
        assert tools.calc_info("CKD_EPI_CREATININE").calc_id == "ckd-epi-creatinine"

    def test_unknown(self, tools):
        with pytest.raises(UnknownCalculator):
            tools.calc_info("nope")

    def test_cached(self, tools):
        assert tools.calc_info("fena") is tools.calc_info("fena")

    def test_format(self, tools):
        text = format_calc_info(tools.calc_info("ckd-epi-creatinine"))
        assert "Calculator: CKD-EPI Creatinine (2021) (ckd-epi-creatinine)" in text
        assert "creatinine*" in text
        assert "one of M, F" in text
        assert "min=18" in text


# ============================================================
# TEST: EXECUTE CALC
# ============================================================

class TestExecuteCalc:

    def test_success(self, tools):
        result = tools.execute_calc("anion-gap", {"sodium": 140, "chloride": 105, "bicarbonate": 20})
        assert result.success
        assert result.outputs["result"] == 15
        assert result.outputs["interpretation"] == "Borderline high"
        assert result.errors == []

    def test_value_unit_pairs(self, tools):
        result = tools.execute_calc("ckd-epi-creatinine", {
            "creatinine": {"value": 88.4, "unit": "si"}, "age": 45, "sex": "M",
        })
        assert result.success
        assert result.outputs["result"] == 95

    def test_separate_units_argument(self, tools):
        result = tools.execute_calc("ckd-epi-creatinine", {"creatinine": 88.4, "age": 45, "sex": "M"},
                                    units={"creatinine": "μmol/L"})
        assert result.outputs["result"] == 95

    def test_details_merged_into_outputs(self, tools):
        result = tools.execute_calc("ktv-hemodialysis", {"preBUN": 60, "postBUN": 20, "postWeight": 70,
                                                         "sessionTime": 240, "ultrafiltration": 0})
        assert result.outputs["urr"] == pytest.approx(66.67, abs=0.01)

    def test_missing_field_collected(self, tools):
        result = tools.execute_calc("fena", {"urineNa": 20})
        assert not result.success
        assert result.outputs is None
        assert result.errors[0]["code"] == "missing_required_field"
        assert result.error_messages() == ["Missing required field: plasmaCr"]

    def test_unknown_calculator_collected(self, tools):
        result = tools.execute_calc("nope", {})
        assert result.errors == [{"code": "unknown_calculator", "message": "Unknown calculator: nope",
                                  "calc_id": "nope"}]

    def test_formula_domain_error_collected(self, tools):
        result = tools.execute_calc("ttkg", {"urineK": 40, "plasmaK": 5.5, "urineOsm": 400, "plasmaOsm": 0})
        assert not result.success
        assert result.errors[0]["code"] == "invalid_input"
        assert result.errors[0]["field"] == "plasmaOsm"

    def test_body_water_domain_error_collected(self):
        unbounded = CalcTools(REGISTRY, Evaluator(REGISTRY, Settings(enforce_bounds=False)))
        result = unbounded.execute_calc("sodium-correction-rate", {
            "currentNa": 120, "targetNa": 130, "infusionNa": 513, "totalBodyWater": -1, "correctionHours": 24,
        })
        assert not result.success
        assert result.errors[0]["field"] == "totalBodyWater"

    def test_passthrough_warning_surfaced(self):
        lenient = CalcTools(REGISTRY, Evaluator(REGISTRY, Settings(strict_units=False)))
        result = lenient.execute_calc("anion-gap", {"sodium": {"value": 140, "unit": "furlongs"},
                                                    "chloride": 105, "bicarbonate": 20})
        assert result.success
        assert result.warnings[0]["code"] == "unit_passthrough"

    def test_split_variables(self):
        values, flags = split_variables({"a": {"value": 1, "unit": "si"}, "b": 2, "c": {"value": 3}})
        assert values == {"a": 1, "b": 2, "c": 3}
        assert flags == {"a": "si"}


# ============================================================
# TEST: DISPATCH
# ============================================================

class TestExecuteTool:

    def test_calc_info(self, tools):
        out = tools.execute_tool("calc_info", {"calc_id": "urr"})
        assert out["calc_id"] == "urr"

    def test_calc_info_unknown(self, tools):
        assert tools.execute_tool("calc_info", {"calc_id": "nope"}) == {"error": "Unknown calculator: nope"}

    def test_missing_parameter(self, tools):
        assert "error" in tools.execute_tool("execute_calc", {})

    def test_execute(self, tools):
        out = tools.execute_tool("execute_calc", {"calc_id": "urr", "variables": {"preBUN": 60, "postBUN": 20}})
        assert out["success"] is True
        assert out["outputs"]["result"] == pytest.approx(66.7)

    def test_search(self, tools):
        out = tools.execute_tool("search_calcs", {"query": "sodium", "limit": 3})
        assert 0 < len(out["results"]) <= 3

    def test_unknown_tool(self, tools):
        assert tools.execute_tool("make_coffee", {}) == {"error": "Unknown tool: make_coffee"}
