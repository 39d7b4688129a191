"""Tool definitions and handlers exposing the calculators as structured calls."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from nephrocalc.errors import CalculatorError, UnknownCalculator
from nephrocalc.evaluator import Evaluator
from nephrocalc.models import CalcInfoResult, EvaluationRequest, ExecuteCalcResult
from nephrocalc.registry import REGISTRY, Registry

logger = logging.getLogger(__name__)

# Tool definitions for function calling
TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "calc_info",
            "description": (
                "Get the input schema for a nephrology calculator. "
                "Returns field ids, kinds, units, options and bounds needed for execute_calc."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "calc_id": {
                        "type": "string",
                        "description": "Calculator ID (e.g., ckd-epi-creatinine, fena, ktv-hemodialysis, kdpi)",
                    },
                },
                "required": ["calc_id"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "execute_calc",
            "description": (
                "Execute a calculation with extracted variables. "
                "Returns the rounded result, its interpretation, or validation errors."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "calc_id": {
                        "type": "string",
                        "description": "Calculator ID",
                    },
                    "variables": {
                        "type": "object",
                        "description": (
                            "Variables as key-value pairs. "
                            "For numeric inputs with units: {\"value\": number, \"unit\": string} where unit is "
                            "\"conventional\", \"si\" or a literal unit such as \"μmol/L\". "
                            "For booleans: true/false. For selects: the option value."
                        ),
                    },
                },
                "required": ["calc_id", "variables"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "search_calcs",
            "description": "Find calculators whose name, description or category contains the query.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search text, e.g. 'sodium'"},
                    "limit": {"type": "integer", "description": "Maximum number of results"},
                },
                "required": ["query"],
            },
        },
    },
]


def split_variables(variables: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Separate ``{"value": x, "unit": u}`` entries into values and unit flags."""
    values: Dict[str, Any] = {}
    unit_flags: Dict[str, str] = {}
    for key, raw in variables.items():
        if isinstance(raw, dict) and "value" in raw:
            values[key] = raw["value"]
            if raw.get("unit"):
                unit_flags[key] = str(raw["unit"])
        else:
            values[key] = raw
    return values, unit_flags


class CalcTools:
    """
    Handles tool execution against the local calculator registry.

    Calculator errors never escape: they come back in the ``errors`` list of
    an unsuccessful ExecuteCalcResult.
    """

    def __init__(self, registry: Optional[Registry] = None, evaluator: Optional[Evaluator] = None):
        self.registry = registry if registry is not None else REGISTRY
        self.evaluator = evaluator if evaluator is not None else Evaluator(self.registry)
        self._calc_info_cache: Dict[str, CalcInfoResult] = {}

    def list_calculators(self) -> List[Dict[str, Any]]:
        return [definition.summary() for definition in self.registry]

    def _resolve_calc_id(self, input_id: str) -> str:
        """
        Resolve a potentially malformed calculator ID to a valid one.
        Accepts case-insensitive matches and underscores for hyphens.
        """
        if input_id in self.registry:
            return input_id
        wanted = input_id.strip().lower().replace("_", "-")
        for definition in self.registry:
            if definition.id.lower() == wanted:
                return definition.id
        return input_id

    def calc_info(self, calc_id: str) -> CalcInfoResult:
        """
        Get calculator input schema.

        Raises:
            UnknownCalculator: if no calculator matches ``calc_id``.
        """
        resolved = self._resolve_calc_id(calc_id)
        cached = self._calc_info_cache.get(resolved)
        if cached is not None:
            return cached

        definition = self.registry.require(resolved)
        result = CalcInfoResult(
            calc_id=definition.id,
            title=definition.name,
            description=definition.description,
            category=definition.category,
            result_label=definition.result_label,
            result_unit=definition.result_unit,
            inputs=[spec.describe() for spec in definition.inputs],
            clinical_pearls=list(definition.clinical_pearls),
            references=list(definition.references),
        )
        self._calc_info_cache[resolved] = result
        return result

    def execute_calc(self, calc_id: str, variables: Dict[str, Any],
                     units: Optional[Dict[str, str]] = None) -> ExecuteCalcResult:
        """
        Execute calculation with extracted variables.

        Args:
            calc_id: Calculator ID
            variables: Raw values, optionally as {"value": x, "unit": u}
            units: Extra unit flags keyed by input id

        Returns:
            ExecuteCalcResult with outputs or errors
        """
        values, unit_flags = split_variables(variables or {})
        unit_flags.update(units or {})
        request = EvaluationRequest(
            calculator_id=self._resolve_calc_id(calc_id), values=values, units=unit_flags
        )
        try:
            result = self.evaluator.evaluate(request)
        except CalculatorError as e:
            logger.warning(f"execute_calc {calc_id} failed: {e}")
            return ExecuteCalcResult(success=False, errors=[e.to_dict()])

        outputs = {
            "result": result.value,
            "raw_value": result.raw_value,
            "unit": result.unit,
            "label": result.result_label,
            "interpretation": result.interpretation,
            **result.details,
        }
        if result.recommendation is not None:
            outputs["recommendation"] = result.recommendation.model_dump(mode="json")

        return ExecuteCalcResult(
            success=True,
            outputs=outputs,
            warnings=[notice.model_dump() for notice in result.warnings],
            audit_trace=result.audit_trace,
        )

    def search_calcs(self, query: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return [definition.summary() for definition in self.registry.search(query, limit)]

    def execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a tool by name and return the result as a dict.
        """
        if tool_name == "calc_info":
            calc_id = arguments.get("calc_id")
            if not calc_id:
                return {"error": "Missing required parameter: calc_id"}
            try:
                return self.calc_info(calc_id).model_dump()
            except UnknownCalculator as e:
                return {"error": str(e)}

        elif tool_name == "execute_calc":
            calc_id = arguments.get("calc_id")
            if not calc_id:
                return {"error": "Missing required parameter: calc_id"}
            result = self.execute_calc(calc_id, arguments.get("variables", {}), arguments.get("units"))
            return result.model_dump()

        elif tool_name == "search_calcs":
            query = arguments.get("query")
            if query is None:
                return {"error": "Missing required parameter: query"}
            return {"results": self.search_calcs(query, arguments.get("limit"))}

        else:
            return {"error": f"Unknown tool: {tool_name}"}


def format_calc_info(calc_info: CalcInfoResult) -> str:
    """
    Format calculator info as plain text: one line per input with its unit,
    options and bounds.
    """
    lines = [
        f"Calculator: {calc_info.title} ({calc_info.calc_id})",
        f"Category: {calc_info.category}",
        f"Result: {calc_info.result_label} [{calc_info.result_unit}]",
        "",
        "Inputs:",
    ]

    for inp in calc_info.inputs:
        inp_id = inp.get("id", "unknown")
        label = inp.get("label", inp_id)
        kind = inp.get("kind", "numeric")
        req_marker = "*" if inp.get("required", False) else ""
        unit = inp.get("unit")
        unit_str = f" ({unit})" if unit else ""

        line = f"  - {inp_id}{req_marker}: {label}{unit_str} [{kind}]"
        options = inp.get("options")
        if options:
            line += " one of " + ", ".join(o["value"] for o in options)
        if "min" in inp:
            line += f" min={inp['min']:g}"
        if "max" in inp:
            line += f" max={inp['max']:g}"
        if inp.get("analyte"):
            line += f" [units: conventional|si, analyte {inp['analyte']}]"
        lines.append(line)

    if calc_info.clinical_pearls:
        lines.append("")
        lines.append("Clinical pearls:")
        lines.extend(f"  - {pearl}" for pearl in calc_info.clinical_pearls)

    if calc_info.references:
        lines.append("")
        lines.append("References:")
        lines.extend(f"  - {ref}" for ref in calc_info.references)

    return "\n".join(lines)
