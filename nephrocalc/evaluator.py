"""
Derived metric evaluator.

``Evaluator.evaluate`` runs one EvaluationRequest through four stages:

1. validate: required fields, numeric parsing, select options, booleans
2. normalize: convert unit-bearing inputs to the unit the formula expects
3. run: call the calculator's registered formula runner
4. report: round half-up to the definition's precision, interpret, and attach
   any clinical recommendation for the result band

Validation and unit errors abort before any formula runs. Nothing is
returned on failure.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from nephrocalc import formulas, recommendations, units
from nephrocalc.config import Settings, get_settings
from nephrocalc.errors import (
    InvalidInput,
    MissingRequiredField,
    UnsupportedUnitConversion,
)
from nephrocalc.models import (
    CalculatorDefinition,
    EvaluationRequest,
    EvaluationResult,
    InputKind,
    InputSpec,
    Notice,
)
from nephrocalc.registry import REGISTRY, Registry

logger = logging.getLogger(__name__)

_TRUE_WORDS = ("true", "yes", "y", "1", "on")
_FALSE_WORDS = ("false", "no", "n", "0", "off")


# ── Input parsing ────────────────────────────────────────────────────────────

def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def parse_number(field_id: str, raw: Any) -> float:
    """Parse a finite float from a number or numeric string."""
    if isinstance(raw, bool):
        raise InvalidInput(field_id, "expected a number, got a boolean")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip())
        except ValueError:
            raise InvalidInput(field_id, f"not a number: {raw!r}") from None
    if not math.isfinite(value):
        raise InvalidInput(field_id, "must be a finite number")
    return value


def parse_flag(field_id: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
    raise InvalidInput(field_id, f"expected yes/no, got {raw!r}")


def parse_option(spec: InputSpec, raw: Any) -> str:
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    text = str(raw).strip()
    values = spec.option_values
    if text in values:
        return text
    # "female" -> "F" style matches go through labels as well
    folded = text.lower()
    for option in spec.options:
        if folded in (option.value.lower(), option.label.lower()):
            return option.value
    raise InvalidInput(spec.id, f"must be one of {', '.join(values)}")


# ── Evaluator ────────────────────────────────────────────────────────────────

class Evaluator:
    """Validates, normalizes and evaluates calculator requests."""

    def __init__(self, registry: Optional[Registry] = None, settings: Optional[Settings] = None):
        self.registry = registry if registry is not None else REGISTRY
        self.settings = settings if settings is not None else get_settings()

    def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        definition = self.registry.require(request.calculator_id)
        notices: List[Notice] = []

        values = self.validate(definition, dict(request.values))
        values = self.normalize(definition, values, dict(request.units), notices)
        self.check_bounds(definition, values)

        runner = self.registry.runner_for(definition.id)
        try:
            outcome = runner(values)
        except (ArithmeticError, ValueError) as e:
            logger.warning(f"{definition.id}: formula failed on validated inputs: {e}")
            raise InvalidInput(definition.id, f"formula is undefined for these inputs ({e})") from e
        outputs = dict(outcome["outputs"])
        raw_value = outputs.pop("result")
        try:
            raw_value = float(raw_value)
        except (TypeError, ValueError):
            raise InvalidInput(definition.id, f"formula returned a non-numeric result: {raw_value!r}") from None
        if not math.isfinite(raw_value):
            raise InvalidInput(definition.id, "formula returned a non-finite result")

        value = formulas.round_half_up(raw_value, definition.precision)
        interpretation = definition.interpretation(value, values)
        logger.debug(f"{definition.id} = {value} {definition.result_unit}")

        for message in outcome.get("warnings", []):
            notices.append(Notice(code="formula_warning", message=message))

        return EvaluationResult(
            calculator_id=definition.id,
            value=value,
            raw_value=raw_value,
            interpretation=interpretation,
            unit=definition.result_unit,
            result_label=definition.result_label,
            warnings=notices,
            details=outputs,
            audit_trace=outcome.get("audit_trace", {}),
            recommendation=recommendations.recommend(definition.id, value),
        )

    # ── Validation ──────────────────────────────────────────────────────────

    def validate(self, definition: CalculatorDefinition, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Parse every declared input; unknown keys are dropped."""
        values: Dict[str, Any] = {}
        for spec in definition.inputs:
            item = raw.get(spec.id)
            if _is_blank(item):
                if spec.required:
                    logger.warning(f"{definition.id}: missing {spec.id}")
                    raise MissingRequiredField(spec.id)
                values[spec.id] = spec.default
                continue
            if spec.kind is InputKind.BOOLEAN:
                values[spec.id] = parse_flag(spec.id, item)
            elif spec.kind in (InputKind.SINGLE_SELECT, InputKind.RADIO):
                values[spec.id] = parse_option(spec, item)
            else:
                values[spec.id] = parse_number(spec.id, item)
        return values

    # ── Unit normalization ──────────────────────────────────────────────────

    def normalize(self, definition: CalculatorDefinition, values: Dict[str, Any],
                  unit_flags: Mapping[str, str], notices: List[Notice]) -> Dict[str, Any]:
        """Convert flagged inputs into the unit each InputSpec declares.

        Inputs without a flag are taken to be in the declared unit already.
        """
        for spec in definition.inputs:
            flag = unit_flags.get(spec.id)
            value = values.get(spec.id)
            if flag is None or value is None or spec.kind is not InputKind.NUMERIC:
                continue
            try:
                values[spec.id] = self._convert(spec, value, flag, notices)
            except UnsupportedUnitConversion as exc:
                if self.settings.strict_units:
                    logger.warning(f"{definition.id}.{spec.id}: {exc}")
                    raise
                logger.warning(f"{definition.id}.{spec.id}: {exc}; using the value unchanged")
                notices.append(Notice(code="unit_passthrough", message=str(exc), field=spec.id))
        return values

    def _convert(self, spec: InputSpec, value: float, flag: str, notices: List[Notice]) -> float:
        if spec.analyte is not None:
            return units.convert(value, spec.analyte, flag, spec.unit)
        # Unit-less specs only accept their own unit, or a literal pair the shim can place
        text = str(flag).strip()
        if spec.unit is None or text.lower() == units.UnitSystem.CONVENTIONAL.value or text == spec.unit:
            return value
        analyte, ambiguity = units.guess_analyte(value, text, spec.unit)
        if analyte is None:
            raise UnsupportedUnitConversion(text, spec.unit)
        if ambiguity:
            logger.warning(ambiguity)
            notices.append(Notice(code="ambiguous_unit_inference", message=ambiguity, field=spec.id))
        return units.convert(value, analyte, text, spec.unit)

    # ── Bounds ──────────────────────────────────────────────────────────────

    def check_bounds(self, definition: CalculatorDefinition, values: Mapping[str, Any]) -> None:
        if not self.settings.enforce_bounds:
            return
        for spec in definition.inputs:
            value = values.get(spec.id)
            if spec.kind is not InputKind.NUMERIC or value is None:
                continue
            if spec.min is not None and value < spec.min:
                raise InvalidInput(spec.id, f"must be at least {spec.min:g}")
            if spec.max is not None and value > spec.max:
                raise InvalidInput(spec.id, f"must be at most {spec.max:g}")


_DEFAULT: Optional[Evaluator] = None


def default_evaluator() -> Evaluator:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = Evaluator()
    return _DEFAULT


def evaluate(calculator_id: str, values: Mapping[str, Any],
             unit_flags: Optional[Mapping[str, str]] = None) -> EvaluationResult:
    """Convenience wrapper over the default evaluator."""
    request = EvaluationRequest(calculator_id=calculator_id, values=dict(values), units=dict(unit_flags or {}))
    return default_evaluator().evaluate(request)


# ── eGFR equation comparison ─────────────────────────────────────────────────

def compare_egfr(creatinine: float, age: float, sex: str, race: str = "Other",
                 unit: str = "conventional") -> List[Dict[str, Any]]:
    """Creatinine-based eGFR equations side by side, each with its CKD stage text."""
    creatinine = units.convert(parse_number("creatinine", creatinine), "creatinine", unit, "mg/dL")
    age = parse_number("age", age)
    if creatinine <= 0:
        raise InvalidInput("creatinine", "must be positive")
    if age <= 0:
        raise InvalidInput("age", "must be positive")
    stage = REGISTRY.require("ckd-epi-creatinine").interpretation
    rows = []
    for row in formulas.compare_egfr(creatinine, age, sex, black=str(race).lower() == "black"):
        if row["value"] is None:
            rows.append({**row, "interpretation": None})
            continue
        value = formulas.round_half_up(row["value"], 0)
        rows.append({**row, "value": value, "interpretation": stage(value)})
    return rows


__all__ = [
    "Evaluator",
    "compare_egfr",
    "default_evaluator",
    "evaluate",
    "parse_flag",
    "parse_number",
    "parse_option",
]
