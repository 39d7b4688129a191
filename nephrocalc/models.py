"""Pydantic models for nephrocalc."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nephrocalc.interpretation import InterpretationRule


class UnitSystem(str, Enum):
    """The two laboratory unit systems."""

    CONVENTIONAL = "conventional"
    SI = "si"


class InputKind(str, Enum):
    NUMERIC = "numeric"
    SINGLE_SELECT = "single-select"
    BOOLEAN = "boolean"
    RADIO = "radio"


class AnalyteConversion(BaseModel):
    """Conversion factor pair and display precision for one measurable quantity."""

    model_config = ConfigDict(frozen=True)

    name: str
    conventional_unit: str
    si_unit: str
    to_si_factor: float
    to_conventional_factor: float
    conventional_decimals: int = 1
    si_decimals: int = 1
    # Extra literal units, each mapped to the factor into the conventional unit
    alternate_units: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_factor_pair(self) -> "AnalyteConversion":
        product = self.to_si_factor * self.to_conventional_factor
        if abs(product - 1.0) > 1e-9:
            raise ValueError(
                f"{self.name}: to_si_factor x to_conventional_factor = {product}, expected 1"
            )
        return self

    @property
    def units(self) -> List[str]:
        """Every literal unit this analyte can be expressed in."""
        out = [self.conventional_unit]
        for unit in [self.si_unit, *self.alternate_units]:
            if unit not in out:
                out.append(unit)
        return out

    def unit_for(self, system: UnitSystem) -> str:
        if UnitSystem(system) is UnitSystem.SI:
            return self.si_unit
        return self.conventional_unit

    def decimals_for(self, system: UnitSystem) -> int:
        if UnitSystem(system) is UnitSystem.SI:
            return self.si_decimals
        return self.conventional_decimals

    def system_of(self, unit: str) -> Optional[UnitSystem]:
        """Which system a literal unit belongs to, or None for alternate units."""
        if unit == self.conventional_unit:
            return UnitSystem.CONVENTIONAL
        if unit == self.si_unit:
            return UnitSystem.SI
        return None

    def factor_to_conventional(self, unit: str) -> Optional[float]:
        if unit == self.conventional_unit:
            return 1.0
        if unit == self.si_unit:
            return self.to_conventional_factor
        return self.alternate_units.get(unit)


class InputOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class InputSpec(BaseModel):
    """One field of a calculator form."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    kind: InputKind = InputKind.NUMERIC
    unit: Optional[str] = None  # Canonical unit the formula expects
    analyte: Optional[str] = None  # AnalyteConversion key for unit-bearing inputs
    options: Tuple[InputOption, ...] = ()
    required: bool = True
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    default: Any = None
    placeholder: Optional[str] = None

    @property
    def option_values(self) -> List[str]:
        return [o.value for o in self.options]

    @property
    def has_unit_toggle(self) -> bool:
        return self.analyte is not None

    def describe(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CalculatorDefinition(BaseModel):
    """Static description of one clinical calculator."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    name: str
    description: str
    category: str
    inputs: Tuple[InputSpec, ...]
    result_label: str
    result_unit: str
    interpretation: InterpretationRule = Field(exclude=True)
    precision: int = 1
    clinical_pearls: Tuple[str, ...] = ()
    references: Tuple[str, ...] = ()
    reference_ranges: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_inputs(self) -> "CalculatorDefinition":
        seen = set()
        for spec in self.inputs:
            if spec.id in seen:
                raise ValueError(f"{self.id}: duplicate input id {spec.id!r}")
            seen.add(spec.id)
        return self

    def input(self, input_id: str) -> Optional[InputSpec]:
        for spec in self.inputs:
            if spec.id == input_id:
                return spec
        return None

    @property
    def input_count(self) -> int:
        return len(self.inputs)

    def summary(self) -> Dict[str, Any]:
        """Enumerable metadata for catalog browsing."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "input_count": self.input_count,
        }


class EvaluationRequest(BaseModel):
    """A single evaluation call: raw values plus per-field unit selectors."""

    calculator_id: str
    values: Dict[str, Any] = Field(default_factory=dict)
    # "conventional", "si", or a literal unit string known to the input's analyte
    units: Dict[str, str] = Field(default_factory=dict)


class Notice(BaseModel):
    """Non-fatal condition surfaced alongside a result."""

    code: str
    message: str
    field: Optional[str] = None


class Urgency(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENT = "emergent"


class Recommendation(BaseModel):
    """Clinical follow-up for one result band of one calculator."""

    model_config = ConfigDict(frozen=True)

    band: str
    condition: str
    recommendation: str
    action_items: Tuple[str, ...]
    urgency: Urgency = Urgency.ROUTINE
    references: Tuple[str, ...] = ()


class EvaluationResult(BaseModel):
    calculator_id: str
    value: float
    raw_value: float
    interpretation: str
    unit: str
    result_label: str = ""
    warnings: List[Notice] = []
    details: Dict[str, Any] = {}
    audit_trace: Dict[str, Any] = {}
    recommendation: Optional[Recommendation] = None


class CalcInfoResult(BaseModel):
    """Result from calc_info tool."""

    calc_id: str
    title: str
    description: Optional[str] = None
    category: str
    result_label: str
    result_unit: str
    inputs: List[Dict[str, Any]]
    clinical_pearls: List[str] = []
    references: List[str] = []


class ExecuteCalcResult(BaseModel):
    """Result from execute_calc tool."""

    success: bool
    outputs: Optional[Dict[str, Any]] = None
    errors: List[Any] = []  # Strings or error dicts
    warnings: List[Any] = []
    audit_trace: Optional[Dict[str, Any]] = None

    def error_messages(self) -> List[str]:
        """Get error messages as strings."""
        msgs = []
        for e in self.errors:
            if isinstance(e, str):
                msgs.append(e)
            elif isinstance(e, dict):
                msgs.append(e.get("message", str(e)))
            else:
                msgs.append(str(e))
        return msgs
