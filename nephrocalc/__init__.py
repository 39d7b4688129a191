"""Nephrology clinical calculators with explicit unit normalization."""

from nephrocalc.errors import (
    AmbiguousUnitInference,
    CalculatorError,
    InvalidInput,
    MissingRequiredField,
    UnknownAnalyte,
    UnknownCalculator,
    UnsupportedUnitConversion,
)
from nephrocalc.evaluator import Evaluator, compare_egfr, evaluate
from nephrocalc.models import (
    CalculatorDefinition,
    EvaluationRequest,
    EvaluationResult,
    InputSpec,
    Recommendation,
    UnitSystem,
)
from nephrocalc.recommendations import recommend
from nephrocalc.registry import REGISTRY, Registry

__version__ = "0.1.0"

__all__ = [
    "AmbiguousUnitInference",
    "CalculatorDefinition",
    "CalculatorError",
    "EvaluationRequest",
    "EvaluationResult",
    "Evaluator",
    "InputSpec",
    "InvalidInput",
    "MissingRequiredField",
    "Recommendation",
    "REGISTRY",
    "Registry",
    "UnitSystem",
    "UnknownAnalyte",
    "UnknownCalculator",
    "UnsupportedUnitConversion",
    "compare_egfr",
    "evaluate",
    "recommend",
]
