"""Error taxonomy for calculator evaluation and unit normalization."""

from __future__ import annotations

from typing import Optional


class CalculatorError(Exception):
    """Base class for every error raised by the calculator core."""

    code = "calculator_error"

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class UnknownCalculator(CalculatorError):
    code = "unknown_calculator"

    def __init__(self, calc_id: str):
        self.calc_id = calc_id
        super().__init__(f"Unknown calculator: {calc_id}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "calc_id": self.calc_id}


class MissingRequiredField(CalculatorError):
    """A required input has no value."""

    code = "missing_required_field"

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__(f"Missing required field: {field_id}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field_id}


class InvalidInput(CalculatorError):
    """A value is non-numeric, non-finite, out of bounds or outside a formula's domain."""

    code = "invalid_input"

    def __init__(self, field_id: str, reason: str):
        self.field_id = field_id
        self.reason = reason
        super().__init__(f"Invalid input for {field_id}: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field_id, "reason": self.reason}


class UnsupportedUnitConversion(CalculatorError):
    code = "unsupported_unit_conversion"

    def __init__(self, from_unit: str, to_unit: str, analyte: Optional[str] = None):
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.analyte = analyte
        scope = f" for {analyte}" if analyte else ""
        super().__init__(f"No conversion from {from_unit!r} to {to_unit!r}{scope}")

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "analyte": self.analyte,
        }


class AmbiguousUnitInference(UserWarning):
    """Emitted when a conversion had to guess the analyte from the value's magnitude."""


class UnknownAnalyte(UnsupportedUnitConversion):
    code = "unknown_analyte"

    def __init__(self, analyte: str):
        CalculatorError.__init__(self, f"Unknown analyte: {analyte}")
        self.from_unit = ""
        self.to_unit = ""
        self.analyte = analyte
