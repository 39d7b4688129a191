"""
Canonical unit model and unit normalization.

Every unit-bearing value is converted through an explicit analyte key. The
analyte's AnalyteConversion knows its conventional unit, its SI unit, the
factor pair between them, and any alternate literal units (expressed as a
factor into the conventional unit).

``convert_value`` is kept for callers that only have literal unit strings.
It delegates to the analyte-keyed path when an analyte is given and
otherwise falls back to guessing the analyte from the magnitude of the
value, which is reported as an ``AmbiguousUnitInference`` warning.
"""

from __future__ import annotations

import logging
import math
import warnings
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from nephrocalc.errors import AmbiguousUnitInference, UnknownAnalyte, UnsupportedUnitConversion
from nephrocalc.models import AnalyteConversion, UnitSystem

logger = logging.getLogger(__name__)

SystemLike = Union[UnitSystem, str]


def _analyte(name: str, conventional: str, si: str, to_si: float,
             conv_decimals: int = 1, si_decimals: int = 1,
             alternates: Optional[Dict[str, float]] = None) -> AnalyteConversion:
    return AnalyteConversion(
        name=name,
        conventional_unit=conventional,
        si_unit=si,
        to_si_factor=to_si,
        to_conventional_factor=1 / to_si,
        conventional_decimals=conv_decimals,
        si_decimals=si_decimals,
        alternate_units=alternates or {},
    )


# ── Conversion table ────────────────────────────────────────────────────────

# BUN/urea selector labels, each mapped to the factor into BUN mg/dL
BUN_MG_DL = "BUN (mg/dL)"
BUN_MMOL_L = "BUN (mmol/L)"
UREA_MG_DL = "Urea (mg/dL)"
UREA_MMOL_L = "Urea (mmol/L)"

_BUN_SELECTOR: Dict[str, float] = {
    BUN_MG_DL: 1.0,
    BUN_MMOL_L: 1 / 0.357,
    UREA_MG_DL: 0.467,
    UREA_MMOL_L: 1 / 0.357,
}

_TABLE: Tuple[AnalyteConversion, ...] = (
    _analyte("creatinine", "mg/dL", "μmol/L", 88.4, 2, 0),
    _analyte("bun", "mg/dL", "mmol/L", 0.357, 1, 1, dict(_BUN_SELECTOR)),
    _analyte("urea", "mg/dL", "mmol/L", 0.166, 1, 1),
    _analyte("glucose", "mg/dL", "mmol/L", 0.0555, 0, 1),
    _analyte("albumin", "g/dL", "g/L", 10, 1, 0),
    _analyte("calcium", "mg/dL", "mmol/L", 0.25, 1, 2),
    _analyte("phosphate", "mg/dL", "mmol/L", 0.323, 1, 2),
    _analyte("electrolyte", "mEq/L", "mmol/L", 1, 0, 0),
    _analyte("cholesterol", "mg/dL", "mmol/L", 0.0259, 0, 2),
    _analyte("triglycerides", "mg/dL", "mmol/L", 0.0113, 0, 2),
    _analyte("hemoglobin", "g/dL", "g/L", 10, 1, 0),
    _analyte("height", "in", "cm", 2.54, 1, 0),
    _analyte("weight", "lbs", "kg", 0.4536, 0, 1),
    _analyte("urine_albumin", "mg", "μg", 1000, 2, 0),
    _analyte("urine_creatinine", "g", "mg", 1000, 3, 0),
    _analyte("urine_protein", "g", "mg", 1000, 3, 0),
    _analyte("osmolality", "mOsm/kg", "mOsm/kg", 1, 0, 0),
    _analyte("cystatin_c", "mg/L", "μmol/L", 0.0749, 2, 3),
    _analyte("tacrolimus", "ng/mL", "ng/mL", 1, 1, 1),
    _analyte("ethanol", "mg/dL", "mmol/L", 0.217, 0, 1),
    _analyte("bilirubin", "mg/dL", "μmol/L", 17.1, 1, 0),
    _analyte("acr", "mg/g", "mg/mmol", 1 / 8.84, 1, 1, {"mg/mg": 1000.0}),
    _analyte("pcr", "g/g", "mg/mmol", 113, 2, 0, {"mg/g": 0.001, "mg/mg": 1.0}),
    _analyte("protein_ratio", "mg/mg", "mg/mmol", 113.12, 3, 1, {"mg/g": 0.001, "g/g": 1.0}),
    _analyte("urine_protein_conc", "mg/dL", "g/L", 0.01, 1, 2, {"mg/L": 0.1}),
    _analyte("urine_creatinine_conc", "mg/dL", "mmol/L", 1 / 11.312, 1, 2),
)

CONVERSIONS: Mapping[str, AnalyteConversion] = MappingProxyType({a.name: a for a in _TABLE})


def get_analyte(analyte: str) -> AnalyteConversion:
    try:
        return CONVERSIONS[analyte]
    except KeyError:
        raise UnknownAnalyte(analyte) from None


def _system(system: SystemLike) -> UnitSystem:
    if isinstance(system, UnitSystem):
        return system
    return UnitSystem(str(system).strip().lower())


# ── Factor-pair operations ──────────────────────────────────────────────────

def to_si(value: float, analyte: str) -> float:
    return value * get_analyte(analyte).to_si_factor


def to_conventional(value: float, analyte: str) -> float:
    return value * get_analyte(analyte).to_conventional_factor


def normalize_to_si(value: float, analyte: str, current_system: SystemLike) -> float:
    """Express ``value`` in SI units; identity when it already is."""
    if _system(current_system) is UnitSystem.SI:
        return value
    return to_si(value, analyte)


def normalize_to_conventional(value: float, analyte: str, current_system: SystemLike) -> float:
    """Express ``value`` in conventional units; identity when it already is."""
    if _system(current_system) is UnitSystem.CONVENTIONAL:
        return value
    return to_conventional(value, analyte)


# ── Analyte-keyed conversion ────────────────────────────────────────────────

def resolve_unit(analyte: str, flag_or_unit: SystemLike) -> str:
    """Map "conventional"/"si" or a literal unit to the analyte's literal unit.

    Raises:
        UnsupportedUnitConversion: if the unit is unknown for the analyte.
    """
    conv = get_analyte(analyte)
    if isinstance(flag_or_unit, UnitSystem):
        return conv.unit_for(flag_or_unit)
    text = str(flag_or_unit).strip()
    if text.lower() in (UnitSystem.CONVENTIONAL.value, UnitSystem.SI.value):
        return conv.unit_for(UnitSystem(text.lower()))
    if text in conv.units:
        return text
    # Case-insensitive match against known literals ("umol/l", "MG/DL")
    folded = text.lower().replace("umol", "μmol").replace("µ", "μ")
    for unit in conv.units:
        if unit.lower() == folded:
            return unit
    raise UnsupportedUnitConversion(text, conv.conventional_unit, analyte)


def convert(value: float, analyte: str, from_unit: str, to_unit: str) -> float:
    """Convert between any two units known to ``analyte``.

    Raises:
        UnsupportedUnitConversion: if either unit is unknown for the analyte.
    """
    conv = get_analyte(analyte)
    src = resolve_unit(analyte, from_unit)
    dst = resolve_unit(analyte, to_unit)
    if src == dst:
        return value
    to_conv = conv.factor_to_conventional(src)
    from_conv = conv.factor_to_conventional(dst)
    if to_conv is None or from_conv is None:
        raise UnsupportedUnitConversion(from_unit, to_unit, analyte)
    if dst == conv.si_unit:
        return value * to_conv * conv.to_si_factor
    return value * to_conv / from_conv


# ── Literal-unit compatibility shim ─────────────────────────────────────────

# (from, to) -> ordered (analyte, upper magnitude bound or None)
_MAGNITUDE_RULES: Dict[Tuple[str, str], List[Tuple[str, Optional[float]]]] = {
    ("mg/dL", "μmol/L"): [("creatinine", 50)],
    ("μmol/L", "mg/dL"): [("creatinine", None)],
    ("mg/dL", "mmol/L"): [("bun", 100), ("urea", 100), ("calcium", 20), ("phosphate", 20), ("glucose", 500)],
    ("mmol/L", "mg/dL"): [("bun", 30), ("urea", 30), ("calcium", None)],
}


def infer_analyte(value: float, from_unit: str, to_unit: str) -> Optional[str]:
    """Guess which analyte a literal unit pair refers to from the value's magnitude."""
    rules = _MAGNITUDE_RULES.get((_fold(from_unit), _fold(to_unit)), [])
    for analyte, bound in rules:
        if bound is None or value < bound:
            return analyte
    return None


def _fold(unit: str) -> str:
    text = unit.strip().replace("umol", "μmol").replace("µ", "μ")
    for known in ("mg/dL", "μmol/L", "mmol/L"):
        if text.lower() == known.lower():
            return known
    return text


def _candidates(from_unit: str, to_unit: str) -> List[str]:
    src, dst = _fold(from_unit), _fold(to_unit)
    out = []
    for conv in CONVERSIONS.values():
        units = conv.units
        if src in units and dst in units:
            out.append(conv.name)
    return out


def guess_analyte(value: float, from_unit: str, to_unit: str) -> Tuple[Optional[str], Optional[str]]:
    """Pick the analyte a literal unit pair converts for.

    Returns ``(analyte, ambiguity)`` where ``ambiguity`` is a message when the
    choice came from the magnitude heuristic, else None. ``analyte`` is None
    when no rule applies.
    """
    candidates = _candidates(from_unit, to_unit)
    if not candidates:
        return None, None
    factors = {round(convert(1.0, name, _fold(from_unit), _fold(to_unit)), 12) for name in candidates}
    if len(factors) == 1:
        # Every candidate converts identically, e.g. g/dL -> g/L
        return candidates[0], None
    chosen = infer_analyte(value, from_unit, to_unit)
    if chosen is None:
        return None, None
    return chosen, (f"Unit pair {from_unit} -> {to_unit} is shared by {', '.join(candidates)}; "
                    f"treating {value} as {chosen} from its magnitude")


def convert_value(value: float, from_unit: str, to_unit: str,
                  analyte: Optional[str] = None, strict: bool = False) -> float:
    """Convert by literal unit strings.

    With ``analyte`` this is ``convert``. Without it the analyte is inferred
    from the unit pair, using the value's magnitude when several analytes
    share the pair. Unresolvable conversions return ``value`` unchanged with a
    logged warning, or raise when ``strict`` is set.
    """
    if analyte is not None:
        return convert(value, analyte, from_unit, to_unit)
    if _fold(from_unit) == _fold(to_unit):
        return value

    chosen, ambiguity = guess_analyte(value, from_unit, to_unit)
    if ambiguity:
        logger.warning(ambiguity)
        warnings.warn(ambiguity, AmbiguousUnitInference, stacklevel=2)

    if chosen is None:
        if strict:
            raise UnsupportedUnitConversion(from_unit, to_unit)
        logger.warning(f"No conversion rule for {value} {from_unit} -> {to_unit}; returning value unchanged")
        return value
    return convert(value, chosen, _fold(from_unit), _fold(to_unit))


def to_bun_mg_dl(value: float, unit: str = BUN_MG_DL) -> float:
    """Normalize a BUN or urea reading to BUN in mg/dL."""
    return convert(value, "bun", unit, "mg/dL")


# ── Display helpers ─────────────────────────────────────────────────────────

def unit_label(analyte: str, system: SystemLike) -> str:
    return get_analyte(analyte).unit_for(_system(system))


def format_value(value: float, analyte: str, system: SystemLike) -> str:
    decimals = get_analyte(analyte).decimals_for(_system(system))
    if not math.isfinite(value):
        return str(value)
    return f"{value:.{decimals}f}"


def convert_and_format(value: float, analyte: str, from_system: SystemLike, to_system: SystemLike) -> str:
    src, dst = _system(from_system), _system(to_system)
    if src is not dst:
        value = to_si(value, analyte) if dst is UnitSystem.SI else to_conventional(value, analyte)
    return format_value(value, analyte, dst)


def unit_options(analyte: str) -> List[Dict[str, str]]:
    """Selectable units for an analyte input, conventional and SI first."""
    conv = get_analyte(analyte)
    options = [
        {"value": UnitSystem.CONVENTIONAL.value, "label": conv.conventional_unit},
        {"value": UnitSystem.SI.value, "label": conv.si_unit},
    ]
    for unit in conv.alternate_units:
        if unit not in (conv.conventional_unit, conv.si_unit):
            options.append({"value": unit, "label": unit})
    return options
