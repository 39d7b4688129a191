"""
Calculator definitions: metadata, inputs, interpretation bands and references.

Unit-bearing inputs carry an ``analyte`` key and the ``unit`` the formula
expects; callers choose the unit they entered through the request's unit
flags.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

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
from nephrocalc.models import CalculatorDefinition, InputKind, InputOption, InputSpec

# ── Categories ──────────────────────────────────────────────────────────────

KIDNEY_FUNCTION = "Kidney Function & CKD Risk"
AKI_WORKUP = "Acute Kidney Injury (AKI) Workup"
ELECTROLYTES = "Electrolytes & Acid-Base"
PROTEINURIA = "Proteinuria & Glomerular Disease"
DIALYSIS = "Dialysis Adequacy"
TRANSPLANT = "Transplantation"
CARDIOVASCULAR = "Cardiovascular Risk"
ANTHROPOMETRIC = "Anthropometric & Body Composition"
CKD_MBD = "CKD-Mineral Bone Disease"
SYSTEMIC = "Systemic Diseases & Scores"
BONE = "Bone & Fracture Risk"
CRITICAL_CARE = "Critical Care"

CATEGORIES: Tuple[str, ...] = (
    KIDNEY_FUNCTION, AKI_WORKUP, ELECTROLYTES, PROTEINURIA, DIALYSIS, TRANSPLANT,
    CARDIOVASCULAR, ANTHROPOMETRIC, CKD_MBD, SYSTEMIC, BONE, CRITICAL_CARE,
)

EGFR_UNIT = "mL/min/1.73m²"


# ── Input builders ──────────────────────────────────────────────────────────

def _num(input_id: str, label: str, unit: Optional[str] = None, analyte: Optional[str] = None,
         placeholder: Optional[str] = None, required: bool = True, **extra: Any) -> InputSpec:
    return InputSpec(id=input_id, label=label, unit=unit, analyte=analyte,
                     placeholder=placeholder, required=required, **extra)


def _options(pairs: Sequence[Tuple[str, str]]) -> Tuple[InputOption, ...]:
    return tuple(InputOption(value=value, label=label) for value, label in pairs)


def _select(input_id: str, label: str, pairs: Sequence[Tuple[str, str]], required: bool = True,
            default: Optional[str] = None, kind: InputKind = InputKind.SINGLE_SELECT) -> InputSpec:
    return InputSpec(id=input_id, label=label, kind=kind, options=_options(pairs),
                     required=required, default=default)


def _flag(input_id: str, label: str) -> InputSpec:
    return InputSpec(id=input_id, label=label, kind=InputKind.BOOLEAN, required=False, default=False)


def _grade(input_id: str, label: str, top: int = 3) -> InputSpec:
    """Semi-quantitative 0..top lesion score."""
    return InputSpec(id=input_id, label=label, min=0, max=top, step=1, required=False, default=0)


def _sex() -> InputSpec:
    return _select("sex", "Sex", [("M", "Male"), ("F", "Female")])


def _yes_no(input_id: str, label: str) -> InputSpec:
    return _select(input_id, label, [("no", "No"), ("yes", "Yes")], required=False, default="no")


def _creatinine(input_id: str = "creatinine", label: str = "Serum Creatinine",
                placeholder: str = "1.0", **extra: Any) -> InputSpec:
    return _num(input_id, label, "mg/dL", "creatinine", placeholder, **extra)


def _electrolyte(input_id: str, label: str, placeholder: str, **extra: Any) -> InputSpec:
    return _num(input_id, label, "mEq/L", "electrolyte", placeholder, **extra)


def _bun(input_id: str, label: str, placeholder: str, **extra: Any) -> InputSpec:
    return _num(input_id, label, "mg/dL", "bun", placeholder, **extra)


def _age(label: str = "Age", placeholder: str = "45", **extra: Any) -> InputSpec:
    return _num("age", label, "years", placeholder=placeholder, **extra)


def _weight(input_id: str = "weight", label: str = "Weight", placeholder: str = "70") -> InputSpec:
    return _num(input_id, label, "kg", "weight", placeholder, min=0)


def _height(input_id: str = "height", label: str = "Height", placeholder: str = "170") -> InputSpec:
    return _num(input_id, label, "cm", "height", placeholder, min=0)


def _ranges(*rows: Tuple[str, Optional[float], Optional[float], str]) -> Dict[str, str]:
    out = {}
    for label, low, high, unit in rows:
        if low is not None and high is not None:
            out[label] = f"{low:g}-{high:g} {unit}"
        elif low is not None:
            out[label] = f">= {low:g} {unit}"
        else:
            out[label] = f"<= {high:g} {unit}"
    return out


def _ckd_stage_bands(stage5: str) -> List:
    return [
        at_least(90, "Normal kidney function (CKD Stage 1)"),
        at_least(60, "Mild decrease in kidney function (CKD Stage 2)"),
        at_least(45, "Mild to moderate decrease (CKD Stage 3a)"),
        at_least(30, "Moderate to severe decrease (CKD Stage 3b)"),
        at_least(15, "Severe decrease in kidney function (CKD Stage 4)"),
        otherwise(stage5),
    ]


_CKD_RANGES = _ranges(
    ("Normal (Stage 1)", 90, None, EGFR_UNIT),
    ("Mild decrease (Stage 2)", 60, 89, EGFR_UNIT),
    ("Mild-moderate (Stage 3a)", 45, 59, EGFR_UNIT),
    ("Moderate-severe (Stage 3b)", 30, 44, EGFR_UNIT),
    ("Severe (Stage 4)", 15, 29, EGFR_UNIT),
    ("Kidney failure (Stage 5)", None, 14, EGFR_UNIT),
)


# ── Kidney function & CKD risk ──────────────────────────────────────────────

_KIDNEY_FUNCTION = [
    CalculatorDefinition(
        id="ckd-epi-creatinine",
        name="CKD-EPI Creatinine (2021)",
        description="Estimated GFR using serum creatinine (most commonly used)",
        category=KIDNEY_FUNCTION,
        inputs=(
            _creatinine(),
            _age(min=18, max=120),
            _sex(),
            _select("race", "Race", [("Black", "African American"), ("Other", "Other")],
                    required=False, default="Other"),
        ),
        result_label="eGFR",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            *_ckd_stage_bands("Kidney failure (CKD Stage 5) - Consider dialysis/transplant planning")
        ),
        reference_ranges=_CKD_RANGES,
        clinical_pearls=(
            "Most accurate creatinine-based eGFR equation",
            "The 2021 refit removes the race coefficient; race is accepted but not used",
            "Use for CKD staging and medication dosing",
            "Compare with cystatin C if creatinine unreliable",
        ),
        references=("Inker LA et al. N Engl J Med. 2021;385(19):1737-1749",),
    ),
    CalculatorDefinition(
        id="cockcroft-gault",
        name="Cockcroft-Gault Creatinine Clearance",
        description="Estimates creatinine clearance; still used for drug dosing",
        category=KIDNEY_FUNCTION,
        inputs=(_creatinine(), _age(), _weight(), _sex()),
        result_label="Creatinine Clearance",
        result_unit="mL/min",
        precision=0,
        interpretation=InterpretationRule(
            at_least(90, "Normal kidney function"),
            at_least(60, "Mild reduction"),
            at_least(30, "Moderate reduction"),
            otherwise("Severe reduction - adjust drug dosing"),
        ),
        reference_ranges=_ranges(
            ("Normal", 90, None, "mL/min"),
            ("Mild reduction", 60, 89, "mL/min"),
            ("Moderate reduction", 30, 59, "mL/min"),
            ("Severe reduction", None, 29, "mL/min"),
        ),
        clinical_pearls=(
            "Overestimates eGFR compared to CKD-EPI",
            "Still used for aminoglycoside and vancomycin dosing",
            "Less accurate in elderly and obese patients",
        ),
        references=("Cockcroft DW, Gault MH. Nephron. 1976;16(1):31-41",),
    ),
    CalculatorDefinition(
        id="schwartz-pediatric",
        name="Schwartz Pediatric eGFR",
        description="Estimates GFR in children and adolescents",
        category=KIDNEY_FUNCTION,
        inputs=(_creatinine(placeholder="0.5"), _height(placeholder="140")),
        result_label="eGFR",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            at_least(90, "Normal kidney function"),
            at_least(60, "Mild decrease"),
            at_least(30, "Moderate decrease"),
            otherwise("Severe decrease - nephrologist referral needed"),
        ),
        clinical_pearls=(
            "Use in children and adolescents",
            "Height-dependent formula",
            "Updated versions available for different age groups",
        ),
        references=("Schwartz GJ et al. Kidney Int. 2009;76(2):159-166",),
    ),
    CalculatorDefinition(
        id="kinetic-egfr",
        name="Kinetic eGFR",
        description="Calculates GFR from urea kinetics during dialysis",
        category=KIDNEY_FUNCTION,
        inputs=(
            _bun("preBUN", "Pre-Dialysis BUN / Urea", "60"),
            _bun("postBUN", "Post-Dialysis BUN / Urea", "20"),
            _creatinine("preCreatinine", "Pre-Dialysis Creatinine", "8", required=False),
            _creatinine("postCreatinine", "Post-Dialysis Creatinine", "6", required=False),
            _weight(label="Body Weight"),
            _num("sessionTime", "Session Duration", "hours", placeholder="4"),
        ),
        result_label="Residual eGFR",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            at_least(2, "Significant residual kidney function - preserve it!"),
            above(0, "Minimal residual function"),
            otherwise("No residual kidney function"),
        ),
        clinical_pearls=(
            "Assesses residual kidney function in dialysis patients",
            "Preservation of RKF improves survival",
            "Protect RKF: avoid NSAIDs, maintain euvolemia",
        ),
        references=("KDIGO 2024 CKD Guideline",),
    ),
    CalculatorDefinition(
        id="ckd-epi-cystatin-c",
        name="CKD-EPI Creatinine-Cystatin C Combined",
        description="More accurate eGFR using both creatinine and cystatin C",
        category=KIDNEY_FUNCTION,
        inputs=(
            _creatinine(),
            _num("cystatinC", "Cystatin C", "mg/L", "cystatin_c", "0.8"),
            _age(),
            _sex(),
        ),
        result_label="eGFR",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            at_least(90, "Normal kidney function"),
            at_least(60, "Mild decrease"),
            at_least(30, "Moderate to severe decrease"),
            otherwise("Severe decrease - kidney failure"),
        ),
        clinical_pearls=(
            "Less biased than creatinine-only equation",
            "Useful in extremes of muscle mass (sarcopenia, athletes)",
            "Recommended when creatinine-based eGFR doesn't fit clinical picture",
        ),
        references=("Inker LA et al. N Engl J Med. 2021;385(19):1737-1749",),
    ),
    CalculatorDefinition(
        id="egfr-slope",
        name="Annual eGFR Decline (Slope)",
        description="Calculates rate of kidney function decline over time",
        category=KIDNEY_FUNCTION,
        inputs=(
            _num("eGFRBaseline", "Baseline eGFR", EGFR_UNIT, placeholder="60"),
            _num("eGFRFinal", "Final eGFR", EGFR_UNIT, placeholder="45"),
            _num("timeYears", "Time Period", "years", placeholder="2", min=0.5, max=20),
        ),
        result_label="eGFR Decline Rate",
        result_unit="mL/min/1.73m²/year",
        precision=2,
        interpretation=InterpretationRule(
            above(-1, "Normal aging rate"),
            above(-3, "Mild CKD progression"),
            above(-5, "Moderate CKD progression"),
            otherwise("Rapid progression - investigate for acute process or adjust treatment"),
        ),
        clinical_pearls=(
            "Normal aging: -0.5 to -1 mL/min/1.73m²/year",
            ">20% decline in 1 year suggests acute process",
            ">30% acute dip acceptable after RAAS inhibitor initiation",
        ),
        references=("KDIGO 2024 CKD Guideline, Practice Point 2.1.3",),
    ),
    CalculatorDefinition(
        id="kfre",
        name="Kidney Failure Risk Equation (KFRE)",
        description="Predicts 2 and 5-year probability of kidney failure",
        category=KIDNEY_FUNCTION,
        inputs=(
            _age(placeholder="55"),
            _sex(),
            _num("eGFR", "eGFR", EGFR_UNIT, placeholder="35"),
            _num("acr", "Albumin-Creatinine Ratio", "mg/g", "acr", "150"),
            _select("years", "Prediction Timeframe", [("2", "2-year risk"), ("5", "5-year risk")]),
        ),
        result_label="Kidney Failure Risk",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            below(3, "Low risk - routine follow-up"),
            below(5, "Borderline - consider nephrology referral"),
            below(20, "Moderate risk - nephrology referral recommended"),
            below(40, "High risk - intensive management"),
            otherwise("Very high risk - consider early transplant/dialysis planning"),
        ),
        clinical_pearls=(
            "Most validated CKD progression risk tool",
            "KDIGO 2024 recommends referral when 5-year risk ≥3-5%",
            "Risk >40% at 2 years = consider early transplant evaluation",
        ),
        references=("Tangri N et al. JAMA. 2016;315(2):164-174",),
    ),
]


# ── AKI workup ──────────────────────────────────────────────────────────────

_AKI_WORKUP = [
    CalculatorDefinition(
        id="fena",
        name="Fractional Excretion of Sodium (FENa)",
        description="Differentiates prerenal from intrinsic AKI",
        category=AKI_WORKUP,
        inputs=(
            _electrolyte("urineNa", "Urine Sodium", "20"),
            _creatinine("plasmaCr", "Plasma Creatinine", "2.0"),
            _electrolyte("plasmaNa", "Plasma Sodium", "140"),
            _creatinine("urineCr", "Urine Creatinine", "80"),
        ),
        result_label="FENa",
        result_unit="%",
        precision=2,
        interpretation=InterpretationRule(
            below(1, "Prerenal azotemia (volume depletion, heart failure, cirrhosis)"),
            at_most(2, "Indeterminate - consider clinical context"),
            otherwise("Intrinsic AKI (acute tubular necrosis most likely)"),
        ),
        reference_ranges=_ranges(
            ("Prerenal azotemia", None, 1, "%"),
            ("Intrinsic AKI", 1, None, "%"),
        ),
        clinical_pearls=(
            "FENa <1% suggests prerenal azotemia",
            "Unreliable in diuretic use, CKD, contrast nephropathy, pigment nephropathy",
            "Must interpret with clinical context (volume status, urine sediment)",
        ),
        references=("Steiner RW. Am J Med. 1984;77(4):699-702",),
    ),
    CalculatorDefinition(
        id="feurea",
        name="Fractional Excretion of Urea (FEUrea)",
        description="Alternative to FENa, more reliable with diuretic use",
        category=AKI_WORKUP,
        inputs=(
            _bun("urineUrea", "Urine Urea Nitrogen", "200"),
            _creatinine("plasmaCr", "Plasma Creatinine", "2.0"),
            _bun("plasmaUrea", "Plasma Urea Nitrogen", "40"),
            _creatinine("urineCr", "Urine Creatinine", "80"),
        ),
        result_label="FEUrea",
        result_unit="%",
        precision=2,
        interpretation=InterpretationRule(
            below(35, "Prerenal azotemia"),
            at_most(50, "Indeterminate"),
            otherwise("Intrinsic AKI (acute tubular necrosis)"),
        ),
        clinical_pearls=(
            "Superior to FENa in patients on diuretics",
            "Urea reabsorption unaffected by diuretics",
            "Limited added diagnostic value over FENa per recent meta-analysis",
        ),
        references=("Carvounis CP et al. Kidney Int. 2002;62(6):2223-2229",),
    ),
    CalculatorDefinition(
        id="anion-gap",
        name="Serum Anion Gap",
        description="First step in metabolic acidosis workup",
        category=AKI_WORKUP,
        inputs=(
            _electrolyte("sodium", "Sodium", "140"),
            _electrolyte("chloride", "Chloride", "105"),
            _electrolyte("bicarbonate", "Bicarbonate", "20"),
        ),
        result_label="Anion Gap",
        result_unit="mEq/L",
        precision=1,
        interpretation=InterpretationRule(
            at_most(12, "Normal anion gap (NAGMA) - think HARDUPS"),
            at_most(16, "Borderline high"),
            otherwise("High anion gap (HAGMA) - think GOLDMARK"),
        ),
        reference_ranges=_ranges(
            ("Normal", 8, 12, "mEq/L"),
            ("Borderline high", 13, 16, "mEq/L"),
            ("High (HAGMA)", 17, None, "mEq/L"),
        ),
        clinical_pearls=(
            "Normal AG = 8-12 mEq/L (varies by lab)",
            "Correct for hypoalbuminemia: Expected AG = 2.5 × Albumin (g/dL)",
            "Essential in DKA, lactic acidosis, toxic ingestions",
        ),
        references=("Kraut JA, Madias NE. Clin J Am Soc Nephrol. 2007;2(1):162-174",),
    ),
    CalculatorDefinition(
        id="delta-gap",
        name="Delta Gap (Delta-Delta Ratio)",
        description="Identifies mixed acid-base disorders",
        category=AKI_WORKUP,
        inputs=(
            _electrolyte("measuredAG", "Measured Anion Gap", "20"),
            _electrolyte("measuredHCO3", "Measured HCO3", "15"),
            _electrolyte("normalAG", "Normal AG", "12", required=False, default=12),
            _electrolyte("normalHCO3", "Normal HCO3", "24", required=False, default=24),
        ),
        result_label="Delta-Delta Ratio",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            between(1, 2, "Pure high anion gap metabolic acidosis"),
            below(1, "Combined HAGMA + normal anion gap metabolic acidosis"),
            otherwise("Combined HAGMA + metabolic alkalosis"),
        ),
        clinical_pearls=(
            "Identifies mixed acid-base disorders",
            "Essential in DKA (concomitant vomiting causes alkalosis)",
            "Guides treatment strategy",
        ),
        references=("Rastegar A. J Am Soc Nephrol. 2007;18(9):2429-2431",),
    ),
    CalculatorDefinition(
        id="bun-creatinine-ratio",
        name="BUN/Creatinine Ratio",
        description="Differentiates prerenal azotemia from intrinsic renal disease; supports AKI workup",
        category=AKI_WORKUP,
        inputs=(_bun("bunValue", "BUN / Urea", "20"), _creatinine()),
        result_label="BUN/Creatinine Ratio",
        result_unit="ratio",
        precision=1,
        interpretation=InterpretationRule(
            below(10, "Low - suggests intrinsic renal disease or decreased BUN production"),
            at_most(20, "Normal - proportional elevation or normal kidney function"),
            at_most(30, "Elevated - suggests prerenal azotemia"),
            otherwise("High - strongly suggests prerenal azotemia with significant volume depletion"),
        ),
        reference_ranges=_ranges(
            ("Low (<10)", None, 10, "ratio"),
            ("Normal (10-20)", 10, 20, "ratio"),
            ("Elevated (20-30)", 20, 30, "ratio"),
            ("High (>30)", 30, None, "ratio"),
        ),
        clinical_pearls=(
            "Normal ratio: 10-20 (BUN in mg/dL, Creatinine in mg/dL)",
            "Ratio >20 suggests prerenal azotemia (volume depletion, heart failure, cirrhosis)",
            "Ratio <10 suggests intrinsic renal disease, liver disease, or malnutrition",
            "Use with clinical context: volume status, medications (NSAIDs, ACE-I), urine output",
            "Auto-converts urea to BUN: BUN = urea / 2.14 (for mg/dL values)",
        ),
        references=("Levey AS et al. Kidney Int. 2005;67(6):2089-2100",),
    ),
    CalculatorDefinition(
        id="osmolal-gap",
        name="Serum Osmolal Gap",
        description="Screens for toxic alcohol ingestion",
        category=AKI_WORKUP,
        inputs=(
            _num("measuredOsmolality", "Measured Osmolality", "mOsm/kg", "osmolality", "320", min=0),
            _electrolyte("sodium", "Sodium", "140"),
            _num("glucose", "Glucose", "mg/dL", "glucose", "100"),
            _bun("bun", "BUN / Urea", "20"),
            _num("ethanol", "Ethanol (if known)", "mg/dL", "ethanol", "0", required=False, default=0),
        ),
        result_label="Osmolal Gap",
        result_unit="mOsm/kg",
        precision=2,
        interpretation=InterpretationRule(
            at_most(10, "Normal - no unmeasured osmotically active substances"),
            at_most(20, "Borderline - consider toxic alcohol ingestion"),
            otherwise("Elevated - suggests methanol, ethylene glycol, isopropanol, or other toxins"),
        ),
        clinical_pearls=(
            "Critical in suspected toxic alcohol ingestion with HAGMA",
            "Gap normalizes as alcohols metabolize to acids",
            "Nephrology consult for hemodialysis if severe",
        ),
        references=("Kraut JA, Kurtz I. Clin J Am Soc Nephrol. 2008;3(1):208-225",),
    ),
    CalculatorDefinition(
        id="urine-anion-gap",
        name="Urine Anion Gap (for RTA diagnosis)",
        description="Differentiates renal vs. GI causes of normal AG acidosis",
        category=AKI_WORKUP,
        inputs=(
            _electrolyte("urineNa", "Urine Sodium", "40"),
            _electrolyte("urineK", "Urine Potassium", "20"),
            _electrolyte("urineCl", "Urine Chloride", "50"),
        ),
        result_label="Urine Anion Gap",
        result_unit="mEq/L",
        precision=1,
        interpretation=InterpretationRule(
            below(-20, "Negative UAG - intact renal acidification (GI HCO3 losses or proximal RTA)"),
            at_most(20, "Equivocal - may need urine pH and NH4+ measurement"),
            otherwise("Positive UAG - impaired renal NH4+ excretion (distal RTA or Type 4 RTA)"),
        ),
        clinical_pearls=(
            "Differentiates renal vs. GI causes of normal AG metabolic acidosis",
            "Urine pH helps further: pH >5.5 in acidosis = distal RTA",
            "Type 1 RTA: positive UAG, urine pH >5.5, may have stones",
        ),
        references=("Batlle DC et al. N Engl J Med. 1988;318(10):594-599",),
    ),
]


# ── Electrolytes & acid-base ────────────────────────────────────────────────

_ELECTROLYTES = [
    CalculatorDefinition(
        id="ttkg",
        name="Transtubular Potassium Gradient (TTKG)",
        description="Helps distinguish renal vs. extrarenal causes of K disorders",
        category=ELECTROLYTES,
        inputs=(
            _electrolyte("urineK", "Urine Potassium", "40"),
            _electrolyte("plasmaK", "Plasma Potassium", "5.5"),
            _num("urineOsm", "Urine Osmolality", "mOsm/kg", "osmolality", "400", min=0),
            _num("plasmaOsm", "Plasma Osmolality", "mOsm/kg", "osmolality", "290", min=0),
        ),
        result_label="TTKG",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            below(6, "Low TTKG in hyperkalemia - suggests hypoaldosteronism or aldosterone resistance"),
            strictly_between(3, 8, "Normal TTKG"),
            above(8, "High TTKG in hypokalemia - suggests renal K wasting"),
            otherwise("Validity criteria not met (need urine Osm >300 and urine Na >25)"),
        ),
        clinical_pearls=(
            "Validity criteria: urine Osm >300 mOsm/kg and urine Na >25 mEq/L",
            "Normal on regular diet: 8-9",
            "Utility debated; some experts recommend direct urine K measurement",
        ),
        references=("Ethier JH et al. Am J Kidney Dis. 1990;15(4):309-315",),
    ),
    CalculatorDefinition(
        id="water-deficit-hypernatremia",
        name="Water Deficit in Hypernatremia",
        description="Calculates free water needed to correct hypernatremia",
        category=ELECTROLYTES,
        inputs=(
            _electrolyte("currentNa", "Current Serum Sodium", "160"),
            _electrolyte("targetNa", "Target Serum Sodium", "140"),
            _num("totalBodyWater", "Total Body Water", "L", placeholder="42", min=0),
        ),
        result_label="Free Water Deficit",
        result_unit="L",
        precision=1,
        interpretation=InterpretationRule(
            at_most(1, "Mild deficit - oral rehydration may suffice"),
            at_most(3, "Moderate deficit - IV D5W or hypotonic saline"),
            otherwise("Severe deficit - careful IV rehydration needed to avoid cerebral edema"),
        ),
        clinical_pearls=(
            "Correct slowly: no more than 10-12 mEq/L in 24 hours",
            "Rapid correction risks cerebral edema",
            "Address underlying cause (diabetes insipidus, insensible losses)",
        ),
        references=("Adrogue HJ, Madias NE. N Engl J Med. 2000;342(20):1493-1499",),
    ),
    CalculatorDefinition(
        id="corrected-sodium-hyperglycemia",
        name="Corrected Sodium in Hyperglycemia",
        description="Adjusts sodium for osmotic effect of hyperglycemia",
        category=ELECTROLYTES,
        inputs=(
            _electrolyte("measuredNa", "Measured Serum Sodium", "130"),
            _num("glucose", "Serum Glucose", "mg/dL", "glucose", "500"),
        ),
        result_label="Corrected Sodium",
        result_unit="mEq/L",
        precision=1,
        interpretation=InterpretationRule(
            at_least(135, "Sodium normal when corrected for hyperglycemia"),
            at_least(130, "Mild hyponatremia"),
            otherwise("Significant hyponatremia - requires careful correction"),
        ),
        clinical_pearls=(
            "Each 100 mg/dL glucose above 100 lowers Na by ~2-3 mEq/L",
            "Critical in DKA and HHS management",
            "Corrected Na guides treatment decisions",
        ),
        references=("Katz MA. N Engl J Med. 1973;289(16):843-844",),
    ),
    CalculatorDefinition(
        id="sodium-correction-rate",
        name="Sodium Correction Rate in Hyponatremia",
        description="Calculates rate of sodium change with fluid administration",
        category=ELECTROLYTES,
        inputs=(
            _electrolyte("currentNa", "Current Serum Sodium", "120"),
            _electrolyte("targetNa", "Target Serum Sodium", "130"),
            _electrolyte("infusionNa", "Infusate Sodium Concentration", "154"),
            _num("totalBodyWater", "Total Body Water", "L", placeholder="42", min=0),
            _num("correctionHours", "Correction Period", "hours", placeholder="24"),
        ),
        result_label="Correction Rate",
        result_unit="mEq/L/hour",
        precision=2,
        interpretation=InterpretationRule(
            at_most(6, "Safe correction rate"),
            at_most(8, "Acceptable rate"),
            at_most(10, "Risk of osmotic demyelination syndrome - slow correction"),
            otherwise("Too rapid - risk of serious neurological complications"),
        ),
        clinical_pearls=(
            "Maximum safe rate: 6-8 mEq/L in 24 hours",
            "Rapid correction risks osmotic demyelination syndrome",
            "Chronic hyponatremia requires slower correction",
        ),
        references=("Adrogue HJ, Madias NE. N Engl J Med. 2000;342(20):1493-1499",),
    ),
    CalculatorDefinition(
        id="sodium-deficit",
        name="Sodium Deficit in Hyponatremia",
        description="Calculates total sodium needed to correct hyponatremia",
        category=ELECTROLYTES,
        inputs=(
            _electrolyte("currentNa", "Current Serum Sodium", "120"),
            _electrolyte("targetNa", "Target Serum Sodium", "130"),
            _num("totalBodyWater", "Total Body Water", "L", placeholder="42", min=0),
        ),
        result_label="Sodium Deficit",
        result_unit="mEq",
        precision=1,
        interpretation=InterpretationRule(
            at_most(100, "Mild deficit - may use hypotonic saline or fluid restriction"),
            at_most(300, "Moderate deficit - hypertonic saline (3%) may be needed"),
            otherwise("Severe deficit - careful IV hypertonic saline with monitoring"),
        ),
        clinical_pearls=(
            "Guides choice of IV fluid and rate of administration",
            "Acute hyponatremia (<48 hours) needs faster correction",
            "Chronic hyponatremia needs slower correction",
        ),
        references=("Adrogue HJ, Madias NE. N Engl J Med. 2000;342(20):1493-1499",),
    ),
    CalculatorDefinition(
        id="corrected-calcium",
        name="Corrected Calcium for Albumin",
        description="Adjusts total calcium for hypoalbuminemia",
        category=ELECTROLYTES,
        inputs=(
            _num("measuredCa", "Measured Total Calcium", "mg/dL", "calcium", "7.5"),
            _num("albumin", "Serum Albumin", "g/dL", "albumin", "2.0"),
        ),
        result_label="Corrected Calcium",
        result_unit="mg/dL",
        precision=2,
        interpretation=InterpretationRule(
            between(8.5, 10.5, "Normal corrected calcium"),
            below(8.5, "Hypocalcemia - may need supplementation"),
            otherwise("Hypercalcemia - investigate cause"),
        ),
        clinical_pearls=(
            "~40% of serum calcium is albumin-bound",
            "Ionized calcium measurement is gold standard",
            "Less accurate in severe acid-base disturbances",
        ),
        references=("Payne RB et al. Br Med J. 1973;4(5893):643-646",),
    ),
    CalculatorDefinition(
        id="qtc-bazett",
        name="Corrected QT Interval (QTc - Bazett)",
        description="Calculates heart rate-corrected QT interval",
        category=ELECTROLYTES,
        inputs=(
            _num("qtInterval", "QT Interval", "ms", placeholder="400"),
            _num("heartRate", "Heart Rate", "bpm", placeholder="80", min=40, max=200),
        ),
        result_label="QTc",
        result_unit="ms",
        precision=1,
        interpretation=InterpretationRule(
            at_most(450, "Normal (men)"),
            at_most(460, "Normal (women)"),
            at_most(500, "Prolonged - monitor, correct electrolytes"),
            otherwise("Severely prolonged - risk of torsades de pointes, urgent intervention needed"),
        ),
        clinical_pearls=(
            "Normal: Men <450 ms, Women <460 ms",
            "Causes: hypokalemia, hypocalcemia, hypomagnesemia, medications",
            "Correct electrolytes urgently if QTc >500 ms",
        ),
        references=("Rautaharju PM et al. Circulation. 2009;119(10):e241-e250",),
    ),
]


# ── Proteinuria & glomerular disease ────────────────────────────────────────

_PROTEINURIA = [
    CalculatorDefinition(
        id="uacr",
        name="Urine Albumin-to-Creatinine Ratio (uACR)",
        description="Quantifies albuminuria - key CKD marker",
        category=PROTEINURIA,
        inputs=(
            _num("urineAlbumin", "Urine Albumin", "mg", "urine_albumin", "150"),
            _num("urineCreatinineUACR", "Urine Creatinine", "g", "urine_creatinine", "1.0"),
        ),
        result_label="uACR",
        result_unit="mg/g",
        precision=1,
        interpretation=InterpretationRule(
            below(30, "A1: Normal to mildly increased albuminuria"),
            below(300, "A2: Moderately increased albuminuria (formerly microalbuminuria)"),
            below(2200, "A3: Severely increased albuminuria (formerly macroalbuminuria)"),
            otherwise("Nephrotic range albuminuria - requires aggressive treatment"),
        ),
        clinical_pearls=(
            "Key CKD marker; predicts progression and CVD events",
            "Required for KFRE calculation",
            "Use first morning void when possible",
            "Target: 30-50% reduction with treatment",
        ),
        references=("KDIGO 2024 Clinical Practice Guideline for the Evaluation and Management of CKD",),
    ),
    CalculatorDefinition(
        id="upcr",
        name="Urine Protein-to-Creatinine Ratio (UPCR)",
        description="Quantifies total proteinuria - preferred in nephrotic syndrome",
        category=PROTEINURIA,
        inputs=(
            _num("urineProtein", "Urine Total Protein", "mg", "urine_protein", "500"),
            _num("urineCreatinineUPCR", "Urine Creatinine", "mg", "urine_creatinine", "100"),
        ),
        result_label="UPCR",
        result_unit="g/g",
        precision=2,
        interpretation=InterpretationRule(
            below(0.15, "Normal proteinuria"),
            below(0.5, "Mild proteinuria"),
            below(1, "Moderate proteinuria"),
            below(3, "Heavy proteinuria"),
            otherwise("Nephrotic range proteinuria (>3 g/g)"),
        ),
        clinical_pearls=(
            "Replaces 24-hour urine collection in most cases",
            "Preferred in nephrotic syndrome, amyloidosis, myeloma",
            "UPCR (g/g) ≈ 24-hour proteinuria (g/24h)",
            "GN monitoring: target <0.5-1 g/g with immunosuppression",
        ),
        references=("Levey AS et al. UpToDate 2024",),
    ),
    CalculatorDefinition(
        id="acr-from-pcr",
        name="Estimated ACR from PCR (conversion)",
        description="Estimates albumin-creatinine ratio from total protein",
        category=PROTEINURIA,
        inputs=(_num("pcr", "Urine Protein-Creatinine Ratio", "g/g", "pcr", "1.5"),),
        result_label="Estimated ACR",
        result_unit="mg/g",
        precision=1,
        interpretation=InterpretationRule(
            below(30, "A1: Normal to mildly increased"),
            below(300, "A2: Moderately increased"),
            otherwise("A3: Severely increased"),
        ),
        clinical_pearls=(
            "Allows use of KFRE when only PCR available",
            "Simplified conversion: ACR ≈ PCR × 700",
            "Not a substitute for direct ACR measurement when precision needed",
        ),
        references=("Sumida K et al. Ann Intern Med. 2020;173(6):426-435",),
    ),
    CalculatorDefinition(
        id="24-hour-protein",
        name="24-Hour Protein Excretion Estimator",
        description="Converts spot urine PCR/ACR to estimated 24-hour protein excretion",
        category=PROTEINURIA,
        inputs=(
            _select("testType", "Test Type", [
                ("pcr", "Protein/Creatinine Ratio (PCR)"),
                ("acr", "Albumin/Creatinine Ratio (ACR)"),
            ]),
            _select("inputMode", "Input Method", [
                ("ratio", "I have the ratio value"),
                ("raw", "I have protein/albumin and creatinine values"),
            ]),
            _num("ratioValue", "Ratio Value", "mg/mg", "protein_ratio", "0.5", required=False),
            _num("proteinValue", "Urine Protein/Albumin Concentration", "mg/dL", "urine_protein_conc", "50",
                 required=False),
            _num("creatinineValue", "Urine Creatinine Concentration", "mg/dL", "urine_creatinine_conc", "100",
                 required=False),
        ),
        result_label="Estimated 24-Hour Protein Excretion",
        result_unit="g/day",
        precision=3,
        interpretation=InterpretationRule(
            below(0.15, "Normal (A1) - No significant proteinuria"),
            below(3.0, "Mildly to Moderately Increased (A1-A2) - Monitor and treat underlying cause"),
            below(10, "Nephrotic-Range (A3) - Requires aggressive treatment"),
            otherwise("Severe Nephrotic-Range (A3) - Timed 24-hour collection recommended for clinical decisions"),
        ),
        reference_ranges=_ranges(
            ("Normal (A1)", None, 0.15, "g/day"),
            ("Increased (A2)", 0.15, 3, "g/day"),
            ("Nephrotic-range (A3)", 3, None, "g/day"),
        ),
        clinical_pearls=(
            "Formula: PCR (g/day) = Urine Protein (mg/dL) ÷ Urine Creatinine (mg/dL)",
            "Spot urine PCR correlates well with 24-hour collection in most patients",
            "Accuracy decreases at nephrotic-range values (>10 g/day)",
            "Timed 24-hour collection recommended for clinical decisions in edge cases",
            "Less accurate with tubular or overflow proteinuria",
        ),
        references=("KDIGO 2024 Clinical Practice Guideline for the Evaluation and Management of CKD",),
    ),
    CalculatorDefinition(
        id="igan-prediction",
        name="International IgA Nephropathy (IgAN) Prediction Tool",
        description="Predicts 2, 5, and 7-year risk of kidney failure in IgAN",
        category=PROTEINURIA,
        inputs=(
            _age("Age at Biopsy", "35"),
            _num("eGFR", "eGFR at Biopsy", EGFR_UNIT, placeholder="60"),
            _num("map", "Mean Arterial Pressure", "mmHg", placeholder="95"),
            _num("proteinuria", "Proteinuria", "g/day", placeholder="1.5", min=0),
            _select("years", "Prediction Timeframe",
                    [("2", "2-year risk"), ("5", "5-year risk"), ("7", "7-year risk")]),
        ),
        result_label="Kidney Failure Risk",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            below(20, "Low risk - conservative management (RAAS blockade, SGLT2i)"),
            below(40, "Intermediate risk - consider immunosuppression"),
            otherwise("High risk - immunosuppression recommended"),
        ),
        clinical_pearls=(
            "Most validated prognostic tool for IgAN",
            "Guides treatment intensity decisions",
            "High-risk: persistent proteinuria >1 g/day despite 3-6 months optimal supportive care",
            "External validation in >4000 patients",
        ),
        references=("Barbour SJ et al. JAMA Intern Med. 2019;179(7):942-952",),
    ),
]


# ── Dialysis adequacy ───────────────────────────────────────────────────────

def _session_text(suffix: str):
    return lambda value: f"{value / 60:.1f} hours - {suffix}"


_DIALYSIS = [
    CalculatorDefinition(
        id="ktv-hemodialysis",
        name="Kt/V (Hemodialysis Adequacy)",
        description="Measures dialysis dose - most important adequacy parameter",
        category=DIALYSIS,
        inputs=(
            _bun("preBUN", "Pre-Dialysis BUN / Urea", "60"),
            _bun("postBUN", "Post-Dialysis BUN / Urea", "20"),
            _weight("postWeight", "Post-Dialysis Weight"),
            _num("sessionTime", "Session Duration", "minutes", placeholder="240"),
            _num("ultrafiltration", "Ultrafiltration Volume", "L", placeholder="3", min=0),
        ),
        result_label="Kt/V",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            at_least(1.4, "Adequate dialysis (≥1.4 recommended)"),
            at_least(1.2, "Borderline adequate"),
            otherwise("Inadequate dialysis - increase session time or frequency"),
        ),
        reference_ranges=_ranges(
            ("Adequate", 1.4, None, "ratio"),
            ("Borderline", 1.2, 1.39, "ratio"),
            ("Inadequate", None, 1.19, "ratio"),
        ),
        clinical_pearls=(
            "Target spKt/V ≥1.4 (minimum 1.2) for thrice-weekly HD",
            "Accounts for body size and session duration",
            "Does not account for residual kidney function",
            "Post-BUN must be drawn correctly (slow flow or stop pump 15 sec before)",
        ),
        references=("KDOQI Hemodialysis Adequacy Guidelines 2015",),
    ),
    CalculatorDefinition(
        id="total-body-water",
        name="Total Body Water (Watson Formula)",
        description="Estimates total body water for Kt/V calculations",
        category=DIALYSIS,
        inputs=(
            _weight(label="Body Weight"),
            _height(),
            _age(placeholder="55"),
            _sex(),
        ),
        result_label="Total Body Water",
        result_unit="L",
        precision=2,
        interpretation=InterpretationRule(
            above(0, lambda value: f"Estimated TBW: {value:.1f} L - use for Kt/V calculations"),
            otherwise("Unable to calculate"),
        ),
        clinical_pearls=(
            "Used in Kt/V calculation (V = TBW)",
            "Accounts for age and sex differences",
            "Males typically 50-60% of body weight",
            "Females typically 45-50% of body weight",
        ),
        references=("Watson PE et al. Am J Clin Nutr. 1980;33(12):2641-2645",),
    ),
    CalculatorDefinition(
        id="hd-session-duration",
        name="Hemodialysis Session Duration from Target Kt/V",
        description=("Calculates required session time to achieve target Kt/V based on dialyzer "
                     "clearance and total body water"),
        category=DIALYSIS,
        inputs=(
            _num("targetKtV", "Target Kt/V", "ratio", placeholder="1.4"),
            _num("dialyzerClearance", "Dialyzer Urea Clearance (K)", "mL/min", placeholder="250"),
            _num("totalBodyWater", "Total Body Water (V)", "L", placeholder="42", min=0),
        ),
        result_label="Required Session Duration",
        result_unit="minutes",
        precision=1,
        interpretation=InterpretationRule(
            at_most(180, _session_text("short session")),
            at_most(240, _session_text("standard session")),
            at_most(300, _session_text("extended session")),
            otherwise(_session_text("very extended session - consider nocturnal HD")),
        ),
        clinical_pearls=(
            "Formula: t = (Kt/V × V) / K",
            "Typical dialyzer clearance: 200-300 mL/min",
            "TBW can be estimated using Watson formula (approx. 60% of body weight for men, 50% for women)",
            "Target Kt/V ≥1.4 for thrice-weekly HD (minimum 1.2)",
        ),
        references=(
            "Daugirdas JT. Adv Ren Replace Ther. 1995;2(4):295-304",
            "KDOQI Clinical Practice Guideline for Hemodialysis Adequacy: 2015 Update",
        ),
    ),
    CalculatorDefinition(
        id="pd-weekly-ktv",
        name="Peritoneal Dialysis Weekly Kt/V",
        description="Assesses solute clearance adequacy in CAPD/APD",
        category=DIALYSIS,
        inputs=(
            _bun("dailyDialysateUrea", "Daily Dialysate Urea", "200"),
            _bun("plasmaUrea", "Plasma Urea", "40"),
            _num("dialysateVolume", "Daily Dialysate Volume", "L", placeholder="8", min=0),
            _num("totalBodyWater", "Total Body Water", "L", placeholder="42", min=0),
            _num("residualKtv", "Residual Renal Kt/V", "ratio", placeholder="0.1", required=False, default=0),
        ),
        result_label="Weekly PD Kt/V",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            at_least(2.0, "Optimal PD adequacy (≥2.0 recommended)"),
            at_least(1.7, "Minimum adequate PD (≥1.7 minimum)"),
            otherwise("Inadequate PD - increase dwell time, add exchange, or consider HD transition"),
        ),
        clinical_pearls=(
            "Includes both peritoneal and residual renal clearance",
            "Measured every 6 months or when clinically indicated",
            "Low Kt/V associated with malnutrition, inflammation, mortality",
            "Preserve residual kidney function",
        ),
        references=("ISPD Guidelines 2020: Peritoneal Dialysis Adequacy",),
    ),
    CalculatorDefinition(
        id="residual-rkf-ktv",
        name="Residual Kidney Function (RKF) Kt/V Component",
        description="Quantifies contribution of residual kidney function to clearance",
        category=DIALYSIS,
        inputs=(
            _num("ureaUrineClearance", "Urine Urea Clearance", "mL/min", placeholder="5"),
            _num("totalBodyWater", "Total Body Water", "L", placeholder="42", min=0),
        ),
        result_label="Residual Kt/V",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            at_least(0.2, "Significant residual kidney function - preserve it!"),
            at_least(0.1, "Moderate residual function"),
            above(0, "Minimal residual function"),
            otherwise("No residual kidney function"),
        ),
        clinical_pearls=(
            "Preservation of RKF = better survival, fluid balance, phosphate control",
            "Measure RKF if urine output ≥100 mL/day",
            "Protect RKF: avoid NSAIDs, aminoglycosides, contrast, maintain euvolemia",
            "RKF loss faster in HD than PD",
        ),
        references=("Bargman JM et al. J Am Soc Nephrol. 2001;12(10):2158-2162",),
    ),
    CalculatorDefinition(
        id="equilibrated-ktv",
        name="Equilibrated Kt/V (eKt/V) for Hemodialysis",
        description="Accounts for post-dialysis urea rebound",
        category=DIALYSIS,
        inputs=(
            _num("spKtv", "Single-Pool Kt/V", "ratio", placeholder="1.3"),
            _num("sessionTime", "Session Duration", "hours", placeholder="4"),
        ),
        result_label="Equilibrated Kt/V",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            at_least(1.2, "Adequate eKt/V"),
            at_least(1.0, "Borderline adequate"),
            otherwise("Inadequate - increase dialysis dose"),
        ),
        clinical_pearls=(
            "Accounts for post-dialysis urea rebound (30-60 min after HD)",
            "More accurate than spKt/V",
            "Typically 0.1-0.2 lower than spKt/V",
            "Important for short, high-efficiency dialysis",
        ),
        references=("Daugirdas JT. Adv Ren Replace Ther. 1995;2(4):295-304",),
    ),
    CalculatorDefinition(
        id="standard-ktv",
        name="Standard Kt/V (stdKt/V) - Weekly Normalized Dose",
        description="Converts intermittent HD dose to continuous equivalent clearance",
        category=DIALYSIS,
        inputs=(
            _num("spKtv", "Single-Pool Kt/V", "ratio", placeholder="1.3"),
            _num("residualKtv", "Residual Kidney Function Kt/V", "ratio", placeholder="0.1",
                 required=False, default=0),
        ),
        result_label="Standard Kt/V",
        result_unit="ratio/week",
        precision=2,
        interpretation=InterpretationRule(
            at_least(2.3, "Adequate stdKt/V (≥2.3 recommended)"),
            at_least(2.1, "Borderline adequate"),
            otherwise("Inadequate - increase dialysis frequency or duration"),
        ),
        clinical_pearls=(
            "Allows comparison across different HD schedules",
            "Accounts for dialysis frequency and residual function",
            "Recommended by KDOQI as preferred adequacy measure",
            "Complex calculation - use HD machine software",
        ),
        references=("KDOQI Clinical Practice Guideline for Hemodialysis Adequacy: 2015 Update",),
    ),
    CalculatorDefinition(
        id="urr",
        name="Urea Reduction Ratio (URR)",
        description="Simplest measure of hemodialysis adequacy",
        category=DIALYSIS,
        inputs=(
            _bun("preBUN", "Pre-Dialysis BUN / Urea", "60"),
            _bun("postBUN", "Post-Dialysis BUN / Urea", "20"),
        ),
        result_label="URR",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            at_least(70, "Optimal URR (≥70% recommended)"),
            at_least(65, "Minimum adequate URR (≥65% minimum)"),
            otherwise("Inadequate dialysis - increase session time or frequency"),
        ),
        clinical_pearls=(
            "Simplest measure - does not require weight or session time",
            "Underestimates adequacy in short session/high UF",
            "URR 65% ≈ Kt/V 1.2; URR 70% ≈ Kt/V 1.4",
            "Post-BUN must be drawn correctly (slow flow or stop pump 15 sec)",
        ),
        references=("KDOQI Hemodialysis Adequacy Guidelines 2015",),
    ),
    CalculatorDefinition(
        id="iron-deficit",
        name="Iron Deficit (Ganzoni Formula)",
        description="Calculates total iron needed to correct anemia",
        category=DIALYSIS,
        inputs=(
            _num("targetHemoglobin", "Target Hemoglobin", "g/dL", "hemoglobin", "11"),
            _num("currentHemoglobin", "Current Hemoglobin", "g/dL", "hemoglobin", "8"),
            _weight(label="Body Weight"),
            _sex(),
        ),
        result_label="Total Iron Needed",
        result_unit="mg",
        precision=1,
        interpretation=InterpretationRule(
            at_most(500, "Mild iron deficit - oral iron may suffice"),
            at_most(1000, "Moderate deficit - IV iron likely needed"),
            otherwise("Severe deficit - significant IV iron supplementation required"),
        ),
        clinical_pearls=(
            "Accounts for hemoglobin deficit + iron stores",
            "Iron stores: ~500 mg (men), ~300 mg (women)",
            "IV iron preferred in dialysis patients",
            "Monitor ferritin and TSAT during repletion",
        ),
        references=("Ganzoni AM. Schweiz Med Wochenschr. 1970;100(7):301-303",),
    ),
]


# ── Transplantation ─────────────────────────────────────────────────────────

_DURATION = [("NO", "No"), ("0-5", "Yes, 0-5 years"), ("6-10", "Yes, 6-10 years"), (">10", "Yes, >10 years")]

_BANFF_DIAGNOSES = {
    1: "Normal or Nonspecific Changes",
    2: "Antibody-Mediated Rejection (ABMR)",
    3: "Borderline Changes - Suspicious for TCMR",
    4: "T-Cell Mediated Rejection (TCMR)",
    5: "Interstitial Fibrosis and Tubular Atrophy (IF/TA)",
}


def _banff_adequacy(value: float, inputs: Dict[str, Any]) -> Optional[str]:
    glomeruli = inputs.get("glomeruli", 10)
    arteries = inputs.get("arteries", 2)
    if glomeruli >= 10 and arteries >= 2:
        return None
    if glomeruli >= 7 and arteries >= 1:
        return "Specimen adequacy: marginal (≥7 glomeruli and ≥1 artery)"
    return "Specimen adequacy: inadequate (<7 glomeruli or no artery) - interpret with caution"


_TRANSPLANT = [
    CalculatorDefinition(
        id="kdpi",
        name="Kidney Donor Profile Index (KDPI)",
        description="OPTN 2024 formula - predicts donor kidney quality and graft survival",
        category=TRANSPLANT,
        inputs=(
            _num("donorAge", "Donor Age", "years", placeholder="45"),
            _height("donorHeight", "Donor Height"),
            _weight("donorWeight", "Donor Weight", "80"),
            _creatinine("donorCreatinine", "Serum Creatinine"),
            _select("hypertensionDuration", "History of Hypertension", _DURATION),
            _select("diabetesDuration", "History of Diabetes", _DURATION),
            _select("causeOfDeath", "Cause of Death", [
                ("ANOXIA", "Anoxia"),
                ("CVA", "Cerebrovascular/Stroke"),
                ("HEAD_TRAUMA", "Head Trauma"),
                ("CNS_TUMOR", "CNS Tumor"),
                ("OTHER", "Other"),
            ]),
            _select("isDCD", "Donation after Circulatory Death (DCD)", [("NO", "No"), ("YES", "Yes")]),
        ),
        result_label="KDPI",
        result_unit="%",
        precision=0,
        interpretation=InterpretationRule(
            at_most(20, "KDPI 0-20%: Highest quality organs (longevity matching to EPTS ≤20%)"),
            at_most(85, "KDPI 21-85%: Standard criteria donors"),
            otherwise("KDPI 86-100%: Expanded criteria donors (ECD) - higher discard rate but better than dialysis"),
        ),
        clinical_pearls=(
            "Replaced ECD classification in US allocation system (2014)",
            "KDPI is a percentile of the KDRI relative to the prior year's donors",
            "Does not predict rejection or surgical complications",
            "KDPI >85% kidneys: higher early discard rate but transplant better than dialysis",
        ),
        references=("Rao PS et al. Transplantation. 2009;88(2):231-236",),
    ),
    CalculatorDefinition(
        id="epts",
        name="Estimated Post-Transplant Survival (EPTS)",
        description="Predicts recipient longevity after transplant",
        category=TRANSPLANT,
        inputs=(
            _num("recipientAge", "Recipient Age", "years", placeholder="50"),
            _flag("recipientDiabetes", "Recipient Diabetes"),
            _flag("priorTransplant", "Prior Solid Organ Transplant"),
            _num("yearsOnDialysis", "Years on Dialysis", "years", placeholder="3", min=0),
        ),
        result_label="EPTS",
        result_unit="%",
        precision=0,
        interpretation=InterpretationRule(
            at_most(20, "EPTS 0-20%: Highest longevity candidates (receive KDPI ≤20% kidneys first)"),
            otherwise("EPTS 21-100%: Standard allocation"),
        ),
        clinical_pearls=(
            "Matches best kidneys to longest-lived recipients",
            "Does not measure medical urgency (unlike liver MELD)",
            "EPTS ≤20% candidates get priority for KDPI ≤20% kidneys nationally",
            "Important for patient counseling on accepting organ offers",
        ),
        references=("OPTN/UNOS Kidney Allocation System. Final Rule 2014",),
    ),
    CalculatorDefinition(
        id="banff-classification",
        name="Banff Classification for Kidney Transplant Pathology",
        description=("Banff 2022 Renal Allograft Biopsy Analyzer - Comprehensive diagnostic tool "
                     "based on updated Banff classification criteria"),
        category=TRANSPLANT,
        inputs=(
            _num("glomeruli", "Glomeruli Count", placeholder="10", required=False, default=10, min=0),
            _num("arteries", "Arteries Count", placeholder="2", required=False, default=2, min=0),
            _grade("i", "i - Interstitial Inflammation"),
            _grade("t", "t - Tubulitis"),
            _grade("v", "v - Intimal Arteritis"),
            _grade("g", "g - Glomerulitis"),
            _grade("ptc", "ptc - Peritubular Capillaritis"),
            _select("c4d", "C4d - C4d Staining", [
                ("0", "0 - Negative"),
                ("1", "1 - Minimal (<10%)"),
                ("2", "2 - Focal (10-50%)"),
                ("3", "3 - Diffuse (>50%)"),
            ], required=False, default="0"),
            _select("dsa", "DSA - Donor Specific Antibody", [
                ("negative", "Negative"), ("positive", "Positive"), ("unknown", "Unknown"),
            ], required=False, default="negative"),
            _grade("ci", "ci - Interstitial Fibrosis"),
            _grade("ct", "ct - Tubular Atrophy"),
            _grade("cv", "cv - Vascular Fibrosis"),
            _grade("cg", "cg - Transplant Glomerulopathy"),
            _grade("ti", "ti - Total Inflammation"),
            _grade("iIfta", "i-IFTA - Inflammation in IFTA"),
            _grade("tIfta", "t-IFTA - Tubulitis in Atrophic Tubules"),
            _grade("mm", "mm - Mesangial Matrix Expansion"),
            _grade("ah", "ah - Arteriolar Hyalinosis"),
        ),
        result_label="Banff Classification",
        result_unit="category",
        precision=0,
        interpretation=InterpretationRule(
            *[equals(category, f"Category {category}: {text}") for category, text in _BANFF_DIAGNOSES.items()],
            otherwise("Category 6: Other Changes - requires specific evaluation"),
            note=_banff_adequacy,
        ),
        clinical_pearls=(
            "Banff 2022 classification from the Banff Foundation",
            "Adequate specimen: ≥10 glomeruli + ≥2 arteries",
            "Marginal specimen: ≥7 glomeruli + ≥1 artery",
            "Acute TCMR Grade IA: i≥2 with t2",
            "Acute TCMR Grade IB: i≥2 with t3",
            "Acute TCMR Grade IIA: v1 (mild-moderate intimal arteritis)",
            "Acute TCMR Grade IIB: v2 (severe intimal arteritis)",
            "Acute TCMR Grade III: v3 (transmural arteritis)",
            "Active ABMR: MVI (g>0 or ptc>0) + C4d≥2 or DSA positive",
            "Chronic Active ABMR: cg>0 or cv>0 + C4d≥2 or DSA positive",
            "Borderline: t≥1 with i=1 OR t=1 with i≥2 (without v)",
        ),
        references=(
            "Loupy A et al. Am J Transplant. 2020;20(9):2305-2331",
            "Haas M et al. Am J Transplant. 2018;18(2):293-307",
            "Banff 2022 Classification",
        ),
    ),
    CalculatorDefinition(
        id="tacrolimus-monitoring",
        name="Tacrolimus Therapeutic Monitoring",
        description="Assesses tacrolimus metabolism and adherence",
        category=TRANSPLANT,
        inputs=(
            _num("dailyDose", "Daily Tacrolimus Dose", "mg", placeholder="4"),
            _num("troughLevel", "Trough Level", "ng/mL", "tacrolimus", "8"),
        ),
        result_label="Dose-to-Trough Ratio",
        result_unit="ratio",
        precision=2,
        interpretation=InterpretationRule(
            above(2.5, "Fast metabolizer (CYP3A5 expresser) - may need higher doses or BID dosing"),
            at_least(1.0, "Normal metabolism - typical dose-to-trough ratio"),
            otherwise("Slow metabolizer - risk of toxicity, consider dose reduction"),
        ),
        clinical_pearls=(
            "Typical range: 1.6-2.4",
            "Identifies metabolism phenotype (genetic or drug interaction)",
            "Assesses adherence (high ratio with low level = missed doses)",
            "CYP3A5 expressers more common in African Americans (~50% vs. 10-20% other populations)",
        ),
        references=("Thölking G et al. Sci Rep. 2016;6:32273",),
    ),
]


# ── Cardiovascular risk ─────────────────────────────────────────────────────

_CARDIOVASCULAR = [
    CalculatorDefinition(
        id="ascvd-risk",
        name="ASCVD Risk Calculator (with CKD Considerations)",
        description="Estimates 10-year cardiovascular disease risk",
        category=CARDIOVASCULAR,
        inputs=(
            _age(placeholder="55", min=40, max=79),
            _sex(),
            _select("race", "Race", [("Black", "African American"), ("White", "White/Other")]),
            _num("totalCholesterol", "Total Cholesterol", "mg/dL", "cholesterol", "200"),
            _num("hdl", "HDL Cholesterol", "mg/dL", "cholesterol", "50"),
            _num("systolicBP", "Systolic Blood Pressure", "mmHg", placeholder="130"),
            _flag("treated", "On Blood Pressure Medication"),
            _flag("diabetes", "Diabetes Mellitus"),
            _flag("smoker", "Current Smoker"),
        ),
        result_label="10-Year ASCVD Risk",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            below(5, "Low risk (<5%)"),
            below(7.5, "Borderline risk (5-7.5%) - CKD is risk enhancer"),
            below(20, "Intermediate risk (7.5-20%)"),
            otherwise("High risk (>20%)"),
        ),
        clinical_pearls=(
            "CKD (eGFR <60 or ACR ≥30) = risk enhancer → consider statin even if calculated risk 5-7.5%",
            "Traditional calculators UNDERESTIMATE risk in CKD",
            "CVD = leading cause of death in CKD",
            "Lower thresholds for statin initiation in CKD patients",
        ),
        references=("Goff DC Jr et al. Circulation. 2014;129(25 Suppl 2):S49-73",),
    ),
]


# ── Anthropometric & body composition ───────────────────────────────────────

_ANTHROPOMETRIC = [
    CalculatorDefinition(
        id="bmi",
        name="Body Mass Index (BMI)",
        description="Calculates BMI from height and weight",
        category=ANTHROPOMETRIC,
        inputs=(_weight(label="Body Weight"), _height()),
        result_label="BMI",
        result_unit="kg/m²",
        precision=1,
        interpretation=InterpretationRule(
            below(18.5, "Underweight"),
            below(25, "Normal weight"),
            below(30, "Overweight"),
            below(35, "Obese Class I"),
            below(40, "Obese Class II"),
            otherwise("Obese Class III (Severe obesity)"),
        ),
        reference_ranges=_ranges(
            ("Underweight", None, 18.4, "kg/m²"),
            ("Normal weight", 18.5, 24.9, "kg/m²"),
            ("Overweight", 25, 29.9, "kg/m²"),
            ("Obese Class I", 30, 34.9, "kg/m²"),
            ("Obese Class II", 35, 39.9, "kg/m²"),
            ("Obese Class III", 40, None, "kg/m²"),
        ),
        clinical_pearls=(
            "BMI is a screening tool, not a diagnostic tool",
            "Does not distinguish muscle from fat",
            "CKD patients: obesity increases CVD risk",
            "Use adjusted body weight for drug dosing in obesity",
        ),
        references=("WHO BMI Classification",),
    ),
    CalculatorDefinition(
        id="bsa-dubois",
        name="BSA – Du Bois & Du Bois Formula",
        description="Calculates body surface area (traditional formula)",
        category=ANTHROPOMETRIC,
        inputs=(_weight(label="Body Weight"), _height()),
        result_label="Body Surface Area",
        result_unit="m²",
        precision=2,
        interpretation=InterpretationRule(
            below(1.5, "Small BSA - typical for children or small adults"),
            below(2.0, "Average BSA - typical for adults"),
            otherwise("Large BSA - typical for large/obese adults"),
        ),
        clinical_pearls=(
            "eGFR indexed to 1.73 m² BSA (average adult)",
            "Used for drug dosing (chemotherapy, certain antibiotics)",
            "De-indexing eGFR may be needed in extremes of body size",
            "Average adult BSA: 1.7-2.0 m²",
        ),
        references=("Du Bois D, Du Bois EF. Arch Intern Med. 1916;17(6):863-871",),
    ),
    CalculatorDefinition(
        id="bsa-mosteller",
        name="Body Surface Area - Mosteller Formula",
        description="Calculates BSA using simplified Mosteller formula",
        category=ANTHROPOMETRIC,
        inputs=(_weight(label="Body Weight"), _height()),
        result_label="Body Surface Area",
        result_unit="m²",
        precision=2,
        interpretation=InterpretationRule(
            below(1.5, "Small BSA"),
            below(2.0, "Average BSA"),
            otherwise("Large BSA"),
        ),
        clinical_pearls=(
            "Simpler than Du Bois formula (equivalent accuracy)",
            "Used for drug dosing (chemotherapy, certain antibiotics)",
            "Easier to calculate than Du Bois",
        ),
        references=("Mosteller RD. N Engl J Med. 1987;317(17):1098",),
    ),
    CalculatorDefinition(
        id="devine-ibw",
        name="Devine Ideal Body Weight",
        description="Calculates ideal body weight for height and sex",
        category=ANTHROPOMETRIC,
        inputs=(_height(), _sex()),
        result_label="Ideal Body Weight",
        result_unit="kg",
        precision=1,
        interpretation=InterpretationRule(
            above(0, lambda value: f"Ideal body weight: {value:.1f} kg"),
            otherwise("Unable to calculate"),
        ),
        clinical_pearls=(
            "Men: 50 + 2.3 × (height in inches - 60)",
            "Women: 45.5 + 2.3 × (height in inches - 60)",
            "Used for drug dosing in obesity",
            "Reference for calculating adjusted body weight",
        ),
        references=("Devine BJ. Drug Intell Clin Pharm. 1974;8(7):470-471",),
    ),
    CalculatorDefinition(
        id="lean-body-weight",
        name="Lean Body Weight (James)",
        description="Estimates lean body mass for drug dosing",
        category=ANTHROPOMETRIC,
        inputs=(_weight(label="Body Weight"), _height(), _sex()),
        result_label="Lean Body Weight",
        result_unit="kg",
        precision=1,
        interpretation=InterpretationRule(
            above(0, lambda value: f"Lean body weight: {value:.1f} kg"),
            otherwise("Unable to calculate"),
        ),
        clinical_pearls=(
            "Men: 1.1 × weight - 128 × (weight/height)²",
            "Women: 1.07 × weight - 148 × (weight/height)²",
            "Used for aminoglycoside dosing in obesity",
            "Accounts for sex differences in body composition",
        ),
        references=("James WPT. Research on Obesity. London: HMSO; 1976",),
    ),
    CalculatorDefinition(
        id="adjusted-body-weight",
        name="Adjusted Body Weight (for Obese Patients)",
        description="Calculates adjusted weight for drug dosing in obesity",
        category=ANTHROPOMETRIC,
        inputs=(
            _weight("actualWeight", "Actual Body Weight", "120"),
            _weight("idealWeight", "Ideal Body Weight", "73"),
        ),
        result_label="Adjusted Body Weight",
        result_unit="kg",
        precision=1,
        interpretation=InterpretationRule(
            above(0, lambda value: f"Adjusted BW: {value:.1f} kg - use for aminoglycosides"),
            otherwise("Unable to calculate"),
        ),
        clinical_pearls=(
            "Formula: Adjusted BW = IBW + 0.4 × (Actual BW - IBW)",
            "Used for aminoglycoside dosing in obesity",
            "Assumes 40% of excess weight is metabolically active",
            "Vancomycin: controversial (some use actual BW, some adjusted)",
        ),
        references=("Pai MP, Paloucek FP. Ann Pharmacother. 2000;34(9):1066-1069",),
    ),
]


# ── CKD-mineral bone disease ────────────────────────────────────────────────

_CKD_MBD = [
    CalculatorDefinition(
        id="ca-pho-product",
        name="Calcium-Phosphate Product (CKD-MBD)",
        description="Calculates risk of vascular calcification",
        category=CKD_MBD,
        inputs=(
            _num("calcium", "Serum Calcium", "mg/dL", "calcium", "9"),
            _num("phosphate", "Serum Phosphate", "mg/dL", "phosphate", "5"),
        ),
        result_label="Ca × PO₄ Product",
        result_unit="mg²/dL²",
        precision=1,
        interpretation=InterpretationRule(
            below(55, "Target range - low vascular calcification risk"),
            below(70, "Caution zone - risk of vascular calcification"),
            otherwise("High risk - immediate intervention needed (phosphate binders, dialysis, calcimimetics)"),
        ),
        clinical_pearls=(
            "Target: <55 mg²/dL²",
            "High product → metastatic calcification (vessels, soft tissues, heart valves)",
            "Associated with cardiovascular mortality in CKD and dialysis",
            "Management: phosphate binders, dietary restriction, dialysis adequacy, calcimimetics",
        ),
        references=("KDIGO 2017 Clinical Practice Guideline Update for CKD-MBD",),
    ),
]


# ── Systemic diseases & scores ──────────────────────────────────────────────

_SLEDAI_LABELS = {
    "seizures": "Seizures",
    "psychosis": "Psychosis",
    "organicBrainSyndrome": "Organic Brain Syndrome",
    "visualDisorder": "Visual Disorder",
    "cranialNerveDisorder": "Cranial Nerve Disorder",
    "lupusHeadache": "Lupus Headache",
    "cerebrovasitisAccident": "Cerebrovascular Accident",
    "vasculitis": "Vasculitis",
    "arthritis": "Arthritis",
    "myositis": "Myositis",
    "urinaryCasts": "Urinary Casts",
    "proteinuria": "Proteinuria (>0.5 g/day)",
    "hematuria": "Hematuria",
    "pyuria": "Pyuria",
    "rash": "Rash",
    "alopecia": "Alopecia",
    "mucousalUlcers": "Mucosal Ulcers",
    "pleuritis": "Pleuritis",
    "pericarditis": "Pericarditis",
    "lowComplement": "Low Complement (C3 or C4)",
    "elevatedDNA": "Elevated Anti-DNA Antibodies",
}

_SLICC_LABELS = {
    "acuteRash": "Acute Cutaneous Lupus (malar, bullous, TEN-like)",
    "chronicRash": "Chronic Cutaneous Lupus (DLE, ACLE)",
    "oralUlcers": "Oral Ulcers",
    "alopecia": "Alopecia",
    "photosensitivity": "Photosensitivity",
    "arthritis": "Arthritis (≥2 joints)",
    "serositis": "Serositis (pleuritis or pericarditis)",
    "renal": "Renal (proteinuria >0.5 g/day or cellular casts)",
    "psychosis": "Psychosis",
    "seizures": "Seizures",
    "hemolytic": "Hemolytic Anemia",
    "leukopenia": "Leukopenia (<4000/μL)",
    "thrombocytopenia": "Thrombocytopenia (<100,000/μL)",
    "ana": "ANA (≥1:80)",
    "antiDsDna": "Anti-dsDNA Antibodies",
    "antiSmRnp": "Anti-Sm or Anti-RNP Antibodies",
    "antiRoSsa": "Anti-Ro/SSA Antibodies",
    "antiLaSSb": "Anti-La/SSB Antibodies",
    "antiC1q": "Anti-C1q Antibodies",
    "directCoombs": "Direct Coombs Test (without hemolytic anemia)",
}

_FRAIL_LABELS = {
    "fatigue": "Fatigue",
    "resistance": "Resistance (difficulty climbing stairs)",
    "ambulation": "Ambulation (difficulty walking)",
    "illness": "Illness (>5 diseases)",
    "lossOfWeight": "Loss of Weight (>5% in past year)",
}

_PRISMA7_LABELS = {
    "age": "Age ≥85 years",
    "female": "Female",
    "generalHealth": "General Health Fair or Poor",
    "limitation": "Limitation in Activities",
    "falls": "Falls in Past Year",
    "memory": "Memory Problems",
    "helpNeeded": "Help Needed for Medications/Finances",
}


def _flags(labels: Dict[str, str]) -> Tuple[InputSpec, ...]:
    return tuple(_flag(input_id, label) for input_id, label in labels.items())


_SYSTEMIC = [
    CalculatorDefinition(
        id="sledai-2k",
        name="SLEDAI-2K Disease-Activity Score",
        description="Measures SLE disease activity",
        category=SYSTEMIC,
        inputs=_flags(_SLEDAI_LABELS),
        result_label="SLEDAI-2K Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            equals(0, "Remission - no active disease"),
            at_most(4, "Mild disease activity"),
            at_most(8, "Moderate disease activity"),
            at_most(16, "High disease activity"),
            otherwise("Very high disease activity - requires aggressive treatment"),
        ),
        clinical_pearls=(
            "Measures current SLE disease activity",
            "Useful for monitoring treatment response",
            "Guides immunosuppression intensity",
            "Serial measurements track disease course",
        ),
        references=("Gladman DD et al. Lupus. 2011;20(5):453-462",),
    ),
    CalculatorDefinition(
        id="slicc-2012",
        name="SLICC 2012 SLE Classification Criteria",
        description="Classifies patients as having SLE",
        category=SYSTEMIC,
        inputs=_flags(_SLICC_LABELS),
        result_label="SLICC 2012 Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_least(4, "Meets SLICC 2012 SLE classification criteria"),
            otherwise("Does not meet SLICC 2012 SLE classification criteria"),
        ),
        clinical_pearls=(
            "Classification criteria (not diagnostic criteria)",
            "Requires ≥4 points from clinical and immunologic criteria",
            "At least 1 clinical criterion required",
            "Updated from 1997 ACR criteria",
        ),
        references=("Petri M et al. Arthritis Care Res (Hoboken). 2012;64(8):1246-1255",),
    ),
    CalculatorDefinition(
        id="frail-scale",
        name="FRAIL Scale",
        description="Assesses frailty in older adults",
        category=SYSTEMIC,
        inputs=_flags(_FRAIL_LABELS),
        result_label="FRAIL Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            equals(0, "Not frail"),
            equals(1, "Pre-frail"),
            otherwise("Frail - higher mortality and morbidity risk"),
        ),
        clinical_pearls=(
            "Simple 5-item screening tool",
            "Identifies frail older adults at risk",
            "Guides treatment intensity and goals of care",
            "Useful in transplant candidate evaluation",
        ),
        references=("Morley JE et al. J Nutr Health Aging. 2012;16(7):601-608",),
    ),
    CalculatorDefinition(
        id="prisma-7",
        name="PRISMA-7 Frailty Score",
        description="Brief frailty screening tool",
        category=SYSTEMIC,
        inputs=_flags(_PRISMA7_LABELS),
        result_label="PRISMA-7 Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_most(1, "Not frail"),
            equals(2, "Possibly frail"),
            otherwise("Frail - higher risk of adverse outcomes"),
        ),
        clinical_pearls=(
            "7-item screening questionnaire",
            "Quick assessment in clinical practice",
            "Identifies frail older adults needing further evaluation",
            "Useful in transplant and dialysis settings",
        ),
        references=("Hébert R et al. J Clin Epidemiol. 2003;56(12):1236-1242",),
    ),
    CalculatorDefinition(
        id="curb-65",
        name="CURB-65 Pneumonia Severity Score",
        description="Predicts pneumonia severity and mortality",
        category=SYSTEMIC,
        inputs=(
            _flag("confusion", "Confusion (new onset)"),
            _bun("bun", "Urea Nitrogen (BUN)", "20"),
            _num("respiratoryRate", "Respiratory Rate", "breaths/min", placeholder="20"),
            _num("bloodPressureSystolic", "Systolic Blood Pressure", "mmHg", placeholder="110"),
            _num("bloodPressureDiastolic", "Diastolic Blood Pressure", "mmHg", placeholder="70"),
            _age(placeholder="65"),
        ),
        result_label="CURB-65 Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            equals(0, "Low risk (0.7% mortality) - outpatient treatment"),
            equals(1, "Low-intermediate risk (2.1% mortality) - consider hospitalization"),
            equals(2, "Intermediate risk (9.2% mortality) - hospitalize"),
            equals(3, "High risk (14.5% mortality) - hospitalize, consider ICU"),
            otherwise("Very high risk (>40% mortality) - ICU admission"),
        ),
        clinical_pearls=(
            "Guides hospitalization and ICU admission decisions",
            "Simple bedside assessment",
            "Useful in CKD patients with infection",
            "BUN >7 mmol/L (>19 mg/dL) = 1 point",
        ),
        references=("Lim WS et al. Thorax. 2003;58(5):377-382",),
    ),
    CalculatorDefinition(
        id="roks",
        name="ROKS (Recurrence Of Kidney Stone) Nomogram",
        description="Predicts kidney stone recurrence risk",
        category=SYSTEMIC,
        inputs=(
            _age(),
            _num("bmi", "BMI", "kg/m²", placeholder="28"),
            _flag("maleGender", "Male Gender"),
            _flag("previousStone", "Previous Kidney Stone"),
            _flag("familyHistory", "Family History of Kidney Stones"),
        ),
        result_label="Recurrence Risk",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            below(20, "Low recurrence risk"),
            below(50, "Moderate recurrence risk"),
            otherwise("High recurrence risk - aggressive prevention recommended"),
        ),
        clinical_pearls=(
            "Predicts 5-year stone recurrence",
            "Guides prevention intensity",
            "Male gender, previous stone, family history increase risk",
            "Obesity increases recurrence risk",
        ),
        references=("Rule AD et al. J Am Soc Nephrol. 2014;25(12):2878-2886",),
    ),
]


# ── Bone & fracture risk ────────────────────────────────────────────────────

_FRAX_LABELS = {
    "previousFracture": "Previous Fragility Fracture",
    "parentHipFracture": "Parent with Hip Fracture",
    "currentSmoking": "Current Smoking",
    "glucocorticoids": "Glucocorticoids (>=5mg/day prednisone >=3 months)",
    "rheumatoidArthritis": "Rheumatoid Arthritis",
    "secondaryOsteoporosis": "Secondary Osteoporosis (CKD, diabetes, etc.)",
    "alcoholIntake": "Alcohol >=3 units/day",
}

_BONE = [
    CalculatorDefinition(
        id="frax-simplified",
        name="FRAX Fracture Risk Assessment",
        description="Estimates 10-year probability of major osteoporotic and hip fractures",
        category=BONE,
        inputs=(
            _age(placeholder="65", min=40, max=90),
            _sex(),
            _weight(),
            _height(),
            *_flags(_FRAX_LABELS),
            _num("bmdTScore", "Femoral Neck BMD T-score (if available)", placeholder="-2.5",
                 required=False, min=-6, max=4),
        ),
        result_label="10-Year Major Osteoporotic Fracture Risk",
        result_unit="%",
        precision=1,
        interpretation=InterpretationRule(
            below(10, "Low fracture risk - lifestyle measures recommended"),
            below(20, "Moderate fracture risk - consider pharmacotherapy"),
            otherwise("High fracture risk - pharmacotherapy strongly recommended"),
        ),
        clinical_pearls=(
            "CKD patients have 2-4x increased fracture risk",
            "FRAX may underestimate risk in CKD (does not account for CKD-MBD)",
            "Consider bone biopsy in CKD 4-5 before bisphosphonates",
            "Glucocorticoid use common in GN patients - increases risk significantly",
            "Post-transplant patients on steroids need fracture risk assessment",
            "For full FRAX calculation, visit: frax.shef.ac.uk",
        ),
        references=(
            "Kanis JA et al. Osteoporos Int. 2008;19(4):385-397",
            "KDIGO 2017 Clinical Practice Guideline Update for CKD-MBD",
            "Naylor KL et al. Am J Kidney Dis. 2014;63(4):612-622",
        ),
    ),
]


# ── Contrast-induced nephropathy ────────────────────────────────────────────

_MEHRAN_PREVENTION = (
    "Prevention Strategies:\n"
    "• IV hydration: 0.9% NaCl at 1 mL/kg/h for 12h before and after procedure\n"
    "• Minimize contrast volume (target <3-4 × eGFR in mL)\n"
    "• Use iso-osmolar or low-osmolar contrast\n"
    "• Hold nephrotoxins (NSAIDs, aminoglycosides) 24-48h before\n"
    "• Consider holding metformin 48h post-procedure\n"
    "• Monitor SCr at 48-72h post-procedure"
)


def _mehran_text(category: str, cin_risk: str, dialysis_risk: str) -> str:
    return (f"{category}\n\n"
            f"Risk of CIN (SCr rise ≥25% or ≥0.5 mg/dL): {cin_risk}\n"
            f"Risk of requiring dialysis: {dialysis_risk}\n\n"
            f"{_MEHRAN_PREVENTION}")


_CONTRAST = [
    CalculatorDefinition(
        id="cin-mehran-score",
        name="Contrast-Induced Nephropathy (CIN) Risk - Mehran Score",
        description=("Predicts risk of contrast-induced nephropathy after percutaneous coronary "
                     "intervention using the Mehran score"),
        category=AKI_WORKUP,
        inputs=(
            _flag("hypotension", "Hypotension (SBP <80 mmHg for ≥1h requiring inotropes or IABP within 24h)"),
            _flag("iabp", "Intra-aortic balloon pump (IABP) use"),
            _flag("chf", "Congestive heart failure (NYHA class III-IV or history of pulmonary edema)"),
            _flag("age", "Age >75 years"),
            _flag("anemia", "Anemia (Hct <39% for men, <36% for women)"),
            _flag("diabetes", "Diabetes mellitus"),
            _num("contrastVolume", "Contrast Volume", "mL", placeholder="100", min=0),
            _creatinine(placeholder="1.5"),
            _num("egfr", "eGFR (if known, otherwise calculated from SCr)", EGFR_UNIT,
                 placeholder="45", required=False),
        ),
        result_label="Mehran Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_most(5, _mehran_text("Low Risk", "7.5%", "0.04%")),
            at_most(10, _mehran_text("Moderate Risk", "14%", "0.12%")),
            at_most(15, _mehran_text("High Risk", "26.1%", "1.09%")),
            otherwise(_mehran_text("Very High Risk", "57.3%", "12.6%")),
        ),
        clinical_pearls=(
            "Mehran score was developed for PCI patients but is widely applied to other contrast procedures",
            "CIN typically occurs 24-72h after contrast exposure, peaks at 3-5 days",
            "Most cases are non-oliguric and reversible within 1-2 weeks",
            "IV hydration is the most effective preventive measure",
            "N-acetylcysteine (NAC) has NOT shown consistent benefit in recent trials",
            "Contrast volume/eGFR ratio >3-4 significantly increases CIN risk",
            "Consider CO2 angiography or intravascular ultrasound to reduce contrast in high-risk patients",
            "Statins may have protective effect - continue if patient is already on therapy",
        ),
        references=(
            "Mehran R et al. J Am Coll Cardiol. 2004;44(7):1393-1399",
            "KDIGO Clinical Practice Guideline for AKI. Kidney Int Suppl. 2012;2:1-138",
            "ACR Manual on Contrast Media, Version 2023",
            "Weisbord SD et al. N Engl J Med. 2018;378(7):603-614 (PRESERVE trial)",
        ),
    ),
]


# ── Additional GFR equations ────────────────────────────────────────────────

def _fas_pediatric_note(value: float, inputs: Dict[str, Any]) -> Optional[str]:
    if inputs.get("age", 45) < 18:
        return "Note: For pediatric patients, FAS uses age-specific Q values for more accurate estimation."
    return None


_STAGE5_PLANNING = "Kidney failure (CKD Stage 5) - Consider dialysis/transplant planning"

_ADDITIONAL_GFR = [
    CalculatorDefinition(
        id="lund-malmo-revised",
        name="Lund-Malmö Revised (LMR)",
        description="Swedish equation with improved accuracy across GFR, age, and BMI intervals",
        category=KIDNEY_FUNCTION,
        inputs=(_creatinine(), _age(placeholder="50", min=18, max=120), _sex()),
        result_label="eGFR (LMR)",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(*_ckd_stage_bands(_STAGE5_PLANNING)),
        reference_ranges=_CKD_RANGES,
        clinical_pearls=(
            "Developed and validated in Swedish population",
            "Outperforms MDRD and CKD-EPI across GFR, age, and BMI intervals",
            "Does not include race as a variable",
            "More stable across different patient subgroups",
            "Recommended in Scandinavian countries",
        ),
        references=(
            "Björk J et al. Scand J Clin Lab Invest. 2011;71:232-239",
            "Nyman U et al. Clin Chem Lab Med. 2014;52:815-824",
        ),
    ),
    CalculatorDefinition(
        id="bis1-elderly",
        name="BIS1 (Berlin Initiative Study)",
        description="Optimized for elderly patients ≥70 years old",
        category=KIDNEY_FUNCTION,
        inputs=(_creatinine(placeholder="1.2"), _age(placeholder="75", min=70, max=120), _sex()),
        result_label="eGFR (BIS1)",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            when(lambda v, inputs: inputs.get("age", 70) < 70,
                 "BIS1 is designed for patients ≥70 years. Consider using CKD-EPI or FAS equation instead.",
                 "age < 70"),
            *_ckd_stage_bands(_STAGE5_PLANNING),
        ),
        reference_ranges=_CKD_RANGES,
        clinical_pearls=(
            "Specifically developed for patients aged 70 years and older",
            "Better accuracy than CKD-EPI in elderly populations",
            "Does not include race as a variable",
            "Not validated in African American populations",
            "Consider using BIS2 (cystatin C-based) for even better accuracy in elderly",
            "May better reflect true GFR decline with aging",
        ),
        references=(
            "Schaeffner ES et al. Ann Intern Med. 2012;157(7):471-481",
            "Koppe L et al. Nephrol Dial Transplant. 2013;28(11):2839-2847",
        ),
    ),
    CalculatorDefinition(
        id="fas-full-age-spectrum",
        name="FAS (Full Age Spectrum)",
        description="Works across all ages from children (2+) to elderly without discontinuity",
        category=KIDNEY_FUNCTION,
        inputs=(_creatinine(), _age(min=2, max=120), _sex()),
        result_label="eGFR (FAS)",
        result_unit=EGFR_UNIT,
        precision=0,
        interpretation=InterpretationRule(
            *_ckd_stage_bands("Kidney failure (CKD Stage 5)"),
            note=_fas_pediatric_note,
        ),
        reference_ranges=_CKD_RANGES,
        clinical_pearls=(
            "Single equation valid from age 2 to elderly without discontinuity",
            "Uses population-normalized creatinine (SCr/Q) approach",
            "Does not include race as a variable",
            "Q values represent median creatinine for healthy population at each age/sex",
            "Eliminates the abrupt changes when switching between pediatric and adult equations",
            "Particularly useful for adolescents transitioning to adult care",
            "Age adjustment factor applied for patients ≥40 years",
        ),
        references=(
            "Pottel H et al. Nephrol Dial Transplant. 2016;31(5):798-806",
            "Pottel H et al. Nephrol Dial Transplant. 2017;32(3):497-507",
        ),
    ),
]


# ── Critical care ───────────────────────────────────────────────────────────

_WELLS_PE_LABELS = {
    "dvtSigns": "Clinical signs/symptoms of DVT",
    "peTopDiagnosis": "PE is #1 diagnosis or equally likely",
    "heartRateOver100": "Heart rate >100 bpm",
    "immobilization": "Immobilization ≥3 days or surgery in past 4 weeks",
    "previousPeDvt": "Previous PE or DVT",
    "hemoptysis": "Hemoptysis",
    "malignancy": "Malignancy (treatment within 6 months or palliative)",
}

_WELLS_DVT_LABELS = {
    "activeCancer": "Active cancer (treatment within 6 months or palliative)",
    "paralysis": "Paralysis, paresis, or recent cast of lower extremity",
    "bedridden": "Recently bedridden ≥3 days or major surgery within 12 weeks",
    "localizedTenderness": "Localized tenderness along deep venous system",
    "entireLegSwollen": "Entire leg swollen",
    "calfSwelling": "Calf swelling ≥3 cm compared to asymptomatic leg",
    "pittingEdema": "Pitting edema confined to symptomatic leg",
    "collateralVeins": "Collateral superficial veins (non-varicose)",
    "previousDvt": "Previously documented DVT",
    "alternativeDiagnosis": "Alternative diagnosis at least as likely as DVT",
}

_CRITICAL_CARE = [
    CalculatorDefinition(
        id="qsofa",
        name="qSOFA (Quick SOFA)",
        description="Quick bedside sepsis screening tool using vital signs and mental status",
        category=CRITICAL_CARE,
        inputs=(
            _num("respiratoryRate", "Respiratory Rate", "breaths/min", placeholder="18", min=0, max=60),
            _num("systolicBP", "Systolic Blood Pressure", "mmHg", placeholder="120", min=0, max=300),
            _num("gcs", "Glasgow Coma Scale (GCS)", "points", placeholder="15", min=3, max=15),
        ),
        result_label="qSOFA Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_least(2, "HIGH RISK - High risk of poor outcome. Escalate care immediately."),
            equals(1, "Intermediate - Monitor closely. qSOFA has low sensitivity."),
            otherwise("Low Score - Does not exclude sepsis. Continue clinical assessment."),
        ),
        clinical_pearls=(
            "qSOFA ≥2 indicates high risk for poor outcomes in infection",
            "Should NOT be used alone to exclude sepsis (low sensitivity)",
            "NEWS2 is more sensitive for early sepsis detection",
            "Criteria: RR ≥22, SBP ≤100, GCS <15 (each +1 point)",
            "Useful for rapid bedside assessment outside ICU",
        ),
        references=(
            "Singer M et al. JAMA. 2016;315(8):801-810 (Sepsis-3 definitions)",
            "Seymour CW et al. JAMA. 2016;315(8):762-774",
        ),
    ),
    CalculatorDefinition(
        id="news2",
        name="NEWS2 (National Early Warning Score 2)",
        description="Standardized early warning score for detecting clinical deterioration",
        category=CRITICAL_CARE,
        inputs=(
            _num("respiratoryRate", "Respiratory Rate", "breaths/min", placeholder="18", min=0, max=60),
            _num("spo2", "Oxygen Saturation (SpO₂)", "%", placeholder="96", min=0, max=100),
            _select("supplementalO2", "Supplemental Oxygen", [("no", "No (Room Air)"), ("yes", "Yes (Any O₂)")]),
            _num("systolicBP", "Systolic Blood Pressure", "mmHg", placeholder="120", min=0, max=300),
            _num("heartRate", "Heart Rate", "beats/min", placeholder="80", min=0, max=250),
            _num("temperature", "Temperature", "°C", placeholder="37.0", min=30, max=45, step=0.1),
            _select("consciousness", "Consciousness (AVPU)", [
                ("A", "Alert"),
                ("C", "Confused/New confusion"),
                ("V", "Voice responsive"),
                ("P", "Pain responsive"),
                ("U", "Unresponsive"),
            ]),
        ),
        result_label="NEWS2 Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_least(7, "HIGH RISK - Emergency assessment by critical care team. ICU referral likely."),
            at_least(5, "MEDIUM RISK - Urgent review within 30-60 min. Consider sepsis bundle."),
            at_least(1, "Low-Medium Risk - Assess by registered nurse. Consider increased monitoring."),
            otherwise("Low Risk - Continue routine monitoring per ward protocol."),
        ),
        clinical_pearls=(
            "NEWS2 ≥5: Medium risk - urgent clinical review within 30-60 min",
            "NEWS2 ≥7: High risk - immediate senior review, ICU assessment",
            "Score of 3 in any single parameter also triggers urgent review",
            "More sensitive than qSOFA for early sepsis detection",
            "In transplant patients: immunosuppression may blunt fever response",
        ),
        references=(
            "Royal College of Physicians. NEWS2 (2017)",
            "NICE NG51: Sepsis recognition, diagnosis and early management (2024)",
        ),
    ),
    CalculatorDefinition(
        id="sofa",
        name="SOFA (Sequential Organ Failure Assessment)",
        description="Assesses organ dysfunction in critically ill patients; defines sepsis-3",
        category=CRITICAL_CARE,
        inputs=(
            _num("pao2", "PaO₂", "mmHg", placeholder="95", min=0),
            _num("fio2", "FiO₂", "%", placeholder="21", min=21, max=100),
            _num("platelets", "Platelets", "×10⁹/L", placeholder="200", min=0),
            _num("bilirubin", "Bilirubin", "mg/dL", "bilirubin", "0.9", min=0),
            _num("map", "Mean Arterial Pressure (MAP)", "mmHg", placeholder="80", min=0),
            _select("vasopressor", "Vasopressor Support", [
                ("none", "None"),
                ("dopa_low", "Dopamine ≤5 or Dobutamine (any)"),
                ("dopa_mid", "Dopamine >5 or Norepi/Epi ≤0.1"),
                ("dopa_high", "Dopamine >15 or Norepi/Epi >0.1"),
            ]),
            _num("gcs", "Glasgow Coma Scale (GCS)", "points", placeholder="15", min=3, max=15),
            _creatinine(min=0),
            _num("urineOutput", "Urine Output (24h)", "mL/day", placeholder="2000", min=0),
        ),
        result_label="SOFA Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_least(11, "VERY HIGH - Critical organ dysfunction (~50%+ mortality). Maximum support needed."),
            at_least(6, "HIGH - Significant organ dysfunction. ICU-level care required."),
            at_least(2, "MODERATE - Organ dysfunction present. If acute rise ≥2 + infection = sepsis."),
            otherwise("Low - Minimal organ dysfunction. Continue routine assessment."),
        ),
        clinical_pearls=(
            "SOFA ≥2 from baseline + suspected infection = Sepsis-3 definition",
            "Each point increase associated with ~7-9% mortality rise",
            "Scores 6 organ systems: respiratory, coagulation, liver, cardiovascular, CNS, renal",
            "Daily SOFA trending useful for prognosis in ICU",
            "Vasopressor doses in μg/kg/min for cardiovascular scoring",
        ),
        references=(
            "Singer M et al. JAMA. 2016;315(8):801-810 (Sepsis-3)",
            "Vincent JL et al. Intensive Care Med. 1996;22(7):707-710",
        ),
    ),
    CalculatorDefinition(
        id="wells-pe",
        name="Wells Score for Pulmonary Embolism (PE)",
        description="Clinical prediction rule for estimating probability of PE",
        category=CRITICAL_CARE,
        inputs=tuple(_yes_no(input_id, label) for input_id, label in _WELLS_PE_LABELS.items()),
        result_label="Wells PE Score",
        result_unit="points",
        precision=1,
        interpretation=InterpretationRule(
            above(6, "HIGH PROBABILITY - >50% risk of PE. Consider immediate anticoagulation and imaging."),
            at_least(2, "MODERATE PROBABILITY - 20-50% risk. D-dimer or imaging recommended."),
            otherwise("LOW PROBABILITY - <10% risk. D-dimer to rule out; if negative, PE unlikely."),
        ),
        clinical_pearls=(
            "Traditional interpretation: >6 high, 2-6 moderate, <2 low probability",
            "Simplified (two-tier): >4 PE likely, ≤4 PE unlikely",
            "If PE unlikely + negative D-dimer: PE can be safely ruled out",
            "If PE likely: proceed directly to CT pulmonary angiography",
            "Consider age-adjusted D-dimer cutoff in patients >50 years",
        ),
        references=(
            "Wells PS et al. Ann Intern Med. 2001;135(2):98-107",
            "van Belle A et al. JAMA. 2006;295(2):172-179",
        ),
    ),
    CalculatorDefinition(
        id="wells-dvt",
        name="Wells Score for Deep Vein Thrombosis (DVT)",
        description="Clinical prediction rule for estimating probability of DVT",
        category=CRITICAL_CARE,
        inputs=tuple(_yes_no(input_id, label) for input_id, label in _WELLS_DVT_LABELS.items()),
        result_label="Wells DVT Score",
        result_unit="points",
        precision=0,
        interpretation=InterpretationRule(
            at_least(3, "HIGH PROBABILITY - ~75% risk of DVT. Ultrasound recommended."),
            at_least(1, "MODERATE PROBABILITY - ~17% risk. D-dimer or ultrasound recommended."),
            otherwise("LOW PROBABILITY - ~3% risk. D-dimer to rule out; if negative, DVT unlikely."),
        ),
        clinical_pearls=(
            "Score ≥3: High probability (~75% prevalence)",
            "Score 1-2: Moderate probability (~17% prevalence)",
            "Score ≤0: Low probability (~3% prevalence)",
            "If DVT unlikely (≤1) + negative D-dimer: DVT can be safely ruled out",
            "Measure calf circumference 10 cm below tibial tuberosity",
            "Alternative diagnosis (-2 points) is the only negative criterion",
        ),
        references=(
            "Wells PS et al. Lancet. 1997;350(9094):1795-1798",
            "Wells PS et al. N Engl J Med. 2003;349(13):1227-1235",
        ),
    ),
]


CATALOG: Tuple[CalculatorDefinition, ...] = tuple(
    _KIDNEY_FUNCTION + _AKI_WORKUP + _ELECTROLYTES + _PROTEINURIA + _DIALYSIS + _TRANSPLANT
    + _CARDIOVASCULAR + _ANTHROPOMETRIC + _CKD_MBD + _SYSTEMIC + _BONE + _CONTRAST
    + _ADDITIONAL_GFR + _CRITICAL_CARE
)
