"""
Reference validation suites.

Each suite holds worked cases for one calculator, taken from the primary
publication or a hand calculation of the published equation. Cases run
through the full evaluator (validation, unit normalization, rounding), so a
suite also guards the unit handling of its calculator.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from nephrocalc.errors import CalculatorError
from nephrocalc.evaluator import Evaluator
from nephrocalc.models import EvaluationRequest

logger = logging.getLogger(__name__)


class ReferenceCase(BaseModel):
    """One worked example with its expected reported value."""

    name: str
    inputs: Dict[str, Any]
    expected: float
    tolerance: float = 0.1
    units: Dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = None


class ReferenceSuite(BaseModel):
    calculator_id: str
    source: str
    cases: List[ReferenceCase]


class CaseResult(BaseModel):
    case: ReferenceCase
    actual: Optional[float] = None
    passed: bool
    error: Optional[float] = None
    message: Optional[str] = None


class ValidationSummary(BaseModel):
    total: int = 0
    passed: int = 0
    results: Dict[str, List[CaseResult]] = Field(default_factory=dict)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def failed_calculators(self) -> List[str]:
        return [calc_id for calc_id, rows in self.results.items() if not all(r.passed for r in rows)]

    @property
    def ok(self) -> bool:
        return self.total > 0 and self.failed == 0


def _case(name: str, inputs: Dict[str, Any], expected: float, tolerance: float = 0.1,
          units: Optional[Dict[str, str]] = None, description: Optional[str] = None) -> ReferenceCase:
    return ReferenceCase(name=name, inputs=inputs, expected=expected, tolerance=tolerance,
                         units=units or {}, description=description)


def _suite(calc_id: str, source: str, *cases: ReferenceCase) -> ReferenceSuite:
    return ReferenceSuite(calculator_id=calc_id, source=source, cases=list(cases))


# ── Suites ───────────────────────────────────────────────────────────────────

_SUITES = [
    # Kidney function
    _suite(
        "ckd-epi-creatinine", "Inker LA et al. N Engl J Med. 2021;385(19):1737-1749",
        _case("Male 45, SCr 1.0", {"creatinine": 1.0, "age": 45, "sex": "M"}, 95, 1),
        _case("SI input, SCr 88.4 μmol/L", {"creatinine": 88.4, "age": 45, "sex": "M"}, 95, 1,
              units={"creatinine": "si"}),
        _case("Female 30, SCr 0.6", {"creatinine": 0.6, "age": 30, "sex": "F"}, 124, 1),
    ),
    _suite(
        "cockcroft-gault", "Cockcroft DW, Gault MH. Nephron. 1976;16(1):31-41",
        _case("Male 50, 70 kg", {"creatinine": 1.0, "age": 50, "weight": 70, "sex": "M"}, 87.5, 1),
        _case("Female 50, 70 kg", {"creatinine": 1.0, "age": 50, "weight": 70, "sex": "F"}, 74.4, 1),
    ),
    _suite(
        "schwartz-pediatric", "Schwartz GJ et al. Kidney Int. 2009;76(2):159-166",
        _case("Child 120 cm, SCr 0.5", {"creatinine": 0.5, "height": 120}, 99, 1),
    ),
    _suite(
        "kinetic-egfr", "Urea generation kinetics",
        _case("BUN 60 to 20 over 4 h", {"preBUN": 60, "postBUN": 20, "weight": 70, "sessionTime": 4}, 428, 1),
    ),
    _suite(
        "ckd-epi-cystatin-c", "Inker LA et al. N Engl J Med. 2021;385(19):1737-1749",
        _case("Male 50 at both thresholds", {"creatinine": 0.9, "cystatinC": 0.8, "age": 50, "sex": "M"}, 111, 1),
    ),
    _suite(
        "egfr-slope", "KDIGO 2024 CKD Guideline",
        _case("60 to 50 over 2 years", {"eGFRBaseline": 60, "eGFRFinal": 50, "timeYears": 2}, -5.0, 0.01),
    ),
    _suite(
        "kfre", "Tangri N et al. JAMA. 2011;305(15):1553-1559",
        _case("Male 60, eGFR 30, ACR 300, 2-year",
              {"age": 60, "sex": "M", "eGFR": 30, "acr": 300, "years": "2"}, 6.9, 0.2),
    ),
    _suite(
        "lund-malmo-revised", "Björk J et al. Scand J Clin Lab Invest. 2011;71(3):232-239",
        _case("Male 50, SCr 1.0", {"creatinine": 1.0, "age": 50, "sex": "M"}, 79, 1),
    ),
    _suite(
        "bis1-elderly", "Schaeffner ES et al. Ann Intern Med. 2012;157(7):471-481",
        _case("Male 80, SCr 1.0", {"creatinine": 1.0, "age": 80, "sex": "M"}, 58, 1),
    ),
    _suite(
        "fas-full-age-spectrum", "Pottel H et al. Nephrol Dial Transplant. 2016;31(5):798-806",
        _case("Male 30, SCr at Q", {"creatinine": 0.9, "age": 30, "sex": "M"}, 107, 1),
        _case("Male 60, SCr at Q", {"creatinine": 0.9, "age": 60, "sex": "M"}, 84, 1),
    ),

    # AKI workup
    _suite(
        "fena", "Espinel CH. JAMA. 1976;236(6):579-581",
        _case("Prerenal", {"urineNa": 20, "plasmaCr": 2.0, "plasmaNa": 140, "urineCr": 80}, 0.36, 0.01),
        _case("Intrinsic", {"urineNa": 100, "plasmaCr": 2.0, "plasmaNa": 140, "urineCr": 100}, 1.43, 0.01),
    ),
    _suite(
        "feurea", "Carvounis CP et al. Kidney Int. 2002;62(6):2223-2229",
        _case("FEUrea 10%", {"urineUrea": 300, "plasmaCr": 2, "plasmaUrea": 60, "urineCr": 100}, 10.0, 0.01),
    ),
    _suite(
        "anion-gap", "Kraut JA, Madias NE. Clin J Am Soc Nephrol. 2007;2(1):162-174",
        _case("Borderline high", {"sodium": 140, "chloride": 105, "bicarbonate": 20}, 15, 0.05),
        _case("Normal", {"sodium": 140, "chloride": 102, "bicarbonate": 24}, 14, 0.05),
    ),
    _suite(
        "delta-gap", "Rastegar A. J Am Soc Nephrol. 2007;18(9):2429-2431",
        _case("Pure HAGMA", {"measuredAG": 24, "measuredHCO3": 12}, 1.0, 0.01),
    ),
    _suite(
        "bun-creatinine-ratio", "Clinical nephrology standards",
        _case("Normal", {"bunValue": 14, "creatinine": 1.0}, 14, 0.1),
        _case("Prerenal", {"bunValue": 28, "creatinine": 0.9}, 31.1, 0.1),
        _case("SI input", {"bunValue": 10, "creatinine": 79.56}, 31.1, 0.2,
              units={"bunValue": "si", "creatinine": "si"}),
    ),
    _suite(
        "osmolal-gap", "Purssell RA et al. Ann Emerg Med. 2001;38(6):653-659",
        _case("Normal gap", {"measuredOsmolality": 300, "sodium": 140, "glucose": 90, "bun": 14}, 10, 0.05),
    ),
    _suite(
        "urine-anion-gap", "Batlle DC et al. N Engl J Med. 1988;318(10):594-599",
        _case("Negative gap", {"urineNa": 40, "urineK": 20, "urineCl": 80}, -20, 0.05),
    ),
    _suite(
        "cin-mehran-score", "Mehran R et al. J Am Coll Cardiol. 2004;44(7):1393-1399",
        _case("Hypotension, age, 250 mL, eGFR 35",
              {"hypotension": True, "age": True, "contrastVolume": 250, "creatinine": 1.8, "egfr": 35}, 15, 0),
        _case("No eGFR, SCr 2.0", {"contrastVolume": 100, "creatinine": 2.0}, 5, 0),
    ),

    # Electrolytes
    _suite(
        "ttkg", "West ML et al. Miner Electrolyte Metab. 1986;12(4):234-238",
        _case("TTKG 5", {"urineK": 40, "plasmaK": 4, "urineOsm": 600, "plasmaOsm": 300}, 5.0, 0.01),
    ),
    _suite(
        "water-deficit-hypernatremia", "Adrogué HJ, Madias NE. N Engl J Med. 2000;342(20):1493-1499",
        _case("Na 155, TBW 42", {"currentNa": 155, "targetNa": 140, "totalBodyWater": 42}, 4.5, 0.05),
    ),
    _suite(
        "corrected-sodium-hyperglycemia", "Katz MA. N Engl J Med. 1973;289(16):843-844",
        _case("Glucose 600", {"measuredNa": 130, "glucose": 600}, 138, 0.05),
    ),
    _suite(
        "sodium-correction-rate", "Adrogué HJ, Madias NE. N Engl J Med. 2000;342(21):1581-1589",
        _case("3% saline over 24 h",
              {"currentNa": 120, "targetNa": 130, "infusionNa": 513, "totalBodyWater": 35,
               "correctionHours": 24}, 0.45, 0.01),
    ),
    _suite(
        "sodium-deficit", "Clinical nephrology standards",
        _case("Na 120 to 130", {"currentNa": 120, "targetNa": 130, "totalBodyWater": 42}, 420, 0.05),
    ),
    _suite(
        "corrected-calcium", "Payne RB et al. Br Med J. 1973;4(5893):643-646",
        _case("Low albumin", {"measuredCa": 7.5, "albumin": 2.0}, 9.1, 0.005),
        _case("Normal albumin", {"measuredCa": 9.0, "albumin": 4.0}, 9.0, 0.005),
    ),
    _suite(
        "qtc-bazett", "Bazett HC. Heart. 1920;7:353-370",
        _case("HR 60", {"qtInterval": 400, "heartRate": 60}, 400, 0.05),
        _case("HR 100", {"qtInterval": 400, "heartRate": 100}, 516.4, 0.1),
    ),

    # Proteinuria
    _suite(
        "uacr", "KDIGO 2024 CKD Guideline",
        _case("A2 albuminuria", {"urineAlbumin": 30, "urineCreatinineUACR": 1}, 30, 0.05),
    ),
    _suite(
        "upcr", "KDIGO 2024 CKD Guideline",
        _case("0.5 g/g", {"urineProtein": 500, "urineCreatinineUPCR": 1000}, 0.5, 0.005),
    ),
    _suite(
        "acr-from-pcr", "Sumida K et al. Ann Intern Med. 2020;173(6):426-435",
        _case("PCR 1.0", {"pcr": 1.0}, 700, 0.05),
    ),
    _suite(
        "24-hour-protein", "Ginsberg JM et al. N Engl J Med. 1983;309(25):1543-1546",
        _case("Ratio mode", {"testType": "pcr", "inputMode": "ratio", "ratioValue": 1.2}, 1.2, 0.001),
        _case("Raw concentrations", {"testType": "pcr", "inputMode": "raw", "proteinValue": 50,
                                     "creatinineValue": 100}, 0.5, 0.001),
    ),
    _suite(
        "igan-prediction", "Barbour SJ et al. JAMA Intern Med. 2019;179(7):942-952",
        _case("5-year risk", {"age": 40, "eGFR": 60, "map": 100, "proteinuria": 1.0, "years": "5"}, 2.35, 0.2),
    ),

    # Dialysis
    _suite(
        "ktv-hemodialysis", "Daugirdas JT. J Am Soc Nephrol. 1993;4(5):1205-1213",
        _case("No ultrafiltration", {"preBUN": 60, "postBUN": 20, "postWeight": 70, "sessionTime": 240,
                                     "ultrafiltration": 0}, 1.20, 0.01),
        _case("3 L ultrafiltration", {"preBUN": 60, "postBUN": 20, "postWeight": 70, "sessionTime": 240,
                                      "ultrafiltration": 3}, 1.32, 0.01),
        _case("SI urea", {"preBUN": 21.42, "postBUN": 7.14, "postWeight": 70, "sessionTime": 240,
                          "ultrafiltration": 0}, 1.20, 0.01, units={"preBUN": "si", "postBUN": "si"}),
    ),
    _suite(
        "total-body-water", "Watson PE et al. Am J Clin Nutr. 1980;33(1):27-39",
        _case("Male", {"weight": 75, "height": 175, "age": 40, "sex": "M"}, 42.79, 0.02),
        _case("Female", {"weight": 60, "height": 160, "age": 40, "sex": "F"}, 29.80, 0.02),
    ),
    _suite(
        "hd-session-duration", "KDOQI Hemodialysis Adequacy 2015",
        _case("Target 1.4", {"targetKtV": 1.4, "dialyzerClearance": 250, "totalBodyWater": 40}, 224, 0.05),
    ),
    _suite(
        "pd-weekly-ktv", "ISPD Adequacy Guidelines 2020",
        _case("CAPD with residual", {"dailyDialysateUrea": 50, "plasmaUrea": 60, "dialysateVolume": 8,
                                     "totalBodyWater": 35, "residualKtv": 0.3}, 1.63, 0.01),
    ),
    _suite(
        "residual-rkf-ktv", "ISPD Adequacy Guidelines 2020",
        _case("Kru 3 mL/min", {"ureaUrineClearance": 3, "totalBodyWater": 35}, 0.86, 0.01),
    ),
    _suite(
        "equilibrated-ktv", "Daugirdas JT, Schneditz D. ASAIO J. 1995;41(3):M719-724",
        _case("4-hour session", {"spKtv": 1.4, "sessionTime": 4}, 1.22, 0.01),
    ),
    _suite(
        "standard-ktv", "KDOQI Hemodialysis Adequacy 2015",
        _case("With residual", {"spKtv": 1.4, "residualKtv": 0.3}, 1.7, 0.01),
    ),
    _suite(
        "urr", "KDOQI Hemodialysis Adequacy 2015",
        _case("BUN 60 to 20", {"preBUN": 60, "postBUN": 20}, 66.7, 0.05),
    ),
    _suite(
        "iron-deficit", "Ganzoni AM. Schweiz Med Wochenschr. 1970;100(7):301-303",
        _case("Male 70 kg", {"weight": 70, "targetHemoglobin": 15, "currentHemoglobin": 10, "sex": "M"}, 1340, 0.05),
    ),

    # Transplant
    _suite(
        "kdpi", "OPTN KDPI Guide for Clinicians, 2024 mapping table",
        _case("Reference donor", {"donorAge": 40, "donorHeight": 170, "donorWeight": 80, "donorCreatinine": 1.0,
                                  "hypertensionDuration": "NO", "diabetesDuration": "NO",
                                  "causeOfDeath": "OTHER", "isDCD": "NO"}, 16, 0),
    ),
    _suite(
        "epts", "OPTN EPTS Guide",
        _case("Young, no risk factors", {"recipientAge": 40, "yearsOnDialysis": 0}, 0, 0),
        _case("Diabetic, 3 years dialysis", {"recipientAge": 60, "recipientDiabetes": True,
                                             "yearsOnDialysis": 3}, 11.5, 1),
    ),
    _suite(
        "banff-classification", "Loupy A et al. Am J Transplant. 2020;20(9):2318-2331",
        _case("No lesions", {}, 1, 0),
        _case("TCMR IB", {"i": 2, "t": 2}, 4, 0),
        _case("Active ABMR", {"g": 2, "ptc": 1, "c4d": "2"}, 2, 0),
    ),
    _suite(
        "tacrolimus-monitoring", "Thölking G et al. Am J Transplant. 2014;14(9):2154-2160",
        _case("Dose 4, trough 8", {"dailyDose": 4, "troughLevel": 8}, 0.5, 0.005),
    ),

    # Anthropometric and CKD-MBD
    _suite(
        "bmi", "WHO BMI classification",
        _case("Metric", {"weight": 70, "height": 170}, 24.2, 0.05),
        _case("Imperial", {"weight": 154.32, "height": 66.93}, 24.2, 0.1,
              units={"weight": "lbs", "height": "in"}),
    ),
    _suite(
        "bsa-dubois", "Du Bois D, Du Bois EF. Arch Intern Med. 1916;17:863-871",
        _case("70 kg, 170 cm", {"weight": 70, "height": 170}, 1.81, 0.02),
    ),
    _suite(
        "bsa-mosteller", "Mosteller RD. N Engl J Med. 1987;317(17):1098",
        _case("70 kg, 170 cm", {"weight": 70, "height": 170}, 1.82, 0.01),
    ),
    _suite(
        "devine-ibw", "Devine BJ. Drug Intell Clin Pharm. 1974;8:650-655",
        _case("Male 180 cm", {"height": 180, "sex": "M"}, 75.0, 0.1),
    ),
    _suite(
        "lean-body-weight", "James WPT. Research on Obesity. HMSO; 1976",
        _case("Male 80 kg, 180 cm", {"weight": 80, "height": 180, "sex": "M"}, 62.7, 0.1),
    ),
    _suite(
        "adjusted-body-weight", "Clinical pharmacology standards",
        _case("Actual 100, ideal 70", {"actualWeight": 100, "idealWeight": 70}, 82, 0.05),
    ),
    _suite(
        "ca-pho-product", "KDIGO 2017 CKD-MBD Guideline Update",
        _case("Ca 10, PO4 5", {"calcium": 10, "phosphate": 5}, 50, 0.05),
    ),

    # Scores
    _suite(
        "sledai-2k", "Gladman DD et al. J Rheumatol. 2002;29(2):288-291",
        _case("Seizures and arthritis", {"seizures": True, "arthritis": True}, 12, 0),
    ),
    _suite(
        "slicc-2012", "Petri M et al. Arthritis Rheum. 2012;64(8):2677-2686",
        _case("Renal with serology", {"renal": True, "ana": True, "antiDsDna": True}, 10, 0),
    ),
    _suite(
        "frail-scale", "Morley JE et al. J Nutr Health Aging. 2012;16(7):601-608",
        _case("Three items", {"fatigue": True, "resistance": True, "ambulation": True}, 3, 0),
    ),
    _suite(
        "prisma-7", "Raîche M et al. Arch Gerontol Geriatr. 2008;47(1):9-18",
        _case("Three items", {"age": True, "female": True, "falls": True}, 3, 0),
    ),
    _suite(
        "curb-65", "Lim WS et al. Thorax. 2003;58(5):377-382",
        _case("All criteria", {"confusion": True, "bun": 25, "respiratoryRate": 32, "bloodPressureSystolic": 85,
                               "bloodPressureDiastolic": 50, "age": 70}, 5, 0),
        _case("None", {"bun": 15, "respiratoryRate": 16, "bloodPressureSystolic": 125,
                       "bloodPressureDiastolic": 80, "age": 40}, 0, 0),
    ),
    _suite(
        "roks", "Rule AD et al. J Am Soc Nephrol. 2014;25(12):2878-2886",
        _case("Low risk", {"age": 30, "bmi": 20}, 70, 0.1),
    ),
    _suite(
        "frax-simplified", "Kanis JA et al. Osteoporos Int. 2008;19(4):385-397",
        _case("Female 65, no risk factors", {"age": 65, "sex": "F", "weight": 60, "height": 160}, 11.0, 0.05),
        _case("Female 65, prior fracture", {"age": 65, "sex": "F", "weight": 60, "height": 160,
                                            "previousFracture": True}, 20.35, 0.1),
    ),

    # Critical care
    _suite(
        "qsofa", "Seymour CW et al. JAMA. 2016;315(8):762-774",
        _case("Two criteria", {"respiratoryRate": 24, "systolicBP": 95, "gcs": 15}, 2, 0),
    ),
    _suite(
        "news2", "Royal College of Physicians. NEWS2. 2017",
        _case("Normal observations", {"respiratoryRate": 16, "spo2": 97, "supplementalO2": "no", "systolicBP": 120,
                                      "heartRate": 80, "temperature": 37, "consciousness": "A"}, 0, 0),
        _case("Deteriorating", {"respiratoryRate": 26, "spo2": 92, "supplementalO2": "yes", "systolicBP": 95,
                                "heartRate": 115, "temperature": 38.5, "consciousness": "A"}, 12, 0),
    ),
    _suite(
        "sofa", "Vincent JL et al. Intensive Care Med. 1996;22(7):707-710",
        _case("No dysfunction", {"pao2": 90, "fio2": 21, "platelets": 200, "bilirubin": 0.9, "map": 80,
                                 "vasopressor": "none", "gcs": 15, "creatinine": 1.0, "urineOutput": 2000}, 0, 0),
        _case("Multi-organ failure", {"pao2": 80, "fio2": 50, "platelets": 80, "bilirubin": 2.5, "map": 65,
                                      "vasopressor": "dopa_mid", "gcs": 12, "creatinine": 2.5,
                                      "urineOutput": 400}, 15, 0),
    ),
    _suite(
        "wells-pe", "Wells PS et al. Thromb Haemost. 2000;83(3):416-420",
        _case("DVT signs and tachycardia", {"dvtSigns": "yes", "heartRateOver100": "yes"}, 4.5, 0.05),
    ),
    _suite(
        "wells-dvt", "Wells PS et al. N Engl J Med. 2003;349(13):1227-1235",
        _case("Cancer, swelling, alternative diagnosis",
              {"activeCancer": "yes", "calfSwelling": "yes", "alternativeDiagnosis": "yes"}, 0, 0),
    ),
]

REFERENCE_SUITES: Dict[str, ReferenceSuite] = {suite.calculator_id: suite for suite in _SUITES}


# ── Running ──────────────────────────────────────────────────────────────────

def run_case(case: ReferenceCase, calc_id: str, evaluator: Evaluator) -> CaseResult:
    request = EvaluationRequest(calculator_id=calc_id, values=case.inputs, units=case.units)
    try:
        result = evaluator.evaluate(request)
    except CalculatorError as exc:
        logger.warning(f"{calc_id} / {case.name}: {exc}")
        return CaseResult(case=case, passed=False, message=str(exc))
    error = abs(result.value - case.expected)
    # Small slack so decimal tolerances survive binary rounding
    return CaseResult(case=case, actual=result.value, error=error, passed=error <= case.tolerance + 1e-9)


def run_reference_suite(calc_id: str, evaluator: Optional[Evaluator] = None) -> List[CaseResult]:
    suite = REFERENCE_SUITES.get(calc_id)
    if suite is None:
        logger.warning(f"No reference suite for calculator: {calc_id}")
        return []
    evaluator = evaluator or Evaluator()
    return [run_case(case, calc_id, evaluator) for case in suite.cases]


def validate_all(evaluator: Optional[Evaluator] = None) -> ValidationSummary:
    evaluator = evaluator or Evaluator()
    summary = ValidationSummary()
    for calc_id in REFERENCE_SUITES:
        rows = run_reference_suite(calc_id, evaluator)
        summary.results[calc_id] = rows
        summary.total += len(rows)
        summary.passed += sum(1 for r in rows if r.passed)
    return summary


# ── Reports ──────────────────────────────────────────────────────────────────

def format_suite_report(calc_id: str, results: List[CaseResult]) -> str:
    suite = REFERENCE_SUITES.get(calc_id)
    passed = sum(1 for r in results if r.passed)
    total = len(results)
    rate = passed / total * 100 if total else 0.0
    lines = [
        "=" * 90,
        f"TEST REPORT: {calc_id}",
        "=" * 90,
        f"Pass Rate: {passed}/{total} ({rate:.1f}%)",
        f"Reference: {suite.source if suite else 'Unknown'}",
        "",
    ]
    for r in results:
        lines.append(f"{'PASS' if r.passed else 'FAIL'}: {r.case.name}")
        if not r.passed:
            lines.append(f"  Expected: {r.case.expected} ± {r.case.tolerance}")
            lines.append(f"  Actual:   {r.actual if r.actual is not None else r.message}")
    return "\n".join(lines)


def format_summary(summary: ValidationSummary) -> str:
    lines = [
        "=" * 90,
        "RESULTS SUMMARY",
        "=" * 90,
        f"{'Calculator':<40} {'Passed':>8} {'Total':>6}",
        "-" * 90,
    ]
    for calc_id, rows in summary.results.items():
        passed = sum(1 for r in rows if r.passed)
        lines.append(f"{calc_id:<40} {passed:>8} {len(rows):>6}")
    lines.append("-" * 90)
    rate = summary.passed / summary.total * 100 if summary.total else 0.0
    lines.append(f"{'OVERALL':<40} {summary.passed:>8} {summary.total:>6}  ({rate:.1f}%)")
    if summary.failed_calculators:
        lines.append("")
        lines.append("Failed calculators:")
        lines.extend(f"  - {calc_id}" for calc_id in summary.failed_calculators)
    lines.append("=" * 90)
    return "\n".join(lines)
