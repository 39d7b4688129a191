"""
Closed-form clinical equations.

Every function takes canonical-unit arguments (creatinine and BUN in mg/dL,
height in cm, weight in kg unless the name says otherwise) and returns the
unrounded result. Rounding for display happens in the evaluator.
Undefined domains (zero denominators, logs of non-positive values) raise
``InvalidInput``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from nephrocalc.errors import InvalidInput


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero for positives, matching clinical tables."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _clamp(val: float, lo: float, hi: float) -> float:
    return max(lo, min(val, hi))


def _positive(field: str, value: float) -> float:
    if value <= 0:
        raise InvalidInput(field, "must be greater than zero")
    return value


def _nonzero(field: str, value: float) -> float:
    if value == 0:
        raise InvalidInput(field, "must not be zero")
    return value


def _is_female(sex: str) -> bool:
    return str(sex).strip().upper() in ("F", "FEMALE")


# ── Kidney function ─────────────────────────────────────────────────────────

def ckd_epi_creatinine(creatinine: float, age: float, sex: str) -> float:
    """CKD-EPI 2021 race-free creatinine equation (mL/min/1.73m²)."""
    _positive("creatinine", creatinine)
    female = _is_female(sex)
    kappa = 0.7 if female else 0.9
    alpha = -0.241 if female else -0.302
    ratio = creatinine / kappa
    exponent = alpha if creatinine <= kappa else -1.200
    egfr = 142 * ratio ** exponent * 0.9938 ** age
    if female:
        egfr *= 1.012
    return egfr


def mdrd(creatinine: float, age: float, sex: str, black: bool = False) -> float:
    """IDMS-traceable 4-variable MDRD."""
    _positive("creatinine", creatinine)
    _positive("age", age)
    egfr = 175 * creatinine ** -1.154 * age ** -0.203
    if _is_female(sex):
        egfr *= 0.742
    if black:
        egfr *= 1.212
    return egfr


def cockcroft_gault(creatinine: float, age: float, weight: float, sex: str) -> float:
    """Creatinine clearance in mL/min."""
    _positive("creatinine", creatinine)
    clearance = ((140 - age) * weight) / (72 * creatinine)
    if _is_female(sex):
        clearance *= 0.85
    return clearance


def schwartz(creatinine: float, height: float) -> float:
    """Bedside Schwartz (2009) for children."""
    _positive("creatinine", creatinine)
    return 0.413 * height / creatinine


def kinetic_egfr(pre_bun: float, post_bun: float, weight: float, time_hours: float) -> float:
    """Urea-kinetic residual clearance from an inter-dialytic BUN rise."""
    _positive("weight", weight)
    _positive("timeHours", time_hours)
    _positive("preBUN", pre_bun)
    urea_generation = ((pre_bun - post_bun) * weight * 0.6) / (time_hours * 0.58)
    return urea_generation * 1440 / (pre_bun * 0.58 * weight)


def ckd_epi_cystatin_c(creatinine: float, cystatin_c: float, age: float, sex: str) -> float:
    """CKD-EPI 2021 creatinine-cystatin C equation."""
    _positive("creatinine", creatinine)
    _positive("cystatinC", cystatin_c)
    female = _is_female(sex)
    kappa = 0.7 if female else 0.9
    alpha = -0.219 if female else -0.144
    scr = creatinine / kappa
    scys = cystatin_c / 0.8
    egfr = (135 * min(scr, 1) ** alpha * max(scr, 1) ** -0.544
            * min(scys, 1) ** -0.323 * max(scys, 1) ** -0.778 * 0.9961 ** age)
    if female:
        egfr *= 0.963
    return egfr


def egfr_slope(baseline_egfr: float, final_egfr: float, years: float) -> float:
    return (final_egfr - baseline_egfr) / _positive("timeYears", years)


def kfre(age: float, sex: str, egfr: float, acr_mg_g: float, years: int = 5) -> float:
    """4-variable Kidney Failure Risk Equation, percent risk at 2 or 5 years."""
    _positive("acr", acr_mg_g)
    acr_mg_mmol = acr_mg_g / 8.84
    male = 0 if _is_female(sex) else 1
    constant = -15.335 if int(years) == 2 else -14.195
    x = 0.220 * age + 0.246 * male - 0.451 * (egfr / 5) + 0.556 * math.log(acr_mg_mmol) + constant
    return (1 - math.exp(-math.exp(x))) * 100


def lund_malmo_revised(creatinine: float, age: float, sex: str) -> float:
    """Lund-Malmö revised equation; creatinine in mg/dL, converted to μmol/L."""
    _positive("creatinine", creatinine)
    _positive("age", age)
    scr = creatinine * 88.4
    if _is_female(sex):
        if scr < 150:
            x = 2.50 + 0.0121 * (150 - scr)
        else:
            x = 2.50 - 0.926 * math.log(scr / 150)
    else:
        if scr < 180:
            x = 2.56 + 0.00968 * (180 - scr)
        else:
            x = 2.56 - 0.926 * math.log(scr / 180)
    return math.exp(x - 0.0158 * age + 0.438 * math.log(age))


def bis1(creatinine: float, age: float, sex: str) -> float:
    """Berlin Initiative Study creatinine equation for adults aged 70 and over."""
    _positive("creatinine", creatinine)
    _positive("age", age)
    egfr = 3736 * creatinine ** -0.87 * age ** -0.95
    if _is_female(sex):
        egfr *= 0.82
    return egfr


# Adolescent Q values (mg/dL) for the FAS equation, by age
_FAS_Q_ADOLESCENT = {
    15: (0.72, 0.64),
    16: (0.78, 0.66),
    17: (0.82, 0.69),
    18: (0.85, 0.69),
    19: (0.88, 0.70),
}


def fas_q(age: float, sex: str) -> float:
    """Median creatinine of the healthy population (Q) used by FAS."""
    female = _is_female(sex)
    if age < 15:
        return 0.0270 * age + 0.2329
    if age < 20:
        male_q, female_q = _FAS_Q_ADOLESCENT[int(age)]
        return female_q if female else male_q
    return 0.70 if female else 0.90


def fas(creatinine: float, age: float, sex: str) -> float:
    """Full Age Spectrum equation."""
    _positive("creatinine", creatinine)
    egfr = 107.3 / (creatinine / fas_q(age, sex))
    if age > 40:
        egfr *= 0.988 ** (age - 40)
    return egfr


# ── AKI workup ──────────────────────────────────────────────────────────────

def fena(urine_na: float, plasma_cr: float, plasma_na: float, urine_cr: float) -> float:
    """Fractional excretion of sodium (%)."""
    denominator = _nonzero("plasmaNa", plasma_na) * _nonzero("urineCr", urine_cr)
    return (urine_na * plasma_cr) / denominator * 100


def feurea(urine_urea: float, plasma_cr: float, plasma_urea: float, urine_cr: float) -> float:
    """Fractional excretion of urea (%)."""
    denominator = _nonzero("plasmaUrea", plasma_urea) * _nonzero("urineCr", urine_cr)
    return (urine_urea * plasma_cr) / denominator * 100


def mehran_score(hypotension: bool, iabp: bool, chf: bool, age_over_75: bool,
                 anemia: bool, diabetes: bool, contrast_volume: float,
                 egfr: Optional[float] = None, creatinine: Optional[float] = None) -> int:
    """Mehran contrast-induced nephropathy risk score."""
    score = 0
    score += 5 if hypotension else 0
    score += 5 if iabp else 0
    score += 5 if chf else 0
    score += 4 if age_over_75 else 0
    score += 3 if anemia else 0
    score += 3 if diabetes else 0
    score += int(math.floor(contrast_volume / 100))
    if egfr is not None:
        if egfr < 20:
            score += 6
        elif egfr < 40:
            score += 4
        elif egfr < 60:
            score += 2
    elif creatinine is not None and creatinine > 1.5:
        score += 4
    return score


# ── Electrolytes and acid-base ──────────────────────────────────────────────

def anion_gap(sodium: float, chloride: float, bicarbonate: float) -> float:
    return sodium - (chloride + bicarbonate)


def delta_gap(measured_ag: float, measured_hco3: float,
              normal_ag: float = 12, normal_hco3: float = 24) -> Dict[str, float]:
    """Delta anion gap, delta bicarbonate and the delta-delta ratio."""
    delta_ag = measured_ag - normal_ag
    delta_hco3 = normal_hco3 - measured_hco3
    if delta_hco3 == 0:
        raise InvalidInput("measuredHCO3", "must differ from the normal bicarbonate")
    return {"delta_gap": delta_ag, "delta_hco3": delta_hco3, "ratio": delta_ag / delta_hco3}


def bun_creatinine_ratio(bun: float, creatinine: float) -> float:
    return bun / _positive("creatinine", creatinine)


def calculated_osmolality(sodium: float, glucose: float, bun: float, ethanol: float = 0) -> float:
    return 2 * sodium + glucose / 18 + bun / 2.8 + ethanol / 4.6


def osmolal_gap(measured: float, sodium: float, glucose: float, bun: float, ethanol: float = 0) -> float:
    return measured - calculated_osmolality(sodium, glucose, bun, ethanol)


def urine_anion_gap(urine_na: float, urine_k: float, urine_cl: float) -> float:
    return urine_na + urine_k - urine_cl


def ttkg(urine_k: float, plasma_k: float, urine_osm: float, plasma_osm: float) -> float:
    """Transtubular potassium gradient."""
    _nonzero("plasmaK", plasma_k)
    _nonzero("urineOsm", urine_osm)
    _nonzero("plasmaOsm", plasma_osm)
    return (urine_k / plasma_k) / (urine_osm / plasma_osm)


def water_deficit(current_na: float, target_na: float, total_body_water: float) -> float:
    return total_body_water * ((current_na - target_na) / _positive("targetNa", target_na))


def corrected_sodium(measured_na: float, glucose: float) -> float:
    """Katz correction, 1.6 mEq/L per 100 mg/dL glucose above 100."""
    return measured_na + 0.016 * (glucose - 100)


def sodium_correction_rate(current_na: float, infusate_na: float, total_body_water: float,
                           time_hours: float) -> float:
    """Adrogue-Madias expected change per hour of infusion."""
    change = (infusate_na - current_na) / _positive("totalBodyWater", total_body_water + 1)
    return change / _positive("timeHours", time_hours)


def sodium_deficit(current_na: float, target_na: float, total_body_water: float) -> float:
    return total_body_water * (target_na - current_na)


def corrected_calcium(calcium: float, albumin: float) -> float:
    """Payne formula, mg/dL and g/dL."""
    return calcium + 0.8 * (4.0 - albumin)


def qtc_bazett(qt_interval: float, heart_rate: float) -> float:
    rr = 60 / _positive("heartRate", heart_rate)
    return qt_interval / math.sqrt(rr)


# ── Proteinuria ─────────────────────────────────────────────────────────────

def uacr(urine_albumin_mg: float, urine_creatinine_g: float) -> float:
    """Albumin-to-creatinine ratio in mg/g."""
    return urine_albumin_mg / _positive("urineCreatinine", urine_creatinine_g)


def upcr(urine_protein_mg: float, urine_creatinine_mg: float) -> float:
    """Protein-to-creatinine ratio in mg/mg (numerically g/g)."""
    return urine_protein_mg / _positive("urineCreatinine", urine_creatinine_mg)


def acr_from_pcr(pcr_g_g: float) -> float:
    """Approximate ACR (mg/g) from PCR (g/g)."""
    return pcr_g_g * 700


def protein_excretion_24h(ratio_mg_mg: Optional[float] = None,
                          protein_mg_dl: Optional[float] = None,
                          creatinine_mg_dl: Optional[float] = None) -> float:
    """Estimated daily excretion (g/day) from a spot ratio or raw concentrations."""
    if ratio_mg_mg is not None:
        return ratio_mg_mg
    if protein_mg_dl is None:
        raise InvalidInput("proteinValue", "required when no ratio is given")
    if creatinine_mg_dl is None:
        raise InvalidInput("creatinineValue", "required when no ratio is given")
    return protein_mg_dl / _positive("creatinineValue", creatinine_mg_dl)


_IGAN_COEFFICIENTS = {
    2: (-4.44, 0.0242, -0.0331, 0.0102, 0.0897),
    5: (-3.58, 0.0253, -0.0405, 0.0120, 0.1050),
    7: (-3.12, 0.0268, -0.0445, 0.0135, 0.1180),
}


def igan_risk(age: float, egfr: float, map_mmhg: float, proteinuria: float, years: int = 5) -> float:
    """Logistic risk (%) of a 50% eGFR decline or kidney failure in IgA nephropathy."""
    if int(years) not in _IGAN_COEFFICIENTS:
        raise InvalidInput("predictionYears", f"must be one of {sorted(_IGAN_COEFFICIENTS)}")
    b0, b_age, b_egfr, b_map, b_prot = _IGAN_COEFFICIENTS[int(years)]
    if proteinuria <= -1:
        raise InvalidInput("proteinuria", "must be greater than -1")
    logit = b0 + b_age * age + b_egfr * egfr + b_map * map_mmhg + b_prot * math.log(proteinuria + 1)
    return 1 / (1 + math.exp(-logit)) * 100


# ── Dialysis ────────────────────────────────────────────────────────────────

def ktv_daugirdas(pre_bun: float, post_bun: float, weight: float, session_minutes: float,
                  ultrafiltration: float) -> float:
    """Second-generation Daugirdas single-pool Kt/V."""
    _positive("preBUN", pre_bun)
    _positive("weight", weight)
    r = post_bun / pre_bun
    t = session_minutes / 60
    log_arg = r - 0.008 * t
    if log_arg <= 0:
        return 0.0
    return -math.log(log_arg) + (4 - 3.5 * r) * ultrafiltration / weight


def watson_tbw(age: float, height: float, weight: float, sex: str) -> float:
    """Watson total body water (L)."""
    if _is_female(sex):
        return -2.097 + 0.1069 * height + 0.2466 * weight
    return 2.447 - 0.09156 * age + 0.1074 * height + 0.3362 * weight


def hd_session_minutes(target_ktv: float, total_body_water: float, clearance: float) -> float:
    return (target_ktv * total_body_water * 1000) / _positive("dialyzerClearance", clearance)


def pd_weekly_ktv(dialysate_urea: float, plasma_urea: float, dialysate_volume: float,
                  total_body_water: float, residual_ktv: float = 0) -> float:
    _positive("plasmaUrea", plasma_urea)
    _positive("totalBodyWater", total_body_water)
    return (dialysate_urea / plasma_urea) * (dialysate_volume / total_body_water) * 7 + residual_ktv


def residual_kf_ktv(urea_clearance: float, total_body_water: float) -> float:
    """Weekly renal Kt/V from a residual urea clearance in mL/min."""
    return urea_clearance * 10.08 / _positive("totalBodyWater", total_body_water)


def equilibrated_ktv(sp_ktv: float, session_hours: float) -> float:
    return sp_ktv - 0.6 * sp_ktv / _positive("sessionDuration", session_hours) + 0.03


def standard_ktv(sp_ktv: float, residual_ktv: float = 0) -> float:
    return sp_ktv + residual_ktv


def urr(pre_bun: float, post_bun: float) -> float:
    return (pre_bun - post_bun) / _positive("preBUN", pre_bun) * 100


def ganzoni_iron_deficit(weight: float, target_hb: float, current_hb: float, sex: str) -> float:
    """Ganzoni total iron deficit (mg) including stores."""
    stores = 300 if _is_female(sex) else 500
    return (target_hb - current_hb) * weight * 2.4 + stores


# ── Transplantation ─────────────────────────────────────────────────────────

KDRI_MEDIAN = 1.40436817065005

# Upper KDRI bound for each KDPI percentile (OPTN mapping table)
_KDPI_TABLE: Tuple[Tuple[float, int], ...] = (
    (0.4376, 0), (0.5414, 1), (0.5646, 2), (0.5823, 3), (0.5966, 4),
    (0.6083, 5), (0.6207, 6), (0.6321, 7), (0.6435, 8), (0.6532, 9),
    (0.6630, 10), (0.6715, 11), (0.6909, 12), (0.6975, 14), (0.7069, 15),
    (0.7147, 16), (0.7236, 17), (0.7317, 18), (0.7400, 19), (0.7479, 20),
    (0.7560, 21), (0.7638, 22), (0.7716, 23), (0.7802, 24), (0.7885, 25),
    (0.7966, 26), (0.8039, 27), (0.8107, 28), (0.8186, 29), (0.8263, 30),
    (0.8332, 31), (0.8412, 32), (0.8494, 33), (0.8565, 34), (0.8646, 35),
    (0.8743, 36), (0.8837, 37), (0.8927, 38), (0.9008, 39), (0.9093, 40),
    (0.9174, 41), (0.9257, 42), (0.9340, 43), (0.9440, 44), (0.9536, 45),
    (0.9615, 46), (0.9714, 47), (0.9797, 48), (0.9891, 49), (1.0000, 50),
    (1.0090, 51), (1.0196, 52), (1.0288, 53), (1.0373, 54), (1.0475, 55),
    (1.0570, 56), (1.0668, 57), (1.0757, 58), (1.0857, 59), (1.0953, 60),
    (1.1053, 61), (1.1156, 62), (1.1258, 63), (1.1360, 64), (1.1461, 65),
    (1.1561, 66), (1.1660, 67), (1.1760, 68), (1.1880, 69), (1.1996, 70),
    (1.2109, 71), (1.2214, 72), (1.2340, 73), (1.2467, 74), (1.2591, 75),
    (1.2715, 76), (1.2845, 77), (1.2975, 78), (1.3137, 79), (1.3291, 80),
    (1.3443, 81), (1.3600, 82), (1.3765, 83), (1.3927, 84), (1.4109, 85),
    (1.4288, 86), (1.4469, 87), (1.4700, 88), (1.4912, 89), (1.5157, 90),
    (1.5416, 91), (1.5691, 92), (1.6024, 93), (1.6367, 94), (1.6808, 95),
    (1.7237, 96), (1.7800, 97), (1.8162, 98), (1.9868, 99),
)


def kdri(age: float, height: float, weight: float, hypertension: str, diabetes: str,
         cause_of_death: str, creatinine: float, dcd: str) -> float:
    """Kidney Donor Risk Index, scaled to the reference median donor."""
    xbeta = 0.0092 * (age - 40)
    if age < 18:
        xbeta += 0.0113 * (age - 18)
    if age > 50:
        xbeta += 0.0067 * (age - 50)
    xbeta += -0.0557 * (height - 170) / 10
    if weight < 80:
        xbeta += -0.0333 * (weight - 80) / 5
    if str(hypertension).upper() != "NO":
        xbeta += 0.1106
    if str(diabetes).upper() != "NO":
        xbeta += 0.2577
    if str(cause_of_death).upper() == "CVA":
        xbeta += 0.0743
    xbeta += 0.2128 * (creatinine - 1)
    if creatinine > 1.5:
        xbeta += -0.2199 * (creatinine - 1.5)
    if str(dcd).upper() in ("YES", "Y", "TRUE", "DCD"):
        xbeta += 0.1966
    return math.exp(xbeta) / KDRI_MEDIAN


def kdpi_from_kdri(kdri_value: float) -> int:
    for bound, percentile in _KDPI_TABLE:
        if kdri_value <= bound:
            return percentile
    return 100


def epts(age: float, diabetes: bool, prior_transplant: bool, years_on_dialysis: float) -> float:
    """Simplified Estimated Post-Transplant Survival percentile."""
    raw = (age - 40) * 0.03 + (0.4 if diabetes else 0) + (0.5 if prior_transplant else 0)
    raw += 0.05 * years_on_dialysis
    return _clamp(raw * 10, 0, 100)


def tacrolimus_ratio(daily_dose: float, trough: float) -> float:
    """Concentration-to-dose style ratio (mg per ng/mL)."""
    return daily_dose / _positive("troughLevel", trough)


# ── Cardiovascular ──────────────────────────────────────────────────────────

def ascvd_risk(age: float, sex: str, race: str, total_cholesterol: float, hdl: float,
               systolic_bp: float, treated_bp: bool, diabetes: bool, smoker: bool) -> float:
    """Pooled Cohort Equations 10-year ASCVD risk (%)."""
    for field, value in (("age", age), ("totalCholesterol", total_cholesterol),
                         ("hdl", hdl), ("systolicBP", systolic_bp)):
        _positive(field, value)
    ln_age = math.log(age)
    ln_tc = math.log(total_cholesterol)
    ln_hdl = math.log(hdl)
    ln_sbp = math.log(systolic_bp)
    black = str(race).strip().lower() in ("black", "african american", "aa")
    female = _is_female(sex)

    if not female and not black:
        total = (12.344 * ln_age + 11.853 * ln_tc - 2.664 * ln_age * ln_tc
                 - 7.990 * ln_hdl + 1.769 * ln_age * ln_hdl
                 + (1.797 if treated_bp else 1.764) * ln_sbp)
        if smoker:
            total += 7.837 - 1.795 * ln_age
        if diabetes:
            total += 0.658
        baseline, mean = 0.9144, 61.18
    elif not female:
        total = (2.469 * ln_age + 0.302 * ln_tc - 0.307 * ln_hdl
                 + (1.916 if treated_bp else 1.809) * ln_sbp)
        if smoker:
            total += 0.549
        if diabetes:
            total += 0.645
        baseline, mean = 0.8954, 19.54
    elif not black:
        total = (-29.799 * ln_age + 4.884 * ln_age ** 2 + 13.540 * ln_tc
                 - 3.114 * ln_age * ln_tc - 13.578 * ln_hdl + 3.149 * ln_age * ln_hdl
                 + (2.019 if treated_bp else 1.957) * ln_sbp)
        if smoker:
            total += 7.574 - 1.665 * ln_age
        if diabetes:
            total += 0.661
        baseline, mean = 0.9665, -29.18
    else:
        total = 17.114 * ln_age + 0.940 * ln_tc - 18.920 * ln_hdl + 4.475 * ln_age * ln_hdl
        if treated_bp:
            total += 29.291 * ln_sbp - 6.432 * ln_age * ln_sbp
        else:
            total += 27.820 * ln_sbp - 6.087 * ln_age * ln_sbp
        if smoker:
            total += 0.691
        if diabetes:
            total += 0.874
        baseline, mean = 0.9533, 86.61

    risk = (1 - baseline ** math.exp(total - mean)) * 100
    return _clamp(risk, 0, 100)


# ── Anthropometrics ─────────────────────────────────────────────────────────

def bmi(weight: float, height: float) -> float:
    height_m = _positive("height", height) / 100
    return weight / (height_m * height_m)


def bsa_dubois(weight: float, height: float) -> float:
    return 0.007184 * weight ** 0.425 * height ** 0.725


def bsa_mosteller(weight: float, height: float) -> float:
    return math.sqrt(weight * height / 3600)


def devine_ibw(height: float, sex: str) -> float:
    inches = height / 2.54
    base = 45.5 if _is_female(sex) else 50
    return base + 2.3 * (inches - 60)


def lean_body_weight(weight: float, height: float, sex: str) -> float:
    """James formula."""
    ratio = weight / _positive("height", height)
    if _is_female(sex):
        return 1.07 * weight - 148 * ratio ** 2
    return 1.1 * weight - 128 * ratio ** 2


def adjusted_body_weight(actual_weight: float, ideal_weight: float) -> float:
    return ideal_weight + 0.4 * (actual_weight - ideal_weight)


# ── CKD-MBD ─────────────────────────────────────────────────────────────────

def ca_pho_product(calcium: float, phosphate: float) -> float:
    """Calcium-phosphate product in mg²/dL²."""
    return calcium * phosphate


# ── Scores ──────────────────────────────────────────────────────────────────

SLEDAI_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("seizures", 8), ("psychosis", 8), ("organicBrainSyndrome", 8), ("visualDisorder", 8),
    ("cranialNerveDisorder", 8), ("lupusHeadache", 1), ("cerebrovasitisAccident", 8),
    ("vasculitis", 8), ("arthritis", 4), ("myositis", 4), ("urinaryCasts", 4),
    ("proteinuria", 4), ("hematuria", 4), ("pyuria", 4), ("rash", 2), ("alopecia", 2),
    ("mucousalUlcers", 2), ("pleuritis", 4), ("pericarditis", 4), ("lowComplement", 4),
    ("elevatedDNA", 2),
)

SLICC_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("acuteRash", 2), ("chronicRash", 2), ("oralUlcers", 2), ("alopecia", 2),
    ("photosensitivity", 2), ("arthritis", 4), ("serositis", 4), ("renal", 4),
    ("psychosis", 3), ("seizures", 3), ("hemolytic", 4), ("leukopenia", 3),
    ("thrombocytopenia", 4), ("ana", 3), ("antiDsDna", 3), ("antiSmRnp", 3),
    ("antiRoSsa", 3), ("antiLaSSb", 3), ("antiC1q", 1), ("directCoombs", 1),
)

FRAIL_ITEMS = ("fatigue", "resistance", "ambulation", "illness", "lossOfWeight")
PRISMA7_ITEMS = ("age", "female", "generalHealth", "limitation", "falls", "memory", "helpNeeded")


def weighted_sum(flags: Dict[str, bool], weights) -> int:
    return sum(weight for key, weight in weights if flags.get(key))


def count_true(flags: Dict[str, bool], keys) -> int:
    return sum(1 for key in keys if flags.get(key))


def curb65(confusion: bool, bun: float, respiratory_rate: float, systolic_bp: float,
           diastolic_bp: float, age: float) -> int:
    score = 1 if confusion else 0
    score += 1 if bun > 19 else 0
    score += 1 if respiratory_rate >= 30 else 0
    score += 1 if systolic_bp < 90 or diastolic_bp <= 60 else 0
    score += 1 if age >= 65 else 0
    return score


def roks(age: float, bmi_value: float, male: bool, previous_stone: bool, family_history: bool) -> float:
    """Simplified recurrence-of-kidney-stone percentage."""
    score = age * 0.01 + bmi_value * 0.02
    score += 0.3 if male else 0
    score += 0.5 if previous_stone else 0
    score += 0.3 if family_history else 0
    return _clamp(score * 100, 0, 100)


# ── Fracture risk ───────────────────────────────────────────────────────────

_FRAX_AGE_LIMITS = (50, 55, 60, 65, 70, 75, 80, 85)
_FRAX_BASELINE = {
    "F": ((3.2, 0.3), (4.5, 0.5), (6.5, 0.9), (8.5, 1.5), (11.0, 2.5),
          (14.0, 4.5), (18.0, 7.5), (22.0, 11.0), (25.0, 14.0)),
    "M": ((2.5, 0.2), (3.5, 0.4), (4.5, 0.7), (5.5, 1.1), (7.0, 1.8),
          (9.0, 3.0), (12.0, 5.0), (15.0, 8.0), (18.0, 11.0)),
}
FRAX_MULTIPLIERS: Tuple[Tuple[str, float], ...] = (
    ("previousFracture", 1.85),
    ("parentHipFracture", 1.55),
    ("currentSmoking", 1.25),
    ("glucocorticoids", 1.65),
    ("rheumatoidArthritis", 1.35),
    ("secondaryOsteoporosis", 1.40),
    ("alcoholIntake", 1.35),
)


def frax_simplified(age: float, sex: str, weight: float, height: float,
                    risk_factors: Dict[str, bool], t_score: Optional[float] = None) -> Dict[str, float]:
    """Approximate 10-year major osteoporotic and hip fracture probabilities (%)."""
    bmi_value = bmi(weight, height)
    band = len(_FRAX_AGE_LIMITS)
    for idx, limit in enumerate(_FRAX_AGE_LIMITS):
        if age < limit:
            band = idx
            break
    base_major, base_hip = _FRAX_BASELINE["F" if _is_female(sex) else "M"][band]

    multiplier = 1.0
    for key, factor in FRAX_MULTIPLIERS:
        if risk_factors.get(key):
            multiplier *= factor
    if bmi_value < 20:
        multiplier *= 1.25
    elif bmi_value > 30:
        multiplier *= 0.95
    if t_score is not None and not math.isnan(t_score):
        if t_score < -2.5:
            multiplier *= 1.5 ** abs(t_score + 2.5)
        elif t_score > -1.0:
            multiplier *= 0.7
    return {
        "major_fracture": min(base_major * multiplier, 80),
        "hip_fracture": min(base_hip * multiplier, 50),
        "bmi": bmi_value,
    }


# ── Banff ───────────────────────────────────────────────────────────────────

def banff_classification(i: int, t: int, v: int, g: int, ptc: int, ci: int, ct: int,
                         cv: int, cg: int, c4d: int, dsa_positive: bool,
                         mm: int = 0, ah: int = 0) -> Dict[str, Any]:
    """Banff diagnostic category (1-6) for a kidney transplant biopsy."""
    mvi = g + ptc
    c4d_positive = c4d >= 2
    has_mvi = g >= 1 or ptc >= 1
    has_abmr_histology = has_mvi or (cg > 0 and (g > 0 or ptc > 0))
    has_tcmr = (i >= 1 and t >= 1) or v > 0
    has_borderline = ((i >= 1 and t == 0) or (i == 0 and t >= 1)) and v == 0
    chronic = max(ci, ct)

    if has_abmr_histology and (c4d_positive or dsa_positive):
        subtype = ""
        severity = ""
        if cg > 0 or (ci >= 2 and ct >= 2):
            subtype = "Chronic Active ABMR"
            if cg >= 2:
                severity = "Severe (cg ≥2)"
            elif cg == 1:
                severity = "Moderate (cg = 1)"
            else:
                severity = "With chronic changes"
        elif mvi >= 2 or v > 0:
            subtype = "Active ABMR"
            if v >= 2:
                severity = "Severe (v ≥2)"
            elif mvi >= 3:
                severity = "Moderate-Severe (g+ptc ≥3)"
            else:
                severity = "Mild-Moderate"
        return _banff(2, "Antibody-Mediated Rejection (ABMR)", subtype, severity, [
            "Consider plasmapheresis/plasma exchange",
            "IVIG therapy (2g/kg divided over 2-5 days)",
            "Consider rituximab if DSA persists",
            "Consider bortezomib for refractory cases",
            "Optimize baseline immunosuppression",
            "Close monitoring of DSA levels",
        ])

    if has_tcmr:
        if v >= 3:
            grade, severity = "Grade III", "Severe - Transmural arteritis and/or fibrinoid necrosis"
        elif v >= 2:
            grade, severity = "Grade IIB", "Moderate-Severe - Moderate to severe intimal arteritis"
        elif v == 1:
            grade, severity = "Grade IIA", "Moderate - Mild to moderate intimal arteritis"
        elif i >= 2 and t >= 2:
            grade, severity = "Grade IB", "Moderate - Extensive interstitial inflammation and tubulitis"
        else:
            grade, severity = "Grade IA", "Mild - Minimal interstitial inflammation and tubulitis"
        return _banff(4, "T-Cell Mediated Rejection (TCMR)", grade, severity, [
            "Pulse methylprednisolone 500-1000mg IV x 3 days",
            "Consider thymoglobulin for Grade IIA or higher",
            "Increase maintenance immunosuppression",
            "Check tacrolimus/cyclosporine levels",
            "Follow-up biopsy in 2-4 weeks if Grade II or higher",
        ])

    if has_borderline:
        return _banff(3, "Borderline Changes", "Suspicious for TCMR",
                      f"i{i}t{t} - Does not meet full TCMR criteria", [
                          "Consider pulse steroids if clinical deterioration",
                          "Optimize tacrolimus/cyclosporine levels",
                          "Close monitoring of renal function",
                          "Repeat biopsy if no improvement",
                          "Rule out other causes (BK virus, drug toxicity)",
                      ])

    if chronic >= 1 and not has_abmr_histology:
        if chronic == 3:
            severity = "Grade III (Severe, >50%)"
        elif chronic == 2:
            severity = "Grade II (Moderate, 26-50%)"
        else:
            severity = "Grade I (Mild, 6-25%)"
        return _banff(5, "Interstitial Fibrosis and Tubular Atrophy (IF/TA)", f"ci{ci}/ct{ct}", severity, [
            "Evaluate for treatable causes",
            "Consider CNI minimization if CNI toxicity suspected",
            "Blood pressure optimization",
            "Proteinuria management with ACEi/ARB",
            "Monitor for progression",
            "Consider re-transplant evaluation if severe",
        ])

    if mm >= 2 or ah >= 2:
        subtype = "Recurrent/de novo glomerulonephritis" if mm >= 2 else "CNI toxicity"
        return _banff(6, "Other Changes", subtype, "Requires specific evaluation", [
            "Consider native kidney disease recurrence",
            "Evaluate for CNI toxicity if ah elevated",
            "Check for BK nephropathy",
            "Assess for drug toxicity",
            "Consider electron microscopy if GN suspected",
        ])

    return _banff(1, "Normal or Nonspecific Changes", "No rejection", "None", [
        "Continue current immunosuppression",
        "Routine monitoring",
        "Investigate other causes if clinical concern persists",
    ])


def _banff(category: int, diagnosis: str, subtype: str, severity: str,
           recommendations: List[str]) -> Dict[str, Any]:
    return {
        "category": category,
        "diagnosis": diagnosis,
        "subtype": subtype,
        "severity": severity,
        "recommendations": recommendations,
    }


# ── Critical care ───────────────────────────────────────────────────────────

def qsofa(respiratory_rate: float, systolic_bp: float, gcs: float) -> int:
    score = 1 if respiratory_rate >= 22 else 0
    score += 1 if systolic_bp <= 100 else 0
    score += 1 if gcs < 15 else 0
    return score


def news2(respiratory_rate: float, spo2: float, supplemental_o2: bool, systolic_bp: float,
          heart_rate: float, consciousness: str, temperature: float) -> Dict[str, int]:
    """NEWS2 aggregate using SpO2 scale 1; returns per-parameter points and total."""
    if respiratory_rate <= 8:
        rr = 3
    elif respiratory_rate <= 11:
        rr = 1
    elif respiratory_rate <= 20:
        rr = 0
    elif respiratory_rate <= 24:
        rr = 2
    else:
        rr = 3

    if spo2 <= 91:
        sat = 3
    elif spo2 <= 93:
        sat = 2
    elif spo2 <= 95:
        sat = 1
    else:
        sat = 0

    if systolic_bp <= 90:
        sbp = 3
    elif systolic_bp <= 100:
        sbp = 2
    elif systolic_bp <= 110:
        sbp = 1
    elif systolic_bp <= 219:
        sbp = 0
    else:
        sbp = 3

    if heart_rate <= 40:
        hr = 3
    elif heart_rate <= 50:
        hr = 1
    elif heart_rate <= 90:
        hr = 0
    elif heart_rate <= 110:
        hr = 1
    elif heart_rate <= 130:
        hr = 2
    else:
        hr = 3

    if temperature <= 35.0:
        temp = 3
    elif temperature <= 36.0:
        temp = 1
    elif temperature <= 38.0:
        temp = 0
    elif temperature <= 39.0:
        temp = 1
    else:
        temp = 2

    oxygen = 2 if supplemental_o2 else 0
    avpu = 0 if str(consciousness).strip().lower() in ("alert", "a") else 3
    points = {
        "respiratory_rate": rr,
        "spo2": sat,
        "supplemental_o2": oxygen,
        "systolic_bp": sbp,
        "heart_rate": hr,
        "consciousness": avpu,
        "temperature": temp,
    }
    points["total"] = sum(points.values())
    return points


def sofa(pao2: float, fio2_percent: float, platelets: float, bilirubin: float,
         map_mmhg: float, vasopressor: str, gcs: float, creatinine: float,
         urine_output: Optional[float] = None) -> Dict[str, int]:
    """Sequential Organ Failure Assessment; bilirubin and creatinine in mg/dL."""
    pf_ratio = pao2 / (_positive("fio2", fio2_percent) / 100)
    if pf_ratio < 100:
        resp = 4
    elif pf_ratio < 200:
        resp = 3
    elif pf_ratio < 300:
        resp = 2
    elif pf_ratio < 400:
        resp = 1
    else:
        resp = 0

    if platelets < 20:
        coag = 4
    elif platelets < 50:
        coag = 3
    elif platelets < 100:
        coag = 2
    elif platelets < 150:
        coag = 1
    else:
        coag = 0

    if bilirubin >= 12:
        liver = 4
    elif bilirubin >= 6:
        liver = 3
    elif bilirubin >= 2:
        liver = 2
    elif bilirubin >= 1.2:
        liver = 1
    else:
        liver = 0

    pressor = str(vasopressor or "none").strip().lower()
    if pressor == "dopa_high":
        cardio = 4
    elif pressor == "dopa_mid":
        cardio = 3
    elif pressor == "dopa_low":
        cardio = 2
    elif map_mmhg < 70:
        cardio = 1
    else:
        cardio = 0

    if gcs < 6:
        cns = 4
    elif gcs < 10:
        cns = 3
    elif gcs < 13:
        cns = 2
    elif gcs < 15:
        cns = 1
    else:
        cns = 0

    if creatinine >= 5:
        renal = 4
    elif creatinine >= 3.5:
        renal = 3
    elif creatinine >= 2:
        renal = 2
    elif creatinine >= 1.2:
        renal = 1
    else:
        renal = 0
    if urine_output is not None:
        if urine_output < 200:
            renal = max(renal, 4)
        elif urine_output < 500:
            renal = max(renal, 3)

    points = {
        "respiration": resp,
        "coagulation": coag,
        "liver": liver,
        "cardiovascular": cardio,
        "cns": cns,
        "renal": renal,
    }
    points["total"] = sum(points.values())
    return points


WELLS_PE_ITEMS: Tuple[Tuple[str, float], ...] = (
    ("dvtSigns", 3.0),
    ("peTopDiagnosis", 3.0),
    ("heartRateOver100", 1.5),
    ("immobilization", 1.5),
    ("previousPeDvt", 1.5),
    ("hemoptysis", 1.0),
    ("malignancy", 1.0),
)

WELLS_DVT_ITEMS: Tuple[Tuple[str, float], ...] = (
    ("activeCancer", 1.0),
    ("paralysis", 1.0),
    ("bedridden", 1.0),
    ("localizedTenderness", 1.0),
    ("entireLegSwollen", 1.0),
    ("calfSwelling", 1.0),
    ("pittingEdema", 1.0),
    ("collateralVeins", 1.0),
    ("previousDvt", 1.0),
    ("alternativeDiagnosis", -2.0),
)


def wells_score(flags: Dict[str, bool], items) -> float:
    return float(sum(points for key, points in items if flags.get(key)))


# ── eGFR equation comparison ────────────────────────────────────────────────

def compare_egfr(creatinine: float, age: float, sex: str, black: bool = False) -> List[Dict[str, Any]]:
    """Run the creatinine-based eGFR equations side by side (creatinine in mg/dL)."""
    rows: List[Dict[str, Any]] = [
        {"equation": "CKD-EPI 2021", "value": ckd_epi_creatinine(creatinine, age, sex),
         "note": "Recommended by KDIGO; race-free"},
        {"equation": "MDRD", "value": mdrd(creatinine, age, sex, black),
         "note": "Underestimates GFR above 60"},
        {"equation": "Lund-Malmö revised", "value": lund_malmo_revised(creatinine, age, sex),
         "note": "Validated in European cohorts"},
    ]
    if age >= 70:
        rows.append({"equation": "BIS1", "value": bis1(creatinine, age, sex),
                     "note": "Designed for adults 70 and over"})
    else:
        rows.append({"equation": "BIS1", "value": None, "note": "Not applicable below age 70"})
    rows.append({"equation": "FAS", "value": fas(creatinine, age, sex),
                 "note": "Continuous across the full age spectrum"})
    return rows
