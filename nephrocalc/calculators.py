"""
Calculator runners for nephrocalc.

Each ``run_<id>`` receives the validated, unit-normalized inputs of one
calculator (numbers in the canonical unit declared on its InputSpec, selects
as option strings, checkboxes as bools, absent optionals as None) and returns
the raw formula result with an audit trail. Rounding and interpretation are
applied by the evaluator.
"""

from typing import Any, Dict, Iterable, List, Optional

from nephrocalc import formulas as f
from nephrocalc.catalog import CATALOG
from nephrocalc.errors import InvalidInput, MissingRequiredField
from nephrocalc.models import CalculatorDefinition


# ── Helpers ──────────────────────────────────────────────────────────────────

def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "yes", "y", "1")
    if isinstance(raw, (int, float)):
        return bool(raw)
    return False


def _used(v: Dict[str, Any], *keys: str) -> Dict[str, str]:
    return {k: str(v.get(k)) for k in keys}


def _flags(v: Dict[str, Any], keys: Iterable[str]) -> Dict[str, bool]:
    return {k: _parse_bool(v.get(k)) for k in keys}


def _ok(result: Any, inputs_used: Dict[str, str], log: List[str],
        details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    outputs = {"result": result}
    if details:
        outputs.update(details)
    return {
        "success": True,
        "outputs": outputs,
        "audit_trace": {"inputs_used": inputs_used, "log": log},
        "errors": [],
        "warnings": [],
    }


# ── Kidney function & CKD risk ───────────────────────────────────────────────

# 1. CKD-EPI 2021 ─────────────────────────────────────────────────────────────
def run_ckd_epi_creatinine(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.ckd_epi_creatinine(v["creatinine"], v["age"], v["sex"])
    log = ["eGFR = 142 × min(Scr/κ,1)^α × max(Scr/κ,1)^-1.200 × 0.9938^age [× 1.012 if female]"]
    if v.get("race") == "Black":
        log.append("race recorded but not used by the 2021 equation")
    return _ok(egfr, _used(v, "creatinine", "age", "sex"), log)


# 2. Cockcroft-Gault ──────────────────────────────────────────────────────────
def run_cockcroft_gault(v: Dict[str, Any]) -> Dict[str, Any]:
    crcl = f.cockcroft_gault(v["creatinine"], v["age"], v["weight"], v["sex"])
    return _ok(crcl, _used(v, "creatinine", "age", "weight", "sex"),
               ["CrCl = (140 - age) × weight / (72 × Scr) [× 0.85 if female]"])


# 3. Schwartz ─────────────────────────────────────────────────────────────────
def run_schwartz_pediatric(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.schwartz(v["creatinine"], v["height"])
    return _ok(egfr, _used(v, "creatinine", "height"), ["eGFR = 0.413 × height(cm) / Scr"])


# 4. Kinetic eGFR ─────────────────────────────────────────────────────────────
def run_kinetic_egfr(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.kinetic_egfr(v["preBUN"], v["postBUN"], v["weight"], v["sessionTime"])
    details = {}
    if v.get("preCreatinine") is not None and v.get("postCreatinine") is not None:
        details["creatinine_change"] = v["postCreatinine"] - v["preCreatinine"]
    return _ok(egfr, _used(v, "preBUN", "postBUN", "weight", "sessionTime"),
               ["G = (preBUN - postBUN) × weight × 0.6 / (t × 0.58)",
                "eGFR = G × 1440 / (preBUN × 0.58 × weight)"], details)


# 5. CKD-EPI creatinine-cystatin C ────────────────────────────────────────────
def run_ckd_epi_cystatin_c(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.ckd_epi_cystatin_c(v["creatinine"], v["cystatinC"], v["age"], v["sex"])
    return _ok(egfr, _used(v, "creatinine", "cystatinC", "age", "sex"), ["CKD-EPI 2021 creatinine-cystatin C"])


# 6. eGFR slope ───────────────────────────────────────────────────────────────
def run_egfr_slope(v: Dict[str, Any]) -> Dict[str, Any]:
    slope = f.egfr_slope(v["eGFRBaseline"], v["eGFRFinal"], v["timeYears"])
    details = {}
    if v["eGFRBaseline"] > 0:
        details["percent_change"] = (v["eGFRFinal"] - v["eGFRBaseline"]) / v["eGFRBaseline"] * 100
    return _ok(slope, _used(v, "eGFRBaseline", "eGFRFinal", "timeYears"),
               ["slope = (final - baseline) / years"], details)


# 7. KFRE ─────────────────────────────────────────────────────────────────────
def run_kfre(v: Dict[str, Any]) -> Dict[str, Any]:
    years = int(v["years"])
    risk = f.kfre(v["age"], v["sex"], v["eGFR"], v["acr"], years)
    return _ok(risk, _used(v, "age", "sex", "eGFR", "acr", "years"),
               [f"4-variable KFRE, {years}-year horizon", "ACR mg/g converted to mg/mmol (÷ 8.84)"])


# 8. Lund-Malmö revised ───────────────────────────────────────────────────────
def run_lund_malmo_revised(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.lund_malmo_revised(v["creatinine"], v["age"], v["sex"])
    return _ok(egfr, _used(v, "creatinine", "age", "sex"), ["eGFR = e^(X - 0.0158 × age + 0.438 × ln(age))"])


# 9. BIS1 ─────────────────────────────────────────────────────────────────────
def run_bis1_elderly(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = f.bis1(v["creatinine"], v["age"], v["sex"])
    return _ok(egfr, _used(v, "creatinine", "age", "sex"),
               ["eGFR = 3736 × Scr^-0.87 × age^-0.95 [× 0.82 if female]"])


# 10. FAS ─────────────────────────────────────────────────────────────────────
def run_fas_full_age_spectrum(v: Dict[str, Any]) -> Dict[str, Any]:
    q = f.fas_q(v["age"], v["sex"])
    egfr = f.fas(v["creatinine"], v["age"], v["sex"])
    return _ok(egfr, _used(v, "creatinine", "age", "sex"),
               [f"Q = {q:.4f} mg/dL", "eGFR = 107.3 / (Scr/Q) [× 0.988^(age-40) if age > 40]"], {"q": q})


# ── AKI workup ───────────────────────────────────────────────────────────────

# 11. FENa ────────────────────────────────────────────────────────────────────
def run_fena(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.fena(v["urineNa"], v["plasmaCr"], v["plasmaNa"], v["urineCr"])
    return _ok(value, _used(v, "urineNa", "plasmaCr", "plasmaNa", "urineCr"),
               ["FENa = (UNa × PCr) / (PNa × UCr) × 100"])


# 12. FEUrea ──────────────────────────────────────────────────────────────────
def run_feurea(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.feurea(v["urineUrea"], v["plasmaCr"], v["plasmaUrea"], v["urineCr"])
    return _ok(value, _used(v, "urineUrea", "plasmaCr", "plasmaUrea", "urineCr"),
               ["FEUrea = (UUrea × PCr) / (PUrea × UCr) × 100"])


# 13. Anion gap ───────────────────────────────────────────────────────────────
def run_anion_gap(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.anion_gap(v["sodium"], v["chloride"], v["bicarbonate"])
    return _ok(value, _used(v, "sodium", "chloride", "bicarbonate"), ["AG = Na - (Cl + HCO3)"])


# 14. Delta gap ───────────────────────────────────────────────────────────────
def run_delta_gap(v: Dict[str, Any]) -> Dict[str, Any]:
    out = f.delta_gap(v["measuredAG"], v["measuredHCO3"], v["normalAG"], v["normalHCO3"])
    return _ok(out["ratio"], _used(v, "measuredAG", "measuredHCO3", "normalAG", "normalHCO3"),
               ["ΔAG = AG - normal AG", "ΔHCO3 = normal HCO3 - HCO3", "ratio = ΔAG / ΔHCO3"],
               {"delta_gap": out["delta_gap"], "delta_hco3": out["delta_hco3"]})


# 15. BUN/creatinine ratio ────────────────────────────────────────────────────
def run_bun_creatinine_ratio(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.bun_creatinine_ratio(v["bunValue"], v["creatinine"])
    return _ok(value, _used(v, "bunValue", "creatinine"), ["ratio = BUN (mg/dL) / creatinine (mg/dL)"])


# 16. Osmolal gap ─────────────────────────────────────────────────────────────
def run_osmolal_gap(v: Dict[str, Any]) -> Dict[str, Any]:
    ethanol = v.get("ethanol") or 0
    calculated = f.calculated_osmolality(v["sodium"], v["glucose"], v["bun"], ethanol)
    gap = f.osmolal_gap(v["measuredOsmolality"], v["sodium"], v["glucose"], v["bun"], ethanol)
    return _ok(gap, _used(v, "measuredOsmolality", "sodium", "glucose", "bun", "ethanol"),
               ["calc Osm = 2×Na + glucose/18 + BUN/2.8 + ethanol/4.6", "gap = measured - calculated"],
               {"calculated_osmolality": calculated})


# 17. Urine anion gap ─────────────────────────────────────────────────────────
def run_urine_anion_gap(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.urine_anion_gap(v["urineNa"], v["urineK"], v["urineCl"])
    return _ok(value, _used(v, "urineNa", "urineK", "urineCl"), ["UAG = UNa + UK - UCl"])


# 18. Mehran CIN score ────────────────────────────────────────────────────────
def run_cin_mehran_score(v: Dict[str, Any]) -> Dict[str, Any]:
    egfr = v.get("egfr")
    log = ["5 hypotension, 5 IABP, 5 CHF, 4 age >75, 3 anemia, 3 diabetes, 1 per 100 mL contrast"]
    if egfr is None:
        log.append("eGFR not given; 4 points when SCr > 1.5 mg/dL")
    else:
        log.append("eGFR 40-60: 2, 20-40: 4, <20: 6")
    score = f.mehran_score(
        _parse_bool(v.get("hypotension")), _parse_bool(v.get("iabp")), _parse_bool(v.get("chf")),
        _parse_bool(v.get("age")), _parse_bool(v.get("anemia")), _parse_bool(v.get("diabetes")),
        v["contrastVolume"], egfr=egfr, creatinine=v["creatinine"],
    )
    return _ok(score, _used(v, "hypotension", "iabp", "chf", "age", "anemia", "diabetes",
                            "contrastVolume", "creatinine", "egfr"), log)


# ── Electrolytes & acid-base ─────────────────────────────────────────────────

# 19. TTKG ────────────────────────────────────────────────────────────────────
def run_ttkg(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.ttkg(v["urineK"], v["plasmaK"], v["urineOsm"], v["plasmaOsm"])
    return _ok(value, _used(v, "urineK", "plasmaK", "urineOsm", "plasmaOsm"),
               ["TTKG = (UK / PK) / (UOsm / POsm)"])


# 20. Water deficit ───────────────────────────────────────────────────────────
def run_water_deficit_hypernatremia(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.water_deficit(v["currentNa"], v["targetNa"], v["totalBodyWater"])
    return _ok(value, _used(v, "currentNa", "targetNa", "totalBodyWater"),
               ["deficit = TBW × (Na / target - 1)"])


# 21. Corrected sodium ────────────────────────────────────────────────────────
def run_corrected_sodium_hyperglycemia(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.corrected_sodium(v["measuredNa"], v["glucose"])
    return _ok(value, _used(v, "measuredNa", "glucose"), ["Na + 0.016 × (glucose - 100)"])


# 22. Sodium correction rate ──────────────────────────────────────────────────
def run_sodium_correction_rate(v: Dict[str, Any]) -> Dict[str, Any]:
    rate = f.sodium_correction_rate(v["currentNa"], v["infusionNa"], v["totalBodyWater"], v["correctionHours"])
    per_litre = (v["infusionNa"] - v["currentNa"]) / (v["totalBodyWater"] + 1)
    details = {"change_per_litre": per_litre}
    if per_litre != 0:
        details["litres_to_target"] = (v["targetNa"] - v["currentNa"]) / per_litre
    return _ok(rate, _used(v, "currentNa", "targetNa", "infusionNa", "totalBodyWater", "correctionHours"),
               ["ΔNa per litre = (infusate Na - serum Na) / (TBW + 1)", "rate = ΔNa / hours"], details)


# 23. Sodium deficit ──────────────────────────────────────────────────────────
def run_sodium_deficit(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.sodium_deficit(v["currentNa"], v["targetNa"], v["totalBodyWater"])
    return _ok(value, _used(v, "currentNa", "targetNa", "totalBodyWater"), ["deficit = TBW × (target - Na)"])


# 24. Corrected calcium ───────────────────────────────────────────────────────
def run_corrected_calcium(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.corrected_calcium(v["measuredCa"], v["albumin"])
    return _ok(value, _used(v, "measuredCa", "albumin"), ["Ca + 0.8 × (4.0 - albumin)"])


# 25. QTc ─────────────────────────────────────────────────────────────────────
def run_qtc_bazett(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.qtc_bazett(v["qtInterval"], v["heartRate"])
    return _ok(value, _used(v, "qtInterval", "heartRate"), ["QTc = QT / sqrt(60 / HR)"])


# ── Proteinuria & glomerular disease ─────────────────────────────────────────

# 26. uACR ────────────────────────────────────────────────────────────────────
def run_uacr(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.uacr(v["urineAlbumin"], v["urineCreatinineUACR"])
    return _ok(value, _used(v, "urineAlbumin", "urineCreatinineUACR"), ["ACR = albumin (mg) / creatinine (g)"])


# 27. UPCR ────────────────────────────────────────────────────────────────────
def run_upcr(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.upcr(v["urineProtein"], v["urineCreatinineUPCR"])
    return _ok(value, _used(v, "urineProtein", "urineCreatinineUPCR"), ["PCR = protein (mg) / creatinine (mg)"])


# 28. ACR from PCR ────────────────────────────────────────────────────────────
def run_acr_from_pcr(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.acr_from_pcr(v["pcr"])
    return _ok(value, _used(v, "pcr"), ["ACR ≈ PCR (g/g) × 700"])


# 29. 24-hour protein ─────────────────────────────────────────────────────────
def run_24_hour_protein(v: Dict[str, Any]) -> Dict[str, Any]:
    mode = v.get("inputMode") or "ratio"
    if mode == "ratio":
        if v.get("ratioValue") is None:
            raise MissingRequiredField("ratioValue")
        value = f.protein_excretion_24h(ratio_mg_mg=v["ratioValue"])
        log = ["spot ratio (mg/mg) ≈ g/day"]
    else:
        value = f.protein_excretion_24h(protein_mg_dl=v.get("proteinValue"),
                                        creatinine_mg_dl=v.get("creatinineValue"))
        log = ["ratio = protein (mg/dL) / creatinine (mg/dL)", "spot ratio (mg/mg) ≈ g/day"]
    return _ok(value, _used(v, "testType", "inputMode", "ratioValue", "proteinValue", "creatinineValue"), log)


# 30. IgAN ────────────────────────────────────────────────────────────────────
def run_igan_prediction(v: Dict[str, Any]) -> Dict[str, Any]:
    years = int(v["years"])
    risk = f.igan_risk(v["age"], v["eGFR"], v["map"], v["proteinuria"], years)
    return _ok(risk, _used(v, "age", "eGFR", "map", "proteinuria", "years"),
               [f"logistic risk at {years} years"])


# ── Dialysis adequacy ────────────────────────────────────────────────────────

# 31. spKt/V ──────────────────────────────────────────────────────────────────
def run_ktv_hemodialysis(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.ktv_daugirdas(v["preBUN"], v["postBUN"], v["postWeight"], v["sessionTime"], v["ultrafiltration"])
    return _ok(value, _used(v, "preBUN", "postBUN", "postWeight", "sessionTime", "ultrafiltration"),
               ["Kt/V = -ln(R - 0.008 × t) + (4 - 3.5 × R) × UF / W"],
               {"urr": f.urr(v["preBUN"], v["postBUN"])})


# 32. Watson TBW ──────────────────────────────────────────────────────────────
def run_total_body_water(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.watson_tbw(v["age"], v["height"], v["weight"], v["sex"])
    return _ok(value, _used(v, "weight", "height", "age", "sex"), ["Watson formula"])


# 33. HD session duration ─────────────────────────────────────────────────────
def run_hd_session_duration(v: Dict[str, Any]) -> Dict[str, Any]:
    minutes = f.hd_session_minutes(v["targetKtV"], v["totalBodyWater"], v["dialyzerClearance"])
    return _ok(minutes, _used(v, "targetKtV", "dialyzerClearance", "totalBodyWater"),
               ["t = Kt/V × V(mL) / K"], {"hours": minutes / 60})


# 34. PD weekly Kt/V ──────────────────────────────────────────────────────────
def run_pd_weekly_ktv(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.pd_weekly_ktv(v["dailyDialysateUrea"], v["plasmaUrea"], v["dialysateVolume"],
                            v["totalBodyWater"], v.get("residualKtv") or 0)
    return _ok(value, _used(v, "dailyDialysateUrea", "plasmaUrea", "dialysateVolume",
                            "totalBodyWater", "residualKtv"),
               ["Kt/V = (D/P urea) × (volume / TBW) × 7 + residual"])


# 35. Residual Kt/V ───────────────────────────────────────────────────────────
def run_residual_rkf_ktv(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.residual_kf_ktv(v["ureaUrineClearance"], v["totalBodyWater"])
    return _ok(value, _used(v, "ureaUrineClearance", "totalBodyWater"), ["Kt/V = Kru × 10.08 / V"])


# 36. eKt/V ───────────────────────────────────────────────────────────────────
def run_equilibrated_ktv(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.equilibrated_ktv(v["spKtv"], v["sessionTime"])
    return _ok(value, _used(v, "spKtv", "sessionTime"), ["eKt/V = spKt/V - 0.6 × spKt/V / t + 0.03"])


# 37. stdKt/V ─────────────────────────────────────────────────────────────────
def run_standard_ktv(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.standard_ktv(v["spKtv"], v.get("residualKtv") or 0)
    return _ok(value, _used(v, "spKtv", "residualKtv"), ["stdKt/V = spKt/V + residual Kt/V"])


# 38. URR ─────────────────────────────────────────────────────────────────────
def run_urr(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.urr(v["preBUN"], v["postBUN"])
    return _ok(value, _used(v, "preBUN", "postBUN"), ["URR = (pre - post) / pre × 100"])


# 39. Ganzoni ─────────────────────────────────────────────────────────────────
def run_iron_deficit(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.ganzoni_iron_deficit(v["weight"], v["targetHemoglobin"], v["currentHemoglobin"], v["sex"])
    return _ok(value, _used(v, "targetHemoglobin", "currentHemoglobin", "weight", "sex"),
               ["deficit = weight × (target - current Hb) × 2.4 + stores"])


# ── Transplantation ──────────────────────────────────────────────────────────

# 40. KDPI ────────────────────────────────────────────────────────────────────
def run_kdpi(v: Dict[str, Any]) -> Dict[str, Any]:
    kdri = f.kdri(v["donorAge"], v["donorHeight"], v["donorWeight"], v["hypertensionDuration"],
                  v["diabetesDuration"], v["causeOfDeath"], v["donorCreatinine"], v["isDCD"])
    kdpi = f.kdpi_from_kdri(kdri)
    return _ok(kdpi, _used(v, "donorAge", "donorHeight", "donorWeight", "donorCreatinine",
                           "hypertensionDuration", "diabetesDuration", "causeOfDeath", "isDCD"),
               ["KDRI = exp(xβ) / median", "KDPI = OPTN percentile of KDRI"], {"kdri": kdri})


# 41. EPTS ────────────────────────────────────────────────────────────────────
def run_epts(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.epts(v["recipientAge"], _parse_bool(v.get("recipientDiabetes")),
                   _parse_bool(v.get("priorTransplant")), v["yearsOnDialysis"])
    return _ok(value, _used(v, "recipientAge", "recipientDiabetes", "priorTransplant", "yearsOnDialysis"),
               ["simplified EPTS percentile"])


# 42. Banff ───────────────────────────────────────────────────────────────────
_BANFF_GRADES = ("i", "t", "v", "g", "ptc", "ci", "ct", "cv", "cg", "ti", "iIfta", "tIfta", "mm", "ah")


def run_banff_classification(v: Dict[str, Any]) -> Dict[str, Any]:
    g = {k: int(v.get(k) or 0) for k in _BANFF_GRADES}
    c4d = int(v.get("c4d") or 0)
    dsa_positive = str(v.get("dsa") or "negative").lower() == "positive"
    out = f.banff_classification(g["i"], g["t"], g["v"], g["g"], g["ptc"], g["ci"], g["ct"],
                                 g["cv"], g["cg"], c4d, dsa_positive, mm=g["mm"], ah=g["ah"])
    details = dict(out)
    details["mvi"] = g["g"] + g["ptc"]
    return _ok(out["category"], {**{k: str(n) for k, n in g.items()}, "c4d": str(c4d), "dsa": str(v.get("dsa"))},
               [f"{out['diagnosis']}: {out['subtype']}".rstrip(": ")], details)


# 43. Tacrolimus ──────────────────────────────────────────────────────────────
def run_tacrolimus_monitoring(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.tacrolimus_ratio(v["dailyDose"], v["troughLevel"])
    return _ok(value, _used(v, "dailyDose", "troughLevel"), ["ratio = daily dose / trough"])


# ── Cardiovascular, anthropometric, CKD-MBD ──────────────────────────────────

# 44. ASCVD ───────────────────────────────────────────────────────────────────
def run_ascvd_risk(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.ascvd_risk(v["age"], v["sex"], v["race"], v["totalCholesterol"], v["hdl"], v["systolicBP"],
                         _parse_bool(v.get("treated")), _parse_bool(v.get("diabetes")), _parse_bool(v.get("smoker")))
    return _ok(value, _used(v, "age", "sex", "race", "totalCholesterol", "hdl", "systolicBP",
                            "treated", "diabetes", "smoker"), ["Pooled Cohort Equations"])


# 45. BMI ─────────────────────────────────────────────────────────────────────
def run_bmi(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.bmi(v["weight"], v["height"])
    return _ok(value, _used(v, "weight", "height"), ["BMI = weight / height^2"])


# 46. BSA Du Bois ─────────────────────────────────────────────────────────────
def run_bsa_dubois(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.bsa_dubois(v["weight"], v["height"])
    return _ok(value, _used(v, "weight", "height"), ["BSA = 0.007184 × W^0.425 × H^0.725"])


# 47. BSA Mosteller ───────────────────────────────────────────────────────────
def run_bsa_mosteller(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.bsa_mosteller(v["weight"], v["height"])
    return _ok(value, _used(v, "weight", "height"), ["BSA = sqrt(weight*height/3600) (Mosteller)"])


# 48. Devine IBW ──────────────────────────────────────────────────────────────
def run_devine_ibw(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.devine_ibw(v["height"], v["sex"])
    return _ok(value, _used(v, "height", "sex"), ["Devine formula"])


# 49. Lean body weight ────────────────────────────────────────────────────────
def run_lean_body_weight(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.lean_body_weight(v["weight"], v["height"], v["sex"])
    return _ok(value, _used(v, "weight", "height", "sex"), ["James formula"])


# 50. Adjusted body weight ────────────────────────────────────────────────────
def run_adjusted_body_weight(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.adjusted_body_weight(v["actualWeight"], v["idealWeight"])
    return _ok(value, _used(v, "actualWeight", "idealWeight"), ["ABW = IBW + 0.4*(actual - IBW)"])


# 51. Ca × PO4 ────────────────────────────────────────────────────────────────
def run_ca_pho_product(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.ca_pho_product(v["calcium"], v["phosphate"])
    return _ok(value, _used(v, "calcium", "phosphate"), ["product = Ca (mg/dL) × PO4 (mg/dL)"])


# ── Systemic scores ──────────────────────────────────────────────────────────

# 52. SLEDAI-2K ───────────────────────────────────────────────────────────────
def run_sledai_2k(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, (k for k, _ in f.SLEDAI_WEIGHTS))
    score = f.weighted_sum(flags, f.SLEDAI_WEIGHTS)
    return _ok(score, {k: str(b) for k, b in flags.items() if b}, ["sum of weighted descriptors"])


# 53. SLICC 2012 ──────────────────────────────────────────────────────────────
def run_slicc_2012(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, (k for k, _ in f.SLICC_WEIGHTS))
    score = f.weighted_sum(flags, f.SLICC_WEIGHTS)
    return _ok(score, {k: str(b) for k, b in flags.items() if b}, ["sum of weighted criteria"])


# 54. FRAIL ───────────────────────────────────────────────────────────────────
def run_frail_scale(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, f.FRAIL_ITEMS)
    return _ok(f.count_true(flags, f.FRAIL_ITEMS), {k: str(b) for k, b in flags.items()}, ["1 point per item"])


# 55. PRISMA-7 ────────────────────────────────────────────────────────────────
def run_prisma_7(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, f.PRISMA7_ITEMS)
    return _ok(f.count_true(flags, f.PRISMA7_ITEMS), {k: str(b) for k, b in flags.items()}, ["1 point per item"])


# 56. CURB-65 ─────────────────────────────────────────────────────────────────
def run_curb_65(v: Dict[str, Any]) -> Dict[str, Any]:
    score = f.curb65(_parse_bool(v.get("confusion")), v["bun"], v["respiratoryRate"],
                     v["bloodPressureSystolic"], v["bloodPressureDiastolic"], v["age"])
    return _ok(score, _used(v, "confusion", "bun", "respiratoryRate", "bloodPressureSystolic",
                            "bloodPressureDiastolic", "age"),
               ["confusion, BUN > 19 mg/dL, RR ≥ 30, SBP < 90 or DBP ≤ 60, age ≥ 65"])


# 57. ROKS ────────────────────────────────────────────────────────────────────
def run_roks(v: Dict[str, Any]) -> Dict[str, Any]:
    value = f.roks(v["age"], v["bmi"], _parse_bool(v.get("maleGender")),
                   _parse_bool(v.get("previousStone")), _parse_bool(v.get("familyHistory")))
    return _ok(value, _used(v, "age", "bmi", "maleGender", "previousStone", "familyHistory"),
               ["simplified recurrence nomogram"])


# 58. FRAX ────────────────────────────────────────────────────────────────────
def run_frax_simplified(v: Dict[str, Any]) -> Dict[str, Any]:
    risk_factors = _flags(v, (k for k, _ in f.FRAX_MULTIPLIERS))
    out = f.frax_simplified(v["age"], v["sex"], v["weight"], v["height"], risk_factors, v.get("bmdTScore"))
    return _ok(out["major_fracture"], _used(v, "age", "sex", "weight", "height", "bmdTScore"),
               ["age/sex baseline × risk-factor multipliers"],
               {"hip_fracture": out["hip_fracture"], "bmi": out["bmi"]})


# ── Critical care ────────────────────────────────────────────────────────────

# 59. qSOFA ───────────────────────────────────────────────────────────────────
def run_qsofa(v: Dict[str, Any]) -> Dict[str, Any]:
    score = f.qsofa(v["respiratoryRate"], v["systolicBP"], v["gcs"])
    return _ok(score, _used(v, "respiratoryRate", "systolicBP", "gcs"), ["RR ≥ 22, SBP ≤ 100, GCS < 15"])


# 60. NEWS2 ───────────────────────────────────────────────────────────────────
def run_news2(v: Dict[str, Any]) -> Dict[str, Any]:
    points = f.news2(v["respiratoryRate"], v["spo2"], _parse_bool(v.get("supplementalO2")), v["systolicBP"],
                     v["heartRate"], v["consciousness"], v["temperature"])
    total = points.pop("total")
    return _ok(total, _used(v, "respiratoryRate", "spo2", "supplementalO2", "systolicBP", "heartRate",
                            "temperature", "consciousness"),
               ["NEWS2 aggregate, SpO2 scale 1"],
               {"points": points, "single_parameter_red": any(p == 3 for p in points.values())})


# 61. SOFA ────────────────────────────────────────────────────────────────────
def run_sofa(v: Dict[str, Any]) -> Dict[str, Any]:
    points = f.sofa(v["pao2"], v["fio2"], v["platelets"], v["bilirubin"], v["map"], v["vasopressor"],
                    v["gcs"], v["creatinine"], v.get("urineOutput"))
    total = points.pop("total")
    return _ok(total, _used(v, "pao2", "fio2", "platelets", "bilirubin", "map", "vasopressor",
                            "gcs", "creatinine", "urineOutput"),
               ["sum of six organ-system subscores"], {"points": points})


# 62. Wells PE ────────────────────────────────────────────────────────────────
def run_wells_pe(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, (k for k, _ in f.WELLS_PE_ITEMS))
    score = f.wells_score(flags, f.WELLS_PE_ITEMS)
    return _ok(score, {k: str(b) for k, b in flags.items() if b}, ["sum of criteria points"],
               {"two_tier": "PE likely" if score > 4 else "PE unlikely"})


# 63. Wells DVT ───────────────────────────────────────────────────────────────
def run_wells_dvt(v: Dict[str, Any]) -> Dict[str, Any]:
    flags = _flags(v, (k for k, _ in f.WELLS_DVT_ITEMS))
    score = f.wells_score(flags, f.WELLS_DVT_ITEMS)
    return _ok(score, {k: str(b) for k, b in flags.items() if b}, ["sum of criteria points"],
               {"two_tier": "DVT likely" if score >= 2 else "DVT unlikely"})


# ── Calculator Registry ──────────────────────────────────────────────────────

def _make_calc_entry(definition: CalculatorDefinition, run_fn) -> Dict[str, Any]:
    return {"def": definition, "run": run_fn}


_RUNNERS = {
    "ckd-epi-creatinine": run_ckd_epi_creatinine,
    "cockcroft-gault": run_cockcroft_gault,
    "schwartz-pediatric": run_schwartz_pediatric,
    "kinetic-egfr": run_kinetic_egfr,
    "ckd-epi-cystatin-c": run_ckd_epi_cystatin_c,
    "egfr-slope": run_egfr_slope,
    "kfre": run_kfre,
    "lund-malmo-revised": run_lund_malmo_revised,
    "bis1-elderly": run_bis1_elderly,
    "fas-full-age-spectrum": run_fas_full_age_spectrum,
    "fena": run_fena,
    "feurea": run_feurea,
    "anion-gap": run_anion_gap,
    "delta-gap": run_delta_gap,
    "bun-creatinine-ratio": run_bun_creatinine_ratio,
    "osmolal-gap": run_osmolal_gap,
    "urine-anion-gap": run_urine_anion_gap,
    "cin-mehran-score": run_cin_mehran_score,
    "ttkg": run_ttkg,
    "water-deficit-hypernatremia": run_water_deficit_hypernatremia,
    "corrected-sodium-hyperglycemia": run_corrected_sodium_hyperglycemia,
    "sodium-correction-rate": run_sodium_correction_rate,
    "sodium-deficit": run_sodium_deficit,
    "corrected-calcium": run_corrected_calcium,
    "qtc-bazett": run_qtc_bazett,
    "uacr": run_uacr,
    "upcr": run_upcr,
    "acr-from-pcr": run_acr_from_pcr,
    "24-hour-protein": run_24_hour_protein,
    "igan-prediction": run_igan_prediction,
    "ktv-hemodialysis": run_ktv_hemodialysis,
    "total-body-water": run_total_body_water,
    "hd-session-duration": run_hd_session_duration,
    "pd-weekly-ktv": run_pd_weekly_ktv,
    "residual-rkf-ktv": run_residual_rkf_ktv,
    "equilibrated-ktv": run_equilibrated_ktv,
    "standard-ktv": run_standard_ktv,
    "urr": run_urr,
    "iron-deficit": run_iron_deficit,
    "kdpi": run_kdpi,
    "epts": run_epts,
    "banff-classification": run_banff_classification,
    "tacrolimus-monitoring": run_tacrolimus_monitoring,
    "ascvd-risk": run_ascvd_risk,
    "bmi": run_bmi,
    "bsa-dubois": run_bsa_dubois,
    "bsa-mosteller": run_bsa_mosteller,
    "devine-ibw": run_devine_ibw,
    "lean-body-weight": run_lean_body_weight,
    "adjusted-body-weight": run_adjusted_body_weight,
    "ca-pho-product": run_ca_pho_product,
    "sledai-2k": run_sledai_2k,
    "slicc-2012": run_slicc_2012,
    "frail-scale": run_frail_scale,
    "prisma-7": run_prisma_7,
    "curb-65": run_curb_65,
    "roks": run_roks,
    "frax-simplified": run_frax_simplified,
    "qsofa": run_qsofa,
    "news2": run_news2,
    "sofa": run_sofa,
    "wells-pe": run_wells_pe,
    "wells-dvt": run_wells_dvt,
}

# Catalog order is preserved so category listings follow declaration order
CALCULATORS: Dict[str, Dict[str, Any]] = {
    definition.id: _make_calc_entry(definition, _RUNNERS[definition.id]) for definition in CATALOG
}
