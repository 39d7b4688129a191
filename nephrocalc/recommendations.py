"""
Clinical decision support: follow-up actions for calculator result bands.

Each RecommendationSet pairs a first-match band rule, whose text is a band
key such as ``stage3a``, with the Recommendation stored under that key. The
evaluator looks up the set for the calculator it ran and attaches the entry
for the rounded result.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from nephrocalc.interpretation import InterpretationRule, at_least, at_most, below, otherwise
from nephrocalc.models import Recommendation, Urgency

logger = logging.getLogger(__name__)


class RecommendationSet:
    """Band rule plus the recommendations keyed by band."""

    def __init__(self, bands: InterpretationRule, entries: Iterable[Recommendation]):
        self.bands = bands
        self.entries: Dict[str, Recommendation] = {entry.band: entry for entry in entries}
        for band in bands.bands:
            key = band.render(0)
            if key not in self.entries:
                raise ValueError(f"No recommendation for band {key!r}")

    def band_for(self, value: float) -> str:
        return self.bands(value)

    def get(self, band: str) -> Optional[Recommendation]:
        return self.entries.get(band)

    def for_value(self, value: float) -> Recommendation:
        return self.entries[self.band_for(value)]


# ── CKD staging ─────────────────────────────────────────────────────────────

_CKD_STAGES = RecommendationSet(
    InterpretationRule(
        at_least(90, "stage1"),
        at_least(60, "stage2"),
        at_least(45, "stage3a"),
        at_least(30, "stage3b"),
        at_least(15, "stage4"),
        otherwise("stage5"),
    ),
    [
        Recommendation(
            band="stage1",
            condition="CKD Stage 1 (eGFR ≥90)",
            recommendation="Normal kidney function with possible kidney disease (albuminuria/imaging abnormality)",
            action_items=(
                "Assess for albuminuria or imaging abnormalities",
                "Screen for CKD risk factors (diabetes, hypertension)",
                "Repeat eGFR annually if risk factors present",
                "Provide cardiovascular risk reduction counseling",
            ),
        ),
        Recommendation(
            band="stage2",
            condition="CKD Stage 2 (eGFR 60-89)",
            recommendation="Mildly decreased kidney function",
            action_items=(
                "Confirm CKD with repeat eGFR in 2-4 weeks",
                "Assess albuminuria status",
                "Screen and manage CKD risk factors",
                "Refer to nephrology if rapid decline or albuminuria",
                "Annual eGFR monitoring",
            ),
        ),
        Recommendation(
            band="stage3a",
            condition="CKD Stage 3a (eGFR 45-59)",
            recommendation="Mild to moderate decrease in kidney function",
            action_items=(
                "Confirm CKD diagnosis with repeat eGFR",
                "Assess albuminuria and proteinuria",
                "Optimize blood pressure control (target <120 mmHg)",
                "Screen for complications (anemia, bone disease)",
                "Consider nephrology referral",
                "Monitor eGFR every 6-12 months",
            ),
        ),
        Recommendation(
            band="stage3b",
            condition="CKD Stage 3b (eGFR 30-44)",
            recommendation="Moderate decrease in kidney function",
            action_items=(
                "Refer to nephrology for management",
                "Assess for CKD complications (anemia, mineral-bone disease)",
                "Optimize blood pressure and glycemic control",
                "Screen for cardiovascular disease",
                "Educate on CKD progression and lifestyle",
                "Monitor eGFR every 3-6 months",
                "Adjust medication dosing for renal function",
            ),
        ),
        Recommendation(
            band="stage4",
            condition="CKD Stage 4 (eGFR 15-29)",
            recommendation="Severe decrease in kidney function - prepare for renal replacement therapy",
            action_items=(
                "Refer to nephrology urgently",
                "Assess for dialysis/transplant candidacy",
                "Screen and treat CKD-mineral bone disease",
                "Manage anemia with ESA/iron",
                "Strict blood pressure control",
                "Avoid nephrotoxic agents",
                "Plan vascular access for dialysis",
                "Monitor eGFR monthly",
            ),
            urgency=Urgency.URGENT,
        ),
        Recommendation(
            band="stage5",
            condition="CKD Stage 5 (eGFR <15)",
            recommendation="Kidney failure - initiate renal replacement therapy",
            action_items=(
                "Urgent nephrology referral if not already involved",
                "Initiate dialysis or prepare for transplantation",
                "Manage fluid and electrolyte balance",
                "Treat complications (anemia, bone disease, hypertension)",
                "Nutritional counseling",
                "Psychosocial support",
                "Discuss treatment modalities and prognosis",
            ),
            urgency=Urgency.EMERGENT,
        ),
    ],
)


# ── Kidney failure risk ─────────────────────────────────────────────────────

_KFRE = RecommendationSet(
    InterpretationRule(below(10, "low"), at_most(40, "moderate"), otherwise("high")),
    [
        Recommendation(
            band="low",
            condition="Low Risk (<10%)",
            recommendation="Low risk of kidney failure progression",
            action_items=(
                "Continue current management",
                "Optimize blood pressure and glycemic control",
                "Repeat KFRE annually",
                "Monitor for albuminuria changes",
            ),
        ),
        Recommendation(
            band="moderate",
            condition="Moderate Risk (10-40%)",
            recommendation="Moderate risk - consider intensified management",
            action_items=(
                "Intensify blood pressure control (target <120 mmHg)",
                "Optimize glycemic control (if diabetic)",
                "Consider SGLT2 inhibitor or GLP-1 agonist",
                "Screen for and treat complications",
                "Repeat KFRE every 6-12 months",
                "Nephrology follow-up every 3-6 months",
            ),
        ),
        Recommendation(
            band="high",
            condition="High Risk (>40%)",
            recommendation="High risk of progression - urgent intervention needed",
            action_items=(
                "Urgent nephrology referral",
                "Aggressive blood pressure control",
                "Maximize ACEi/ARB therapy",
                "Consider SGLT2 inhibitor",
                "Screen for complications",
                "Prepare for renal replacement therapy",
                "Repeat KFRE every 3-6 months",
            ),
            urgency=Urgency.URGENT,
        ),
    ],
)


# ── Contrast nephropathy (Mehran points) ────────────────────────────────────

_MEHRAN = RecommendationSet(
    InterpretationRule(at_most(5, "low"), at_most(10, "moderate"), at_most(15, "high"), otherwise("veryhigh")),
    [
        Recommendation(
            band="low",
            condition="Low Risk (score ≤5, CIN 7.5%)",
            recommendation="Low risk of contrast-induced nephropathy",
            action_items=(
                "Proceed with contrast study",
                "Maintain hydration",
                "Monitor renal function 48-72 hours post-procedure",
            ),
        ),
        Recommendation(
            band="moderate",
            condition="Moderate Risk (score 6-10, CIN 14%)",
            recommendation="Moderate risk - implement prevention measures",
            action_items=(
                "IV hydration (0.9% saline 1 mL/kg/hr for 12 hours pre/post)",
                "Hold metformin 48 hours after procedure",
                "Avoid NSAIDs for 48 hours",
                "Use iso-osmolar or low-osmolar contrast",
                "Monitor renal function at 48-72 hours",
                "Consider N-acetylcysteine (controversial)",
            ),
        ),
        Recommendation(
            band="high",
            condition="High Risk (score 11-15, CIN 26.1%)",
            recommendation="High risk - aggressive prevention required",
            action_items=(
                "Consider alternative imaging without contrast",
                "If contrast necessary: aggressive IV hydration",
                "Hold metformin, NSAIDs, ACEi/ARB if possible",
                "Use iso-osmolar contrast",
                "Minimize contrast volume",
                "Monitor renal function closely",
                "Consider N-acetylcysteine",
            ),
            urgency=Urgency.URGENT,
        ),
        Recommendation(
            band="veryhigh",
            condition="Very High Risk (score ≥16, CIN 57.3%)",
            recommendation="Very high risk - consider non-contrast imaging",
            action_items=(
                "Strongly consider alternative imaging modality",
                "If contrast essential: consult nephrology",
                "Aggressive IV hydration",
                "Minimize contrast volume",
                "Use iso-osmolar contrast",
                "Hold nephrotoxic medications",
                "Close monitoring post-procedure",
                "Prepare for possible dialysis",
            ),
            urgency=Urgency.EMERGENT,
        ),
    ],
)


# ── ASCVD 10-year risk ──────────────────────────────────────────────────────

_ASCVD = RecommendationSet(
    InterpretationRule(below(5, "low"), below(7.5, "borderline"), below(20, "intermediate"), otherwise("high")),
    [
        Recommendation(
            band="low",
            condition="Low Risk (<5%)",
            recommendation="Low 10-year ASCVD risk",
            action_items=(
                "Continue healthy lifestyle",
                "Aspirin not routinely recommended",
                "Recheck risk every 4-6 years",
                "Manage modifiable risk factors",
            ),
        ),
        Recommendation(
            band="borderline",
            condition="Borderline Risk (5-7.5%)",
            recommendation="Borderline risk - consider statin therapy",
            action_items=(
                "Discuss statin therapy with patient",
                "Optimize lifestyle modifications",
                "Consider risk enhancers (family history, LDL-C, CKD)",
                "Target LDL-C <100 mg/dL",
                "Recheck risk annually",
            ),
        ),
        Recommendation(
            band="intermediate",
            condition="Intermediate Risk (7.5-20%)",
            recommendation="Intermediate risk - statin therapy recommended",
            action_items=(
                "Initiate moderate-intensity statin",
                "Target LDL-C 70-100 mg/dL",
                "Optimize blood pressure control",
                "Manage diabetes if present",
                "Smoking cessation",
                "Regular exercise (150 min/week)",
                "Recheck lipids in 4-12 weeks",
            ),
        ),
        Recommendation(
            band="high",
            condition="High Risk (>20%)",
            recommendation="High 10-year ASCVD risk - aggressive management",
            action_items=(
                "Initiate high-intensity statin",
                "Target LDL-C <70 mg/dL",
                "Consider ezetimibe or PCSK9 inhibitor if LDL not at goal",
                "Aggressive blood pressure control",
                "Intensive lifestyle modification",
                "Aspirin therapy",
                "Screen for subclinical disease",
                "Cardiology referral if indicated",
            ),
            urgency=Urgency.URGENT,
        ),
    ],
)


RECOMMENDATIONS: Mapping[str, RecommendationSet] = {
    "ckd-epi-creatinine": _CKD_STAGES,
    "lund-malmo-revised": _CKD_STAGES,
    "bis1-elderly": _CKD_STAGES,
    "fas-full-age-spectrum": _CKD_STAGES,
    "kfre": _KFRE,
    "cin-mehran-score": _MEHRAN,
    "ascvd-risk": _ASCVD,
}


def get_recommendation(calculator_id: str, band: str) -> Optional[Recommendation]:
    """Recommendation stored under an explicit band key, or None."""
    rec_set = RECOMMENDATIONS.get(calculator_id)
    if rec_set is None:
        return None
    return rec_set.get(band)


def recommend(calculator_id: str, value: float) -> Optional[Recommendation]:
    """Recommendation for a (rounded) result, or None when the calculator has none."""
    rec_set = RECOMMENDATIONS.get(calculator_id)
    if rec_set is None:
        return None
    recommendation = rec_set.for_value(value)
    logger.debug(f"{calculator_id} = {value}: {recommendation.band} ({recommendation.urgency.value})")
    return recommendation
