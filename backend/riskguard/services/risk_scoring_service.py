"""
RiskScoringService
==================
Deterministic, rule-based applicant scoring. No I/O, no clock unless the
caller omits ``today``.

  1. Start from BASE_SCORE (50)
  2. Apply each additive rule independently; every rule that fires records a
     human-readable factor
  3. Clamp to [0, 100]
  4. Bucket the score into a risk level and map the level to a recommendation

Rules:
  Age (current year − birth year)   <25 +20 | 25–34 +10 | >65 +15
  Insurance type                    MOTOR +15 | LIFE +10 | HEALTH +5
  Documents                         unverified +20 | verified −5
  Contact completeness (0–4)        <2 +15 | ==4 −10
"""

from datetime import date
from typing import Optional

from riskguard.schemas.customer import Customer, InsuranceType
from riskguard.schemas.underwriting import AssessmentResult, RiskLevel, RiskScoreResult

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

# Inclusive upper bound → level; anything above the last bound is CRITICAL
LEVEL_THRESHOLDS: list[tuple[int, RiskLevel]] = [
    (25, RiskLevel.LOW),
    (50, RiskLevel.MEDIUM),
    (75, RiskLevel.HIGH),
]

RECOMMENDATIONS: dict[RiskLevel, AssessmentResult] = {
    RiskLevel.LOW: AssessmentResult.APPROVED,
    RiskLevel.MEDIUM: AssessmentResult.APPROVED,
    RiskLevel.HIGH: AssessmentResult.REVIEW_REQUIRED,
    RiskLevel.CRITICAL: AssessmentResult.DECLINED,
}

INSURANCE_TYPE_ADJUSTMENTS: dict[InsuranceType, tuple[int, str]] = {
    InsuranceType.MOTOR: (15, "Motor insurance (higher risk category)"),
    InsuranceType.LIFE: (10, "Life insurance"),
    InsuranceType.HEALTH: (5, "Health insurance"),
}

MISSING_DOB_FACTOR = "Date of birth missing or invalid (age rule skipped)"


def _age_adjustment(date_of_birth: Optional[date], today: date) -> tuple[int, Optional[str]]:
    if date_of_birth is None or date_of_birth > today:
        return 0, MISSING_DOB_FACTOR
    age = today.year - date_of_birth.year
    if age < 25:
        return 20, "Young age (< 25 years)"
    if age < 35:
        return 10, "Relatively young age (25-34 years)"
    if age > 65:
        return 15, "Senior age (> 65 years)"
    return 0, None


def contact_completeness(customer: Customer) -> int:
    """+1 email, +1 phone, +2 when address, city and state are all present."""
    completeness = 0
    if customer.email:
        completeness += 1
    if customer.phone:
        completeness += 1
    if customer.address and customer.city and customer.state:
        completeness += 2
    return completeness


def risk_level_for(score: int) -> RiskLevel:
    for upper, level in LEVEL_THRESHOLDS:
        if score <= upper:
            return level
    return RiskLevel.CRITICAL


def recommendation_for(level: RiskLevel) -> AssessmentResult:
    return RECOMMENDATIONS[level]


def compute_risk_score(customer: Customer, today: Optional[date] = None) -> RiskScoreResult:
    today = today or date.today()
    score = BASE_SCORE
    factors: list[str] = []

    delta, factor = _age_adjustment(customer.date_of_birth, today)
    score += delta
    if factor:
        factors.append(factor)

    delta, factor = INSURANCE_TYPE_ADJUSTMENTS[customer.insurance_type]
    score += delta
    factors.append(factor)

    if customer.document_verified:
        score -= 5
        factors.append("Documents verified (lower risk)")
    else:
        score += 20
        factors.append("Documents not verified")

    completeness = contact_completeness(customer)
    if completeness < 2:
        score += 15
        factors.append("Incomplete contact information")
    elif completeness == 4:
        score -= 10
        factors.append("Complete contact information")

    score = max(MIN_SCORE, min(MAX_SCORE, score))
    level = risk_level_for(score)

    return RiskScoreResult(
        score=score,
        level=level,
        recommendation=recommendation_for(level),
        factors=factors,
    )


def build_explanation(factors: list[str]) -> str:
    return (
        "Risk assessment based on customer profile analysis. "
        f"Factors considered: {', '.join(factors) if factors else 'none'}"
    )
