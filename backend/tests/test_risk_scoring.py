"""Tests for the rule-based risk scorer."""

import itertools
from datetime import date

import pytest

from conftest import TODAY, make_customer
from riskguard.schemas.customer import InsuranceType
from riskguard.schemas.underwriting import AssessmentResult, RiskLevel
from riskguard.services.risk_scoring_service import (
    MISSING_DOB_FACTOR,
    build_explanation,
    compute_risk_score,
    contact_completeness,
    recommendation_for,
    risk_level_for,
)


def born_years_ago(years: int) -> date:
    return date(TODAY.year - years, 1, 1)


def test_scenario_a_verified_health_applicant_is_medium_and_approved():
    """Age 30, HEALTH, verified, complete contact: 50+10+5-5-10 = 50."""
    customer = make_customer(date_of_birth=born_years_ago(30), insurance_type=InsuranceType.HEALTH)
    result = compute_risk_score(customer, today=TODAY)

    assert result.score == 50
    assert result.level == RiskLevel.MEDIUM
    assert result.recommendation == AssessmentResult.APPROVED
    assert result.flagged_for_manual_review is False
    assert result.factors == [
        "Relatively young age (25-34 years)",
        "Health insurance",
        "Documents verified (lower risk)",
        "Complete contact information",
    ]


def test_scenario_b_young_unverified_motor_applicant_is_clamped_to_critical():
    """Age 20, MOTOR, unverified, email only: 50+20+15+20+15 = 120 -> 100."""
    customer = make_customer(
        date_of_birth=born_years_ago(20),
        insurance_type=InsuranceType.MOTOR,
        document_verified=False,
        phone=None,
        address=None,
        city=None,
        state=None,
    )
    result = compute_risk_score(customer, today=TODAY)

    assert result.score == 100
    assert result.level == RiskLevel.CRITICAL
    assert result.recommendation == AssessmentResult.DECLINED
    assert "Incomplete contact information" in result.factors


@pytest.mark.parametrize(
    "age,delta",
    [(18, 20), (24, 20), (25, 10), (34, 10), (35, 0), (50, 0), (65, 0), (66, 15), (90, 15)],
)
def test_age_bands(age, delta):
    customer = make_customer(date_of_birth=born_years_ago(age))
    # Baseline without the age rule: 50 + 5 - 5 - 10 = 40
    assert compute_risk_score(customer, today=TODAY).score == 40 + delta


@pytest.mark.parametrize("dob", [None, date(2030, 1, 1)])
def test_missing_or_future_birth_date_skips_age_rule_and_says_so(dob):
    customer = make_customer(date_of_birth=dob)
    result = compute_risk_score(customer, today=TODAY)

    assert result.score == 40
    assert result.factors[0] == MISSING_DOB_FACTOR


@pytest.mark.parametrize(
    "insurance_type,delta",
    [(InsuranceType.HEALTH, 5), (InsuranceType.LIFE, 10), (InsuranceType.MOTOR, 15)],
)
def test_insurance_type_adjustment(insurance_type, delta):
    customer = make_customer(insurance_type=insurance_type)
    assert compute_risk_score(customer, today=TODAY).score == 35 + delta


def test_contact_completeness_counts_address_block_as_two():
    assert contact_completeness(make_customer()) == 4
    assert contact_completeness(make_customer(email=None, phone=None)) == 2
    assert contact_completeness(make_customer(city=None)) == 2
    assert contact_completeness(make_customer(email=None, phone=None, state=None)) == 0


@pytest.mark.parametrize(
    "overrides,delta",
    [
        ({}, -10),
        ({"phone": None}, 0),
        ({"email": None, "phone": None}, 0),
        ({"address": None}, 0),
        ({"address": None, "phone": None}, 15),
        ({"email": None, "phone": None, "address": None}, 15),
    ],
)
def test_contact_completeness_adjustment(overrides, delta):
    customer = make_customer(**overrides)
    # 50 + 0 (age 45) + 5 (health) - 5 (verified)
    assert compute_risk_score(customer, today=TODAY).score == 50 + delta


@pytest.mark.parametrize(
    "score,level",
    [
        (0, RiskLevel.LOW),
        (25, RiskLevel.LOW),
        (26, RiskLevel.MEDIUM),
        (50, RiskLevel.MEDIUM),
        (51, RiskLevel.HIGH),
        (75, RiskLevel.HIGH),
        (76, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ],
)
def test_level_thresholds_are_inclusive_upper_bounds(score, level):
    assert risk_level_for(score) == level


def test_recommendation_mapping():
    assert recommendation_for(RiskLevel.LOW) == AssessmentResult.APPROVED
    assert recommendation_for(RiskLevel.MEDIUM) == AssessmentResult.APPROVED
    assert recommendation_for(RiskLevel.HIGH) == AssessmentResult.REVIEW_REQUIRED
    assert recommendation_for(RiskLevel.CRITICAL) == AssessmentResult.DECLINED


def test_high_risk_is_flagged_for_manual_review():
    # 50 + 10 (age 30) + 10 (life) - 5 - 10 = 55
    customer = make_customer(date_of_birth=born_years_ago(30), insurance_type=InsuranceType.LIFE)
    result = compute_risk_score(customer, today=TODAY)

    assert result.level == RiskLevel.HIGH
    assert result.recommendation == AssessmentResult.REVIEW_REQUIRED
    assert result.flagged_for_manual_review is True


PROFILE_GRID = list(
    itertools.product(
        [None, 20, 30, 45, 70],
        list(InsuranceType),
        [
            {},
            {"phone": None},
            {"email": None, "phone": None, "address": None},
        ],
    )
)


@pytest.mark.parametrize("age,insurance_type,contact", PROFILE_GRID)
def test_score_is_bounded_and_level_follows_score(age, insurance_type, contact):
    dob = born_years_ago(age) if age is not None else None
    for verified in (True, False):
        customer = make_customer(
            date_of_birth=dob, insurance_type=insurance_type, document_verified=verified, **contact
        )
        result = compute_risk_score(customer, today=TODAY)
        assert 0 <= result.score <= 100
        assert result.level == risk_level_for(result.score)
        assert result.recommendation == recommendation_for(result.level)


@pytest.mark.parametrize("age,insurance_type,contact", PROFILE_GRID)
def test_unverified_documents_never_lower_the_score(age, insurance_type, contact):
    dob = born_years_ago(age) if age is not None else None
    verified = make_customer(date_of_birth=dob, insurance_type=insurance_type, document_verified=True, **contact)
    unverified = verified.model_copy(update={"document_verified": False})

    assert compute_risk_score(unverified, today=TODAY).score >= compute_risk_score(verified, today=TODAY).score


def test_scoring_is_deterministic():
    customer = make_customer()
    assert compute_risk_score(customer, today=TODAY) == compute_risk_score(customer, today=TODAY)


def test_explanation_lists_factors():
    explanation = build_explanation(["Health insurance", "Documents verified (lower risk)"])
    assert explanation.startswith("Risk assessment based on customer profile analysis.")
    assert "Health insurance, Documents verified (lower risk)" in explanation
