from datetime import date
from decimal import Decimal

from conftest import make_customer
from riskguard.schemas.underwriting import DecisionStatus
from riskguard.services.report_service import build_risk_summary


async def test_empty_summary(workflow):
    report = await build_risk_summary(workflow)

    assert report.total_assessments == 0
    assert report.average_risk_score == 0.0
    assert report.approval_rate == 0.0
    assert report.decisions_by_status == {s.value: 0 for s in DecisionStatus}
    assert report.total_policies == 0


async def test_summary_counts_results_decisions_and_policies(workflow, stores):
    # scores: 40 (APPROVED), 55 (REVIEW_REQUIRED), 90 (DECLINED)
    await stores.customers.create(make_customer(id="c-low"))
    await stores.customers.create(make_customer(id="c-mid", date_of_birth=date(1996, 2, 1), insurance_type="LIFE"))
    await stores.customers.create(
        make_customer(id="c-high", document_verified=False, phone=None, address=None)
    )

    assessments = [await workflow.submit_assessment(cid) for cid in ("c-low", "c-mid", "c-high")]
    assert [a.risk_score for a in assessments] == [40, 55, 90]

    approved = await workflow.send_to_underwriting(assessments[0].id)
    declined = await workflow.send_to_underwriting(assessments[2].id)
    await workflow.approve(
        approved.id,
        coverage_amount=Decimal("50000"),
        start_date=date(2026, 7, 1),
        end_date=date(2027, 6, 30),
    )
    await workflow.decline(declined.id, "Critical risk")

    report = await build_risk_summary(workflow)

    assert report.total_assessments == 3
    assert report.approved_count == 1
    assert report.review_required_count == 1
    assert report.declined_count == 1
    assert report.average_risk_score == 61.67
    assert report.approval_rate == 33.33
    assert report.decisions_by_status == {"PENDING": 0, "APPROVED": 1, "DECLINED": 1, "ON_HOLD": 0}
    assert report.total_policies == 1
