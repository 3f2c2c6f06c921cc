from collections import Counter
from datetime import datetime, timezone

from riskguard.schemas.underwriting import AssessmentResult, DecisionStatus, RiskSummaryReport
from riskguard.services.underwriting_service import UnderwritingWorkflow


async def build_risk_summary(workflow: UnderwritingWorkflow) -> RiskSummaryReport:
    """Point-in-time analytics over assessments, decisions and policies. Read-only."""
    assessments = await workflow.list_assessments()
    decisions = await workflow.list_decisions()
    policies = await workflow.list_policies()

    results = Counter(a.result for a in assessments)
    total = len(assessments)
    average = round(sum(a.risk_score for a in assessments) / total, 2) if total else 0.0
    approved = results.get(AssessmentResult.APPROVED, 0)

    statuses = Counter(str(d.status) for d in decisions)

    return RiskSummaryReport(
        total_assessments=total,
        approved_count=approved,
        review_required_count=results.get(AssessmentResult.REVIEW_REQUIRED, 0),
        declined_count=results.get(AssessmentResult.DECLINED, 0),
        average_risk_score=average,
        approval_rate=round(approved / total * 100, 2) if total else 0.0,
        decisions_by_status={s.value: statuses.get(s.value, 0) for s in DecisionStatus},
        total_policies=len(policies),
        generated_date=datetime.now(timezone.utc),
    )
