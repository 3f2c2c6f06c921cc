from typing import List, Optional

from fastapi import APIRouter, Depends

from riskguard.dependencies import get_workflow
from riskguard.schemas.underwriting import AuditEvent, RiskSummaryReport
from riskguard.services.report_service import build_risk_summary
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(tags=["reports"])


@router.get("/reports/risk-summary", response_model=RiskSummaryReport)
async def risk_summary(workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await build_risk_summary(workflow)


@router.get("/audit-logs", response_model=List[AuditEvent])
async def audit_logs(
    entity_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.list_audit_events(entity_id, entity_type)
