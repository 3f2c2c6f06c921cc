from typing import List, Optional

from fastapi import APIRouter, Body, Depends, status

from riskguard.dependencies import get_workflow
from riskguard.middleware.actor_middleware import get_actor
from riskguard.schemas.underwriting import (
    AssessmentRequest,
    AssessmentResult,
    PendingDecision,
    RiskAssessment,
)
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(prefix="/risk-assessments", tags=["risk-assessments"])


@router.post("", response_model=RiskAssessment, status_code=status.HTTP_201_CREATED)
async def submit_assessment(
    req: AssessmentRequest = Body(
        openapi_examples={
            "standard": {
                "summary": "Score an existing customer",
                "value": {"customer_id": "6657a1b2c3d4e5f678901234"},
            }
        }
    ),
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.submit_assessment(req.customer_id)


@router.get("", response_model=List[RiskAssessment])
async def list_assessments(
    result: Optional[AssessmentResult] = None,
    customer_id: Optional[str] = None,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.list_assessments(result=result, customer_id=customer_id)


@router.get("/{assessment_id}", response_model=RiskAssessment)
async def get_assessment(assessment_id: str, workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.get_assessment(assessment_id)


@router.post(
    "/{assessment_id}/send-to-underwriting",
    response_model=PendingDecision,
    status_code=status.HTTP_201_CREATED,
)
async def send_to_underwriting(
    assessment_id: str,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.send_to_underwriting(assessment_id, actor=actor)
