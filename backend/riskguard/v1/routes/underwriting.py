from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Response, status

from riskguard.dependencies import get_workflow
from riskguard.middleware.actor_middleware import get_actor
from riskguard.schemas.underwriting import (
    ApprovalResponse,
    ApproveRequest,
    DeclineRequest,
    DecisionStatus,
    HoldRequest,
    UnderwritingDecision,
)
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(prefix="/underwriting-decisions", tags=["underwriting"])


@router.get("", response_model=List[UnderwritingDecision])
async def list_decisions(
    status: Optional[DecisionStatus] = None,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.list_decisions(status)


@router.get("/{decision_id}", response_model=UnderwritingDecision)
async def get_decision(decision_id: str, workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.get_decision(decision_id)


@router.post("/{decision_id}/approve", response_model=ApprovalResponse)
async def approve(
    decision_id: str,
    req: ApproveRequest = Body(
        openapi_examples={
            "computed_premium": {
                "summary": "Approve and price from the assessment's risk score",
                "value": {
                    "coverage_amount": "100000",
                    "start_date": "2026-11-01",
                    "end_date": "2027-10-31",
                    "reason": "Standard risk profile",
                },
            },
            "manual_premium": {
                "summary": "Approve with an underwriter-set premium",
                "value": {
                    "coverage_amount": "250000",
                    "premium_amount": "1625.00",
                    "start_date": "2026-11-01",
                    "end_date": "2027-10-31",
                    "reason": "Loaded for motor exposure",
                    "underwriter_notes": "Manual premium agreed with broker",
                },
            },
        }
    ),
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.approve(
        decision_id,
        coverage_amount=req.coverage_amount,
        premium_amount=req.premium_amount,
        start_date=req.start_date,
        end_date=req.end_date,
        reason=req.reason,
        underwriter_notes=req.underwriter_notes,
        actor=actor,
    )


@router.post("/{decision_id}/decline", response_model=UnderwritingDecision)
async def decline(
    decision_id: str,
    req: DeclineRequest,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.decline(decision_id, req.reason, req.underwriter_notes, actor=actor)


@router.post("/{decision_id}/hold", response_model=UnderwritingDecision)
async def hold(
    decision_id: str,
    req: HoldRequest,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.hold(decision_id, req.underwriter_notes, actor=actor)


@router.post("/{decision_id}/reopen", response_model=UnderwritingDecision)
async def reopen(
    decision_id: str,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.reopen(decision_id, actor=actor)


@router.delete("/{decision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_decision(
    decision_id: str,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    await workflow.delete(decision_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
