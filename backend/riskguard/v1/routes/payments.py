from typing import List, Optional

from fastapi import APIRouter, Depends, status

from riskguard.dependencies import get_workflow
from riskguard.middleware.actor_middleware import get_actor
from riskguard.schemas.payment import (
    PaymentCreateRequest,
    PaymentStatus,
    PaymentUpdateRequest,
    PremiumPayment,
)
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(prefix="/premium-payments", tags=["payments"])


@router.post("", response_model=PremiumPayment, status_code=status.HTTP_201_CREATED)
async def record_payment(
    req: PaymentCreateRequest,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.record_payment(req, actor)


@router.get("", response_model=List[PremiumPayment])
async def list_payments(
    policy_id: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.list_payments(policy_id, status)


@router.get("/{payment_id}", response_model=PremiumPayment)
async def get_payment(payment_id: str, workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.get_payment(payment_id)


@router.put("/{payment_id}", response_model=PremiumPayment)
async def update_payment(
    payment_id: str,
    req: PaymentUpdateRequest,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
    actor: str = Depends(get_actor),
):
    return await workflow.update_payment(payment_id, req, actor)
