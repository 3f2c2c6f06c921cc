from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends

from riskguard.dependencies import get_workflow
from riskguard.schemas.underwriting import Policy, PremiumQuote
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(tags=["policies"])


@router.get("/premium/calculate", response_model=PremiumQuote)
async def calculate_premium(
    coverage_amount: Decimal,
    risk_score: int,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.quote_premium(coverage_amount, risk_score)


@router.get("/policies", response_model=List[Policy])
async def list_policies(
    customer_id: Optional[str] = None,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.list_policies(customer_id)


@router.get("/policies/{policy_id}", response_model=Policy)
async def get_policy(policy_id: str, workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.get_policy(policy_id)
