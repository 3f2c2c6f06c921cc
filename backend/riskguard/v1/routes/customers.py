from typing import List

from fastapi import APIRouter, Depends, status

from riskguard.dependencies import get_workflow
from riskguard.schemas.customer import Customer, CustomerCreateRequest
from riskguard.services.underwriting_service import UnderwritingWorkflow

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", response_model=Customer, status_code=status.HTTP_201_CREATED)
async def create_customer(
    req: CustomerCreateRequest,
    workflow: UnderwritingWorkflow = Depends(get_workflow),
):
    return await workflow.create_customer(req)


@router.get("", response_model=List[Customer])
async def list_customers(workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.list_customers()


@router.get("/{customer_id}", response_model=Customer)
async def get_customer(customer_id: str, workflow: UnderwritingWorkflow = Depends(get_workflow)):
    return await workflow.get_customer(customer_id)
