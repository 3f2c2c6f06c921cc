from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    UNPAID = "UNPAID"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


# A settled or cancelled payment is never edited again
FINAL_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.CANCELLED})


class PremiumPayment(BaseModel):
    id: str
    policy_id: str
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[date] = None
    due_date: Optional[date] = None
    processed_date: Optional[date] = None
    remarks: str = ""

    model_config = {"frozen": True}


class PaymentCreateRequest(BaseModel):
    policy_id: str
    amount: Optional[Decimal] = None
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[date] = None
    due_date: Optional[date] = None
    remarks: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "policy_id": "6657a1b2c3d4e5f678901234",
                    "status": "PAID",
                    "payment_method": "CARD",
                    "transaction_id": "TXN-20261101-0001",
                    "payment_date": "2026-11-01",
                }
            ]
        }
    }


class PaymentUpdateRequest(BaseModel):
    """Only the fields sent are changed."""

    status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[date] = None
    due_date: Optional[date] = None
    remarks: Optional[str] = None
