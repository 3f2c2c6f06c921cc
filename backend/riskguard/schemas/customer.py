from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr


class InsuranceType(str, Enum):
    HEALTH = "HEALTH"
    LIFE = "LIFE"
    MOTOR = "MOTOR"


class CustomerCreateRequest(BaseModel):
    name: str
    date_of_birth: Optional[date] = None
    insurance_type: InsuranceType
    document_verified: bool = False
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Priya Raman",
                    "date_of_birth": "1994-03-12",
                    "insurance_type": "HEALTH",
                    "document_verified": True,
                    "email": "priya.raman@example.com",
                    "phone": "+1-555-0142",
                    "address": "18 Elm Street",
                    "city": "Springfield",
                    "state": "IL",
                    "zip_code": "62701",
                }
            ]
        }
    }


class Customer(CustomerCreateRequest):
    """Read-only applicant record consumed by the risk scorer."""

    id: str

    model_config = {"frozen": True}
