from beanie import Document
from datetime import datetime, timezone
from typing import Optional
from pydantic import Field


class CustomerDocument(Document):
    name: str
    date_of_birth: Optional[datetime] = None
    insurance_type: str
    document_verified: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "customers"
