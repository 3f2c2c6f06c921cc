from beanie import Document, Indexed
from datetime import datetime
from typing import Optional


class PremiumPaymentDocument(Document):
    policy_id: Indexed(str)
    # Stored as float; the repository re-quantizes to cents on read
    amount: float
    status: Indexed(str)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    processed_date: Optional[datetime] = None
    remarks: str = ""

    class Settings:
        name = "premium_payments"
