from beanie import Document, Indexed
from datetime import datetime


class PolicyDocument(Document):
    customer_id: Indexed(str)
    decision_id: Indexed(str, unique=True)
    policy_number: str
    # Stored as float; the repository re-quantizes to cents on read
    coverage_amount: float
    premium_amount: float
    start_date: datetime
    end_date: datetime
    status: str = "ACTIVE"
    issue_date: datetime

    class Settings:
        name = "policies"
