from beanie import Document, Indexed
from pydantic import Field
from typing import List
from datetime import datetime, timezone


class RiskAssessmentDocument(Document):
    customer_id: Indexed(str)
    risk_score: int
    risk_level: str
    result: str
    explanation: str = ""
    factors: List[str] = []
    rules_applied: str = ""
    flagged_for_manual_review: bool = False
    status: str = "ACTIVE"
    assessment_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "risk_assessments"
