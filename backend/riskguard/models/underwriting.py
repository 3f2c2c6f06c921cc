from beanie import Document, Indexed
from datetime import datetime
from typing import Optional


class UnderwritingDecisionDocument(Document):
    """One collection for every decision state; unused fields stay null."""

    customer_id: str
    assessment_id: Indexed(str, unique=True)
    status: Indexed(str)
    sent_to_underwriting_date: datetime
    decided_by: str = "System"
    reason: Optional[str] = None
    underwriter_notes: Optional[str] = None
    decision_date: Optional[datetime] = None
    approval_date: Optional[datetime] = None
    held_date: Optional[datetime] = None
    policy_id: Optional[str] = None

    class Settings:
        name = "underwriting_decisions"
