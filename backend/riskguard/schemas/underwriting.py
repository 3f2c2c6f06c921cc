from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AssessmentResult(str, Enum):
    APPROVED = "APPROVED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    DECLINED = "DECLINED"


class AssessmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SENT_TO_UNDERWRITING = "SENT_TO_UNDERWRITING"


class DecisionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ON_HOLD = "ON_HOLD"


class PolicyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


# ---------------------------------------------------------------------------
# Risk assessment
# ---------------------------------------------------------------------------

class RiskScoreResult(BaseModel):
    score: int = Field(ge=0, le=100)
    level: RiskLevel
    recommendation: AssessmentResult
    factors: List[str] = []

    model_config = {"frozen": True}

    @property
    def flagged_for_manual_review(self) -> bool:
        return self.recommendation == AssessmentResult.REVIEW_REQUIRED


class RiskAssessment(BaseModel):
    id: str
    customer_id: str
    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    result: AssessmentResult
    explanation: str = ""
    factors: List[str] = []
    rules_applied: str = ""
    flagged_for_manual_review: bool = False
    status: AssessmentStatus = AssessmentStatus.ACTIVE
    assessment_date: datetime

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Underwriting decision: one variant per state, carrying only the fields
# legal in that state.
# ---------------------------------------------------------------------------

class _DecisionBase(BaseModel):
    id: str
    customer_id: str
    assessment_id: str
    sent_to_underwriting_date: datetime
    decided_by: str = "System"

    model_config = {"frozen": True}

    def _carry(self, decided_by: Optional[str]) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "assessment_id": self.assessment_id,
            "sent_to_underwriting_date": self.sent_to_underwriting_date,
            "decided_by": decided_by or self.decided_by,
        }


class PendingDecision(_DecisionBase):
    status: Literal["PENDING"] = "PENDING"

    def approve(
        self,
        *,
        policy_id: str,
        reason: str,
        underwriter_notes: str,
        decided_at: datetime,
        decided_by: Optional[str] = None,
    ) -> "ApprovedDecision":
        return ApprovedDecision(
            **self._carry(decided_by),
            policy_id=policy_id,
            reason=reason,
            underwriter_notes=underwriter_notes,
            decision_date=decided_at.date(),
            approval_date=decided_at.date(),
        )

    def decline(
        self,
        *,
        reason: str,
        underwriter_notes: str,
        decided_at: datetime,
        decided_by: Optional[str] = None,
    ) -> "DeclinedDecision":
        return DeclinedDecision(
            **self._carry(decided_by),
            reason=reason,
            underwriter_notes=underwriter_notes,
            decision_date=decided_at.date(),
        )

    def hold(
        self,
        *,
        underwriter_notes: str,
        decided_at: datetime,
        decided_by: Optional[str] = None,
    ) -> "OnHoldDecision":
        return OnHoldDecision(
            **self._carry(decided_by),
            underwriter_notes=underwriter_notes,
            held_date=decided_at.date(),
        )


class ApprovedDecision(_DecisionBase):
    status: Literal["APPROVED"] = "APPROVED"
    policy_id: str
    reason: str = ""
    underwriter_notes: str = ""
    decision_date: date
    approval_date: date


class DeclinedDecision(_DecisionBase):
    status: Literal["DECLINED"] = "DECLINED"
    reason: str = Field(min_length=1)
    underwriter_notes: str = ""
    decision_date: date


class OnHoldDecision(_DecisionBase):
    status: Literal["ON_HOLD"] = "ON_HOLD"
    underwriter_notes: str = ""
    held_date: date

    def reopen(self, *, decided_by: Optional[str] = None) -> PendingDecision:
        return PendingDecision(**self._carry(decided_by))


UnderwritingDecision = Annotated[
    Union[PendingDecision, ApprovedDecision, DeclinedDecision, OnHoldDecision],
    Field(discriminator="status"),
]

decision_adapter: TypeAdapter = TypeAdapter(UnderwritingDecision)


# ---------------------------------------------------------------------------
# Policy & audit
# ---------------------------------------------------------------------------

class Policy(BaseModel):
    id: str
    customer_id: str
    decision_id: str
    policy_number: str
    coverage_amount: Decimal
    premium_amount: Decimal
    start_date: date
    end_date: date
    status: PolicyStatus = PolicyStatus.ACTIVE
    issue_date: date

    model_config = {"frozen": True}


class AuditEvent(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    actor: str
    timestamp: datetime
    details: str = ""

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Requests / responses
# ---------------------------------------------------------------------------

class AssessmentRequest(BaseModel):
    customer_id: str

    model_config = {
        "json_schema_extra": {"examples": [{"customer_id": "6657a1b2c3d4e5f678901234"}]}
    }


class ApproveRequest(BaseModel):
    coverage_amount: Optional[Decimal] = None
    premium_amount: Optional[Decimal] = None
    start_date: date
    end_date: date
    reason: str = ""
    underwriter_notes: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "coverage_amount": "100000",
                    "start_date": "2026-11-01",
                    "end_date": "2027-10-31",
                    "reason": "Standard risk profile, documents verified",
                    "underwriter_notes": "Premium computed from assessment score",
                }
            ]
        }
    }


class DeclineRequest(BaseModel):
    reason: str = ""
    underwriter_notes: str = ""


class HoldRequest(BaseModel):
    underwriter_notes: str = ""


class ApprovalResponse(BaseModel):
    decision: ApprovedDecision
    policy: Policy


class PremiumQuote(BaseModel):
    coverage_amount: Decimal
    risk_score: int
    premium_amount: Decimal


class RiskSummaryReport(BaseModel):
    total_assessments: int
    approved_count: int
    review_required_count: int
    declined_count: int
    average_risk_score: float
    approval_rate: float
    decisions_by_status: dict[str, int]
    total_policies: int
    generated_date: datetime

    model_config = {"frozen": True}
