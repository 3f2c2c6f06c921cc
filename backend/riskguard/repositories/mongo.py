import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from beanie import PydanticObjectId
from beanie.odm.queries.update import UpdateResponse
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from riskguard.errors import StateConflictError
from riskguard.models.assessment import RiskAssessmentDocument
from riskguard.models.audit import AuditLogDocument
from riskguard.models.customer import CustomerDocument
from riskguard.models.payment import PremiumPaymentDocument
from riskguard.models.policy import PolicyDocument
from riskguard.models.underwriting import UnderwritingDecisionDocument
from riskguard.repositories.base import (
    AssessmentStore,
    AuditStore,
    CustomerStore,
    DecisionStore,
    PaymentStore,
    PolicyStore,
    Stores,
)
from riskguard.schemas.customer import Customer
from riskguard.schemas.payment import PaymentStatus, PremiumPayment
from riskguard.schemas.underwriting import (
    AssessmentResult,
    AssessmentStatus,
    AuditEvent,
    DecisionStatus,
    Policy,
    RiskAssessment,
    UnderwritingDecision,
    decision_adapter,
)

_CENT = Decimal("0.01")

# Every optional column of the decisions collection; a replacement nulls the
# ones its variant does not carry.
_DECISION_FIELDS = (
    "decided_by",
    "reason",
    "underwriter_notes",
    "decision_date",
    "approval_date",
    "held_date",
    "policy_id",
)


def _oid(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError, ValueError):
        return None


def _bson_safe(value: Any) -> Any:
    # BSON has no date type; store midnight datetimes
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _doc_dict(doc) -> dict:
    data = doc.model_dump(exclude={"id", "revision_id"})
    data["id"] = str(doc.id)
    return data


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

class MongoCustomerStore(CustomerStore):
    async def create(self, customer: Customer) -> Customer:
        doc = CustomerDocument(
            id=PydanticObjectId(customer.id),
            **customer.model_dump(mode="json", exclude={"id", "date_of_birth"}),
            date_of_birth=_bson_safe(customer.date_of_birth),
        )
        await doc.insert()
        return customer

    async def get(self, customer_id: str) -> Optional[Customer]:
        oid = _oid(customer_id)
        doc = await CustomerDocument.get(oid) if oid else None
        return Customer(**_doc_dict(doc)) if doc else None

    async def list(self) -> list[Customer]:
        docs = await CustomerDocument.find_all().to_list()
        return [Customer(**_doc_dict(d)) for d in docs]


# ---------------------------------------------------------------------------
# Risk assessments
# ---------------------------------------------------------------------------

class MongoAssessmentStore(AssessmentStore):
    async def create(self, assessment: RiskAssessment) -> RiskAssessment:
        doc = RiskAssessmentDocument(
            id=PydanticObjectId(assessment.id),
            **assessment.model_dump(mode="json", exclude={"id", "assessment_date"}),
            assessment_date=assessment.assessment_date,
        )
        await doc.insert()
        return assessment

    async def get(self, assessment_id: str) -> Optional[RiskAssessment]:
        oid = _oid(assessment_id)
        doc = await RiskAssessmentDocument.get(oid) if oid else None
        return RiskAssessment(**_doc_dict(doc)) if doc else None

    async def update_status_if(
        self,
        assessment_id: str,
        expected: AssessmentStatus,
        new_status: AssessmentStatus,
    ) -> Optional[RiskAssessment]:
        oid = _oid(assessment_id)
        if oid is None:
            return None
        doc = await RiskAssessmentDocument.find_one(
            RiskAssessmentDocument.id == oid,
            RiskAssessmentDocument.status == expected.value,
        ).update(
            {"$set": {"status": new_status.value}},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        return RiskAssessment(**_doc_dict(doc)) if doc else None

    async def list(
        self,
        result: Optional[AssessmentResult] = None,
        customer_id: Optional[str] = None,
    ) -> list[RiskAssessment]:
        filters: dict[str, Any] = {}
        if result is not None:
            filters["result"] = result.value
        if customer_id is not None:
            filters["customer_id"] = customer_id
        docs = await RiskAssessmentDocument.find(filters).to_list()
        return [RiskAssessment(**_doc_dict(d)) for d in docs]


# ---------------------------------------------------------------------------
# Underwriting decisions
# ---------------------------------------------------------------------------

def _decision_from_doc(doc: UnderwritingDecisionDocument) -> UnderwritingDecision:
    data = {k: v for k, v in _doc_dict(doc).items() if v is not None}
    return decision_adapter.validate_python(data)


def _decision_fields(decision: UnderwritingDecision) -> dict[str, Any]:
    data = decision.model_dump(exclude={"id"})
    for name in _DECISION_FIELDS:
        data.setdefault(name, None)
    return {k: _bson_safe(v) for k, v in data.items()}


class MongoDecisionStore(DecisionStore):
    async def create(self, decision: UnderwritingDecision) -> UnderwritingDecision:
        doc = UnderwritingDecisionDocument(id=PydanticObjectId(decision.id), **_decision_fields(decision))
        try:
            await doc.insert()
        except DuplicateKeyError:
            raise StateConflictError(
                f"Assessment {decision.assessment_id!r} already has an underwriting decision"
            )
        return decision

    async def get(self, decision_id: str) -> Optional[UnderwritingDecision]:
        oid = _oid(decision_id)
        doc = await UnderwritingDecisionDocument.get(oid) if oid else None
        return _decision_from_doc(doc) if doc else None

    async def replace_if_status(
        self,
        decision_id: str,
        expected: DecisionStatus,
        replacement: UnderwritingDecision,
    ) -> Optional[UnderwritingDecision]:
        oid = _oid(decision_id)
        if oid is None:
            return None
        doc = await UnderwritingDecisionDocument.find_one(
            UnderwritingDecisionDocument.id == oid,
            UnderwritingDecisionDocument.status == expected.value,
        ).update(
            {"$set": _decision_fields(replacement)},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        return _decision_from_doc(doc) if doc else None

    async def delete(self, decision_id: str) -> bool:
        oid = _oid(decision_id)
        if oid is None:
            return False
        result = await UnderwritingDecisionDocument.find_one(UnderwritingDecisionDocument.id == oid).delete()
        return bool(result and result.deleted_count)

    async def list(self, status: Optional[DecisionStatus] = None) -> list[UnderwritingDecision]:
        filters = {"status": status.value} if status is not None else {}
        docs = await UnderwritingDecisionDocument.find(filters).to_list()
        return [_decision_from_doc(d) for d in docs]


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

def _policy_from_doc(doc: PolicyDocument) -> Policy:
    data = _doc_dict(doc)
    data["coverage_amount"] = _money(doc.coverage_amount)
    data["premium_amount"] = _money(doc.premium_amount)
    return Policy(**data)


class MongoPolicyStore(PolicyStore):
    async def create(self, policy: Policy) -> Policy:
        data = {k: _bson_safe(v) for k, v in policy.model_dump(exclude={"id"}).items()}
        data["coverage_amount"] = float(policy.coverage_amount)
        data["premium_amount"] = float(policy.premium_amount)
        doc = PolicyDocument(id=PydanticObjectId(policy.id), **data)
        await doc.insert()
        return policy

    async def get(self, policy_id: str) -> Optional[Policy]:
        oid = _oid(policy_id)
        doc = await PolicyDocument.get(oid) if oid else None
        return _policy_from_doc(doc) if doc else None

    async def delete(self, policy_id: str) -> bool:
        oid = _oid(policy_id)
        if oid is None:
            return False
        result = await PolicyDocument.find_one(PolicyDocument.id == oid).delete()
        return bool(result and result.deleted_count)

    async def list(self, customer_id: Optional[str] = None) -> list[Policy]:
        filters = {"customer_id": customer_id} if customer_id is not None else {}
        docs = await PolicyDocument.find(filters).to_list()
        return [_policy_from_doc(d) for d in docs]


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

class MongoAuditStore(AuditStore):
    async def append(self, event: AuditEvent) -> AuditEvent:
        doc = AuditLogDocument(id=PydanticObjectId(event.id), **event.model_dump(exclude={"id"}))
        await doc.insert()
        return event

    async def list(
        self,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        filters: dict[str, Any] = {}
        if entity_id is not None:
            filters["entity_id"] = entity_id
        if entity_type is not None:
            filters["entity_type"] = {"$regex": f"^{re.escape(entity_type)}$", "$options": "i"}
        docs = await AuditLogDocument.find(filters).sort("+timestamp").to_list()
        return [AuditEvent(**_doc_dict(d)) for d in docs]


# ---------------------------------------------------------------------------
# Premium payments
# ---------------------------------------------------------------------------

def _payment_fields(payment: PremiumPayment) -> dict[str, Any]:
    data = {k: _bson_safe(v) for k, v in payment.model_dump(exclude={"id"}).items()}
    data["amount"] = float(payment.amount)
    data["status"] = payment.status.value
    return data


def _payment_from_doc(doc: PremiumPaymentDocument) -> PremiumPayment:
    data = _doc_dict(doc)
    data["amount"] = _money(doc.amount)
    return PremiumPayment(**data)


class MongoPaymentStore(PaymentStore):
    async def create(self, payment: PremiumPayment) -> PremiumPayment:
        doc = PremiumPaymentDocument(id=PydanticObjectId(payment.id), **_payment_fields(payment))
        await doc.insert()
        return payment

    async def get(self, payment_id: str) -> Optional[PremiumPayment]:
        oid = _oid(payment_id)
        doc = await PremiumPaymentDocument.get(oid) if oid else None
        return _payment_from_doc(doc) if doc else None

    async def replace_if_status(
        self,
        payment_id: str,
        expected: PaymentStatus,
        replacement: PremiumPayment,
    ) -> Optional[PremiumPayment]:
        oid = _oid(payment_id)
        if oid is None:
            return None
        doc = await PremiumPaymentDocument.find_one(
            PremiumPaymentDocument.id == oid,
            PremiumPaymentDocument.status == expected.value,
        ).update(
            {"$set": _payment_fields(replacement)},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        return _payment_from_doc(doc) if doc else None

    async def delete(self, payment_id: str) -> bool:
        oid = _oid(payment_id)
        if oid is None:
            return False
        result = await PremiumPaymentDocument.find_one(PremiumPaymentDocument.id == oid).delete()
        return bool(result and result.deleted_count)

    async def list(
        self,
        policy_id: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[PremiumPayment]:
        filters: dict[str, Any] = {}
        if policy_id is not None:
            filters["policy_id"] = policy_id
        if status is not None:
            filters["status"] = status.value
        docs = await PremiumPaymentDocument.find(filters).to_list()
        return [_payment_from_doc(d) for d in docs]


def mongo_stores() -> Stores:
    return Stores(
        customers=MongoCustomerStore(),
        assessments=MongoAssessmentStore(),
        decisions=MongoDecisionStore(),
        policies=MongoPolicyStore(),
        audit=MongoAuditStore(),
        payments=MongoPaymentStore(),
    )
