from typing import Optional

from riskguard.errors import StateConflictError
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
)

# Records are frozen pydantic models, so handing them out directly is safe.
# Each method body runs without awaiting, which makes every check-then-write
# below atomic on a single event loop.


class InMemoryCustomerStore(CustomerStore):
    def __init__(self):
        self._items: dict[str, Customer] = {}

    async def create(self, customer: Customer) -> Customer:
        self._items[customer.id] = customer
        return customer

    async def get(self, customer_id: str) -> Optional[Customer]:
        return self._items.get(customer_id)

    async def list(self) -> list[Customer]:
        return list(self._items.values())


class InMemoryAssessmentStore(AssessmentStore):
    def __init__(self):
        self._items: dict[str, RiskAssessment] = {}

    async def create(self, assessment: RiskAssessment) -> RiskAssessment:
        self._items[assessment.id] = assessment
        return assessment

    async def get(self, assessment_id: str) -> Optional[RiskAssessment]:
        return self._items.get(assessment_id)

    async def update_status_if(
        self,
        assessment_id: str,
        expected: AssessmentStatus,
        new_status: AssessmentStatus,
    ) -> Optional[RiskAssessment]:
        current = self._items.get(assessment_id)
        if current is None or current.status != expected:
            return None
        updated = current.model_copy(update={"status": new_status})
        self._items[assessment_id] = updated
        return updated

    async def list(
        self,
        result: Optional[AssessmentResult] = None,
        customer_id: Optional[str] = None,
    ) -> list[RiskAssessment]:
        return [
            a
            for a in self._items.values()
            if (result is None or a.result == result)
            and (customer_id is None or a.customer_id == customer_id)
        ]


class InMemoryDecisionStore(DecisionStore):
    def __init__(self):
        self._items: dict[str, UnderwritingDecision] = {}

    async def create(self, decision: UnderwritingDecision) -> UnderwritingDecision:
        if any(d.assessment_id == decision.assessment_id for d in self._items.values()):
            raise StateConflictError(
                f"Assessment {decision.assessment_id!r} already has an underwriting decision"
            )
        self._items[decision.id] = decision
        return decision

    async def get(self, decision_id: str) -> Optional[UnderwritingDecision]:
        return self._items.get(decision_id)

    async def replace_if_status(
        self,
        decision_id: str,
        expected: DecisionStatus,
        replacement: UnderwritingDecision,
    ) -> Optional[UnderwritingDecision]:
        current = self._items.get(decision_id)
        if current is None or current.status != expected:
            return None
        self._items[decision_id] = replacement
        return replacement

    async def delete(self, decision_id: str) -> bool:
        return self._items.pop(decision_id, None) is not None

    async def list(self, status: Optional[DecisionStatus] = None) -> list[UnderwritingDecision]:
        return [d for d in self._items.values() if status is None or d.status == status]


class InMemoryPolicyStore(PolicyStore):
    def __init__(self):
        self._items: dict[str, Policy] = {}

    async def create(self, policy: Policy) -> Policy:
        self._items[policy.id] = policy
        return policy

    async def get(self, policy_id: str) -> Optional[Policy]:
        return self._items.get(policy_id)

    async def delete(self, policy_id: str) -> bool:
        return self._items.pop(policy_id, None) is not None

    async def list(self, customer_id: Optional[str] = None) -> list[Policy]:
        return [p for p in self._items.values() if customer_id is None or p.customer_id == customer_id]


class InMemoryAuditStore(AuditStore):
    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append(self, event: AuditEvent) -> AuditEvent:
        self._events.append(event)
        return event

    async def list(
        self,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        return [
            e
            for e in self._events
            if (entity_id is None or e.entity_id == entity_id)
            and (entity_type is None or e.entity_type.lower() == entity_type.lower())
        ]


class InMemoryPaymentStore(PaymentStore):
    def __init__(self):
        self._items: dict[str, PremiumPayment] = {}

    async def create(self, payment: PremiumPayment) -> PremiumPayment:
        self._items[payment.id] = payment
        return payment

    async def get(self, payment_id: str) -> Optional[PremiumPayment]:
        return self._items.get(payment_id)

    async def replace_if_status(
        self,
        payment_id: str,
        expected: PaymentStatus,
        replacement: PremiumPayment,
    ) -> Optional[PremiumPayment]:
        current = self._items.get(payment_id)
        if current is None or current.status != expected:
            return None
        self._items[payment_id] = replacement
        return replacement

    async def delete(self, payment_id: str) -> bool:
        return self._items.pop(payment_id, None) is not None

    async def list(
        self,
        policy_id: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[PremiumPayment]:
        return [
            p
            for p in self._items.values()
            if (policy_id is None or p.policy_id == policy_id)
            and (status is None or p.status == status)
        ]


def in_memory_stores() -> Stores:
    return Stores(
        customers=InMemoryCustomerStore(),
        assessments=InMemoryAssessmentStore(),
        decisions=InMemoryDecisionStore(),
        policies=InMemoryPolicyStore(),
        audit=InMemoryAuditStore(),
        payments=InMemoryPaymentStore(),
    )
