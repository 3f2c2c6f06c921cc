"""
Store interfaces
================
The underwriting core never reaches for global lookup maps. Every collaborator
it reads from or writes to is one of these interfaces, implemented twice:

  repositories/memory.py  in-process dicts (tests, STORAGE_BACKEND=memory)
  repositories/mongo.py   MongoDB via Beanie (STORAGE_BACKEND=mongo)

Conditional updates (``update_status_if`` / ``replace_if_status``) are the
compare-and-set primitives the workflow relies on: they return ``None`` when
the stored status no longer matches the expected one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

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


class CustomerStore(ABC):
    @abstractmethod
    async def create(self, customer: Customer) -> Customer:
        """Persist a new customer."""

    @abstractmethod
    async def get(self, customer_id: str) -> Optional[Customer]:
        """Fetch a customer by id."""

    @abstractmethod
    async def list(self) -> list[Customer]:
        """Return all customers."""


class AssessmentStore(ABC):
    @abstractmethod
    async def create(self, assessment: RiskAssessment) -> RiskAssessment:
        """Persist a new assessment."""

    @abstractmethod
    async def get(self, assessment_id: str) -> Optional[RiskAssessment]:
        """Fetch an assessment by id."""

    @abstractmethod
    async def update_status_if(
        self,
        assessment_id: str,
        expected: AssessmentStatus,
        new_status: AssessmentStatus,
    ) -> Optional[RiskAssessment]:
        """Set ``status`` only if it currently equals ``expected``."""

    @abstractmethod
    async def list(
        self,
        result: Optional[AssessmentResult] = None,
        customer_id: Optional[str] = None,
    ) -> list[RiskAssessment]:
        """Return assessments, optionally filtered."""


class DecisionStore(ABC):
    @abstractmethod
    async def create(self, decision: UnderwritingDecision) -> UnderwritingDecision:
        """Persist a new decision; at most one per assessment (StateConflictError)."""

    @abstractmethod
    async def get(self, decision_id: str) -> Optional[UnderwritingDecision]:
        """Fetch a decision by id."""

    @abstractmethod
    async def replace_if_status(
        self,
        decision_id: str,
        expected: DecisionStatus,
        replacement: UnderwritingDecision,
    ) -> Optional[UnderwritingDecision]:
        """Swap the stored decision for ``replacement`` only if its status equals ``expected``."""

    @abstractmethod
    async def delete(self, decision_id: str) -> bool:
        """Remove a decision; True if something was deleted."""

    @abstractmethod
    async def list(self, status: Optional[DecisionStatus] = None) -> list[UnderwritingDecision]:
        """Return decisions, optionally filtered by status."""


class PolicyStore(ABC):
    @abstractmethod
    async def create(self, policy: Policy) -> Policy:
        """Persist a new policy."""

    @abstractmethod
    async def get(self, policy_id: str) -> Optional[Policy]:
        """Fetch a policy by id."""

    @abstractmethod
    async def delete(self, policy_id: str) -> bool:
        """Remove a policy; used to compensate a failed approval."""

    @abstractmethod
    async def list(self, customer_id: Optional[str] = None) -> list[Policy]:
        """Return policies, optionally for one customer."""


class AuditStore(ABC):
    @abstractmethod
    async def append(self, event: AuditEvent) -> AuditEvent:
        """Append one audit event."""

    @abstractmethod
    async def list(
        self,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Return audit events in insertion order, optionally filtered."""


class PaymentStore(ABC):
    @abstractmethod
    async def create(self, payment: PremiumPayment) -> PremiumPayment:
        """Persist a new premium payment."""

    @abstractmethod
    async def get(self, payment_id: str) -> Optional[PremiumPayment]:
        """Fetch a payment by id."""

    @abstractmethod
    async def replace_if_status(
        self,
        payment_id: str,
        expected: PaymentStatus,
        replacement: PremiumPayment,
    ) -> Optional[PremiumPayment]:
        """Swap the stored payment for ``replacement`` only if its status equals ``expected``."""

    @abstractmethod
    async def delete(self, payment_id: str) -> bool:
        """Remove a payment; used to compensate a failed recording."""

    @abstractmethod
    async def list(
        self,
        policy_id: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[PremiumPayment]:
        """Return payments, optionally for one policy and/or status."""


@dataclass
class Stores:
    customers: CustomerStore
    assessments: AssessmentStore
    decisions: DecisionStore
    policies: PolicyStore
    audit: AuditStore
    payments: PaymentStore
